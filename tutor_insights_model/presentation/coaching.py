"""
Coaching playbook rendering
"""
from typing import List, Sequence

from ..models import InterventionRecommendation, TutorAiInsights
from ..utils import format_fixed


def _pct(value: float) -> str:
    return f"{format_fixed(value * 100)}%"


def build_coaching_plan(insights: TutorAiInsights, tutor_name: str) -> str:
    """Markdown playbook built from an insight bundle's summary, signals and picks."""
    lines: List[str] = [
        f"# Coaching Playbook for {tutor_name}",
        "",
        f"**AI Summary:** {insights.summary}",
        "",
        "## Top Priorities",
    ]
    top = insights.signals[:3]
    if top:
        lines.extend(f"- {signal}" for signal in top)
    else:
        lines.append("- No elevated signals this cycle.")
    lines.append("")

    lines.append("## Intervention Roadmap")
    if not insights.interventions:
        lines.append("- No interventions recommended; continue standard check-ins.")
        lines.append("")
    for index, intervention in enumerate(insights.interventions, start=1):
        lines.extend([
            f"### {index}. {intervention.title}",
            f"- **Effectiveness**: {_pct(intervention.effectiveness)}",
            f"- **Effort**: {intervention.effort.value}",
            f"- **Why**: {intervention.rationale}",
            f"- **Action**: {intervention.description}",
            "",
        ])

    lines.extend([
        "## Forecast Insight",
        f"- {insights.forecast.description}",
        f"- Confidence: {_pct(insights.forecast.confidence)}",
        "",
        "## Persona Guidance",
    ])
    persona = insights.persona
    if persona is not None:
        lines.extend([
            f"- **Profile**: {persona.label}",
            f"- **Description**: {persona.description}",
            f"- **Strengths**: {', '.join(persona.strengths)}",
            f"- **Risks**: {', '.join(persona.risks)}",
        ])
    else:
        lines.append("- No persona classification available.")

    lines.extend([
        "",
        "## Next Review",
        "- Schedule follow-up in 7 days to review forecast accuracy and intervention progress.",
    ])
    return "\n".join(lines)


def build_intervention_notes(interventions: Sequence[InterventionRecommendation]) -> str:
    """One numbered line per intervention"""
    return "\n".join(
        f"{index}. {item.title} ({_pct(item.effectiveness)} expected impact). {item.rationale}"
        for index, item in enumerate(interventions, start=1)
    )
