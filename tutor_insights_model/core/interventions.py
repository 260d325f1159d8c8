"""
Intervention recommendations from a rule library
"""
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple

from ..constants import *
from ..models import Effort, InterventionRecommendation, Trajectory, TutorFeatureVector
from ..utils import format_fixed, round_int


@dataclass(frozen=True)
class InterventionContext:
    churn_probability: float
    anomaly_score: float
    forecast_trajectory: Trajectory


@dataclass(frozen=True)
class InterventionRule:
    """match() scores relevance (>= 0); build() renders the card from the tutor's own numbers."""
    id: str
    match: Callable[[TutorFeatureVector, InterventionContext], float]
    build: Callable[[TutorFeatureVector], InterventionRecommendation]


class InterventionLibrary:
    """Immutable ordered rule set; order breaks score ties."""

    def __init__(self, rules: Iterable[InterventionRule]):
        self._rules: Tuple[InterventionRule, ...] = tuple(rules)
        ids = [r.id for r in self._rules]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate intervention ids in library: {ids}")

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def with_rule(self, rule: InterventionRule) -> "InterventionLibrary":
        return InterventionLibrary(self._rules + (rule,))


def _feature(vector: TutorFeatureVector, key: str) -> float:
    return vector.features.get(key, 0.0)


def _rating(vector: TutorFeatureVector, key: str) -> float:
    """Rating feature, with 0 (no rated sessions) read as a perfect 5."""
    value = _feature(vector, key)
    return value if value > 0 else MAX_RATING


def _pct(vector: TutorFeatureVector, key: str) -> int:
    return round_int(_feature(vector, key) * 100)


# ===== RULES =====

def _match_first_session(vector, context):
    return max(0.0, _feature(vector, "first_session_dropout_rate") * 2 + (3.5 - _rating(vector, "first_session_avg_rating")))


def _build_first_session(vector):
    return InterventionRecommendation(
        id="first-session-rescue",
        title="First Session Rescue Plan",
        description="Deploy shadow onboarding, expectation-setting scripts, and immediate post-session follow-ups to stabilize first impressions.",
        effectiveness=0.75,
        effort=Effort.MEDIUM,
        rationale=f"First-session dropout rate is {_pct(vector, 'first_session_dropout_rate')}% requiring targeted onboarding support.",
    )


def _match_tech(vector, context):
    return _feature(vector, "tech_issue_rate") * 4


def _build_tech(vector):
    return InterventionRecommendation(
        id="tech-intervention",
        title="Technical Coaching & Equipment Audit",
        description="Schedule a diagnostics session, run through the platform checklist, and provide backup equipment recommendations.",
        effectiveness=0.68,
        effort=Effort.HIGH,
        rationale=f"Tech issue rate at {_pct(vector, 'tech_issue_rate')}% indicates recurring technical blockers.",
    )


def _match_scheduling(vector, context):
    return _feature(vector, "tutor_initiated_reschedule_rate") * 3


def _build_scheduling(vector):
    return InterventionRecommendation(
        id="scheduling-discipline",
        title="Scheduling Discipline Reset",
        description="Introduce confirmation cadences, calendar guardrails, and accountability rituals to reduce tutor-initiated reschedules.",
        effectiveness=0.62,
        effort=Effort.MEDIUM,
        rationale=f"Tutor-initiated reschedules at {_pct(vector, 'tutor_initiated_reschedule_rate')}% are destabilizing student expectations.",
    )


def _match_no_show(vector, context):
    return _feature(vector, "no_show_rate") * 4


def _build_no_show(vector):
    return InterventionRecommendation(
        id="no-show-mitigation",
        title="Attendance Reinforcement",
        description="Activate reminder automations, implement last-mile check-ins, and escalate repeat no-shows to coaching leadership.",
        effectiveness=0.65,
        effort=Effort.MEDIUM,
        rationale=f"No-show rate at {_pct(vector, 'no_show_rate')}% demands attendance safeguards.",
    )


def _match_quality(vector, context):
    return max(0.0, 4.5 - _rating(vector, "avg_rating"))


def _build_quality(vector):
    return InterventionRecommendation(
        id="quality-lift",
        title="Quality Lift Mentorship",
        description="Pair with top-performing mentor for feedback loops, session reviews, and targeted skill drills.",
        effectiveness=0.58,
        effort=Effort.HIGH,
        rationale=f"Average rating at {format_fixed(_feature(vector, 'avg_rating'), 1)} indicates opportunity for structured quality coaching.",
    )


def _match_momentum(vector, context):
    if context.forecast_trajectory is not Trajectory.DECLINING:
        return 0.0
    return abs(_feature(vector, "trend_velocity")) / 10


def _build_momentum(vector):
    return InterventionRecommendation(
        id="momentum-boost",
        title="Momentum Boost Sprint",
        description="Launch a 7-day performance sprint with defined targets, daily check-ins, and progress dashboards to reverse decline.",
        effectiveness=0.55,
        effort=Effort.LOW,
        rationale="Forecast indicates decline; proactive sprint can reverse momentum.",
    )


def default_intervention_library() -> InterventionLibrary:
    return InterventionLibrary([
        InterventionRule("first-session-rescue", _match_first_session, _build_first_session),
        InterventionRule("tech-intervention", _match_tech, _build_tech),
        InterventionRule("scheduling-discipline", _match_scheduling, _build_scheduling),
        InterventionRule("no-show-mitigation", _match_no_show, _build_no_show),
        InterventionRule("quality-lift", _match_quality, _build_quality),
        InterventionRule("momentum-boost", _match_momentum, _build_momentum),
    ])


def recommend_interventions(
    vector: TutorFeatureVector,
    context: InterventionContext,
    library: Optional[InterventionLibrary] = None,
) -> List[InterventionRecommendation]:
    """
    Score every rule, keep matches above 0.05, return the top 3 by score.
    Lower-ranked picks get +0.05 effectiveness per rank (capped at 0.95).
    """
    if library is None:
        library = default_intervention_library()

    scored = []
    for rule in library:
        score = rule.match(vector, context)
        if score > INTERVENTION_MIN_MATCH:
            scored.append((score, rule))

    # sorted() is stable, so equal scores keep library order
    scored = sorted(scored, key=lambda item: item[0], reverse=True)[:INTERVENTION_TOP_N]

    picks = []
    for rank, (_, rule) in enumerate(scored):
        card = rule.build(vector)
        effectiveness = min(INTERVENTION_MAX_EFFECTIVENESS, card.effectiveness + rank * INTERVENTION_RANK_BUMP)
        picks.append(replace(card, effectiveness=effectiveness))
    return picks
