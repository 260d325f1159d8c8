"""
Summary sentence and qualitative signal generation
"""
from typing import List, Optional

from ..constants import ANOMALY_CRITICAL, ANOMALY_WATCH, SIGNAL_CHURN_HIGH, SIGNAL_CHURN_MODERATE
from ..models import AiForecast, AnomalyLabel, AnomalyResult, ChurnPrediction, PersonaProfile, Trajectory, TutorAiInsights
from ..utils import format_fixed


def _pct(value: float) -> str:
    return format_fixed(value * 100)


def build_summary(
    churn: ChurnPrediction,
    forecast: AiForecast,
    anomaly: AnomalyResult,
    persona: Optional[PersonaProfile],
) -> str:
    parts = [
        f"Churn probability {_pct(churn.probability)}% ({_pct(churn.confidence)}% confidence).",
        f"Forecast: {forecast.trajectory.value} ({forecast.description.lower()}).",
    ]
    if anomaly.label is not AnomalyLabel.NORMAL:
        parts.append(f"Anomaly level: {anomaly.label.value}.")
    if persona is not None:
        parts.append(f"Persona: {persona.label}.")
    return " ".join(parts)


def build_signals(insights: TutorAiInsights) -> List[str]:
    """Ordered signals: churn, anomaly, forecast, persona."""
    signals = []

    p = insights.churn_probability
    if p > SIGNAL_CHURN_HIGH:
        signals.append(f"High churn probability ({_pct(p)}%)")
    elif p > SIGNAL_CHURN_MODERATE:
        signals.append(f"Moderate churn probability ({_pct(p)}%)")

    if insights.anomaly_score > ANOMALY_CRITICAL:
        signals.append("Critical anomaly detected")
    elif insights.anomaly_score > ANOMALY_WATCH:
        signals.append("Unusual metric pattern detected")

    if insights.forecast.trajectory is Trajectory.DECLINING:
        signals.append("Forecast indicates decline")
    elif insights.forecast.trajectory is Trajectory.VOLATILE:
        signals.append("Performance is volatile")

    if insights.persona is not None:
        signals.append(f"Persona: {insights.persona.label}")

    return signals
