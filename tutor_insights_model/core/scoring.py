"""
Score formulas and the churn-risk heuristic
"""
import math
from typing import Optional, Sequence, Union

from core.config import settings

from ..constants import *
from ..models import AggregatedMetrics, FormulaVersion
from ..utils import clamp01, round_int


def resolve_formula_version(version: Optional[Union[FormulaVersion, str]] = None) -> FormulaVersion:
    """Map None / 'v1' / 'v2' / enum to a FormulaVersion; None means the configured default."""
    if isinstance(version, FormulaVersion):
        return version
    if version is None:
        version = settings.SCORE_FORMULA_VERSION
    try:
        return FormulaVersion(str(version).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown score formula version {version!r}; expected 'v1' or 'v2'")


def clamp_score(value: float) -> int:
    """Round half-up and clamp to [0, 100]; non-finite scores become 0"""
    if value is None or not math.isfinite(value):
        return 0
    return max(0, min(100, round_int(value)))


def compute_score_v1(metrics: AggregatedMetrics) -> int:
    """Legacy four-term formula."""
    rating = metrics.avg_rating if metrics.avg_rating is not None else MAX_RATING
    w = V1_WEIGHTS

    raw = 100 - (
        metrics.dropout_rate * w["dropout_rate"]
        + metrics.tech_issue_rate * w["tech_issue_rate"]
        + metrics.reschedule_rate * w["reschedule_rate"]
        + (MAX_RATING - rating) * w["rating_gap"]
    )
    return clamp_score(raw)


def _volume_penalty(sessions_count: int) -> float:
    for upper, penalty in V2_VOLUME_PENALTY_TIERS:
        if sessions_count < upper:
            return penalty
    return 0


def compute_score_v2(metrics: AggregatedMetrics) -> int:
    """
    Nine weighted penalty terms: reliability (dropout, first-session dropout,
    tutor reschedules, no-shows), delivery (tech issues, reschedules),
    satisfaction (rating, first-session rating) and a small-sample volume step.
    """
    w = V2_WEIGHTS
    avg_rating = metrics.avg_rating if metrics.avg_rating is not None else MAX_RATING
    if metrics.first_session_avg_rating is not None:
        first_rating = metrics.first_session_avg_rating
    else:
        first_rating = avg_rating

    first_dropout_weight = (
        w["first_session_dropout_rate"] if metrics.first_session_count > 0
        else w["first_session_dropout_rate_none"]
    )

    penalties = [
        metrics.dropout_rate * w["dropout_rate"],
        metrics.first_session_dropout_rate * first_dropout_weight,
        metrics.tech_issue_rate * w["tech_issue_rate"],
        metrics.reschedule_rate * w["reschedule_rate"],
        metrics.tutor_initiated_reschedule_rate * w["tutor_initiated_reschedule_rate"],
        metrics.no_show_rate * w["no_show_rate"],
        (MAX_RATING - avg_rating) * w["rating_gap"],
        max(0.0, V2_FIRST_SESSION_RATING_TARGET - first_rating) * w["first_session_rating_gap"],
        _volume_penalty(metrics.sessions_count),
    ]
    return clamp_score(100 - sum(penalties))


def compute_score(metrics: AggregatedMetrics, version: Optional[Union[FormulaVersion, str]] = None) -> int:
    """Score a tutor (or a single day) with the selected formula."""
    version = resolve_formula_version(version)
    # No sessions: no evidence either way
    if metrics.sessions_count == 0:
        return EMPTY_SCORE
    if version is FormulaVersion.V1:
        return compute_score_v1(metrics)
    return compute_score_v2(metrics)


def _score_band_bonus(score: float) -> float:
    for upper, bonus in SCORE_BAND_BONUSES:
        if score < upper:
            return bonus
    return 0.0


def _trend_adjustment(trend: Sequence[float]) -> float:
    if len(trend) < 2:
        return 0.0
    delta = trend[-1] - trend[0]
    if delta < TREND_DROP_SEVERE:
        return TREND_DROP_SEVERE_BONUS
    if delta < TREND_DROP_MODERATE:
        return TREND_DROP_MODERATE_BONUS
    if delta > TREND_RISE:
        return TREND_RISE_CREDIT
    return 0.0


def compute_churn_risk(metrics: AggregatedMetrics, score: float, trend: Sequence[float]) -> float:
    """Fast always-on churn indicator in [0, 1]; feeds the weak training label."""
    w = CHURN_RISK_WEIGHTS
    risk = (
        metrics.dropout_rate * w["dropout_rate"]
        + metrics.no_show_rate * w["no_show_rate"]
        + metrics.tutor_initiated_reschedule_rate * w["tutor_initiated_reschedule_rate"]
        + metrics.first_session_dropout_rate * w["first_session_dropout_rate"]
    )

    if metrics.first_session_avg_rating is not None and metrics.first_session_avg_rating < LOW_FIRST_SESSION_RATING:
        risk += LOW_FIRST_SESSION_RATING_BONUS

    risk += _score_band_bonus(score)
    risk += _trend_adjustment(trend)

    return clamp01(risk)
