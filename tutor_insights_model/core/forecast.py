"""
Trend forecasting: OLS projection of the smoothed trend
"""
import math
from typing import Sequence, Tuple

from ..constants import *
from ..models import AiForecast, Trajectory
from ..utils import clamp, format_fixed, ols_slope_intercept, population_variance


def linear_regression(trend: Sequence[float]) -> Tuple[float, float]:
    """(slope, intercept) of trend values against day index"""
    return ols_slope_intercept(trend)


def trend_variance(trend: Sequence[float]) -> float:
    return population_variance(trend)


def _project(index: int, slope: float, intercept: float, fallback: float) -> float:
    value = slope * index + intercept
    return value if math.isfinite(value) else fallback


def classify_trajectory(slope: float, variance: float) -> Trajectory:
    if abs(slope) < TRAJECTORY_SLOPE and variance > VOLATILE_VARIANCE:
        return Trajectory.VOLATILE
    if slope > TRAJECTORY_SLOPE:
        return Trajectory.IMPROVING
    if slope < -TRAJECTORY_SLOPE:
        return Trajectory.DECLINING
    return Trajectory.STABLE


def describe_trajectory(trajectory: Trajectory, score_7d: float, score_14d: float) -> str:
    s7, s14 = format_fixed(score_7d), format_fixed(score_14d)
    if trajectory is Trajectory.IMPROVING:
        return f"Projected to improve to {s7} in 7 days and {s14} within 14 days."
    if trajectory is Trajectory.DECLINING:
        return f"Projected decline to {s7} in 7 days and {s14} within 14 days."
    if trajectory is Trajectory.VOLATILE:
        lo, hi = format_fixed(min(score_7d, score_14d)), format_fixed(max(score_7d, score_14d))
        return f"Performance is volatile. Expected range {lo}–{hi} over the next 2 weeks."
    return f"Performance expected to remain stable around {format_fixed((score_7d + score_14d) / 2)}."


def forecast_trend(trend: Sequence[float], current_score: float) -> AiForecast:
    """Project 7 and 14 days past the end of the trend and classify the trajectory."""
    slope, intercept = linear_regression(trend)
    variance = trend_variance(trend)
    horizon_7, horizon_14 = FORECAST_HORIZONS

    projected_7 = _project(len(trend) + horizon_7, slope, intercept, current_score)
    projected_14 = _project(len(trend) + horizon_14, slope, intercept, projected_7)
    score_7d = clamp(projected_7, 0.0, 100.0)
    score_14d = clamp(projected_14, 0.0, 100.0)

    trajectory = classify_trajectory(slope, variance)
    confidence = clamp(
        1 - min(1.0, variance / FORECAST_VARIANCE_SCALE),
        FORECAST_CONFIDENCE_MIN,
        FORECAST_CONFIDENCE_MAX,
    )

    return AiForecast(
        score_7d=score_7d,
        score_14d=score_14d,
        trajectory=trajectory,
        confidence=confidence,
        description=describe_trajectory(trajectory, score_7d, score_14d),
    )
