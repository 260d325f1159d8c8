"""
Daily score trend: per-day rescoring, gap carry-forward and smoothing
"""
import datetime as dt
from typing import List, Optional, Sequence, Union

import pandas as pd

from ..constants import TREND_WINDOW_DAYS, TREND_SMOOTHING_WINDOW
from ..models import FormulaVersion
from ..utils import round_int
from .metrics import SessionsLike, as_session_frame, compute_metrics
from .scoring import compute_score, resolve_formula_version


def build_trend_dates(latest_session_date: Optional[dt.date], days: int = TREND_WINDOW_DAYS) -> List[dt.date]:
    """The `days` consecutive calendar dates ending at the latest session date (today, UTC, if none)."""
    if latest_session_date is None:
        latest_session_date = dt.datetime.now(dt.timezone.utc).date()
    elif isinstance(latest_session_date, dt.datetime):
        latest_session_date = latest_session_date.date()
    start = latest_session_date - dt.timedelta(days=days - 1)
    return [start + dt.timedelta(days=i) for i in range(days)]


def smooth_trend(values: Sequence[float], window: int = TREND_SMOOTHING_WINDOW) -> List[int]:
    """Centered moving average, clipped at the edges, each point rounded half-up"""
    if len(values) == 0:
        return []
    if len(values) == 1:
        return [round_int(values[0])]
    smoothed = (
        pd.Series(values, dtype=float)
        .rolling(window=window, center=True, min_periods=1)
        .mean()
    )
    return [round_int(v) for v in smoothed]


def build_trend(
    sessions: SessionsLike,
    dates: Sequence[dt.date],
    fallback_score: int,
    version: Optional[Union[FormulaVersion, str]] = None,
) -> List[int]:
    """
    Score each date in isolation with the same formula as the overall score.
    Days without sessions carry the previous day's score forward; the first
    gap is seeded with the tutor's overall score. Always len(dates) values.
    """
    version = resolve_formula_version(version)
    df = as_session_frame(sessions)

    # TODO: key an incremental (tutor, date) aggregate instead of regrouping per call once volumes grow
    by_day = {day: group for day, group in df.groupby("date", sort=False)} if len(df) else {}

    raw: List[int] = []
    last_score = fallback_score
    for day in dates:
        daily = by_day.get(day)
        if daily is not None and len(daily) > 0:
            last_score = compute_score(compute_metrics(daily), version)
        raw.append(last_score)

    return smooth_trend(raw)
