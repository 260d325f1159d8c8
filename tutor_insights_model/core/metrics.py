"""
KPI aggregation over session records
"""
from typing import Iterable, Union

import numpy as np
import pandas as pd

from ..models import AggregatedMetrics, SessionRecord, SessionStatus, RescheduleInitiator, TutorKpis
from ..utils import safe_div, round_half_up

SESSION_COLUMNS = [
    "session_id", "tutor_id", "date", "duration_minutes", "rating", "status",
    "has_tech_issue", "is_first_session", "reschedule_initiator", "no_show",
]

SessionsLike = Union[pd.DataFrame, Iterable[SessionRecord]]


def sessions_to_frame(sessions: Iterable[SessionRecord]) -> pd.DataFrame:
    """Flatten session records into a frame; enums become their string values."""
    rows = []
    for s in sessions:
        rows.append({
            "session_id": s.session_id,
            "tutor_id": s.tutor_id,
            "date": s.date,
            "duration_minutes": float(s.duration_minutes),
            "rating": float(s.rating) if s.rating is not None else np.nan,
            "status": s.status.value,
            "has_tech_issue": bool(s.has_tech_issue),
            "is_first_session": bool(s.is_first_session),
            "reschedule_initiator": s.reschedule_initiator.value if s.reschedule_initiator else None,
            "no_show": bool(s.no_show),
        })
    return pd.DataFrame(rows, columns=SESSION_COLUMNS)


def as_session_frame(sessions: SessionsLike) -> pd.DataFrame:
    """Session frame with plain calendar dates in the `date` column, whatever the input shape."""
    if not isinstance(sessions, pd.DataFrame):
        return sessions_to_frame(sessions)
    if sessions.empty or "date" not in sessions:
        return sessions
    df = sessions.copy()
    df["date"] = pd.to_datetime(df["date"]).dt.date
    return df


def _mean_or_none(values: pd.Series):
    values = pd.to_numeric(values, errors="coerce").dropna()
    if values.empty:
        return None
    return float(values.mean())


def compute_metrics(sessions: SessionsLike) -> AggregatedMetrics:
    """
    Aggregate KPI rates for one tutor (or one day of one tutor).
    Zero sessions returns all-zero rates and null ratings.
    """
    df = sessions if isinstance(sessions, pd.DataFrame) else sessions_to_frame(sessions)
    total = len(df)
    if total == 0:
        return AggregatedMetrics()

    status = df["status"]
    is_first = df["is_first_session"].fillna(False).astype(bool)
    dropout = status == SessionStatus.DROPOUT.value
    rescheduled = status == SessionStatus.RESCHEDULED.value
    tutor_rescheduled = rescheduled & (df["reschedule_initiator"] == RescheduleInitiator.TUTOR.value)
    tech = df["has_tech_issue"].fillna(False).astype(bool)
    no_show = df["no_show"].fillna(False).astype(bool)

    first_count = int(is_first.sum())
    reschedule_count = int(rescheduled.sum())
    tutor_reschedule_count = int(tutor_rescheduled.sum())
    no_show_count = int(no_show.sum())

    return AggregatedMetrics(
        avg_rating=_mean_or_none(df["rating"]),
        dropout_rate=safe_div(int(dropout.sum()), total),
        tech_issue_rate=safe_div(int(tech.sum()), total),
        reschedule_rate=safe_div(reschedule_count, total),
        sessions_count=total,
        first_session_avg_rating=_mean_or_none(df.loc[is_first, "rating"]),
        # denominators: first sessions, reschedules, all sessions
        first_session_dropout_rate=safe_div(int((dropout & is_first).sum()), first_count),
        first_session_count=first_count,
        tutor_initiated_reschedule_rate=safe_div(tutor_reschedule_count, reschedule_count),
        tutor_initiated_reschedule_count=tutor_reschedule_count,
        no_show_rate=safe_div(no_show_count, total),
        no_show_count=no_show_count,
    )


def to_kpis(metrics: AggregatedMetrics) -> TutorKpis:
    """Round an aggregate for output: rates to 4 decimals, ratings to 2."""
    def _rating(value):
        return None if value is None else round_half_up(value, 2)

    return TutorKpis(
        avg_rating=_rating(metrics.avg_rating),
        dropout_rate=round_half_up(metrics.dropout_rate, 4),
        tech_issue_rate=round_half_up(metrics.tech_issue_rate, 4),
        reschedule_rate=round_half_up(metrics.reschedule_rate, 4),
        sessions_count=metrics.sessions_count,
        first_session_avg_rating=_rating(metrics.first_session_avg_rating),
        first_session_dropout_rate=round_half_up(metrics.first_session_dropout_rate, 4),
        first_session_count=metrics.first_session_count,
        tutor_initiated_reschedule_rate=round_half_up(metrics.tutor_initiated_reschedule_rate, 4),
        no_show_rate=round_half_up(metrics.no_show_rate, 4),
    )
