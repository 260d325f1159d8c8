"""
Shared record factories for the tutor insights tests
"""
import datetime as dt
import itertools

import pytest

from tutor_insights_model.models import (
    SessionRecord,
    SessionStatus,
    TutorKpis,
    TutorRecord,
    TutorScoreCard,
)

BASE_DATE = dt.date(2024, 3, 10)

_session_ids = itertools.count(1)


def make_session(tutor_id="T001", date=BASE_DATE, rating=5, status=SessionStatus.COMPLETED, **overrides):
    fields = dict(
        session_id=f"S{next(_session_ids):05d}",
        tutor_id=tutor_id,
        date=date,
        duration_minutes=60,
        rating=rating,
        status=status,
        has_tech_issue=False,
        is_first_session=False,
        reschedule_initiator=None,
        no_show=False,
    )
    fields.update(overrides)
    return SessionRecord(**fields)


def make_tutor(tutor_id="T001", name=None, subject="Math"):
    return TutorRecord(
        tutor_id=tutor_id,
        name=name or f"Tutor {tutor_id}",
        subject=subject,
        hire_date=dt.date(2023, 1, 15),
    )


def make_kpis(**overrides):
    fields = dict(
        avg_rating=4.8,
        dropout_rate=0.05,
        tech_issue_rate=0.02,
        reschedule_rate=0.05,
        sessions_count=20,
        first_session_avg_rating=4.7,
        first_session_dropout_rate=0.0,
        first_session_count=3,
        tutor_initiated_reschedule_rate=0.0,
        no_show_rate=0.0,
    )
    fields.update(overrides)
    return TutorKpis(**fields)


def make_card(tutor_id="T001", score=85, trend=None, churn_risk=5.0, **kpi_overrides):
    return TutorScoreCard(
        tutor_id=tutor_id,
        name=f"Tutor {tutor_id}",
        subject="Math",
        score=score,
        trend_7d=list(trend) if trend is not None else [score] * 7,
        kpis=make_kpis(**kpi_overrides),
        churn_risk=churn_risk,
    )


@pytest.fixture
def tutor_factory():
    return make_tutor


@pytest.fixture
def session_factory():
    return make_session


@pytest.fixture
def card_factory():
    return make_card


@pytest.fixture
def mixed_cards():
    """A small batch with healthy, struggling and empty tutors"""
    return [
        make_card("T001", score=92, trend=[88, 89, 90, 91, 92, 92, 93]),
        make_card("T002", score=78, trend=[80, 79, 78, 78, 77, 78, 78], dropout_rate=0.1),
        make_card(
            "T003", score=41, trend=[70, 65, 55, 50, 45, 42, 40], churn_risk=62.0,
            dropout_rate=0.35, no_show_rate=0.2, tech_issue_rate=0.25,
            tutor_initiated_reschedule_rate=0.5, first_session_dropout_rate=0.5,
            avg_rating=3.1, first_session_avg_rating=2.5,
        ),
        make_card("T004", score=66, trend=[60, 72, 58, 75, 61, 70, 66], no_show_rate=0.1),
        make_card(
            "T005", score=100, trend=[100] * 7, churn_risk=0.0,
            avg_rating=None, dropout_rate=0.0, tech_issue_rate=0.0, reschedule_rate=0.0,
            sessions_count=0, first_session_avg_rating=None, first_session_count=0,
        ),
    ]
