import datetime as dt
import statistics

import pandas as pd
import pytest

from tutor_insights_model.core.metrics import sessions_to_frame
from tutor_insights_model.models import FormulaVersion, SessionStatus
from tutor_insights_model.pipeline import TutorScoringPipeline, run_scoring_pipeline, select_at_risk_tutors

from conftest import BASE_DATE, make_card, make_session, make_tutor


def _day(k):
    return BASE_DATE - dt.timedelta(days=k % 7)


@pytest.fixture
def roster():
    return [make_tutor("T1"), make_tutor("T2"), make_tutor("T3")]


@pytest.fixture
def sessions():
    healthy = [make_session("T1", date=_day(k), rating=5) for k in range(10)]
    struggling = [
        make_session("T2", date=_day(k), rating=2,
                     status=SessionStatus.DROPOUT if k < 4 else SessionStatus.COMPLETED)
        for k in range(10)
    ]
    orphans = [make_session("GHOST", date=BASE_DATE + dt.timedelta(days=3)) for _ in range(2)]
    return healthy + struggling + orphans


class TestSelectAtRisk:
    def test_bottom_share_when_smaller(self):
        cards = [make_card(f"T{i}", score=s) for i, s in enumerate([95, 30, 40, 50, 55, 58, 70, 80, 85, 90])]
        selected = select_at_risk_tutors(cards)
        assert [c.score for c in selected] == [30, 40]

    def test_below_cutoff_when_smaller(self):
        cards = [make_card(f"T{i}", score=s) for i, s in enumerate([50, 70, 75, 80, 82, 85, 88, 90, 92, 95])]
        assert [c.tutor_id for c in select_at_risk_tutors(cards)] == ["T0"]

    def test_nobody_below_cutoff(self):
        cards = [make_card(f"T{i}", score=s) for i, s in enumerate([70, 75, 80, 85, 90])]
        # empty cut-off cohort is the smaller one
        assert select_at_risk_tutors(cards) == []

    def test_ties_broken_by_id(self):
        cards = [make_card("B", score=40), make_card("A", score=40), make_card("C", score=90)]
        selected = select_at_risk_tutors(cards, bottom_share=0.5)
        assert [c.tutor_id for c in selected] == ["A"]

    def test_cap_and_empty(self):
        cards = [make_card(f"T{i:02d}", score=10 + i) for i in range(10)]
        assert len(select_at_risk_tutors(cards, max_tutors=1)) == 1
        assert select_at_risk_tutors([]) == []


class TestScoringPipeline:
    def test_run(self, roster, sessions):
        result = TutorScoringPipeline().run(roster, sessions)

        assert [c.tutor_id for c in result.tutors] == ["T2", "T1", "T3"]
        assert [c.tutor_id for c in result.at_risk] == ["T2"]

        summary = result.summary
        assert summary.processed == 3
        assert summary.total_sessions == 20
        assert summary.orphaned_sessions == 2
        assert summary.formula_version is FormulaVersion.V2
        assert summary.at_risk_count == 1
        assert summary.top_at_risk[0] == {"tutor_id": "T2", "name": "Tutor T2", "score": result.tutors[0].score}
        # orphaned sessions never move the trend window
        assert result.trend_dates[-1] == BASE_DATE

    def test_score_cards(self, roster, sessions):
        cards = {c.tutor_id: c for c in run_scoring_pipeline(roster, sessions).tutors}

        assert cards["T1"].score == 100
        assert cards["T2"].score == 32
        assert cards["T2"].kpis.dropout_rate == 0.4
        assert all(len(c.trend_7d) == 7 for c in cards.values())
        assert all(0.0 <= c.churn_risk <= 100.0 for c in cards.values())
        assert all(c.ai is not None for c in cards.values())

    def test_zero_session_tutor(self, roster, sessions):
        card = next(c for c in run_scoring_pipeline(roster, sessions).tutors if c.tutor_id == "T3")

        assert card.score == 100
        assert card.kpis.avg_rating is None
        assert card.kpis.sessions_count == 0
        assert card.churn_risk == 0.0
        assert card.trend_7d == [100] * 7
        assert card.ai.forecast.trajectory.value == "stable"
        assert card.ai.interventions == []

    def test_v1_formula(self, roster, sessions):
        result = run_scoring_pipeline(roster, sessions, formula_version="v1")
        assert result.summary.formula_version is FormulaVersion.V1
        assert result.to_dict()["formula_version"] == "v1"

    def test_unknown_formula(self):
        with pytest.raises(ValueError):
            TutorScoringPipeline(formula_version="v9")

    def test_as_of_pins_trend_window(self, roster, sessions):
        as_of = dt.date(2024, 4, 1)
        result = run_scoring_pipeline(roster, sessions, as_of=as_of)

        assert result.trend_dates[-1] == as_of
        t1 = next(c for c in result.tutors if c.tutor_id == "T1")
        assert t1.trend_7d == [100] * 7

    def test_duplicate_tutor_keeps_later_record(self, sessions):
        roster = [make_tutor("T1", name="Old"), make_tutor("T1", name="New")]
        result = run_scoring_pipeline(roster, sessions)

        assert result.summary.processed == 1
        assert result.tutors[0].name == "New"
        assert result.summary.orphaned_sessions == 12

    def test_datetime_frame_input(self, roster, sessions):
        frame = sessions_to_frame(sessions)
        frame["date"] = pd.to_datetime(frame["date"])

        from_frame = run_scoring_pipeline(roster, frame)
        from_records = run_scoring_pipeline(roster, sessions)

        assert from_frame.trend_dates == from_records.trend_dates
        assert from_frame.trend_dates[-1] == BASE_DATE
        assert [c.trend_7d for c in from_frame.tutors] == [c.trend_7d for c in from_records.tutors]

    def test_empty_inputs(self):
        result = run_scoring_pipeline([], [])
        assert result.tutors == []
        assert result.at_risk == []
        assert result.summary.total_sessions == 0

    def test_idempotent(self, roster, sessions):
        first = run_scoring_pipeline(roster, sessions).to_dict()
        second = run_scoring_pipeline(roster, sessions).to_dict()
        first.pop("generated_at")
        second.pop("generated_at")
        assert first == second

    def test_to_dict(self, roster, sessions):
        result = run_scoring_pipeline(roster, sessions)
        data = result.to_dict()

        assert set(data) == {"generated_at", "formula_version", "ai_thresholds", "tutors"}
        assert data["tutors"][0]["tutor_id"] == "T2"
        assert data["tutors"][0]["ai"]["modelVersion"] == "ai.v1"
        assert "scoreThreshold" in data["ai_thresholds"]
        assert result.summary.to_dict()["orphanedSessions"] == 2


def test_threshold_between_min_and_median_score():
    """100 tutors, 15 of them seeded with elevated dropout, no-show and tech-issue rates."""
    tutors, sessions = [], []
    for i in range(100):
        tutor_id = f"T{i:03d}"
        tutors.append(make_tutor(tutor_id))
        if i < 85:
            rating = {0: 3, 1: 4, 2: 5}[i % 3]
            sessions.extend(make_session(tutor_id, date=_day(k), rating=rating) for k in range(12))
        else:
            for k in range(12):
                sessions.append(make_session(
                    tutor_id, date=_day(k), rating=3,
                    status=SessionStatus.DROPOUT if k < 6 else SessionStatus.COMPLETED,
                    no_show=6 <= k < 9,
                    has_tech_issue=k >= 9,
                ))

    result = run_scoring_pipeline(tutors, sessions)
    scores = [c.score for c in result.tutors]
    threshold = result.summary.ai_thresholds.score_threshold

    assert min(scores) < threshold < statistics.median(scores)
    assert result.summary.ai_thresholds.dropout_rate_threshold == 0.0
