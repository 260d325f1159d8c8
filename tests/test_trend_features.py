import datetime as dt

import pandas as pd
import pytest

from tutor_insights_model.constants import FEATURE_KEYS
from tutor_insights_model.core.features import (
    FeatureContractError,
    build_feature_matrix,
    build_feature_vector,
    compute_statistics,
    compute_trend_slope,
    compute_trend_variance,
    compute_trend_velocity,
    normalised_frame,
    to_array_features,
    weak_churn_label,
)
from tutor_insights_model.core.metrics import sessions_to_frame
from tutor_insights_model.core.trend import build_trend, build_trend_dates, smooth_trend
from tutor_insights_model.models import SessionStatus, TutorFeatureVector
from tutor_insights_model.utils import finite_or_zero

from conftest import BASE_DATE, make_card, make_session


class TestTrendDates:
    def test_window_ends_at_latest_date(self):
        dates = build_trend_dates(BASE_DATE)
        assert len(dates) == 7
        assert dates[0] == dt.date(2024, 3, 4)
        assert dates[-1] == BASE_DATE

    def test_custom_length(self):
        assert len(build_trend_dates(BASE_DATE, days=14)) == 14

    def test_defaults_to_today(self):
        dates = build_trend_dates(None)
        assert dates[-1] == dt.datetime.now(dt.timezone.utc).date()


class TestSmoothTrend:
    def test_centered_window_clipped_at_edges(self):
        assert smooth_trend([10, 20, 30]) == [15, 20, 25]

    def test_rounds_half_up(self):
        assert smooth_trend([1, 2]) == [2, 2]

    def test_short_inputs(self):
        assert smooth_trend([]) == []
        assert smooth_trend([7]) == [7]


class TestBuildTrend:
    def test_fixed_length_regardless_of_sparsity(self):
        dates = build_trend_dates(BASE_DATE)
        sessions = [make_session(date=BASE_DATE - dt.timedelta(days=30))]
        assert len(build_trend(sessions, dates, 80, "v2")) == 7
        assert len(build_trend([], dates, 80, "v2")) == 7

    def test_no_sessions_repeats_fallback(self):
        assert build_trend([], build_trend_dates(BASE_DATE), 100, "v2") == [100] * 7

    def test_carries_last_score_forward(self):
        dates = build_trend_dates(BASE_DATE)
        bad_day = dates[3]
        sessions = [make_session(date=bad_day, rating=None, status=SessionStatus.DROPOUT)]
        # raw: [90, 90, 90, 60, 60, 60, 60]
        assert build_trend(sessions, dates, 90, "v1") == [90, 90, 80, 70, 60, 60, 60]

    def test_datetime_frame_matches_records(self):
        dates = build_trend_dates(BASE_DATE)
        sessions = [make_session(date=BASE_DATE, rating=None, status=SessionStatus.DROPOUT)]
        frame = sessions_to_frame(sessions)
        frame["date"] = pd.to_datetime(frame["date"])

        expected = build_trend(sessions, dates, 90, "v1")
        assert expected == [90, 90, 90, 90, 90, 80, 75]
        assert build_trend(frame, dates, 90, "v1") == expected

    def test_day_uses_same_formula_as_overall(self):
        dates = build_trend_dates(BASE_DATE)
        sessions = [make_session(date=d, rating=4) for d in dates for _ in range(2)]
        trend = build_trend(sessions, dates, 0, "v1")
        assert trend == [90] * 7


class TestTrendStatistics:
    def test_slope_variance_velocity(self):
        trend = [10, 20, 30, 40]
        assert compute_trend_slope(trend) == pytest.approx(10.0)
        assert compute_trend_variance(trend) == pytest.approx(125.0)
        assert compute_trend_velocity(trend) == 30.0

    def test_degenerate_trends(self):
        assert compute_trend_slope([]) == 0.0
        assert compute_trend_slope([5]) == 0.0
        assert compute_trend_variance([]) == 0.0
        assert compute_trend_velocity([5]) == 0.0


class TestWeakLabel:
    @pytest.mark.parametrize("score,risk,dropout,expected", [
        (59, 0.1, 0.0, 1),
        (60, 0.1, 0.0, 0),
        (80, 0.56, 0.0, 1),
        (80, 0.55, 0.0, 0),
        (80, 0.1, 0.19, 1),
        (80, 0.1, 0.18, 0),
    ])
    def test_cut_lines(self, score, risk, dropout, expected):
        assert weak_churn_label(score, risk, dropout) == expected


class TestFeatureVector:
    def test_keys_and_values(self):
        card = make_card("T009", score=55, trend=[70, 68, 66, 64, 62, 60, 58], churn_risk=62.0,
                         avg_rating=None, dropout_rate=0.25)
        vector = build_feature_vector(card)

        assert vector.tutor_id == "T009"
        assert list(vector.features) == FEATURE_KEYS
        assert vector.features["avg_rating"] == 0.0
        assert vector.features["churn_risk"] == pytest.approx(0.62)
        assert vector.features["trend_velocity"] == -12.0
        assert vector.features["trend_slope"] == pytest.approx(-2.0)
        assert vector.label_churn == 1

    def test_healthy_card_unlabelled(self):
        assert build_feature_vector(make_card(score=90)).label_churn == 0

    def test_non_finite_inputs_become_zero(self):
        card = make_card("T010", score=85, churn_risk=float("inf"),
                         dropout_rate=float("nan"), tech_issue_rate=float("-inf"))
        vector = build_feature_vector(card)

        assert vector.features["dropout_rate"] == 0.0
        assert vector.features["tech_issue_rate"] == 0.0
        assert vector.features["churn_risk"] == 0.0
        # an infinite risk would otherwise cross the 0.55 cut-line
        assert vector.label_churn == 0

    @pytest.mark.parametrize("value,expected", [
        (None, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (float("-inf"), 0.0),
        (0.25, 0.25),
        (3, 3.0),
    ])
    def test_finite_or_zero(self, value, expected):
        assert finite_or_zero(value) == expected


class TestStatistics:
    def test_population_std_and_floor(self):
        vectors = [
            build_feature_vector(make_card("A", score=80, dropout_rate=0.1)),
            build_feature_vector(make_card("B", score=90, dropout_rate=0.3)),
        ]
        stats = compute_statistics(vectors)

        assert stats.means["score"] == pytest.approx(85.0)
        assert stats.std_devs["score"] == pytest.approx(5.0)
        assert stats.std_devs["dropout_rate"] == pytest.approx(0.1)
        # identical across the batch
        assert stats.std_devs["sessions_count"] == 1.0
        assert all(std > 0 for std in stats.std_devs.values())

    def test_empty_batch(self):
        stats = compute_statistics([])
        assert set(stats.means) == set(FEATURE_KEYS)
        assert all(v == 0.0 for v in stats.means.values())
        assert all(v == 1.0 for v in stats.std_devs.values())

    def test_matrix(self, mixed_cards):
        matrix = build_feature_matrix(mixed_cards)
        assert [v.tutor_id for v in matrix.vectors] == [c.tutor_id for c in mixed_cards]
        assert matrix.feature_order == FEATURE_KEYS
        frame = matrix.to_frame()
        assert frame.shape == (5, len(FEATURE_KEYS))
        assert matrix.labels().loc["T003"] == 1.0

    def test_normalised_frame_is_centred(self, mixed_cards):
        frame = normalised_frame(build_feature_matrix(mixed_cards))
        assert frame["score"].mean() == pytest.approx(0.0, abs=1e-9)

    def test_missing_key_is_a_contract_error(self, mixed_cards):
        matrix = build_feature_matrix(mixed_cards)
        features = dict(matrix.vectors[0].features)
        features.pop("no_show_rate")
        matrix.vectors[0] = TutorFeatureVector(tutor_id="T001", features=features, label_churn=0)

        with pytest.raises(FeatureContractError, match="no_show_rate"):
            normalised_frame(matrix)

    def test_array_features_match_frame(self, mixed_cards):
        matrix = build_feature_matrix(mixed_cards)
        row = to_array_features(matrix.vectors[2], matrix.stats, matrix.feature_order)
        frame = normalised_frame(matrix)

        assert row.shape == (len(FEATURE_KEYS),)
        assert list(row) == pytest.approx(list(frame.loc["T003"]))
