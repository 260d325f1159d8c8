"""
Feature engineering: score cards -> normalized feature vectors + weak labels
"""
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..constants import *
from ..models import FeatureMatrix, FeatureStatistics, TutorFeatureVector, TutorScoreCard
from ..utils import finite_or_zero, ols_slope_intercept, population_variance


class FeatureContractError(ValueError):
    """A vector does not carry the feature keys a consumer was built for."""


def compute_trend_slope(trend: Sequence[float]) -> float:
    slope, _ = ols_slope_intercept(trend)
    return slope


def compute_trend_variance(trend: Sequence[float]) -> float:
    return population_variance(trend)


def compute_trend_velocity(trend: Sequence[float]) -> float:
    """Last minus first point; 0 for fewer than two points"""
    if len(trend) < 2:
        return 0.0
    return float(trend[-1] - trend[0])


def weak_churn_label(score: float, churn_risk: float, dropout_rate: float) -> int:
    """
    Heuristic training label: 1 iff score < 60, risk > 0.55 or dropout > 18%.
    Depends only on the score card, never on model output.
    """
    return int(
        score < LABEL_SCORE_BELOW
        or churn_risk > LABEL_CHURN_RISK_ABOVE
        or dropout_rate > LABEL_DROPOUT_RATE_ABOVE
    )


def build_feature_vector(card: TutorScoreCard) -> TutorFeatureVector:
    kpis = card.kpis
    trend = list(card.trend_7d)
    churn_risk = finite_or_zero(card.churn_risk) / 100

    features: Dict[str, float] = {
        "dropout_rate": finite_or_zero(kpis.dropout_rate),
        "tech_issue_rate": finite_or_zero(kpis.tech_issue_rate),
        "reschedule_rate": finite_or_zero(kpis.reschedule_rate),
        "sessions_count": finite_or_zero(kpis.sessions_count),
        "avg_rating": finite_or_zero(kpis.avg_rating),
        "first_session_avg_rating": finite_or_zero(kpis.first_session_avg_rating),
        "first_session_dropout_rate": finite_or_zero(kpis.first_session_dropout_rate),
        "first_session_count": finite_or_zero(kpis.first_session_count),
        "tutor_initiated_reschedule_rate": finite_or_zero(kpis.tutor_initiated_reschedule_rate),
        "no_show_rate": finite_or_zero(kpis.no_show_rate),
        "score": finite_or_zero(card.score),
        "trend_slope": finite_or_zero(compute_trend_slope(trend)),
        "trend_variance": finite_or_zero(compute_trend_variance(trend)),
        "trend_velocity": finite_or_zero(compute_trend_velocity(trend)),
        "churn_risk": churn_risk,
    }

    label = weak_churn_label(features["score"], churn_risk, features["dropout_rate"])
    return TutorFeatureVector(tutor_id=card.tutor_id, features=features, label_churn=label)


def compute_statistics(vectors: Sequence[TutorFeatureVector], feature_order: Optional[List[str]] = None) -> FeatureStatistics:
    """Population mean / std per feature; a zero std is replaced by 1."""
    order = list(feature_order or FEATURE_KEYS)
    if not vectors:
        return FeatureStatistics(
            means={k: 0.0 for k in order},
            std_devs={k: 1.0 for k in order},
        )

    frame = pd.DataFrame([v.features for v in vectors], columns=order, dtype=float).fillna(0.0)
    means = frame.mean()
    stds = frame.std(ddof=0).replace(0.0, 1.0).fillna(1.0)

    return FeatureStatistics(
        means={k: float(means[k]) for k in order},
        std_devs={k: float(stds[k]) for k in order},
    )


def build_feature_matrix(cards: Sequence[TutorScoreCard]) -> FeatureMatrix:
    vectors = [build_feature_vector(card) for card in cards]
    order = list(FEATURE_KEYS)
    return FeatureMatrix(vectors=vectors, feature_order=order, stats=compute_statistics(vectors, order))


def normalise_feature(value: float, mean: float, std_dev: float) -> float:
    if std_dev == 0:
        return 0.0
    return (value - mean) / std_dev


def ensure_feature_keys(vector: TutorFeatureVector, keys: Sequence[str]) -> None:
    missing = [k for k in keys if k not in vector.features]
    if missing:
        raise FeatureContractError(
            f"Feature vector for tutor {vector.tutor_id} is missing {', '.join(missing)}"
        )


def to_array_features(vector: TutorFeatureVector, stats: FeatureStatistics, feature_order: Sequence[str]) -> np.ndarray:
    """z-normalised features of one vector, in feature order"""
    ensure_feature_keys(vector, feature_order)
    return np.array([
        normalise_feature(vector.features[k], stats.means[k], stats.std_devs[k])
        for k in feature_order
    ], dtype=float)


def normalised_frame(matrix: FeatureMatrix) -> pd.DataFrame:
    """z-normalised feature frame for the whole batch"""
    for vector in matrix.vectors:
        ensure_feature_keys(vector, matrix.feature_order)
    frame = matrix.to_frame()
    means = pd.Series(matrix.stats.means).reindex(matrix.feature_order).fillna(0.0)
    stds = pd.Series(matrix.stats.std_devs).reindex(matrix.feature_order).replace(0.0, 1.0).fillna(1.0)
    return (frame - means) / stds
