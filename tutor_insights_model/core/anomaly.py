"""
Anomaly detection: weighted |z| against the batch population
"""
from typing import Dict, Optional

from ..constants import *
from ..models import AnomalyLabel, AnomalyResult, FeatureMatrix, TutorFeatureVector
from ..utils import clamp01, format_fixed


def compute_z_score(value: float, mean: float, std_dev: float) -> float:
    if std_dev == 0:
        return 0.0
    return (value - mean) / std_dev


def anomaly_label(score: float) -> AnomalyLabel:
    if score > ANOMALY_CRITICAL:
        return AnomalyLabel.CRITICAL
    if score > ANOMALY_WATCH:
        return AnomalyLabel.WATCH
    return AnomalyLabel.NORMAL


def detect_anomaly(
    vector: TutorFeatureVector,
    matrix: FeatureMatrix,
    weights: Optional[Dict[str, float]] = None,
) -> AnomalyResult:
    """
    Sum weight * |z| over the watched features, divide by 12 and clamp.
    Features beyond |z| > 1.75 are named as contributors.
    """
    weights = weights or ANOMALY_WEIGHTS
    stats = matrix.stats
    contributors = []
    total = 0.0

    for feature, weight in weights.items():
        z = abs(compute_z_score(
            vector.features.get(feature, 0.0),
            stats.means.get(feature, 0.0),
            stats.std_devs.get(feature, 1.0),
        ))
        total += z * weight
        if z > ANOMALY_CONTRIBUTOR_Z:
            contributors.append(f"{feature.replace('_', ' ')}: z={format_fixed(z, 2)}")

    score = clamp01(total / ANOMALY_NORMALISER)
    return AnomalyResult(score=score, label=anomaly_label(score), contributors=contributors)
