"""
Population-calibrated alert thresholds
"""
import math
from typing import Sequence

import numpy as np

from ..constants import *
from ..models import ThresholdRecommendation, TutorFeatureVector
from ..utils import round_half_up, round_int


def percentile(values: Sequence[float], p: float) -> float:
    """Nearest rank on a sorted copy: index floor(p/100 * (n-1)), no interpolation."""
    if len(values) == 0:
        return 0.0
    ordered = np.sort(np.asarray(values, dtype=float))
    index = math.floor((p / 100) * (len(ordered) - 1))
    return float(ordered[index])


def compute_dynamic_thresholds(vectors: Sequence[TutorFeatureVector]) -> ThresholdRecommendation:
    scores = [v.features.get("score", 0.0) for v in vectors]
    dropout_rates = [v.features.get("dropout_rate", 0.0) for v in vectors]
    no_show_rates = [v.features.get("no_show_rate", 0.0) for v in vectors]

    score_threshold = round_int(percentile(scores, SCORE_THRESHOLD_PERCENTILE))
    dropout_threshold = round_half_up(percentile(dropout_rates, DROPOUT_THRESHOLD_PERCENTILE) * 100, 1)
    no_show_threshold = round_half_up(percentile(no_show_rates, NO_SHOW_THRESHOLD_PERCENTILE) * 100, 1)

    return ThresholdRecommendation(
        score_threshold=score_threshold,
        dropout_rate_threshold=dropout_threshold,
        no_show_rate_threshold=no_show_threshold,
        rationale=(
            f"Thresholds calibrated from current distribution "
            f"(score P{SCORE_THRESHOLD_PERCENTILE}={score_threshold}, "
            f"dropout P{DROPOUT_THRESHOLD_PERCENTILE}={dropout_threshold}%, "
            f"no-show P{NO_SHOW_THRESHOLD_PERCENTILE}={no_show_threshold}%)."
        ),
    )
