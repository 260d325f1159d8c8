"""
Churn probability: in-batch logistic regression on weak labels

The model is retrained from zero on every invocation using labels derived
from the same batch's score / risk / dropout. Its probability measures how
consistently a tutor's KPIs resemble the weakly-labelled churn group; it is
not a calibrated forecast of unseen future churn.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from core.config import Settings, settings

from ..constants import *
from ..models import ChurnPrediction, FeatureMatrix, FeatureStatistics, ModelArtifacts, TutorFeatureVector
from ..utils import clamp
from .features import normalised_frame, to_array_features

logger = logging.getLogger(__name__)


@dataclass
class TrainOptions:
    """Training knobs; unset fields take the CHURN_MODEL_* settings."""
    learning_rate: float = field(default_factory=lambda: settings.CHURN_MODEL_LEARNING_RATE)
    iterations: int = field(default_factory=lambda: settings.CHURN_MODEL_ITERATIONS)
    regularization: float = field(default_factory=lambda: settings.CHURN_MODEL_REGULARIZATION)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "TrainOptions":
        return cls(**(config or settings).training_config)


def sigmoid(z):
    # clip keeps np.exp finite for extreme margins
    return 1.0 / (1.0 + np.exp(-np.clip(z, -500.0, 500.0)))


def _zero_model(matrix: FeatureMatrix) -> ModelArtifacts:
    return ModelArtifacts(
        weights={k: 0.0 for k in matrix.feature_order},
        bias=0.0,
        feature_keys=list(matrix.feature_order),
        feature_means=dict(matrix.stats.means),
        feature_stds=dict(matrix.stats.std_devs),
    )


def train_churn_model(matrix: FeatureMatrix, options: Optional[TrainOptions] = None) -> ModelArtifacts:
    """
    Full-batch gradient descent on z-normalised features.
    Weights and bias start at 0; L2 regularisation applies to weights only.
    An empty batch yields the all-zero model (uniform 0.5).
    """
    opts = options or TrainOptions.from_settings()
    if not matrix.vectors:
        return _zero_model(matrix)

    X = normalised_frame(matrix).to_numpy(dtype=float)
    y = matrix.labels().to_numpy(dtype=float)
    n = X.shape[0]

    weights = np.zeros(X.shape[1], dtype=float)
    bias = 0.0
    step = opts.learning_rate / n

    for _ in range(opts.iterations):
        error = sigmoid(X @ weights + bias) - y
        bias_gradient = float(error.sum())
        weight_gradients = X.T @ error
        bias -= step * bias_gradient
        weights = weights - (step * weight_gradients + opts.regularization * weights)

    logger.debug(
        f"Trained churn model on {n} tutors "
        f"({int(y.sum())} weak positives, {opts.iterations} iterations, bias={bias:.4f})"
    )

    return ModelArtifacts(
        weights={k: float(w) for k, w in zip(matrix.feature_order, weights)},
        bias=float(bias),
        feature_keys=list(matrix.feature_order),
        feature_means=dict(matrix.stats.means),
        feature_stds=dict(matrix.stats.std_devs),
    )


def _linear_sum(vector: TutorFeatureVector, model: ModelArtifacts) -> float:
    stats = FeatureStatistics(means=model.feature_means, std_devs=model.feature_stds)
    z = to_array_features(vector, stats, model.feature_keys)
    weights = np.array([model.weights[k] for k in model.feature_keys], dtype=float)
    return model.bias + float(weights @ z)


def predict_churn(vector: TutorFeatureVector, model: ModelArtifacts) -> ChurnPrediction:
    """Probability = sigmoid(margin); confidence is a decision-margin proxy in [0, 1]."""
    margin = _linear_sum(vector, model)
    probability = float(sigmoid(margin))
    confidence = clamp(abs(margin) / CONFIDENCE_MARGIN_SCALE + CONFIDENCE_FLOOR, 0.0, 1.0)
    return ChurnPrediction(probability=probability, confidence=confidence)


def predict_batch(matrix: FeatureMatrix, model: ModelArtifacts) -> pd.Series:
    """Churn probability per tutor id for every vector in the matrix"""
    return pd.Series(
        {v.tutor_id: predict_churn(v, model).probability for v in matrix.vectors},
        dtype=float,
    )
