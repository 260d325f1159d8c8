"""
AI Insight Orchestrator
Sequences feature engineering, model training and per-tutor insight assembly
"""
import logging
from typing import Dict, Optional, Sequence

from .constants import MODEL_VERSION
from .core.anomaly import detect_anomaly
from .core.churn import TrainOptions, predict_churn, train_churn_model
from .core.features import build_feature_matrix
from .core.forecast import forecast_trend
from .core.interventions import InterventionContext, InterventionLibrary, default_intervention_library, recommend_interventions
from .core.personas import PersonaRegistry, assign_persona, default_persona_registry
from .core.thresholds import compute_dynamic_thresholds
from .models import InsightsResult, TutorAiInsights, TutorScoreCard
from .presentation.coaching import build_coaching_plan
from .presentation.diagnostics import build_signals, build_summary

logger = logging.getLogger(__name__)


def generate_ai_insights(
    score_cards: Sequence[TutorScoreCard],
    personas: Optional[PersonaRegistry] = None,
    interventions: Optional[InterventionLibrary] = None,
    train_options: Optional[TrainOptions] = None,
) -> InsightsResult:
    """
    Build one insight bundle per score card plus the population thresholds.

    The persona registry and intervention library are read-only inputs; when
    omitted, fresh default tables are built for this call.
    """
    personas = personas if personas is not None else default_persona_registry()
    interventions = interventions if interventions is not None else default_intervention_library()

    matrix = build_feature_matrix(score_cards)
    model = train_churn_model(matrix, train_options)
    thresholds = compute_dynamic_thresholds(matrix.vectors)

    cards_by_id: Dict[str, TutorScoreCard] = {card.tutor_id: card for card in score_cards}
    insights: Dict[str, TutorAiInsights] = {}

    for vector in matrix.vectors:
        card = cards_by_id.get(vector.tutor_id)
        if card is None:
            logger.warning(f"No score card for feature vector {vector.tutor_id}; skipping")
            continue

        churn = predict_churn(vector, model)
        anomaly = detect_anomaly(vector, matrix)
        forecast = forecast_trend(card.trend_7d, card.score)
        persona = assign_persona(vector, personas)
        picks = recommend_interventions(
            vector,
            InterventionContext(
                churn_probability=churn.probability,
                anomaly_score=anomaly.score,
                forecast_trajectory=forecast.trajectory,
            ),
            interventions,
        )

        bundle = TutorAiInsights(
            model_version=MODEL_VERSION,
            churn_probability=churn.probability,
            churn_confidence=churn.confidence,
            anomaly_score=anomaly.score,
            forecast=forecast,
            interventions=picks,
            persona=persona,
            summary=build_summary(churn, forecast, anomaly, persona),
            signals=[],
            threshold_recommendation=thresholds,
        )
        bundle.signals = build_signals(bundle)
        bundle.coaching_plan = build_coaching_plan(bundle, card.name)

        if anomaly.contributors:
            logger.debug(f"{vector.tutor_id} anomaly contributors: {', '.join(anomaly.contributors)}")
        insights[vector.tutor_id] = bundle

    logger.info(f"Generated AI insights for {len(insights)} of {len(matrix.vectors)} tutors")
    return InsightsResult(insights=insights, threshold_summary=thresholds)
