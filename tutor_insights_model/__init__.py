"""
Tutor Insights Model Package

Session KPIs, versioned performance scores and batch AI insights for tutors.
"""

# Core constants and utilities - always available
from .constants import MODEL_VERSION, FEATURE_KEYS
from .utils import nz_num, safe_div, clamp, clamp01, round_half_up

# Data models
from .models import (
    SessionRecord,
    TutorRecord,
    SessionStatus,
    RescheduleInitiator,
    FormulaVersion,
    Trajectory,
    AnomalyLabel,
    Effort,
    AggregatedMetrics,
    TutorKpis,
    TutorScoreCard,
    TutorAiInsights,
    InsightsResult,
)

# Core logic
from .core.metrics import compute_metrics, to_kpis
from .core.scoring import compute_score, compute_score_v1, compute_score_v2, compute_churn_risk
from .core.trend import build_trend, build_trend_dates, smooth_trend
from .core.features import build_feature_matrix, FeatureContractError
from .core.churn import train_churn_model, predict_churn, TrainOptions
from .core.anomaly import detect_anomaly
from .core.forecast import forecast_trend
from .core.personas import PersonaRegistry, PersonaArchetype, assign_persona, default_persona_registry
from .core.interventions import (
    InterventionLibrary,
    InterventionRule,
    InterventionContext,
    recommend_interventions,
    default_intervention_library,
)
from .core.thresholds import compute_dynamic_thresholds

# Orchestration
from .orchestrator import generate_ai_insights
from .pipeline import TutorScoringPipeline, run_scoring_pipeline, select_at_risk_tutors

# Version info
__version__ = "1.0.0"
__status__ = "Development"

# Public API
__all__ = [
    # Constants
    'MODEL_VERSION', 'FEATURE_KEYS',

    # Utilities
    'nz_num', 'safe_div', 'clamp', 'clamp01', 'round_half_up',

    # Models
    'SessionRecord', 'TutorRecord', 'SessionStatus', 'RescheduleInitiator',
    'FormulaVersion', 'Trajectory', 'AnomalyLabel', 'Effort',
    'AggregatedMetrics', 'TutorKpis', 'TutorScoreCard', 'TutorAiInsights', 'InsightsResult',

    # Scoring
    'compute_metrics', 'to_kpis', 'compute_score', 'compute_score_v1', 'compute_score_v2',
    'compute_churn_risk', 'build_trend', 'build_trend_dates', 'smooth_trend',

    # AI components
    'build_feature_matrix', 'FeatureContractError', 'train_churn_model', 'predict_churn',
    'TrainOptions', 'detect_anomaly', 'forecast_trend', 'PersonaRegistry', 'PersonaArchetype',
    'assign_persona', 'default_persona_registry', 'InterventionLibrary', 'InterventionRule',
    'InterventionContext', 'recommend_interventions', 'default_intervention_library',
    'compute_dynamic_thresholds',

    # Orchestration
    'generate_ai_insights', 'TutorScoringPipeline', 'run_scoring_pipeline', 'select_at_risk_tutors',
]
