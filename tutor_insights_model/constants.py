"""
Constants for the tutor insights model
"""

# ===== MODEL IDENTITY =====
MODEL_VERSION = "ai.v1"

# ===== SCORE FORMULAS =====
EMPTY_SCORE = 100               # formula-default score when a window has no sessions
MAX_RATING = 5.0

# v1: 100 - (dropout*40 + tech*30 + reschedule*20 + (5 - rating)*10)
V1_WEIGHTS = {
    "dropout_rate": 40,
    "tech_issue_rate": 30,
    "reschedule_rate": 20,
    "rating_gap": 10,
}

# v2: nine weighted penalty terms
V2_WEIGHTS = {
    "dropout_rate": 30,
    "first_session_dropout_rate": 35,          # when the tutor has first sessions
    "first_session_dropout_rate_none": 20,     # when they do not
    "tech_issue_rate": 18,
    "reschedule_rate": 12,
    "tutor_initiated_reschedule_rate": 20,
    "no_show_rate": 28,
    "rating_gap": 12,
    "first_session_rating_gap": 8,
}
V2_FIRST_SESSION_RATING_TARGET = 4.5

# (upper bound exclusive on sessions_count, penalty)
V2_VOLUME_PENALTY_TIERS = [
    (5, 4),
    (10, 2),
]

# ===== TREND =====
TREND_WINDOW_DAYS = 7
TREND_SMOOTHING_WINDOW = 3

# ===== CHURN-RISK HEURISTIC =====
CHURN_RISK_WEIGHTS = {
    "dropout_rate": 0.4,
    "no_show_rate": 0.3,
    "tutor_initiated_reschedule_rate": 0.2,
    "first_session_dropout_rate": 0.1,
}
LOW_FIRST_SESSION_RATING = 3.0
LOW_FIRST_SESSION_RATING_BONUS = 0.05

# (score upper bound exclusive, bonus); first match wins
SCORE_BAND_BONUSES = [
    (50, 0.12),
    (60, 0.08),
    (70, 0.04),
]

# trend delta (last - first) adjustments
TREND_DROP_SEVERE = -15
TREND_DROP_SEVERE_BONUS = 0.07
TREND_DROP_MODERATE = -8
TREND_DROP_MODERATE_BONUS = 0.04
TREND_RISE = 5
TREND_RISE_CREDIT = -0.03

# ===== FEATURE ENGINEERING =====
FEATURE_KEYS = [
    "dropout_rate",
    "tech_issue_rate",
    "reschedule_rate",
    "sessions_count",
    "avg_rating",
    "first_session_avg_rating",
    "first_session_dropout_rate",
    "first_session_count",
    "tutor_initiated_reschedule_rate",
    "no_show_rate",
    "score",
    "trend_slope",
    "trend_variance",
    "trend_velocity",
    "churn_risk",
]

# Weak-supervision label cut-lines
LABEL_SCORE_BELOW = 60
LABEL_CHURN_RISK_ABOVE = 0.55
LABEL_DROPOUT_RATE_ABOVE = 0.18

# ===== CHURN PREDICTOR =====
CONFIDENCE_MARGIN_SCALE = 4.0
CONFIDENCE_FLOOR = 0.25

# ===== ANOMALY DETECTOR =====
ANOMALY_WEIGHTS = {
    "dropout_rate": 1.2,
    "no_show_rate": 1.1,
    "tutor_initiated_reschedule_rate": 1.0,
    "trend_velocity": 0.8,
    "trend_variance": 0.6,
    "sessions_count": 0.4,
}
ANOMALY_NORMALISER = 12.0
ANOMALY_CRITICAL = 0.65
ANOMALY_WATCH = 0.4
ANOMALY_CONTRIBUTOR_Z = 1.75

# ===== FORECASTER =====
FORECAST_HORIZONS = (7, 14)
TRAJECTORY_SLOPE = 0.5
VOLATILE_VARIANCE = 30
FORECAST_VARIANCE_SCALE = 80
FORECAST_CONFIDENCE_MIN = 0.2
FORECAST_CONFIDENCE_MAX = 0.95

# ===== PERSONAS =====
PERSONA_DIMENSIONS = [
    "dropout_rate",
    "first_session_dropout_rate",
    "tutor_initiated_reschedule_rate",
    "no_show_rate",
    "trend_velocity",
    "trend_slope",
    "score",
]
# features divided by 100 before distance is computed
PERSONA_PERCENT_SCALED = {"trend_velocity", "trend_slope", "score"}

# ===== INTERVENTIONS =====
INTERVENTION_MIN_MATCH = 0.05
INTERVENTION_TOP_N = 3
INTERVENTION_RANK_BUMP = 0.05
INTERVENTION_MAX_EFFECTIVENESS = 0.95

# ===== THRESHOLDS =====
SCORE_THRESHOLD_PERCENTILE = 35
DROPOUT_THRESHOLD_PERCENTILE = 70
NO_SHOW_THRESHOLD_PERCENTILE = 70

# ===== SIGNALS =====
SIGNAL_CHURN_HIGH = 0.7
SIGNAL_CHURN_MODERATE = 0.45
