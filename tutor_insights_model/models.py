"""
Tutor Insights Data Models
Validated input records and the result structures produced by the pipeline
"""

from dataclasses import dataclass, field, asdict
import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field


class SessionStatus(Enum):
    """Terminal status of a tutoring session."""
    COMPLETED = "completed"
    DROPOUT = "dropout"
    RESCHEDULED = "rescheduled"


class RescheduleInitiator(Enum):
    """Who asked for a reschedule."""
    TUTOR = "tutor"
    STUDENT = "student"


class FormulaVersion(Enum):
    """Selectable score formula."""
    V1 = "v1"
    V2 = "v2"


class Trajectory(Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    VOLATILE = "volatile"
    STABLE = "stable"


class AnomalyLabel(Enum):
    NORMAL = "normal"
    WATCH = "watch"
    CRITICAL = "critical"


class Effort(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ===== INPUT RECORDS =====

class TutorRecord(BaseModel):
    """Tutor roster entry."""
    model_config = ConfigDict(frozen=True)

    tutor_id: str = Field(..., min_length=1, description="Tutor identifier")
    name: str = Field(..., description="Display name")
    subject: str = Field(..., description="Primary subject")
    hire_date: dt.date = Field(..., description="Hire date")


class SessionRecord(BaseModel):
    """A single tutoring session, already validated upstream."""
    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., description="Session identifier")
    tutor_id: str = Field(..., min_length=1, description="Owning tutor")
    date: dt.date = Field(..., description="Calendar date of the session")
    duration_minutes: float = Field(..., ge=0, description="Session length in minutes")
    rating: Optional[int] = Field(None, ge=1, le=5, description="Student rating 1-5")
    status: SessionStatus = Field(..., description="completed, dropout or rescheduled")
    has_tech_issue: bool = Field(False, description="Technical issue reported")
    is_first_session: bool = Field(False, description="First session with this student")
    reschedule_initiator: Optional[RescheduleInitiator] = Field(None, description="tutor or student")
    no_show: bool = Field(False, description="Tutor did not show up")


# ===== AGGREGATES =====

@dataclass
class AggregatedMetrics:
    """KPI aggregate for one tutor or one day."""
    avg_rating: Optional[float] = None
    dropout_rate: float = 0.0
    tech_issue_rate: float = 0.0
    reschedule_rate: float = 0.0
    sessions_count: int = 0
    first_session_avg_rating: Optional[float] = None
    first_session_dropout_rate: float = 0.0
    first_session_count: int = 0
    tutor_initiated_reschedule_rate: float = 0.0
    tutor_initiated_reschedule_count: int = 0
    no_show_rate: float = 0.0
    no_show_count: int = 0


@dataclass
class TutorKpis:
    """Output-facing KPI view (rates to 4 decimals, ratings to 2)."""
    avg_rating: Optional[float]
    dropout_rate: float
    tech_issue_rate: float
    reschedule_rate: float
    sessions_count: int
    first_session_avg_rating: Optional[float]
    first_session_dropout_rate: float
    first_session_count: int
    tutor_initiated_reschedule_rate: float
    no_show_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ===== AI OUTPUTS =====

@dataclass
class TutorFeatureVector:
    tutor_id: str
    features: Dict[str, float]
    label_churn: int


@dataclass
class FeatureStatistics:
    means: Dict[str, float]
    std_devs: Dict[str, float]


@dataclass
class FeatureMatrix:
    """Feature vectors for one batch plus the population statistics."""
    vectors: List[TutorFeatureVector]
    feature_order: List[str]
    stats: FeatureStatistics

    def to_frame(self) -> pd.DataFrame:
        """Raw features as a tutor_id-indexed frame in feature order."""
        frame = pd.DataFrame(
            [v.features for v in self.vectors],
            index=pd.Index([v.tutor_id for v in self.vectors], name="tutor_id"),
            columns=self.feature_order,
            dtype=float,
        )
        return frame.fillna(0.0)

    def labels(self) -> pd.Series:
        return pd.Series(
            [v.label_churn for v in self.vectors],
            index=pd.Index([v.tutor_id for v in self.vectors], name="tutor_id"),
            dtype=float,
        )


@dataclass
class ModelArtifacts:
    """Logistic regression trained for one invocation; never persisted."""
    weights: Dict[str, float]
    bias: float
    feature_keys: List[str]
    feature_means: Dict[str, float]
    feature_stds: Dict[str, float]


@dataclass
class ChurnPrediction:
    probability: float
    confidence: float


@dataclass
class AnomalyResult:
    score: float
    label: AnomalyLabel
    contributors: List[str] = field(default_factory=list)


@dataclass
class AiForecast:
    score_7d: float
    score_14d: float
    trajectory: Trajectory
    confidence: float
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score7d": self.score_7d,
            "score14d": self.score_14d,
            "trajectory": self.trajectory.value,
            "confidence": self.confidence,
            "description": self.description,
        }


@dataclass(frozen=True)
class PersonaProfile:
    id: str
    label: str
    description: str
    strengths: tuple
    risks: tuple

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "strengths": list(self.strengths),
            "risks": list(self.risks),
        }


@dataclass
class InterventionRecommendation:
    id: str
    title: str
    description: str
    effectiveness: float
    effort: Effort
    rationale: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["effort"] = self.effort.value
        return data


@dataclass
class ThresholdRecommendation:
    score_threshold: int
    dropout_rate_threshold: float
    no_show_rate_threshold: float
    rationale: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scoreThreshold": self.score_threshold,
            "dropoutRateThreshold": self.dropout_rate_threshold,
            "noShowRateThreshold": self.no_show_rate_threshold,
            "rationale": self.rationale,
        }


@dataclass
class TutorAiInsights:
    model_version: str
    churn_probability: float
    churn_confidence: float
    anomaly_score: float
    forecast: AiForecast
    interventions: List[InterventionRecommendation]
    persona: Optional[PersonaProfile]
    summary: str
    signals: List[str]
    threshold_recommendation: ThresholdRecommendation
    coaching_plan: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase shape stored alongside each tutor."""
        return {
            "modelVersion": self.model_version,
            "churnProbability": self.churn_probability,
            "churnConfidence": self.churn_confidence,
            "anomalyScore": self.anomaly_score,
            "forecast": self.forecast.to_dict(),
            "interventions": [i.to_dict() for i in self.interventions],
            "persona": self.persona.to_dict() if self.persona else None,
            "summary": self.summary,
            "signals": list(self.signals),
            "thresholdRecommendation": self.threshold_recommendation.to_dict(),
            "coachingPlan": self.coaching_plan,
        }


@dataclass
class InsightsResult:
    insights: Dict[str, TutorAiInsights]
    threshold_summary: ThresholdRecommendation


# ===== SCORE CARDS =====

@dataclass
class TutorScoreCard:
    """Per-tutor scoring output; the input to feature engineering."""
    tutor_id: str
    name: str
    subject: str
    score: int
    trend_7d: List[int]
    kpis: TutorKpis
    churn_risk: float               # percent, 0-100, 1 decimal
    ai: Optional[TutorAiInsights] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "tutor_id": self.tutor_id,
            "name": self.name,
            "subject": self.subject,
            "score": self.score,
            "trend_7d": list(self.trend_7d),
            "kpis": self.kpis.to_dict(),
            "churn_risk": self.churn_risk,
        }
        if self.ai is not None:
            data["ai"] = self.ai.to_dict()
        return data
