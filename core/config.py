"""
Unified Configuration Management
Handles runtime settings for the tutor insights pipeline
"""

from typing import Literal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Configuration
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/tutor_insights.log"

    # Scoring Configuration
    SCORE_FORMULA_VERSION: Literal["v1", "v2"] = "v2"
    TREND_WINDOW_DAYS: int = Field(default=7, ge=1)

    # At-risk selection
    AT_RISK_SCORE_CUTOFF: int = Field(default=60, ge=0, le=100)
    AT_RISK_BOTTOM_SHARE: float = Field(default=0.2, gt=0, le=1)
    AT_RISK_MAX_TUTORS: int = Field(default=50, ge=1)

    # Churn model hyperparameters
    CHURN_MODEL_ITERATIONS: int = Field(default=600, ge=0)
    CHURN_MODEL_LEARNING_RATE: float = Field(default=0.3, gt=0)
    CHURN_MODEL_REGULARIZATION: float = Field(default=0.0005, ge=0)

    @property
    def training_config(self) -> dict:
        """Get churn model training configuration."""
        return {
            "learning_rate": self.CHURN_MODEL_LEARNING_RATE,
            "iterations": self.CHURN_MODEL_ITERATIONS,
            "regularization": self.CHURN_MODEL_REGULARIZATION,
        }

    @property
    def at_risk_config(self) -> dict:
        """Get at-risk selection configuration."""
        return {
            "score_cutoff": self.AT_RISK_SCORE_CUTOFF,
            "bottom_share": self.AT_RISK_BOTTOM_SHARE,
            "max_tutors": self.AT_RISK_MAX_TUTORS,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
