"""Configuration settings for Memoria.

This module provides Pydantic Settings for configuration management.
All settings are loaded from environment variables with the MEMORIA_ prefix
(or a .env file). Every setting has a default so the engine can be used as a
library without any environment.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from memoria.constants import (
    CRITICAL_SIGNIFICANCE_THRESHOLD,
    DEFAULT_AUTO_APPROVE_THRESHOLD,
    DEFAULT_AUTO_REJECT_THRESHOLD,
    DEFAULT_SAMPLE_SIZE,
    FEEDBACK_HISTORY_LIMIT,
)
from memoria.types.validation import ThresholdConfig


class MemoriaSettings(BaseSettings):
    """Configuration settings for Memoria.

    Attributes:
        log_level: Logging level
        auto_approve_threshold: Initial auto-approve threshold
        auto_reject_threshold: Initial auto-reject threshold
        critical_significance_threshold: Significance that forces human review
        feedback_history_limit: Feedback records kept by the accuracy tracker
        sample_target_size: Default validation sample size
        sampling_seed: Seed for reproducible sampling (None = random)
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMORIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Allow extra env vars without error
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # Auto-confirmation
    auto_approve_threshold: float = Field(
        default=DEFAULT_AUTO_APPROVE_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Confidence at or above which memories are auto-approved",
    )
    auto_reject_threshold: float = Field(
        default=DEFAULT_AUTO_REJECT_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Confidence at or below which memories are auto-rejected",
    )
    critical_significance_threshold: float = Field(
        default=CRITICAL_SIGNIFICANCE_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Significance above which automatic decisions go to review",
    )

    # Analytics
    feedback_history_limit: int = Field(
        default=FEEDBACK_HISTORY_LIMIT,
        ge=1,
        description="Maximum feedback records retained for accuracy tracking",
    )

    # Sampling
    sample_target_size: int = Field(
        default=DEFAULT_SAMPLE_SIZE,
        ge=1,
        description="Default number of memories in a validation sample",
    )
    sampling_seed: Optional[int] = Field(
        default=None,
        description="Seed for reproducible sampling",
    )

    def to_threshold_config(self) -> ThresholdConfig:
        """Build a validated threshold config with default factor weights.

        Raises:
            ValueError: If the thresholds are inconsistent
        """
        return ThresholdConfig(
            auto_approve_threshold=self.auto_approve_threshold,
            auto_reject_threshold=self.auto_reject_threshold,
        )


def get_settings() -> MemoriaSettings:
    """Load settings from the environment."""
    return MemoriaSettings()
