"""
Application configuration settings.
"""

from typing import Optional, Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Adaptive testing stopping rule
    CAT_MIN_ITEMS: int = 5  # Items required before stopping is allowed
    CAT_MAX_STANDARD_ERROR: float = 0.35  # Target precision (logits)
    # Optional exam length cap; None administers until precision or exhaustion
    CAT_MAX_ITEMS: Optional[int] = None

    # Starting ability for a new attempt
    CAT_PRIOR_THETA: float = 0.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_cat_thresholds(self) -> Self:
        """Reject stopping thresholds that could never be satisfied."""
        if self.CAT_MIN_ITEMS < 1:
            raise ValueError(f"CAT_MIN_ITEMS must be >= 1, got {self.CAT_MIN_ITEMS}")
        if self.CAT_MAX_STANDARD_ERROR <= 0:
            raise ValueError(
                "CAT_MAX_STANDARD_ERROR must be positive, "
                f"got {self.CAT_MAX_STANDARD_ERROR}"
            )
        if self.CAT_MAX_ITEMS is not None and self.CAT_MAX_ITEMS < self.CAT_MIN_ITEMS:
            raise ValueError(
                f"CAT_MAX_ITEMS ({self.CAT_MAX_ITEMS}) must be >= "
                f"CAT_MIN_ITEMS ({self.CAT_MIN_ITEMS})"
            )
        if not -4.0 <= self.CAT_PRIOR_THETA <= 4.0:
            raise ValueError(
                f"CAT_PRIOR_THETA must lie in [-4, 4], got {self.CAT_PRIOR_THETA}"
            )
        return self


settings = Settings()
