"""
Application configuration settings.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Self


class Settings(BaseSettings):
    """Settings loaded from environment variables (and an optional .env file)."""

    # Application
    APP_NAME: str = "shadowtest"
    APP_VERSION: str = "0.1.0"
    ENV: Literal["development", "test", "production"] = "development"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Solver tuning passed through to the external optimizer.
    # Gaps and tolerance are forwarded as-is; the optimizer owns their meaning.
    SOLVER_ABS_GAP: float = 0.0
    SOLVER_REL_GAP: float = 1e-4
    SOLVER_INT_TOL: float = 5e-6
    SOLVER_MAX_TIME_SECONDS: float = 0.0  # 0 = no limit
    SOLVER_SAVE_INPUT: bool = False

    # Decision variables at or above this value count as "selected" when a
    # solver reports raw 0/1 vectors instead of identifier lists.
    SOLUTION_SELECTION_THRESHOLD: float = 0.9

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_solver_tuning(self) -> Self:
        """Validate solver gap, tolerance, and threshold ranges at startup."""
        if self.SOLVER_ABS_GAP < 0:
            raise ValueError(
                f"SOLVER_ABS_GAP must be non-negative, got {self.SOLVER_ABS_GAP}"
            )
        if not (0.0 <= self.SOLVER_REL_GAP < 1.0):
            raise ValueError(
                f"SOLVER_REL_GAP must be in [0.0, 1.0), got {self.SOLVER_REL_GAP}"
            )
        if not (0.0 <= self.SOLVER_INT_TOL < 0.5):
            raise ValueError(
                f"SOLVER_INT_TOL must be in [0.0, 0.5), got {self.SOLVER_INT_TOL}"
            )
        if self.SOLVER_MAX_TIME_SECONDS < 0:
            raise ValueError(
                "SOLVER_MAX_TIME_SECONDS must be non-negative, "
                f"got {self.SOLVER_MAX_TIME_SECONDS}"
            )
        if not (0.0 < self.SOLUTION_SELECTION_THRESHOLD <= 1.0):
            raise ValueError(
                "SOLUTION_SELECTION_THRESHOLD must be in (0.0, 1.0], "
                f"got {self.SOLUTION_SELECTION_THRESHOLD}"
            )
        return self


settings = Settings()
