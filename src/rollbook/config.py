"""Rollbook configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class RollbookConfig(BaseSettings):
    """Rollbook configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Vision inference provider (Gemini generateContent REST API)
    gemini_api_key: str = Field(
        default="",
        description="API key for the Gemini vision model",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for attendance image extraction",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API base URL",
    )
    vision_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for one inference request",
    )

    # Attendance image matching
    review_confidence_threshold: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Detections below this confidence require human review",
    )
    roster_sample_size: int = Field(
        default=3,
        ge=0,
        description="Roster roll numbers sent to the model as few-shot examples",
    )
    default_roll_min: int = Field(
        default=1,
        description="Roll range lower bound when the roster has no numeric rolls",
    )
    default_roll_max: int = Field(
        default=100,
        description="Roll range upper bound when the roster has no numeric rolls",
    )

    # Backing store reads
    store_read_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for store reads that fail with a transient error",
    )
    store_read_wait_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Fixed wait between store read attempts",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: RollbookConfig | None = None


def get_config() -> RollbookConfig:
    """Get the rollbook configuration singleton.

    Returns:
        RollbookConfig: Rollbook configuration instance
    """
    global _config
    if _config is None:
        _config = RollbookConfig()
    return _config
