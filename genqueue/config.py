"""Configuration settings for the generation job queues."""

from typing import Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueueConfig(BaseModel):
    """Per-category queue tuning."""

    name: str = Field(..., min_length=1, description="Work category name")
    timeout_seconds: float = Field(default=300.0, gt=0, description="Max run time per job")
    average_job_seconds: float = Field(default=30.0, ge=0, description="Used for ETA estimates")
    retention_seconds: float = Field(default=3600.0, gt=0, description="How long finished jobs stay queryable")
    inter_job_delay_seconds: float = Field(default=0.0, ge=0, description="Pause between jobs")
    cleanup_interval_seconds: float = Field(default=600.0, gt=0, description="Sweep period for finished jobs")
    max_retained_jobs: Optional[int] = Field(default=None, ge=0, description="Cap on finished jobs kept")


def _default_queues() -> Dict[str, QueueConfig]:
    # Timings observed per downstream API.
    return {
        "video_generation": QueueConfig(name="video_generation", timeout_seconds=600, average_job_seconds=90),
        "image_generation": QueueConfig(name="image_generation", timeout_seconds=300, average_job_seconds=30),
        "image_edit": QueueConfig(name="image_edit", timeout_seconds=300, average_job_seconds=25),
        "background_removal": QueueConfig(name="background_removal", timeout_seconds=300, average_job_seconds=15),
        "image_to_prompt": QueueConfig(
            name="image_to_prompt",
            timeout_seconds=180,
            average_job_seconds=15,
            inter_job_delay_seconds=0.5,
            max_retained_jobs=100,
        ),
        "thumbnail": QueueConfig(
            name="thumbnail",
            timeout_seconds=300,
            average_job_seconds=30,
            inter_job_delay_seconds=0.5,
            max_retained_jobs=100,
        ),
        "meme": QueueConfig(
            name="meme",
            timeout_seconds=300,
            average_job_seconds=30,
            inter_job_delay_seconds=0.5,
            max_retained_jobs=100,
        ),
        "script": QueueConfig(name="script", timeout_seconds=300, average_job_seconds=30),
        "text_to_speech": QueueConfig(name="text_to_speech", timeout_seconds=300, average_job_seconds=20),
        "audio_mounting": QueueConfig(name="audio_mounting", timeout_seconds=600, average_job_seconds=60),
    }


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="GENQUEUE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Queue Configuration
    queues: Dict[str, QueueConfig] = Field(default_factory=_default_queues)

    # Monitoring
    log_level: str = "INFO"

    def queue_config(self, name: str) -> QueueConfig:
        """Return the config for one category, falling back to defaults."""
        config = self.queues.get(name)
        if config is None:
            return QueueConfig(name=name)
        return config


settings = Settings()


def get_settings() -> Settings:
    """Get the process-wide settings."""
    return settings
