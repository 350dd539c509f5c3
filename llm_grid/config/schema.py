"""Configuration schema for llm-grid."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class TimingConfig(BaseModel):
    """Delays and retry budgets of the orchestration core."""

    settle_delay_s: float = 0.6          # between paste and submit phases
    window_stagger_s: float = 0.12       # between successive window creations
    location_attempts: int = 3
    location_delay_s: float = 0.5
    capture_delay_s: float = 2.5
    capture_max_attempts: int = 6
    poll_interval_s: float = 1.0
    dedupe_window_s: float = 5.0
    delivery_timeout_s: float = 10.0
    verify_attempts: int = 12
    verify_delay_s: float = 0.05


class ControlConfig(BaseModel):
    """Control surface window."""

    url: str = "llm-grid://control"
    width: int = 420
    height: int = 600


class StorageConfig(BaseModel):
    """Persistent key-value state."""

    state_path: str = "~/.llm-grid/state.json"


class Config(BaseSettings):
    """Root configuration for llm-grid."""

    timing: TimingConfig = Field(default_factory=TimingConfig)
    control: ControlConfig = Field(default_factory=ControlConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @property
    def state_path(self) -> Path:
        """Get expanded state file path."""
        return Path(self.storage.state_path).expanduser()

    model_config = ConfigDict(
        env_prefix="LLM_GRID_",
        env_nested_delimiter="__",
        extra="ignore",
    )
