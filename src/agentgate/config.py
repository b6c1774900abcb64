"""Settings for the agentgate CLI, loaded from AGENTGATE_* environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class GateSettings(BaseSettings):
    """
    Attributes:
        policy_path: Policy file used when --policy is not given
        log_level: Level for the agentgate loggers
    """

    model_config = SettingsConfigDict(env_prefix="AGENTGATE_")

    policy_path: Path | None = None
    log_level: str = "WARNING"


def get_settings() -> GateSettings:
    """Read settings from the current environment."""
    return GateSettings()
