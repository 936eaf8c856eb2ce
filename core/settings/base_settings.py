# core/settings/base_settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlowHubBaseSettings(BaseSettings):
    """Shared loading rules for every settings section."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
