from __future__ import annotations

from pydantic import Field

from core.settings.base_settings import FlowHubBaseSettings


class FlowEngineSettings(FlowHubBaseSettings):
    """
    Flow execution engine settings.
    Loaded from .env with exact variable name matching.
    """

    api_base_url: str = Field(
        default="http://localhost:8080/api", alias="FLOW_ENGINE_API_BASE_URL"
    )
    default_timeout_ms: int = Field(
        default=30000, gt=0, alias="FLOW_ENGINE_DEFAULT_TIMEOUT_MS"
    )
    request_timeout_seconds: float = Field(
        default=60.0, gt=0, alias="FLOW_ENGINE_REQUEST_TIMEOUT_SECONDS"
    )
    max_retries: int = Field(default=3, ge=0, alias="FLOW_ENGINE_MAX_RETRIES")
    retry_backoff_ms: int = Field(default=0, ge=0, alias="FLOW_ENGINE_RETRY_BACKOFF_MS")
    log_level: str = Field(default="INFO", alias="FLOW_ENGINE_LOG_LEVEL")
