from __future__ import annotations

from pydantic import Field

from core.settings.base_settings import FlowHubBaseSettings


class WebhookSettings(FlowHubBaseSettings):
    """
    Webhook notification settings (Slack-compatible incoming webhook).
    Loaded from .env with exact variable name matching.
    """

    enabled: bool = Field(default=False, alias="FLOW_WEBHOOK_ENABLED")
    url: str = Field(default="", alias="FLOW_WEBHOOK_URL")
    prefix: str = Field(default="[FLOWHUB]", alias="FLOW_WEBHOOK_PREFIX")
    min_severity: int = Field(default=50, alias="FLOW_WEBHOOK_MIN_SEVERITY")
