from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict

from core.settings.modules.flow_engine_settings import FlowEngineSettings
from core.settings.modules.integrations_settings import WebhookSettings


class IntegrationsSettings(BaseModel):
    """Aggregates integrations settings as nested objects."""

    model_config = ConfigDict(extra="ignore")

    webhook: WebhookSettings


class AppSettings(BaseModel):
    """Application settings aggregator."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")

    engine: FlowEngineSettings
    integrations: IntegrationsSettings

    @property
    def webhook(self) -> WebhookSettings:
        return self.integrations.webhook


@lru_cache()
def get_app_settings() -> AppSettings:
    return AppSettings(
        engine=FlowEngineSettings(),
        integrations=IntegrationsSettings(webhook=WebhookSettings()),
    )
