# Settings package
from core.settings.modules import (
    AppSettings,
    FlowEngineSettings,
    IntegrationsSettings,
    WebhookSettings,
    get_app_settings,
)

__all__ = [
    "get_app_settings",
    "AppSettings",
    "FlowEngineSettings",
    "IntegrationsSettings",
    "WebhookSettings",
]
