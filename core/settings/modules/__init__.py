# Settings modules
from .app_settings import AppSettings, get_app_settings, IntegrationsSettings
from .flow_engine_settings import FlowEngineSettings
from .integrations_settings import WebhookSettings

__all__ = [
    "AppSettings",
    "get_app_settings",
    "IntegrationsSettings",
    "FlowEngineSettings",
    "WebhookSettings",
]
