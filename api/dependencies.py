"""
FastAPI Dependencies.

Provides dependency injection for the flow execution engine.
"""
from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables ONCE before any settings objects are created
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")

from core.application.interfaces import INotificationService
from core.infrastructure.adapters.notifications.logging_notification_service import LoggingNotificationService
from core.settings import get_app_settings
from orchestration import FlowExecutionEngine, create_default_engine

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON INSTANCES
# =============================================================================

_notification_service: INotificationService | None = None
_flow_engine: FlowExecutionEngine | None = None


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_notification_service() -> INotificationService:
    global _notification_service

    if _notification_service is None:
        settings = get_app_settings()

        if settings.webhook.enabled and settings.webhook.url:
            from core.infrastructure.adapters.notifications.webhook_notification_service import WebhookNotificationService
            _notification_service = WebhookNotificationService(settings.webhook)
            logger.info("Created WebhookNotificationService instance")
        else:
            _notification_service = LoggingNotificationService()
            logger.info("Using LoggingNotificationService (webhook disabled)")

    return _notification_service


def get_flow_engine() -> FlowExecutionEngine:
    global _flow_engine

    if _flow_engine is None:
        settings = get_app_settings()
        _flow_engine = create_default_engine(
            settings.engine,
            notification_service=get_notification_service(),
        )
        logger.info(f"Created FlowExecutionEngine for services at {settings.engine.api_base_url}")

    return _flow_engine


# =============================================================================
# RESET (for testing)
# =============================================================================

def reset_dependencies():
    global _notification_service, _flow_engine

    _notification_service = None
    _flow_engine = None

    logger.info("Dependencies reset")
