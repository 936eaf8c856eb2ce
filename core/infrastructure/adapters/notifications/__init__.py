"""Notification adapters for execution outcomes.

``logging_notification_service`` records and logs; ``webhook_notification_service``
posts to an incoming webhook and pulls in aiohttp, so it is imported from its
module only when webhooks are enabled.
"""

from .logging_notification_service import LoggingNotificationService

__all__ = ["LoggingNotificationService"]
