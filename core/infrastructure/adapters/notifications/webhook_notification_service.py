"""
Webhook Notification Service Implementation.

Sends notifications to a Slack-compatible incoming webhook.
"""
import logging

import aiohttp

from core.application.interfaces import INotificationService
from core.settings.modules.integrations_settings import WebhookSettings


logger = logging.getLogger(__name__)


class WebhookNotificationService(INotificationService):
    """
    Webhook implementation of notification service.
    
    Posts attachment-style messages; notifications below the configured
    minimum severity are dropped.
    """
    
    def __init__(self, settings: WebhookSettings):
        """
        Initialize webhook notification service.
        
        Args:
            settings: Webhook settings with URL, prefix and minimum severity
        """
        self.settings = settings
        self.webhook_url = settings.url
        self.prefix = settings.prefix
        self.min_severity = settings.min_severity
    
    async def notify(self, message: str, severity: int = 50) -> None:
        """
        Send a generic notification message.
        
        Args:
            message: Notification message
            severity: Severity level (0-100, higher = more critical)
        """
        if severity < self.min_severity:
            logger.debug(f"Skipping notification below min severity ({severity}): {message}")
            return
        color = "danger" if severity >= 80 else "warning" if severity >= 50 else "good"
        await self._send_message(f"{self.prefix} {message}", color=color)
    
    async def _send_message(self, text: str, color: str = "good") -> None:
        """
        Send message to the webhook.
        
        Args:
            text: Message text
            color: Attachment color (good, warning, danger)
        """
        if not self.webhook_url:
            logger.warning("Webhook url not configured, skipping notification")
            return
        
        try:
            async with aiohttp.ClientSession() as session:
                payload = {
                    "attachments": [
                        {
                            "color": color,
                            "text": text,
                            "mrkdwn_in": ["text"],
                        }
                    ]
                }
                
                async with session.post(self.webhook_url, json=payload) as response:
                    if response.status >= 300:
                        error_text = await response.text()
                        logger.error(
                            f"Webhook error: {response.status} - {error_text}"
                        )
                    else:
                        logger.info("Webhook notification sent successfully")
        except aiohttp.ClientError as e:
            logger.error(f"Failed to send webhook notification: {e}", exc_info=True)
