"""
Logging Notification Service Implementation.

Surfaces execution outcomes through the application log.
"""
import logging

from core.application.interfaces import INotificationService


logger = logging.getLogger(__name__)


class LoggingNotificationService(INotificationService):
    """
    Log-backed implementation of notification service.
    
    Keeps every notification in memory so tests and the API can inspect
    what the user would have seen.
    """
    
    def __init__(self):
        """Initialize logging notification service."""
        self.notifications_sent = []
    
    async def notify(self, message: str, severity: int = 50) -> None:
        """
        Record and log a notification.
        
        Args:
            message: Notification message
            severity: Severity level (0-100, higher = more critical)
        """
        self.notifications_sent.append({"message": message, "severity": severity})
        
        if severity >= 80:
            logger.error(f"🔴 {message}")
        elif severity >= 50:
            logger.warning(f"🟡 {message}")
        else:
            logger.info(f"🟢 {message}")
    
    def get_notifications(self) -> list:
        """Get all sent notifications (for testing)."""
        return self.notifications_sent
    
    def clear(self) -> None:
        """Clear notifications (for testing)."""
        self.notifications_sent.clear()
