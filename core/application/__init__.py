"""Application layer - interfaces the engine depends on."""

from .interfaces import IFlowServiceClient, INotificationService

__all__ = [
    "IFlowServiceClient",
    "INotificationService",
]
