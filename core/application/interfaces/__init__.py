"""Application layer interfaces."""
from abc import ABC, abstractmethod
from typing import Any, Dict


class IFlowServiceClient(ABC):
    """
    Interface for the backend services step processors call.
    
    This interface defines the contract for reaching the adapter,
    transformation, condition, loop and delay services, allowing
    processors to stay independent of the transport.
    """
    
    @abstractmethod
    async def post(self, path: str, payload: Dict[str, Any]) -> Any:
        """
        POST a JSON payload to a service endpoint.
        
        Args:
            path: Endpoint path relative to the services base URL
            payload: JSON-serializable request body
        
        Returns:
            Decoded JSON response body
        
        Raises:
            ProcessingError: If the service fails or cannot be reached
        """
        pass


class INotificationService(ABC):
    """
    Interface for user-facing notifications.
    
    This interface defines the contract for surfacing execution outcomes,
    allowing different implementations (log, webhook, etc.)
    """
    
    @abstractmethod
    async def notify(self, message: str, severity: int = 50) -> None:
        """
        Send a generic notification message.
        
        Args:
            message: Notification message
            severity: Severity level (0-100, higher = more critical)
        """
        pass
