"""
Flow Service Client Implementation.

Calls the backend execution services over HTTP.
"""
from typing import Any, Dict, Optional
import asyncio
import logging

import aiohttp

from core.application.interfaces import IFlowServiceClient
from core.settings.modules.flow_engine_settings import FlowEngineSettings
from orchestration.errors import (
    INVALID_RESPONSE,
    SERVICE_ERROR,
    SERVICE_UNAVAILABLE,
    ProcessingError,
)


logger = logging.getLogger(__name__)


class FlowServiceClient(IFlowServiceClient):
    """
    aiohttp implementation of the flow service client.
    
    Every call opens its own session, so a cancelled step aborts only
    its own request.
    """
    
    def __init__(
        self,
        base_url: str,
        request_timeout_seconds: float = 60.0,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize flow service client.
        
        Args:
            base_url: Base URL of the backend services (e.g. http://host/api)
            request_timeout_seconds: Total timeout for one HTTP request
            headers: Extra headers sent with every request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=request_timeout_seconds)
        self.headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if headers:
            self.headers.update(headers)
    
    @classmethod
    def from_settings(cls, settings: FlowEngineSettings) -> "FlowServiceClient":
        """Build a client from engine settings."""
        return cls(
            base_url=settings.api_base_url,
            request_timeout_seconds=settings.request_timeout_seconds,
        )
    
    def url_for(self, path: str) -> str:
        """Absolute URL for an endpoint path."""
        return f"{self.base_url}/{path.lstrip('/')}"
    
    async def post(self, path: str, payload: Dict[str, Any]) -> Any:
        """
        POST a JSON payload and decode the JSON response.
        
        Raises:
            ProcessingError: SERVICE_ERROR on a non-success status,
                SERVICE_UNAVAILABLE when the service cannot be reached,
                INVALID_RESPONSE when the body is not JSON
        """
        url = self.url_for(path)
        logger.debug(f"POST {url}")
        
        try:
            async with aiohttp.ClientSession(
                timeout=self.timeout, headers=self.headers
            ) as session:
                async with session.post(url, json=payload) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.warning(
                            f"Flow service error: {response.status} {url} - {error_text}"
                        )
                        raise ProcessingError(
                            f"{response.reason or 'Request failed'} "
                            f"(HTTP {response.status}) from {path}",
                            code=SERVICE_ERROR,
                            status_code=response.status,
                        )
                    
                    if response.status == 204:
                        return None
                    
                    try:
                        return await response.json(content_type=None)
                    except ValueError as e:
                        raise ProcessingError(
                            f"Invalid JSON response from {path}: {e}",
                            code=INVALID_RESPONSE,
                            status_code=response.status,
                        ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Flow service unreachable: {url} - {e}")
            raise ProcessingError(
                f"Service unavailable at {path}: {e}",
                code=SERVICE_UNAVAILABLE,
            ) from e
