"""Flow service adapters.

HTTP access to the backend adapter, transformation, condition, loop and
delay services.
"""

from .client import FlowServiceClient

__all__ = ["FlowServiceClient"]
