"""External integration adapters."""

from .universal_loader import RemoteWorkflowClient, TokenCache

__all__ = [
    "RemoteWorkflowClient",
    "TokenCache",
]
