"""
Boundary Proxy

Server-side hop between clients and the upstream video provider. The only
component that holds the provider API key.
"""

from .replicate_client import ReplicateClient
from .server import create_app, validate_prediction_request

__all__ = [
    "ReplicateClient",
    "create_app",
    "validate_prediction_request",
]
