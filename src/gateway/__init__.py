from .base import (
    AuthorizationError,
    ChatReply,
    ConflictError,
    GatewayError,
    Identity,
    NotFoundError,
    ProtocolError,
    RemoteGateway,
    TransientNetworkError,
)
from .http import HttpGateway

__all__ = [
    "RemoteGateway",
    "HttpGateway",
    "Identity",
    "ChatReply",
    "GatewayError",
    "TransientNetworkError",
    "ProtocolError",
    "AuthorizationError",
    "ConflictError",
    "NotFoundError",
]
