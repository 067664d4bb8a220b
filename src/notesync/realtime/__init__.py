"""Realtime collaboration over WebSockets."""

from .connection import WebSocketConnection
from .gateway import authenticate, extract_credential
from .handler import websocket_endpoint
from .manager import CollaborationManager, session_repositories
from .relay import RedisRelay
from .rooms import RoomRegistry

__all__ = [
    "CollaborationManager",
    "RedisRelay",
    "RoomRegistry",
    "WebSocketConnection",
    "authenticate",
    "extract_credential",
    "session_repositories",
    "websocket_endpoint",
]
