"""
jisi-code — Python client for the Jisi Code agent orchestrator.

Run several AI coding-agent sessions over one WebSocket, with streaming
transcripts assembled client-side.
"""

from jisi_code.client import AsyncJisiClient
from jisi_code.config import ClientConfig, load_config
from jisi_code.errors import (
    ApplicationError,
    ConnectionError,
    JisiCodeError,
    LocalTimeoutError,
    ProtocolError,
    SendFailure,
)
from jisi_code.filesystem import FilesystemAPI
from jisi_code.models.events import ClientEvent, ServerEvent
from jisi_code.state import SessionSnapshot, SessionStore, transition
from jisi_code.timer import PendingOperationTimer
from jisi_code.transport.websocket import ConnectionManager, ConnectionStatus

__version__ = "0.1.0"
__all__ = [
    "AsyncJisiClient",
    "ClientConfig",
    "load_config",
    "JisiCodeError",
    "ConnectionError",
    "ProtocolError",
    "ApplicationError",
    "LocalTimeoutError",
    "SendFailure",
    "FilesystemAPI",
    "ClientEvent",
    "ServerEvent",
    "SessionSnapshot",
    "SessionStore",
    "transition",
    "PendingOperationTimer",
    "ConnectionManager",
    "ConnectionStatus",
]
