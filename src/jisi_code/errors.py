"""
Jisi Code error types.

Transport and protocol faults are contained by the connection layer; these
classes surface only from the awaitable client helpers and the REST client.
"""

from typing import Any, Optional


class JisiCodeError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConnectionError(JisiCodeError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)


class ProtocolError(JisiCodeError):
    """A frame that is not valid JSON or has no recognizable shape."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("protocol_error", message, details)


class ApplicationError(JisiCodeError):
    """The orchestrator answered with an `error` frame."""

    def __init__(self, message: str):
        super().__init__("application_error", message)


class LocalTimeoutError(JisiCodeError):
    def __init__(self, message: str, timeout: float):
        super().__init__("local_timeout", message, {"timeout": timeout})
        self.timeout = timeout


class SendFailure(JisiCodeError):
    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__("send_failure", message, {"command": command} if command else None)
