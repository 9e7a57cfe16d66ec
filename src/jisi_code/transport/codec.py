"""
Frame encoding and decoding for the orchestrator WebSocket.

One JSON object per text frame. Inbound frames that fail to parse, or whose
`type` is unknown, are dropped: `decode` returns None and never raises.
"""

import json
import logging
from typing import Any, Optional, Union

from pydantic import ValidationError

from jisi_code.errors import ProtocolError
from jisi_code.models.events import SERVER_MESSAGE_ADAPTER, ClientMessage, ServerMessage

logger = logging.getLogger(__name__)


def encode(command: ClientMessage) -> str:
    """Serialize an outbound command. Unset optional fields are omitted."""
    return json.dumps(command.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False)


def decode_strict(frame: Union[str, bytes]) -> ServerMessage:
    """Parse one inbound frame or raise ProtocolError."""
    if isinstance(frame, bytes):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Frame is not UTF-8: {e}")
    try:
        raw: Any = json.loads(frame)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Frame is not JSON: {e}")
    if not isinstance(raw, dict) or not isinstance(raw.get("type"), str):
        raise ProtocolError("Frame has no type discriminator")
    try:
        return SERVER_MESSAGE_ADAPTER.validate_python(raw)
    except ValidationError as e:
        raise ProtocolError(f"Invalid {raw['type']!r} frame", details={"errors": e.errors()})


def decode(frame: Union[str, bytes]) -> Optional[ServerMessage]:
    """Parse one inbound frame. Returns None if invalid."""
    try:
        return decode_strict(frame)
    except ProtocolError as e:
        logger.debug("Dropping frame: %s", e)
        return None
