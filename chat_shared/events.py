from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import json


class ChatError(Exception):
    """Base class for every error raised by sockchat."""
    pass
class ChatConnectionError(ChatError):
    """Raised when the transport cannot be established."""
    pass
class ChatSessionError(ChatError):
    """Raised when a session operation is used out of order."""
    pass
class MalformedPayloadError(ChatError):
    """Raised when an inbound payload does not have the expected shape."""
    pass
class ConfigError(ChatError):
    """Raised when a config file cannot be read or is not a mapping."""
    pass


class ChatEvent(str, Enum):
    """Socket.IO event names spoken by the chat server."""

    # Outbound, sent in pairs for servers listening on either name
    JOIN = "join"
    CHAT_JOIN = "chat_join"
    MESSAGE = "message"
    CHAT_MESSAGE = "chat_message"
    LEAVE = "leave"
    CHAT_LEAVE = "chat_leave"

    # Outbound, single name only
    PRIVATE_MESSAGE = "private_message"

    # Inbound presence
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"


# Every dual-emitted intent goes out under both names, in this order
JOIN_EVENTS: Tuple[ChatEvent, ChatEvent] = (ChatEvent.JOIN, ChatEvent.CHAT_JOIN)
MESSAGE_EVENTS: Tuple[ChatEvent, ChatEvent] = (ChatEvent.MESSAGE, ChatEvent.CHAT_MESSAGE)
LEAVE_EVENTS: Tuple[ChatEvent, ChatEvent] = (ChatEvent.LEAVE, ChatEvent.CHAT_LEAVE)

UNKNOWN_SENDER = "Unknown"


# ========================================
#           OUTBOUND PAYLOADS
# ========================================

def presence_payload(username: str) -> Dict[str, Any]:
    """Payload for join/chat_join/leave/chat_leave"""
    return {"username": username}


def message_payload(username: str, text: str) -> Dict[str, Any]:
    """Payload for message/chat_message"""
    return {"username": username, "message": text}


def private_message_payload(sender: str, recipient: str, text: str) -> Dict[str, Any]:
    """Payload for private_message"""
    return {"from": sender, "to": recipient, "message": text}


# ========================================
#           INBOUND PAYLOADS
# ========================================

@dataclass(frozen=True)
class InboundChatLine:
    """
    Fields pulled out of an inbound message/chat_message payload:
    {
    "username": "STRING (optional, defaults to Unknown)",
    "message":  "STRING (optional, defaults to empty)",
    "time":     "STRING (optional, display only)"
    }

    ``time`` is kept for the log line only; stored messages are stamped
    with the local receive time.
    """
    username: str
    message: str
    time: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> 'InboundChatLine':
        """Extract a chat line, raising MalformedPayloadError on shape mismatch"""
        if not isinstance(data, dict):
            raise MalformedPayloadError(
                f"expected a JSON object, got {type(data).__name__}"
            )

        username = _field_text(data.get("username"))
        message = _field_text(data.get("message"))
        time = _field_text(data.get("time"))

        return cls(
            username=UNKNOWN_SENDER if username is None else username,
            message="" if message is None else message,
            time=time,
        )


def extract_username(data: Any) -> str:
    """Pull the bare username out of a user_joined/user_left payload"""
    if not isinstance(data, str):
        raise MalformedPayloadError(
            f"expected a username string, got {type(data).__name__}"
        )
    return data


def describe_payload(data: Any) -> str:
    """Render a raw payload for log lines"""
    try:
        return json.dumps(data, separators=(',', ':'), ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(data)


def _field_text(value: Any) -> Optional[str]:
    # Strings pass through untouched, anything else is shown as compact JSON
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return describe_payload(value)
