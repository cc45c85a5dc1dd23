from __future__ import annotations
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class User:
    username: str

    def __post_init__(self) -> None:
        if not isinstance(self.username, str) or not self.username.strip():
            raise ValueError("username must be a non-empty string")


@dataclass(frozen=True)
class Message:
    """One chat line. ``recipient`` is set if and only if ``is_private``."""
    sender: str
    text: str
    timestamp: datetime = field(default_factory=datetime.now)
    is_private: bool = False
    recipient: Optional[str] = None

    def __post_init__(self) -> None:
        if self.is_private != (self.recipient is not None):
            raise ValueError("recipient must be set exactly when is_private is true")

    def format_line(self) -> str:
        stamp = self.timestamp.strftime("%H:%M")
        if self.is_private:
            return f"[{stamp}] {self.sender} -> {self.recipient}: {self.text}"
        return f"[{stamp}] {self.sender}: {self.text}"


class MessageHistory:
    """
    Append-only, insertion-ordered log of chat messages.

    Inbound handlers append while a renderer may be reading, so both sides
    go through one lock. Readers get a snapshot, never the live list.
    """

    def __init__(self) -> None:
        self._messages: List[Message] = []
        self._lock = threading.Lock()

    def add(self, message: Message) -> None:
        with self._lock:
            self._messages.append(message)

    def snapshot(self) -> Tuple[Message, ...]:
        with self._lock:
            return tuple(self._messages)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())
