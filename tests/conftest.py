from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from chat_client.session import ChatSession
from chat_client.state import MessageHistory, User


class FakeTransport:
    """In-memory stand-in for SocketIOTransport that records traffic."""

    def __init__(self) -> None:
        self.emitted: List[Tuple[str, Dict[str, Any]]] = []
        self.handlers: Dict[str, Callable] = {}
        self.any_handler: Optional[Callable] = None
        self.connect_handlers: List[Callable] = []
        self.disconnect_handlers: List[Callable] = []
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.handlers_at_connect: List[str] = []

        self.fail_connect: Optional[Exception] = None
        self.fail_emit: Optional[Exception] = None
        self.fail_emit_events: Optional[set] = None
        self.fail_disconnect: Optional[Exception] = None

    async def connect(self) -> None:
        self.connect_calls += 1
        self.handlers_at_connect = sorted(self.handlers)
        if self.fail_connect is not None:
            raise self.fail_connect
        self.connected = True
        for handler in self.connect_handlers:
            await handler()

    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        if self.fail_emit is not None and (
            self.fail_emit_events is None or event in self.fail_emit_events
        ):
            raise self.fail_emit
        self.emitted.append((event, payload))

    def on(self, event: str, handler: Callable) -> None:
        self.handlers[event] = handler

    def on_any(self, handler: Callable) -> None:
        self.any_handler = handler

    def on_connect(self, handler: Callable) -> None:
        self.connect_handlers.append(handler)

    def on_disconnect(self, handler: Callable) -> None:
        self.disconnect_handlers.append(handler)

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.fail_disconnect is not None:
            raise self.fail_disconnect
        self.connected = False
        for handler in self.disconnect_handlers:
            await handler()

    async def deliver(self, event: str, *args: Any) -> None:
        """Dispatch an inbound event the way the Socket.IO client would."""
        if event in self.handlers:
            await self.handlers[event](*args)
        elif self.any_handler is not None:
            await self.any_handler(event, *args)

    def emitted_events(self) -> List[str]:
        return [event for event, _ in self.emitted]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def history() -> MessageHistory:
    return MessageHistory()


@pytest.fixture
def session(transport: FakeTransport, history: MessageHistory) -> ChatSession:
    return ChatSession(User("bob"), history, transport=transport)
