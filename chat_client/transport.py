from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

import socketio

from chat_shared.config import ChatConfig
from chat_shared.log import get_logger

logger = get_logger(__name__)


EventHandler = Callable[[Any], Awaitable[None]]
AnyEventHandler = Callable[[str, Any], Awaitable[None]]
LifecycleHandler = Callable[[], Awaitable[None]]


class Transport(Protocol):
    """
    The slice of a real-time event client the chat session relies on.

    Framing, acknowledgements and reconnection stay inside the implementation.
    """

    @property
    def connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def emit(self, event: str, payload: Dict[str, Any]) -> None: ...

    def on(self, event: str, handler: EventHandler) -> None: ...

    def on_any(self, handler: AnyEventHandler) -> None: ...

    def on_connect(self, handler: LifecycleHandler) -> None: ...

    def on_disconnect(self, handler: LifecycleHandler) -> None: ...

    async def disconnect(self) -> None: ...


class SocketIOTransport:
    """
    Socket.IO transport backed by ``socketio.AsyncClient``.

    ``on_any`` binds the library's ``"*"`` catch-all, which only sees events
    that have no handler of their own.
    """

    def __init__(self, config: ChatConfig, client: Optional[socketio.AsyncClient] = None) -> None:
        self.config = config
        self.client = client or socketio.AsyncClient(reconnection=config.reconnection)

    @property
    def connected(self) -> bool:
        return bool(self.client.connected)

    async def connect(self) -> None:
        """Open the Socket.IO connection to the configured endpoint"""
        logger.debug("Connecting to %s (path=%s, transports=%s)",
                     self.config.server_url, self.config.socketio_path, self.config.transports)
        await self.client.connect(
            self.config.server_url,
            socketio_path=self.config.socketio_path,
            transports=self.config.transports,
            wait_timeout=self.config.wait_timeout,
        )

    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        await self.client.emit(event, payload)

    def on(self, event: str, handler: EventHandler) -> None:
        self.client.on(event, handler)

    def on_any(self, handler: AnyEventHandler) -> None:
        self.client.on("*", handler)

    def on_connect(self, handler: LifecycleHandler) -> None:
        self.client.on("connect", handler)

    def on_disconnect(self, handler: LifecycleHandler) -> None:
        # Newer python-socketio releases pass a disconnect reason
        async def _on_disconnect(*_reason: Any) -> None:
            await handler()

        self.client.on("disconnect", _on_disconnect)

    async def disconnect(self) -> None:
        await self.client.disconnect()
