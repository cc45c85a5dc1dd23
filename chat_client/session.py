from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional

from chat_shared.config import ChatConfig
from chat_shared.events import (
    JOIN_EVENTS,
    LEAVE_EVENTS,
    MESSAGE_EVENTS,
    ChatConnectionError,
    ChatEvent,
    ChatSessionError,
    InboundChatLine,
    MalformedPayloadError,
    describe_payload,
    extract_username,
    message_payload,
    presence_payload,
    private_message_payload,
)
from chat_shared.log import get_logger, log_chat_event
from .state import Message, MessageHistory, User
from .transport import SocketIOTransport, Transport

logger = get_logger(__name__)


MessageListener = Callable[[Message], None]
StatusListener = Callable[[str], None]


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class SendResult:
    """
    Outcome of an outgoing operation.

    Network failures never raise out of send/disconnect; they land in
    ``error`` instead. ``message`` is the locally echoed history entry.
    """
    sent: bool = False
    skipped: bool = False
    message: Optional[Message] = None
    error: Optional[Exception] = None


class ChatSession:
    """
    One chat connection for one user.

    Turns local intents (send, send private, disconnect) into outbound events
    and inbound message events into ``Message`` entries in the shared history.
    Only ``connect`` propagates failures; everything else is logged and
    absorbed.
    """

    def __init__(
        self,
        user: User,
        history: MessageHistory,
        transport: Optional[Transport] = None,
        config: Optional[ChatConfig] = None,
        on_message: Optional[MessageListener] = None,
        on_status: Optional[StatusListener] = None,
    ) -> None:
        self.user = user
        self.history = history
        self.transport: Transport = transport or SocketIOTransport(config or ChatConfig.load())
        self.on_message = on_message
        self.on_status = on_status
        self.state = SessionState.DISCONNECTED
        self._handlers_registered = False

    @property
    def username(self) -> str:
        return self.user.username

    # ========================================
    #           CONNECTION LIFECYCLE
    # ========================================

    async def connect(self) -> None:
        """Register inbound handlers, then open the connection"""
        if self.state is not SessionState.DISCONNECTED:
            raise ChatSessionError(f"Cannot connect while {self.state.value}")

        self._register_handlers()

        self.state = SessionState.CONNECTING
        logger.info("Connecting to server...")
        try:
            await self.transport.connect()
        except Exception as e:
            self.state = SessionState.DISCONNECTED
            logger.error("Connection failed: %s", e, extra={"username": self.username})
            raise ChatConnectionError(f"Could not connect to chat server: {e}") from e

    def _register_handlers(self) -> None:
        if self._handlers_registered:
            return

        for event in MESSAGE_EVENTS:
            self.transport.on(event.value, self._chat_line_handler(event.value))
        self.transport.on(ChatEvent.USER_JOINED.value, self._presence_handler(ChatEvent.USER_JOINED.value, "joined"))
        self.transport.on(ChatEvent.USER_LEFT.value, self._presence_handler(ChatEvent.USER_LEFT.value, "left"))
        self.transport.on_any(self._on_any_event)
        self.transport.on_connect(self._on_connected)
        self.transport.on_disconnect(self._on_disconnected)

        self._handlers_registered = True

    async def _on_connected(self) -> None:
        self.state = SessionState.CONNECTED
        self._status("Connected to chat!")
        try:
            await self._emit_all(JOIN_EVENTS, presence_payload(self.username))
            log_chat_event(logger, "info", "Join emitted (join + chat_join)", username=self.username)
        except Exception as e:
            logger.error("Error emitting join: %s", e, extra={"username": self.username})

    async def _on_disconnected(self) -> None:
        self.state = SessionState.DISCONNECTED
        self._status("Disconnected from server.")

    # ========================================
    #           INBOUND EVENTS
    # ========================================

    def _chat_line_handler(self, event: str) -> Callable[..., Any]:
        async def handler(*args: Any) -> None:
            data = args[0] if args else None
            try:
                self.handle_chat_line(event, data)
            except Exception:
                logger.exception("%s handler exception; raw: %s", event, describe_payload(data))

        return handler

    def _presence_handler(self, event: str, verb: str) -> Callable[..., Any]:
        async def handler(*args: Any) -> None:
            data = args[0] if args else None
            self.handle_presence(event, data, verb)

        return handler

    def handle_chat_line(self, event: str, data: Any) -> Optional[Message]:
        """
        Turn a message/chat_message payload into a history entry.

        The payload's ``time`` is only displayed; the stored timestamp is the
        local receive time. Malformed payloads are logged and dropped.
        """
        log_chat_event(logger, "debug", f"RECEIVED event '{event}'", event=event, payload=data)
        try:
            line = InboundChatLine.from_payload(data)
        except MalformedPayloadError as e:
            logger.warning("%s handler exception: %s; raw: %s", event, e, describe_payload(data),
                           extra={"event": event})
            return None

        received_at = datetime.now()
        shown_time = line.time if line.time is not None else received_at.strftime("%H:%M")
        logger.info("[%s] %s: %s", shown_time, line.username, line.message)

        message = Message(sender=line.username, text=line.message, timestamp=received_at)
        self._record(message)
        return message

    def handle_presence(self, event: str, data: Any, verb: str) -> Optional[str]:
        """Announce a user_joined/user_left; never touches history"""
        log_chat_event(logger, "debug", f"RECEIVED event '{event}'", event=event, payload=data)
        try:
            name = extract_username(data)
        except MalformedPayloadError as e:
            logger.debug("Ignoring %s payload: %s", event, e)
            return None
        self._status(f"*** {name} has {verb} ***")
        return name

    async def _on_any_event(self, event: str, *args: Any) -> None:
        data = args[0] if len(args) == 1 else (list(args) or None)
        logger.info("ON_ANY -> Event: %s, Payload: %s", event, describe_payload(data))

    # ========================================
    #           OUTBOUND EVENTS
    # ========================================

    async def send_message(self, text: str) -> SendResult:
        """
        Emit a chat line under both message names and echo it locally.

        The local echo happens even when the emit fails.
        """
        if not text or not text.strip():
            return SendResult(skipped=True)

        result = SendResult()
        try:
            await self._emit_all(MESSAGE_EVENTS, message_payload(self.username, text))
            result.sent = True
            self._status(f"Sent (message + chat_message): {text}")
        except Exception as e:
            result.error = e
            logger.error("Error emitting message: %s", e, extra={"username": self.username})

        result.message = Message(sender=self.username, text=text, timestamp=datetime.now())
        self._record(result.message)
        return result

    async def send_private_message(self, recipient: str, text: str) -> SendResult:
        """Emit a single private_message event and echo it locally"""
        if not recipient or not recipient.strip() or not text or not text.strip():
            return SendResult(skipped=True)

        message = Message(
            sender=self.username,
            text=text,
            timestamp=datetime.now(),
            is_private=True,
            recipient=recipient,
        )
        result = SendResult(message=message)

        try:
            await self.transport.emit(
                ChatEvent.PRIVATE_MESSAGE.value,
                private_message_payload(self.username, recipient, text),
            )
            result.sent = True
            self._status(f"(DM to {recipient}) {text}")
        except Exception as e:
            result.error = e
            logger.error("Error emitting private_message: %s", e, extra={"username": self.username})

        self._record(message)
        return result

    async def disconnect(self) -> SendResult:
        """Announce leaving and close the connection; always completes"""
        result = SendResult()

        if not self.transport.connected:
            logger.debug("Transport not connected; skipping leave announcement")
        else:
            try:
                await self._emit_all(LEAVE_EVENTS, presence_payload(self.username))
                log_chat_event(logger, "info", "Leave emitted (leave + chat_leave)", username=self.username)
            except Exception as e:
                result.error = e
                logger.warning("Error emitting leave: %s", e, extra={"username": self.username})

        try:
            await self.transport.disconnect()
        except Exception as e:
            if result.error is None:
                result.error = e
            logger.warning("Error closing connection: %s", e, extra={"username": self.username})

        result.sent = result.error is None
        self.state = SessionState.DISCONNECTED
        self._status("You have left the chat.")
        return result

    # ========================================
    #           HELPERS
    # ========================================

    async def _emit_all(self, events: Iterable[ChatEvent], payload: Dict[str, Any]) -> None:
        # A failed emit stops the remaining names
        for event in events:
            await self.transport.emit(event.value, dict(payload))

    def _record(self, message: Message) -> None:
        self.history.add(message)
        if self.on_message is None:
            return
        try:
            self.on_message(message)
        except Exception:
            logger.exception("on_message listener failed")

    def _status(self, text: str) -> None:
        logger.info(text, extra={"username": self.username})
        if self.on_status is None:
            return
        try:
            self.on_status(text)
        except Exception:
            logger.exception("on_status listener failed")
