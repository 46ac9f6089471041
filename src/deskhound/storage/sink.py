import threading
from collections.abc import Callable

import structlog

from deskhound.ingestion.types import Message
from deskhound.storage.repository import MessageRepository

_logger = structlog.get_logger()

MessageHandler = Callable[[Message], None]


class RecordSink:
    """Persists ingested messages and fans them out to live observers.

    Observers run synchronously, in registration order, after the save
    attempt. A failed save or a failing observer is logged and never stops
    the remaining observers or the caller.
    """

    def __init__(self, repository: MessageRepository | None = None) -> None:
        self._repository = repository
        self._handlers: list[MessageHandler] = []
        self._lock = threading.Lock()

    def on_message(self, handler: MessageHandler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def remove_handler(self, handler: MessageHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def clear_handlers(self) -> None:
        with self._lock:
            self._handlers.clear()

    def save(self, message: Message) -> None:
        if self._repository is not None:
            try:
                self._repository.save(message)
            except Exception:
                _logger.exception("message_save_failed", message_id=message.id)

        with self._lock:
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(message)
            except Exception:
                _logger.exception("message_handler_failed", message_id=message.id)

        _logger.info(
            "message_ingested",
            message_id=message.id,
            type=message.type.value,
            channel=message.channel,
            user=message.user,
            category=message.category,
            priority=message.priority.value,
        )
