from unittest.mock import MagicMock

from deskhound.ingestion.types import Message, MessagePriority, MessageType
from deskhound.storage.sink import RecordSink


def _message() -> Message:
    return Message(
        id="1.0",
        channel="it-support",
        user="Alice",
        text="hi",
        timestamp="1.0",
        type=MessageType.CHANNEL_MESSAGE,
        priority=MessagePriority.LOW,
        category="general_question",
    )


class TestRecordSink:
    def test_saves_then_notifies_in_order(self) -> None:
        calls: list[str] = []
        repository = MagicMock()
        repository.save.side_effect = lambda _m: calls.append("save")
        sink = RecordSink(repository)
        sink.on_message(lambda _m: calls.append("first"))
        sink.on_message(lambda _m: calls.append("second"))

        sink.save(_message())

        assert calls == ["save", "first", "second"]

    def test_save_failure_still_notifies(self) -> None:
        repository = MagicMock()
        repository.save.side_effect = RuntimeError("database is locked")
        handler = MagicMock()
        sink = RecordSink(repository)
        sink.on_message(handler)

        message = _message()
        sink.save(message)

        handler.assert_called_once_with(message)

    def test_failing_handler_does_not_stop_others(self) -> None:
        broken = MagicMock(side_effect=ValueError("boom"))
        healthy = MagicMock()
        sink = RecordSink()
        sink.on_message(broken)
        sink.on_message(healthy)

        sink.save(_message())

        broken.assert_called_once()
        healthy.assert_called_once()

    def test_remove_handler(self) -> None:
        handler = MagicMock()
        sink = RecordSink()
        sink.on_message(handler)
        sink.remove_handler(handler)
        sink.remove_handler(handler)

        sink.save(_message())

        handler.assert_not_called()

    def test_clear_handlers(self) -> None:
        handler = MagicMock()
        sink = RecordSink()
        sink.on_message(handler)
        sink.clear_handlers()

        sink.save(_message())

        handler.assert_not_called()
