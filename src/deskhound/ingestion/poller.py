"""Polling ingestion loop.

Each tick:

1. lists conversations and keeps those the scope filter accepts;
2. fetches, per conversation and one at a time, the messages newer than the
   watermark captured at the start of the tick, oldest first;
3. drops bot and system messages, converts the rest and hands them to the
   record sink;
4. expands thread roots one level deep (root plus direct replies);
5. moves the watermark to the newest top-level timestamp seen, never back.

Only one tick runs at a time. A scheduled tick that finds another one still
in flight is skipped; ``poll_once`` waits for its turn instead.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from deskhound.config import PollerConfig, SlackSettings
from deskhound.ingestion.converter import MessageConverter
from deskhound.ingestion.scope import should_monitor
from deskhound.ingestion.types import Conversation, RawMessage, ThreadEntry
from deskhound.messaging.platform.platform import AbstractChatPlatform
from deskhound.storage.sink import RecordSink

_logger = structlog.get_logger()

# Subtypes that still carry a human-authored message
ALLOWED_SUBTYPES = frozenset({"file_share", "thread_broadcast"})

_THREAD_HISTORY_LIMIT = 10
_THREAD_HISTORY_CHARS = 200

SettingsProvider = Callable[[], SlackSettings | None]


def _as_float(ts: str | None) -> float | None:
    if not ts:
        return None
    try:
        return float(ts)
    except ValueError:
        return None


def is_ingestible(raw: RawMessage) -> bool:
    if raw.get("bot_id") or raw.get("bot_profile"):
        return False
    subtype = raw.get("subtype")
    return subtype is None or subtype in ALLOWED_SUBTYPES


@dataclass
class PollReport:
    conversations: int = 0
    emitted: int = 0
    skipped: int = 0
    failed: int = 0
    watermark: str = ""


class PollState:
    """Watermark shared by every tick; it only ever moves forward."""

    def __init__(self, watermark: str) -> None:
        self._watermark = watermark
        self._lock = threading.Lock()

    @property
    def watermark(self) -> str:
        with self._lock:
            return self._watermark

    def advance(self, candidate: str) -> bool:
        value = _as_float(candidate)
        if value is None:
            return False
        with self._lock:
            current = _as_float(self._watermark)
            if current is not None and value <= current:
                return False
            self._watermark = candidate
            return True


class Poller:
    def __init__(
        self,
        platform: AbstractChatPlatform,
        converter: MessageConverter,
        sink: RecordSink,
        settings: SettingsProvider,
        config: PollerConfig | None = None,
        bot_user_id: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._platform = platform
        self._converter = converter
        self._sink = sink
        self._settings = settings
        self._config = config or PollerConfig()
        self._bot_mention = f"<@{bot_user_id}>" if bot_user_id else ""

        start = clock() - self._config.lookback_hours * 3600
        self.state = PollState(f"{start:.6f}")

        self._tick_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        if self.running:
            return
        # Each loop owns its stop event so a stopped loop can never be revived.
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), name="deskhound-poller", daemon=True
        )
        self._thread.start()
        _logger.info(
            "poller_started",
            interval_seconds=self._config.interval_seconds,
            watermark=self.state.watermark,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Stop scheduling ticks. A tick already in flight runs to completion."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if (
            timeout is not None
            and thread is not None
            and thread is not threading.current_thread()
        ):
            thread.join(timeout=timeout)
        _logger.info("poller_stopped")

    def tick(self) -> PollReport | None:
        if not self._tick_lock.acquire(blocking=False):
            _logger.info("poll_tick_skipped", reason="previous_tick_running")
            return None
        try:
            return self._guarded_tick()
        finally:
            self._tick_lock.release()

    def poll_once(self) -> PollReport:
        with self._tick_lock:
            return self._guarded_tick()

    def _run(self, stop: threading.Event) -> None:
        while not stop.is_set():
            self.tick()
            if stop.wait(self._config.interval_seconds):
                break

    def _guarded_tick(self) -> PollReport:
        try:
            return self._tick()
        except Exception:
            _logger.exception("poll_tick_failed")
            return PollReport(failed=1, watermark=self.state.watermark)

    def _tick(self) -> PollReport:
        settings = self._settings()
        since = self.state.watermark
        report = PollReport(watermark=since)

        conversations = self._candidates(settings)
        report.conversations = len(conversations)
        _logger.debug("poll_tick_started", since=since, conversations=len(conversations))

        newest: str | None = None
        for conversation in conversations:
            try:
                seen = self._poll_conversation(conversation, since, settings, report)
            except Exception:
                report.failed += 1
                _logger.exception(
                    "conversation_poll_failed",
                    conversation_id=conversation.id,
                    conversation=conversation.name,
                )
                continue
            if seen is not None and (newest is None or float(seen) > float(newest)):
                newest = seen

        if newest is not None:
            self.state.advance(newest)
        report.watermark = self.state.watermark

        _logger.info(
            "poll_tick_finished",
            conversations=report.conversations,
            emitted=report.emitted,
            skipped=report.skipped,
            failed=report.failed,
            watermark=report.watermark,
        )
        return report

    def _candidates(self, settings: SlackSettings | None) -> list[Conversation]:
        conversations = self._platform.list_conversations()
        selected = [c for c in conversations if should_monitor(c, settings)]
        _logger.debug(
            "conversations_selected",
            total=len(conversations),
            monitored=[c.name for c in selected],
        )
        return selected

    def _poll_conversation(
        self,
        conversation: Conversation,
        since: str,
        settings: SlackSettings | None,
        report: PollReport,
    ) -> str | None:
        """Process one conversation and return the newest top-level timestamp seen."""
        raw_messages = self._platform.fetch_history(conversation.id, since, self._config.page_size)
        _logger.debug(
            "conversation_history_fetched",
            conversation=conversation.name,
            count=len(raw_messages),
        )

        newest: str | None = None
        newest_value: float | None = None
        for raw in reversed(raw_messages):
            ts = raw.get("ts")
            value = _as_float(ts)
            if value is not None and (newest_value is None or value > newest_value):
                newest, newest_value = ts, value

            if not self._process(raw, conversation, settings, report):
                continue

            threads_enabled = settings is None or settings.enable_threads
            if threads_enabled and int(raw.get("reply_count") or 0) > 0 and ts:
                self._expand_thread(conversation, ts, settings, report)

        return newest

    def _process(
        self,
        raw: RawMessage,
        conversation: Conversation,
        settings: SlackSettings | None,
        report: PollReport,
        thread_history: list[ThreadEntry] | None = None,
    ) -> bool:
        """Run one raw message through filter, convert and emit.

        Returns False only when the message was filtered out as bot or system
        traffic; conversion misses and failures still count as processed.
        """
        if not is_ingestible(raw):
            report.skipped += 1
            return False

        if self._drops_mention(raw, settings):
            report.skipped += 1
            return False

        try:
            message = self._converter.convert(raw, conversation, thread_history or ())
        except Exception:
            report.failed += 1
            _logger.exception("message_conversion_failed", message_id=raw.get("ts"))
            return True

        if message is None:
            report.skipped += 1
            return True

        try:
            self._sink.save(message)
        except Exception:
            report.failed += 1
            _logger.exception("message_emit_failed", message_id=message.id)
            return True

        report.emitted += 1
        return True

    def _drops_mention(self, raw: RawMessage, settings: SlackSettings | None) -> bool:
        if settings is None or settings.enable_mentions or not self._bot_mention:
            return False
        return self._bot_mention in (raw.get("text") or "")

    def _expand_thread(
        self,
        conversation: Conversation,
        root_ts: str,
        settings: SlackSettings | None,
        report: PollReport,
    ) -> None:
        try:
            thread = self._platform.fetch_thread_replies(
                conversation.id, root_ts, self._config.thread_page_size
            )
        except Exception:
            report.failed += 1
            _logger.exception(
                "thread_fetch_failed",
                conversation=conversation.name,
                thread_ts=root_ts,
            )
            return

        if not thread:
            return

        history = [_thread_entry(thread[0])]
        replies = thread[1:]
        _logger.info("thread_expanded", thread_ts=root_ts, replies=len(replies))

        for reply in replies:
            self._process(
                reply,
                conversation,
                settings,
                report,
                thread_history=history[-_THREAD_HISTORY_LIMIT:],
            )
            history.append(_thread_entry(reply))


def _thread_entry(raw: RawMessage) -> ThreadEntry:
    return ThreadEntry(
        id=raw.get("ts", ""),
        user=raw.get("user", ""),
        text=(raw.get("text") or "")[:_THREAD_HISTORY_CHARS],
        timestamp=raw.get("ts", ""),
    )
