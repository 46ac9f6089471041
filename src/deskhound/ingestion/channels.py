import threading
from collections.abc import Callable

import structlog

from deskhound.ingestion.types import Conversation

_logger = structlog.get_logger()

ConversationLookup = Callable[[str], Conversation | None]


class ChannelResolver:
    """Memoized channel id -> display name lookup.

    Entries live for the life of the process and are never invalidated, so a
    channel renamed mid-session keeps its old name until restart. Failed
    lookups are not cached and will be retried on the next call.
    """

    def __init__(self, lookup: ConversationLookup) -> None:
        self._lookup = lookup
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def resolve_name(self, channel_id: str) -> str | None:
        with self._lock:
            cached = self._cache.get(channel_id)
        if cached is not None:
            return cached

        try:
            conversation = self._lookup(channel_id)
        except Exception:
            _logger.debug("channel_name_lookup_failed", channel_id=channel_id, exc_info=True)
            return None

        if conversation is None:
            return None

        name = conversation.name or channel_id
        self._remember(channel_id, name)
        return name

    def cached(self) -> dict[str, str]:
        with self._lock:
            return dict(self._cache)

    def _remember(self, channel_id: str, name: str) -> None:
        with self._lock:
            # First writer wins; entries are append-only
            if channel_id not in self._cache:
                self._cache[channel_id] = name
                _logger.debug("channel_name_cached", channel_id=channel_id, name=name)
