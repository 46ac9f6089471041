from collections.abc import Callable, Sequence

import structlog

from deskhound.ingestion.channels import ChannelResolver
from deskhound.ingestion.classifier import classify_message
from deskhound.ingestion.normalizer import TextNormalizer
from deskhound.ingestion.types import (
    CategoryRule,
    Conversation,
    Message,
    MessageContext,
    MessageStatus,
    RawMessage,
    ThreadEntry,
    UserProfile,
)

_logger = structlog.get_logger()

_PREVIEW_CHARS = 50

UserLookup = Callable[[str], UserProfile | None]
RulesProvider = Callable[[], Sequence[CategoryRule]]


class MessageConverter:
    """Turns one raw chat message into a classified :class:`Message`.

    The rule set is fetched from *rules* on every conversion, so a rule
    update applies to the very next message processed.
    """

    def __init__(
        self,
        lookup_user: UserLookup,
        channels: ChannelResolver,
        rules: RulesProvider,
    ) -> None:
        self._lookup_user = lookup_user
        self._channels = channels
        self._rules = rules
        self._normalizer = TextNormalizer(lookup_user)

    def find_user(self, user_id: str) -> UserProfile | None:
        """User lookup that degrades to ``None`` instead of raising."""
        try:
            return self._lookup_user(user_id)
        except Exception:
            _logger.debug("user_lookup_failed", user_id=user_id, exc_info=True)
            return None

    def convert(
        self,
        raw: RawMessage,
        conversation: Conversation,
        thread_history: Sequence[ThreadEntry] = (),
    ) -> Message | None:
        """Return ``None`` for messages without text or author."""
        text: str = raw.get("text") or ""
        user_id: str = raw.get("user") or ""
        ts: str = raw.get("ts") or ""
        if not text or not user_id or not ts:
            return None

        user_info = self.find_user(user_id)
        result = classify_message(text, self._rules())
        _logger.info(
            "message_categorized",
            message_id=ts,
            preview=text[:_PREVIEW_CHARS],
            category=result.category,
            priority=result.priority.value,
            keyword=result.keyword,
        )

        channel_name = self._channels.resolve_name(conversation.id)
        thread_ts = raw.get("thread_ts")
        is_reply = bool(thread_ts) and thread_ts != ts

        return Message(
            id=ts,
            channel=channel_name or conversation.id,
            user=user_info.display_name if user_info and user_info.display_name else user_id,
            text=self._normalizer.normalize(text),
            timestamp=ts,
            type=conversation.kind.message_type(),
            priority=result.priority,
            category=str(result.category),
            status=MessageStatus.PENDING,
            thread_root_id=thread_ts if is_reply else None,
            reply_count=0 if is_reply else int(raw.get("reply_count") or 0),
            context=MessageContext(user_info=user_info, thread_history=list(thread_history)),
        )
