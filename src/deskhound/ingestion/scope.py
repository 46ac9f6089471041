"""Which conversations the poller reads.

The policy is an ordered list of ``(predicate, decision, reason)`` entries.
The first predicate that holds decides; a conversation no entry claims is
monitored. Without any settings everything is monitored.
"""

from collections.abc import Callable

import structlog

from deskhound.config import SlackSettings
from deskhound.ingestion.types import Conversation, ConversationKind

_logger = structlog.get_logger()

ScopePredicate = Callable[[Conversation, SlackSettings], bool]


def _is_direct_message(conversation: Conversation, _settings: SlackSettings) -> bool:
    return conversation.kind is ConversationKind.IM


def _is_group_or_private(conversation: Conversation, _settings: SlackSettings) -> bool:
    return conversation.kind in (ConversationKind.GROUP, ConversationKind.PRIVATE_CHANNEL)


def _is_channel_without_membership(conversation: Conversation, _settings: SlackSettings) -> bool:
    return conversation.kind is ConversationKind.CHANNEL and not conversation.is_member


def _is_ignored(conversation: Conversation, settings: SlackSettings) -> bool:
    return bool(settings.ignored_channels) and conversation.name in settings.ignored_channels


def _is_not_monitored(conversation: Conversation, settings: SlackSettings) -> bool:
    return (
        bool(settings.monitored_channels) and conversation.name not in settings.monitored_channels
    )


SCOPE_RULES: tuple[tuple[ScopePredicate, bool, str], ...] = (
    (_is_direct_message, False, "direct_messages_not_supported"),
    (_is_group_or_private, False, "private_conversations_not_supported"),
    (_is_channel_without_membership, False, "bot_not_a_member"),
    (_is_ignored, False, "channel_ignored"),
    (_is_not_monitored, False, "channel_not_monitored"),
)


def should_monitor(conversation: Conversation, settings: SlackSettings | None) -> bool:
    if settings is None:
        _logger.debug("scope_no_settings", conversation=conversation.name)
        return True

    for predicate, decision, reason in SCOPE_RULES:
        if predicate(conversation, settings):
            _logger.debug(
                "scope_decided",
                conversation=conversation.name,
                monitor=decision,
                reason=reason,
            )
            return decision

    return True

