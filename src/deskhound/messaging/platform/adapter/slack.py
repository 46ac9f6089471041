from collections.abc import Callable, Iterator
from typing import Any

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.http_retry.builtin_handlers import RateLimitErrorRetryHandler
from slack_sdk.web import SlackResponse

from deskhound.errors import AuthenticationError, ChatApiError
from deskhound.ingestion.types import Conversation, ConversationKind, RawMessage, UserProfile
from deskhound.messaging.platform.platform import AbstractChatPlatform
from deskhound.messaging.platform.types import ChannelSummary, PlatformType, WorkspaceIdentity

_logger = structlog.get_logger()

_LIST_PAGE_SIZE = 200
_CONVERSATION_TYPES = "public_channel,private_channel,mpim,im"
_RATE_LIMIT_RETRIES = 2


class SlackPlatform(AbstractChatPlatform):
    def __init__(self, bot_token: str, client: WebClient | None = None) -> None:
        if not bot_token and client is None:
            raise AuthenticationError("Missing Slack bot token")
        self.client = client or WebClient(token=bot_token)
        self.client.retry_handlers.append(
            RateLimitErrorRetryHandler(max_retry_count=_RATE_LIMIT_RETRIES)
        )

    def identify(self) -> PlatformType:
        return PlatformType.SLACK

    def authenticate(self) -> WorkspaceIdentity:
        try:
            response = self.client.auth_test()
        except SlackApiError as e:
            raise AuthenticationError(
                f"Slack rejected the bot token: {e.response.get('error', 'unknown_error')}"
            ) from e
        except SlackClientError as e:
            raise AuthenticationError(f"Slack auth check failed: {e}") from e

        if not response.get("ok"):
            raise AuthenticationError("Failed to authenticate with Slack")

        identity = WorkspaceIdentity(
            team=response.get("team", ""),
            team_id=response.get("team_id", ""),
            bot_user_id=response.get("user_id", ""),
            url=response.get("url", ""),
        )
        _logger.info("slack_authenticated", team=identity.team, bot_user_id=identity.bot_user_id)
        return identity

    def list_conversations(self) -> list[Conversation]:
        raw_channels = self._paginate(
            "conversations.list",
            "channels",
            lambda cursor: self.client.conversations_list(
                types=_CONVERSATION_TYPES,
                exclude_archived=True,
                limit=_LIST_PAGE_SIZE,
                cursor=cursor,
            ),
        )
        return [conversation_from_raw(raw) for raw in raw_channels]

    def fetch_history(self, conversation_id: str, since: str, limit: int) -> list[RawMessage]:
        response = self._call(
            "conversations.history",
            lambda: self.client.conversations_history(
                channel=conversation_id,
                oldest=since,
                limit=limit,
            ),
        )
        messages: list[RawMessage] = response.get("messages", [])
        return messages

    def fetch_thread_replies(
        self,
        conversation_id: str,
        root_ts: str,
        limit: int,
    ) -> list[RawMessage]:
        response = self._call(
            "conversations.replies",
            lambda: self.client.conversations_replies(
                channel=conversation_id,
                ts=root_ts,
                limit=limit,
            ),
        )
        messages: list[RawMessage] = response.get("messages", [])
        return messages

    def resolve_user(self, user_id: str) -> UserProfile | None:
        response = self._call("users.info", lambda: self.client.users_info(user=user_id))
        user = response.get("user")
        if not user:
            return None
        return user_from_raw(user)

    def resolve_conversation_info(self, conversation_id: str) -> Conversation | None:
        response = self._call(
            "conversations.info",
            lambda: self.client.conversations_info(channel=conversation_id),
        )
        channel = response.get("channel")
        if not channel:
            return None
        return conversation_from_raw(channel)

    def send_message(
        self,
        channel_id: str,
        text: str,
        thread_id: str | None = None,
    ) -> str:
        _logger.debug("slack_sending_message", channel_id=channel_id, thread_id=thread_id)
        response = self._call(
            "chat.postMessage",
            lambda: self.client.chat_postMessage(
                channel=channel_id,
                text=text,
                thread_ts=thread_id,
            ),
        )
        return str(response["ts"])

    def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        try:
            self.client.reactions_add(channel=channel_id, timestamp=message_id, name=emoji)
        except SlackApiError as e:
            if e.response.get("error") == "already_reacted":
                _logger.debug("slack_reaction_already_exists", channel_id=channel_id, emoji=emoji)
                return
            raise ChatApiError("reactions.add", str(e.response.get("error", e))) from e
        except SlackClientError as e:
            raise ChatApiError("reactions.add", str(e)) from e

    def mark_as_read(self, channel_id: str, message_id: str) -> None:
        self._call(
            "conversations.mark",
            lambda: self.client.conversations_mark(channel=channel_id, ts=message_id),
        )

    def list_channels(self) -> list[ChannelSummary]:
        raw_channels = self._paginate(
            "conversations.list",
            "channels",
            lambda cursor: self.client.conversations_list(
                types="public_channel,private_channel",
                exclude_archived=True,
                limit=_LIST_PAGE_SIZE,
                cursor=cursor,
            ),
        )
        return [
            ChannelSummary(
                id=raw["id"],
                name=raw.get("name", ""),
                is_private=bool(raw.get("is_private", False)),
                is_member=bool(raw.get("is_member", False)),
                topic=(raw.get("topic") or {}).get("value", ""),
                purpose=(raw.get("purpose") or {}).get("value", ""),
            )
            for raw in raw_channels
        ]

    def list_users(self) -> list[UserProfile]:
        members = self._paginate(
            "users.list",
            "members",
            lambda cursor: self.client.users_list(limit=_LIST_PAGE_SIZE, cursor=cursor),
        )
        return [
            user_from_raw(member)
            for member in members
            if not member.get("deleted") and not member.get("is_bot")
        ]

    def _call(self, method: str, request: Callable[[], SlackResponse]) -> SlackResponse:
        try:
            response = request()
        except SlackApiError as e:
            raise ChatApiError(method, str(e.response.get("error", e))) from e
        except SlackClientError as e:
            raise ChatApiError(method, str(e)) from e
        except OSError as e:
            raise ChatApiError(method, f"network error: {e}") from e

        if not response.get("ok", False):
            raise ChatApiError(method, str(response.get("error", "unknown_error")))
        return response

    def _paginate(
        self,
        method: str,
        key: str,
        request: Callable[[str | None], SlackResponse],
    ) -> list[dict[str, Any]]:
        return list(self._iter_pages(method, key, request))

    def _iter_pages(
        self,
        method: str,
        key: str,
        request: Callable[[str | None], SlackResponse],
    ) -> Iterator[dict[str, Any]]:
        cursor: str | None = None
        while True:
            response = self._call(method, lambda: request(cursor))
            yield from response.get(key, [])
            cursor = (response.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                return


def conversation_kind(raw: dict[str, Any]) -> ConversationKind:
    if raw.get("is_im"):
        return ConversationKind.IM
    if raw.get("is_group") or raw.get("is_mpim"):
        return ConversationKind.GROUP
    if raw.get("is_private"):
        return ConversationKind.PRIVATE_CHANNEL
    if raw.get("is_channel"):
        return ConversationKind.CHANNEL
    return ConversationKind.UNKNOWN


def conversation_from_raw(raw: dict[str, Any]) -> Conversation:
    conversation_id = str(raw["id"])
    return Conversation(
        id=conversation_id,
        name=raw.get("name") or f"dm-{conversation_id}",
        kind=conversation_kind(raw),
        is_member=bool(raw.get("is_member", False)),
    )


def user_from_raw(raw: dict[str, Any]) -> UserProfile:
    profile: dict[str, Any] = raw.get("profile") or {}
    fields: dict[str, Any] = profile.get("fields") or {}
    department = (fields.get("department") or {}).get("value", "")
    return UserProfile(
        id=raw.get("id", ""),
        display_name=raw.get("real_name") or profile.get("real_name") or raw.get("name", ""),
        email=profile.get("email", ""),
        title=profile.get("title", ""),
        department=department,
        avatar=profile.get("image_72", ""),
        is_bot=bool(raw.get("is_bot", False)),
    )
