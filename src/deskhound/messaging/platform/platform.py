from abc import ABC, abstractmethod

from deskhound.ingestion.types import Conversation, RawMessage, UserProfile
from deskhound.messaging.platform.types import ChannelSummary, PlatformType, WorkspaceIdentity


class AbstractChatPlatform(ABC):
    """Read side of a chat workspace, plus the few writes an agent needs.

    Methods raise :class:`deskhound.errors.ChatApiError` when the provider
    call fails; lookups that simply find nothing return ``None``.
    """

    @abstractmethod
    def identify(self) -> PlatformType: ...

    @abstractmethod
    def authenticate(self) -> WorkspaceIdentity:
        """Verify credentials.

        Raises:
            AuthenticationError: the token is missing or rejected.
        """
        ...

    @abstractmethod
    def list_conversations(self) -> list[Conversation]:
        """Every conversation visible to the bot, without filtering."""
        ...

    @abstractmethod
    def fetch_history(
        self,
        conversation_id: str,
        since: str,
        limit: int,
    ) -> list[RawMessage]:
        """Messages strictly newer than *since*, newest first as the provider returns them."""
        ...

    @abstractmethod
    def fetch_thread_replies(
        self,
        conversation_id: str,
        root_ts: str,
        limit: int,
    ) -> list[RawMessage]:
        """Thread messages oldest first. The first entry is the root itself."""
        ...

    @abstractmethod
    def resolve_user(self, user_id: str) -> UserProfile | None: ...

    @abstractmethod
    def resolve_conversation_info(self, conversation_id: str) -> Conversation | None: ...

    @abstractmethod
    def send_message(
        self,
        channel_id: str,
        text: str,
        thread_id: str | None = None,
    ) -> str:
        """Post a message (optionally in a thread) and return its timestamp id."""
        ...

    @abstractmethod
    def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None: ...

    @abstractmethod
    def mark_as_read(self, channel_id: str, message_id: str) -> None: ...

    @abstractmethod
    def list_channels(self) -> list[ChannelSummary]: ...

    @abstractmethod
    def list_users(self) -> list[UserProfile]:
        """Active human members of the workspace."""
        ...

    def close(self) -> None:  # noqa: B027
        """Release any held resources. Default is a no-op."""
