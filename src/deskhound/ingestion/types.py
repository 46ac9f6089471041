from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

# A message as returned by the chat API, before conversion.
RawMessage = dict[str, Any]


class MessagePriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class MessageCategory(StrEnum):
    """Well-known category tags. Rules may use any other string as a custom tag."""

    PASSWORD_RESET = "password_reset"
    VPN_SUPPORT = "vpn_support"
    SOFTWARE_INSTALL = "software_install"
    HARDWARE_ISSUE = "hardware_issue"
    ACCESS_REQUEST = "access_request"
    GENERAL_QUESTION = "general_question"
    ESCALATION = "escalation"
    OTHER = "other"


class MessageStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    RESPONDED = "responded"
    ESCALATED = "escalated"
    IGNORED = "ignored"
    FAILED = "failed"


class MessageType(StrEnum):
    DIRECT_MESSAGE = "direct_message"
    GROUP_MESSAGE = "group_message"
    CHANNEL_MESSAGE = "channel_message"


class ConversationKind(StrEnum):
    IM = "im"
    GROUP = "group"
    PRIVATE_CHANNEL = "private_channel"
    CHANNEL = "channel"
    UNKNOWN = "unknown"

    def message_type(self) -> MessageType:
        match self:
            case ConversationKind.IM:
                return MessageType.DIRECT_MESSAGE
            case ConversationKind.GROUP | ConversationKind.PRIVATE_CHANNEL:
                return MessageType.GROUP_MESSAGE
            case _:
                return MessageType.CHANNEL_MESSAGE


@dataclass(frozen=True)
class Conversation:
    id: str
    name: str
    kind: ConversationKind
    is_member: bool = False


@dataclass(frozen=True)
class CategoryRule:
    category: str
    display_name: str
    keywords: tuple[str, ...] = ()
    description: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CategoryRule":
        category = str(raw.get("category", "")).strip()
        if not category:
            raise ValueError("Category rule is missing 'category'")
        keywords = raw.get("keywords") or []
        if not isinstance(keywords, list):
            raise ValueError(f"Category rule '{category}' keywords must be a list")
        return cls(
            category=category,
            display_name=str(raw.get("display_name") or raw.get("displayName") or category),
            keywords=tuple(str(k) for k in keywords if str(k).strip()),
            description=str(raw.get("description", "")),
        )


@dataclass
class UserProfile:
    id: str
    display_name: str
    email: str = ""
    title: str = ""
    department: str = ""
    avatar: str = ""
    is_bot: bool = False


@dataclass
class ThreadEntry:
    """Abbreviated copy of an earlier message in the same thread."""

    id: str
    user: str
    text: str
    timestamp: str


@dataclass
class MessageContext:
    user_info: UserProfile | None = None
    thread_history: list[ThreadEntry] = field(default_factory=list)


@dataclass
class Message:
    id: str
    channel: str
    user: str
    text: str
    timestamp: str
    type: MessageType
    priority: MessagePriority
    category: str
    status: MessageStatus = MessageStatus.PENDING
    thread_root_id: str | None = None
    reply_count: int = 0
    context: MessageContext = field(default_factory=MessageContext)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["priority"] = self.priority.value
        data["status"] = self.status.value
        return data
