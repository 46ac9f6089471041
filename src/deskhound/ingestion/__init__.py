from deskhound.ingestion.types import (
    CategoryRule,
    Conversation,
    ConversationKind,
    Message,
    MessageCategory,
    MessageContext,
    MessagePriority,
    MessageStatus,
    MessageType,
    RawMessage,
    ThreadEntry,
    UserProfile,
)

__all__ = [
    "CategoryRule",
    "Conversation",
    "ConversationKind",
    "Message",
    "MessageCategory",
    "MessageContext",
    "MessagePriority",
    "MessageStatus",
    "MessageType",
    "RawMessage",
    "ThreadEntry",
    "UserProfile",
]
