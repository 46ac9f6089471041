from deskhound.messaging.platform import (
    AbstractChatPlatform,
    PlatformType,
    SlackPlatform,
    WorkspaceIdentity,
)

__all__ = [
    "AbstractChatPlatform",
    "PlatformType",
    "SlackPlatform",
    "WorkspaceIdentity",
]
