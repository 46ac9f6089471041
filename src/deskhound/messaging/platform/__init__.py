from deskhound.messaging.platform.adapter import SlackPlatform
from deskhound.messaging.platform.platform import AbstractChatPlatform
from deskhound.messaging.platform.types import ChannelSummary, PlatformType, WorkspaceIdentity

__all__ = [
    "AbstractChatPlatform",
    "ChannelSummary",
    "PlatformType",
    "SlackPlatform",
    "WorkspaceIdentity",
]
