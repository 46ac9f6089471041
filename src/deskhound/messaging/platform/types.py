from dataclasses import dataclass
from enum import StrEnum


class PlatformType(StrEnum):
    SLACK = "slack"


@dataclass
class WorkspaceIdentity:
    """Who we are connected as, from the auth check."""

    team: str
    team_id: str
    bot_user_id: str
    url: str = ""


@dataclass
class ChannelSummary:
    id: str
    name: str
    is_private: bool
    is_member: bool
    topic: str = ""
    purpose: str = ""
