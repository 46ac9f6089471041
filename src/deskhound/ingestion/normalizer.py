import re
from collections.abc import Callable

import structlog

from deskhound.ingestion.types import UserProfile

_logger = structlog.get_logger()

_USER_MENTION = re.compile(r"<@([UW][A-Z0-9]+)(?:\|[^>]*)?>")
_CHANNEL_MENTION = re.compile(r"<#([CDG][A-Z0-9]+)(?:\|([^>]*))?>")
_BROADCASTS = {
    "<!here>": "@here",
    "<!channel>": "@channel",
    "<!everyone>": "@everyone",
}

UserLookup = Callable[[str], UserProfile | None]


class TextNormalizer:
    """Rewrites chat markup into display text.

    User mentions are resolved first, then channel mentions, then broadcast
    tokens. A user lookup that fails leaves that mention untouched.
    """

    def __init__(self, lookup_user: UserLookup) -> None:
        self._lookup_user = lookup_user

    def normalize(self, text: str) -> str:
        if not text:
            return text

        result = self._resolve_user_mentions(text)
        result = _CHANNEL_MENTION.sub(_channel_display, result)
        for token, display in _BROADCASTS.items():
            result = result.replace(token, display)
        return result

    def _resolve_user_mentions(self, text: str) -> str:
        resolved: dict[str, str] = {}
        for match in _USER_MENTION.finditer(text):
            token, user_id = match.group(0), match.group(1)
            if token in resolved:
                continue
            try:
                profile = self._lookup_user(user_id)
            except Exception:
                _logger.debug("mention_resolution_failed", user_id=user_id, exc_info=True)
                continue
            name = profile.display_name if profile and profile.display_name else user_id
            resolved[token] = f"@{name}"

        for token, display in resolved.items():
            text = text.replace(token, display)
        return text


def _channel_display(match: re.Match[str]) -> str:
    channel_id, channel_name = match.group(1), match.group(2)
    return f"#{channel_name}" if channel_name else f"#{channel_id}"
