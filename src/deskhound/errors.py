class DeskhoundError(Exception):
    """Base class for errors raised by deskhound."""


class AuthenticationError(DeskhoundError):
    """Credentials were missing or rejected by the chat workspace."""


class ChatApiError(DeskhoundError):
    """A chat API call failed (rate limit, network error, API error response)."""

    def __init__(self, method: str, reason: str) -> None:
        super().__init__(f"{method} failed: {reason}")
        self.method = method
        self.reason = reason


class DirectoryError(DeskhoundError):
    """The HR directory could not be reached or returned an error."""


class NotConnectedError(DeskhoundError):
    """An operation needed a live chat connection but none is open."""
