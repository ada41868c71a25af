"""Exceptions raised by the guide service and translated to HTTP by the controller."""


class GuideError(Exception):
    """Base class for expected, client-facing guide failures."""


class GuideValidationError(GuideError, ValueError):
    """Caller-supplied data failed validation; no external call was attempted."""


class SessionNotFoundError(GuideError, KeyError):
    """The referenced session exists neither in memory nor in the durable store."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session {self.session_id} not found"


class UpstreamParseError(GuideError):
    """The model answered, but not in the structured shape that was requested."""
