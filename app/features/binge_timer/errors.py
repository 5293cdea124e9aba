"""
Error taxonomy for the binge-free timer.

Every error carries the HTTP status the API layer answers with.
"""

from typing import Optional


class TimerError(Exception):
    """Base exception for timer failures."""

    http_status: int = 500

    def __init__(self, message: Optional[str] = None) -> None:
        self.detail: str = message or self.__class__.__doc__ or "Timer error"
        super().__init__(self.detail)


class NotAuthenticated(TimerError):
    """No current user context available."""

    http_status = 401


class PersistenceUnavailable(TimerError):
    """Timer store could not be reached."""

    http_status = 503


class MalformedRecord(TimerError):
    """Stored timer record is inconsistent with the state it claims."""

    http_status = 500


class IdentityUnavailable(TimerError):
    """Signing keys for user tokens could not be fetched."""

    http_status = 503
