"""Exceptions raised by the session middleware."""

from typing import Optional

from redis_session.core.security import mask_session_id


class SessionError(Exception):
    """Base class for session middleware errors"""
    pass


class MalformedRecord(SessionError):
    """Raised when a stored session record is not base64-wrapped JSON.

    Recovered by the middleware: the request gets a fresh session.
    """
    pass


class StoreUnavailable(SessionError):
    """Raised when the session store cannot be read.

    Recovered by the middleware as a cache miss.
    """
    pass


class StoreWriteFailure(SessionError):
    """Raised when a session record cannot be written to or deleted from the store"""

    def __init__(self, operation: str, session_id: str, cause: Optional[Exception] = None):
        self.operation = operation
        self.session_id = session_id
        self.cause = cause
        super().__init__(
            f"Session store {operation} failed for session {mask_session_id(session_id)}: {cause}"
        )


class InvalidAssignment(SessionError, TypeError):
    """Raised when the session is set to something other than None or a mapping"""
    pass
