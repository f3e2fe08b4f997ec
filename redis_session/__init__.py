"""Redis-backed cookie session middleware for Starlette and FastAPI."""

from redis_session.core.config import CookieOptions, SessionSettings, StoreOptions
from redis_session.core.errors import (
    InvalidAssignment,
    MalformedRecord,
    SessionError,
    StoreUnavailable,
    StoreWriteFailure,
)
from redis_session.core.utils.session_store import RedisSessionStore, SessionStore
from redis_session.middleware import (
    RedisSessionMiddleware,
    SessionOrchestrator,
    get_session,
    get_session_context,
)
from redis_session.session import Session, SessionContext, SessionState

__version__ = "1.0.0"

__all__ = [
    "CookieOptions",
    "InvalidAssignment",
    "MalformedRecord",
    "RedisSessionMiddleware",
    "RedisSessionStore",
    "Session",
    "SessionContext",
    "SessionError",
    "SessionOrchestrator",
    "SessionSettings",
    "SessionState",
    "SessionStore",
    "StoreOptions",
    "StoreUnavailable",
    "StoreWriteFailure",
    "get_session",
    "get_session_context",
]
