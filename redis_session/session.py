"""
Session model and per-request session context.

``Session`` is the mutable mapping handed to request handlers. Its user data
lives in a dedicated dict; bookkeeping (``is_new``, the cached encoding and
the weak reference back to the request context) is kept in separate
attributes, so it can never be serialized or shadowed by a user key.

``SessionContext`` carries the accessor/mutator pair installed on each
request and remembers whether the session was never touched, cleared, or is
active. That tri-state drives the finalize decision in the middleware.
"""

from __future__ import annotations

import enum
import weakref
from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from redis_session.core.errors import InvalidAssignment
from redis_session.core.utils.encoding import encode

if TYPE_CHECKING:
    from redis_session.core.cookies import SessionIdResolver


class Session(MutableMapping):
    """Session data for one request."""

    def __init__(self, context: Optional[SessionContext] = None, fields: Optional[Mapping[str, Any]] = None):
        self._fields: Dict[str, Any] = {}
        self._context_ref = weakref.ref(context) if context is not None else None
        self._encoded: Optional[str] = None
        self.is_new = fields is None
        if fields is not None:
            for key, value in fields.items():
                self[key] = value

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            raise TypeError(f"Session keys must be strings, got {type(key).__name__}")
        self._fields[key] = value

    def __delitem__(self, key: str) -> None:
        del self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Session({self._fields!r}, is_new={self.is_new})"

    @property
    def length(self) -> int:
        """Number of values in the session, used to see if it's populated."""
        return len(self._fields)

    @property
    def populated(self) -> bool:
        return self.length != 0

    def to_record(self) -> Dict[str, Any]:
        """Plain copy of the session data, without any bookkeeping fields."""
        return dict(self._fields)

    def changed(self, original: Optional[str]) -> bool:
        """
        Check whether the session differs from the record loaded for this request.

        The fresh encoding is cached so ``save()`` does not recompute it.

        Args:
            original: Record string seen at load time, None for new sessions

        Returns:
            True when there was no original record or the encoding differs
        """
        self._encoded = encode(self._fields)
        if not original:
            return True
        return self._encoded != original

    def save(self) -> str:
        """
        Return the record to persist and re-advertise the session id cookie.

        Raises:
            RuntimeError: If the request context is gone
        """
        context = self._context_ref() if self._context_ref is not None else None
        if context is None:
            raise RuntimeError("Session is not attached to a request context")

        record = self._encoded or encode(self._fields)
        context.resolver.persist(context.session_id)
        return record


class SessionState(enum.Enum):
    """What the request handler did with the session accessor."""

    NOT_ACCESSED = "not_accessed"
    CLEARED = "cleared"
    ACTIVE = "active"


class SessionContext:
    """Session accessor/mutator for a single request."""

    def __init__(
        self,
        session_id: str,
        resolver: SessionIdResolver,
        original_record: Optional[str] = None,
        fields: Optional[Mapping[str, Any]] = None,
    ):
        self.session_id = session_id
        self.resolver = resolver
        self.original_record = original_record
        self.state = SessionState.NOT_ACCESSED
        self._session = Session(self, fields)

    @property
    def is_new(self) -> bool:
        """True when no stored record backed this request's session."""
        return self.original_record is None

    def get_session(self) -> Optional[Session]:
        """Return the session, or None once it has been cleared."""
        if self.state is SessionState.CLEARED:
            return None
        self.state = SessionState.ACTIVE
        return self._session

    def set_session(self, value: Any) -> None:
        """
        Replace the session.

        None clears it (the record is deleted on finalize); a mapping becomes
        the new session data.

        Raises:
            InvalidAssignment: For any other value
        """
        if value is None:
            self.state = SessionState.CLEARED
            return
        if isinstance(value, Mapping):
            self._session = Session(self, value)
            self.state = SessionState.ACTIVE
            return
        raise InvalidAssignment(
            f"session can only be set as None or a mapping, got {type(value).__name__}"
        )

    session = property(get_session, set_session)
