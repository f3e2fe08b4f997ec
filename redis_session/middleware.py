"""
Redis session middleware.

``SessionOrchestrator`` runs the per-request session lifecycle: resolve the
identifier, load and decode the record, run the handler, then decide once
whether to delete, save or leave the record alone. ``RedisSessionMiddleware``
plugs it into Starlette/FastAPI.
"""

import enum
import logging
import uuid
from typing import Awaitable, Callable, Optional, TypeVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from redis_session.core.config import CookieOptions, SessionSettings, settings as default_settings
from redis_session.core.cookies import SessionCookies, SessionIdResolver
from redis_session.core.errors import MalformedRecord
from redis_session.core.logging_config import set_request_id
from redis_session.core.security import get_or_create_secret_key, mask_session_id
from redis_session.core.utils.encoding import decode
from redis_session.core.utils.session_store import RedisSessionStore, SessionStore
from redis_session.session import Session, SessionContext, SessionState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FinalizeOutcome(enum.Enum):
    NOOP = "noop"
    DELETED = "deleted"
    SAVED = "saved"


class SessionOrchestrator:
    """Load/finalize logic shared by every request."""

    def __init__(self, store: SessionStore, key: str, cookie_options: CookieOptions):
        self.store = store
        self.key = key
        self.cookie_options = cookie_options

    async def begin(self, cookies: SessionCookies) -> SessionContext:
        """
        Resolve the session for a request.

        Store read failures and malformed records never fail the request;
        both yield a fresh, empty session.
        """
        resolver = SessionIdResolver(cookies, self.key, self.cookie_options)
        session_id = resolver.resolve()

        record = None
        if session_id:
            try:
                record = await self.store.load(session_id)
            except Exception as e:
                logger.warning(
                    f"Session store unavailable, treating {mask_session_id(session_id)} as new: {e}",
                    extra={"session_id": session_id, "operation": "load"},
                )
                record = None

        if record:
            try:
                fields = decode(record)
            except MalformedRecord as e:
                # corrupted or legacy records fall back to a fresh session
                logger.warning(
                    f"Discarding malformed session record for {mask_session_id(session_id)}: {e}",
                    extra={"session_id": session_id, "operation": "load", "record": record},
                )
                return SessionContext(session_id, resolver)
            return SessionContext(session_id, resolver, original_record=record, fields=fields)

        session_id = resolver.issue()
        logger.debug("new session", extra={"session_id": session_id, "operation": "load"})
        return SessionContext(session_id, resolver)

    async def finalize(self, context: SessionContext) -> FinalizeOutcome:
        """Persist, delete or ignore the session based on what the handler did."""
        outcome = await self._finalize(context)
        logger.debug(
            "session finalized: %s",
            outcome.value,
            extra={"session_id": context.session_id, "outcome": outcome.value},
        )
        return outcome

    async def _finalize(self, context: SessionContext) -> FinalizeOutcome:
        if context.state is SessionState.NOT_ACCESSED:
            return FinalizeOutcome.NOOP

        if context.state is SessionState.CLEARED:
            context.resolver.clear()
            await self.store.delete(context.session_id)
            return FinalizeOutcome.DELETED

        session = context.get_session()
        if context.is_new and not session.length:
            return FinalizeOutcome.NOOP

        if session.changed(context.original_record):
            record = session.save()
            await self.store.save(context.session_id, record)
            return FinalizeOutcome.SAVED

        return FinalizeOutcome.NOOP

    async def run(self, context: SessionContext, handler: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``handler`` and finalize the session even if the handler raises.

        A handler error is re-raised after finalize completes. If finalize
        itself fails, that error is raised, chained to the handler error.
        """
        error: Optional[Exception] = None
        result = None
        try:
            result = await handler()
        except Exception as exc:
            error = exc

        try:
            await self.finalize(context)
        except Exception as finalize_error:
            if error is not None:
                raise finalize_error from error
            raise

        if error is not None:
            raise error
        return result


class RedisSessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware exposing a Redis-backed session on ``request.state.session_context``.

    Usage:
        app = FastAPI()
        app.add_middleware(RedisSessionMiddleware, settings=SessionSettings())

        @app.get("/")
        async def index(session: Session = Depends(get_session)):
            session["views"] = session.get("views", 0) + 1
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: Optional[SessionSettings] = None,
        store: Optional[SessionStore] = None,
    ) -> None:
        super().__init__(app)
        self.settings = settings or default_settings
        cookie_options = self.settings.cookie

        logger.debug("key config is: %s", self.settings.key)
        logger.debug("cookie config overwrite: %s", cookie_options.overwrite)
        logger.debug("cookie config httponly: %s", cookie_options.httponly)
        logger.debug("cookie config signed: %s", cookie_options.signed)

        if cookie_options.signed:
            self.secret_key = get_or_create_secret_key(self.settings.secret_key)
        else:
            self.secret_key = self.settings.secret_key

        self.store = store if store is not None else RedisSessionStore.from_options(self.settings.store)
        self.orchestrator = SessionOrchestrator(self.store, self.settings.key, cookie_options)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        set_request_id(request.headers.get("x-request-id") or str(uuid.uuid4()))

        cookies = SessionCookies(request.cookies, self.secret_key)
        context = await self.orchestrator.begin(cookies)
        request.state.session_context = context

        # handler errors propagate after finalize; there is no response to set cookies on
        response = await self.orchestrator.run(context, lambda: call_next(request))
        cookies.apply(response)
        return response


def get_session_context(request: Request) -> SessionContext:
    """FastAPI dependency returning the request's session context."""
    context = getattr(request.state, "session_context", None)
    if context is None:
        raise RuntimeError("RedisSessionMiddleware must be installed to use sessions")
    return context


def get_session(request: Request) -> Optional[Session]:
    """FastAPI dependency returning the request's session (None once cleared)."""
    return get_session_context(request).get_session()
