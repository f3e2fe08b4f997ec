"""
Demo FastAPI application wired with the Redis session middleware.

Run with ``python -m redis_session.run`` and point a browser at
``/api/session/views``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, status

from redis_session.core.config import SessionSettings, settings as default_settings
from redis_session.core.errors import InvalidAssignment
from redis_session.core.utils.session_store import RedisSessionStore, SessionStore
from redis_session.middleware import RedisSessionMiddleware, get_session_context
from redis_session.session import SessionContext

logger = logging.getLogger("redis_session.main")


def create_app(
    settings: Optional[SessionSettings] = None,
    store: Optional[SessionStore] = None,
) -> FastAPI:
    """Build the demo application around a session store."""
    settings = settings or default_settings
    store = store if store is not None else RedisSessionStore.from_options(settings.store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        close = getattr(store, "close", None)
        if close is not None:
            await close()

    app = FastAPI(
        title="redis-session demo",
        description="Cookie sessions backed by Redis",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(RedisSessionMiddleware, settings=settings, store=store)

    @app.get("/health")
    async def health_check():
        """Basic health check endpoint."""
        return {"status": "healthy"}

    @app.get("/api/health")
    async def api_health_check():
        """Health check including the session store backend."""
        health = getattr(store, "health", None)
        if health is None:
            storage = {"type": type(store).__name__, "healthy": True, "message": "No health probe"}
        else:
            storage = await health()
        return {
            "status": "healthy" if storage["healthy"] else "degraded",
            "version": "1.0.0",
            "services": {"session_store": storage},
        }

    @app.get("/api/session")
    async def read_session(context: SessionContext = Depends(get_session_context)):
        """Return the current session data."""
        session = context.get_session()
        return {"is_new": context.is_new, "data": session.to_record() if session is not None else None}

    @app.post("/api/session")
    async def update_session(
        payload: Dict[str, Any] = Body(...),
        context: SessionContext = Depends(get_session_context),
    ):
        """Merge the posted object into the session."""
        session = context.get_session()
        if session is None:
            context.set_session(payload)
        else:
            session.update(payload)
        return {"data": context.get_session().to_record()}

    @app.put("/api/session")
    async def replace_session(
        payload: Any = Body(...),
        context: SessionContext = Depends(get_session_context),
    ):
        """Replace the session with the posted object."""
        try:
            context.set_session(payload)
        except InvalidAssignment as e:
            raise HTTPException(status_code=422, detail=str(e))
        return {"data": context.get_session().to_record()}

    @app.delete("/api/session", status_code=status.HTTP_204_NO_CONTENT)
    async def clear_session(context: SessionContext = Depends(get_session_context)):
        """Log out: drop the session record and cookie."""
        context.set_session(None)

    @app.get("/api/session/views")
    async def count_views(context: SessionContext = Depends(get_session_context)):
        """Classic view counter."""
        session = context.get_session()
        session["views"] = session.get("views", 0) + 1
        return {"views": session["views"]}

    logger.info("Session middleware installed with cookie key %s", settings.key)
    return app


app = create_app()
