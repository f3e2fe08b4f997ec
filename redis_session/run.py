#!/usr/bin/env python3
"""Run the redis-session demo application"""
import uvicorn

from redis_session.core.config import settings
from redis_session.core.logging_config import init_application_logging

if __name__ == "__main__":
    init_application_logging(settings)
    uvicorn.run(
        "redis_session.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.dev_mode,
        log_level="debug" if settings.dev_mode else "info",
    )
