"""
Session middleware configuration using Pydantic Settings.

Configuration values can be set via environment variables (prefixed with
``SESSION_``, nested options separated by ``__``) or a .env file, e.g.
``SESSION_STORE__HOST=redis.internal`` or ``SESSION_COOKIE__MAX_AGE=1800``.
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SESSION_KEY = "koa:sess"
DEFAULT_REDIS_HOST = "127.0.0.1"
DEFAULT_REDIS_PORT = 6379


class CookieOptions(BaseModel):
    """Attributes applied to the session-id cookie.

    ``overwrite``, ``httponly`` and ``signed`` default to True and stay on
    unless explicitly set to False.
    """

    # only attributes Response.set_cookie understands; unknown options are rejected
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    overwrite: bool = True
    httponly: bool = Field(default=True, alias="httpOnly")
    signed: bool = True
    max_age: Optional[int] = Field(default=None, alias="maxAge")
    expires: Optional[Union[datetime, str, int]] = None
    path: str = "/"
    domain: Optional[str] = None
    secure: bool = False
    samesite: Optional[Literal["lax", "strict", "none"]] = Field(default="lax", alias="sameSite")

    @field_validator("samesite", mode="before")
    @classmethod
    def normalize_samesite(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v

    @field_validator("max_age")
    @classmethod
    def validate_max_age(cls, v):
        if v is not None and v < 0:
            raise ValueError("Cookie max_age cannot be negative")
        return v

    def set_cookie_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``Response.set_cookie``"""
        return {
            "max_age": self.max_age,
            "expires": self.expires,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.httponly,
            "samesite": self.samesite,
        }


class StoreOptions(BaseModel):
    """Connection settings for the Redis session store."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = DEFAULT_REDIS_HOST
    port: int = DEFAULT_REDIS_PORT
    options: Dict[str, Any] = Field(default_factory=dict)
    db: int = 0
    ttl: Optional[int] = None

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError("Redis port must be between 1-65535")
        return v

    @field_validator("db")
    @classmethod
    def validate_db(cls, v):
        if v < 0:
            raise ValueError("Redis database index cannot be negative")
        return v

    @field_validator("ttl")
    @classmethod
    def validate_ttl(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Session ttl must be a positive number of seconds")
        return v


class SessionSettings(BaseSettings):
    """Session middleware settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Cookie carrying the session identifier
    key: str = DEFAULT_SESSION_KEY

    # Secret used to sign the session-id cookie; generated per process when unset
    secret_key: Optional[str] = None

    cookie: CookieOptions = Field(default_factory=CookieOptions)
    store: StoreOptions = Field(default_factory=StoreOptions)

    # Logging
    dev_mode: bool = False
    log_level: str = "INFO"

    @field_validator("key")
    @classmethod
    def validate_key(cls, v):
        if not v or any(ch in v for ch in " ;,="):
            raise ValueError("Session key must be a non-empty cookie name")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# Global settings instance
settings = SessionSettings()
