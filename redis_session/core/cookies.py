"""
Cookie handling for the session middleware.

``SessionCookies`` reads request cookies (verifying signatures) and queues
``Set-Cookie`` writes that are applied to the response once the session has
been finalized. ``SessionIdResolver`` uses it to read, issue and advertise the
session identifier.
"""

import logging
from typing import List, Mapping, Optional, Tuple

from starlette.responses import Response

from redis_session.core.config import CookieOptions
from redis_session.core.security import (
    SIGNATURE_SUFFIX,
    generate_session_id,
    mask_session_id,
    sign_cookie,
    verify_cookie_signature,
)

logger = logging.getLogger(__name__)


class SessionCookies:
    """Per-request cookie jar: signed reads, deferred writes."""

    def __init__(self, request_cookies: Mapping[str, str], secret_key: Optional[str] = None):
        self._incoming = dict(request_cookies)
        self._secret_key = secret_key
        self._pending: List[Tuple[str, str, CookieOptions]] = []

    @property
    def pending(self) -> List[Tuple[str, str, CookieOptions]]:
        return list(self._pending)

    def get(self, name: str, options: CookieOptions) -> Optional[str]:
        """Read a cookie; signed cookies without a valid signature read as absent."""
        value = self._incoming.get(name)
        if not value:
            return None
        if not options.signed:
            return value

        signature = self._incoming.get(name + SIGNATURE_SUFFIX)
        if not verify_cookie_signature(name, value, signature, self._require_secret()):
            logger.warning(f"Invalid signature on cookie {name!r}, ignoring value")
            return None
        return value

    def set(self, name: str, value: str, options: CookieOptions) -> None:
        """Queue a cookie write; an empty value clears the cookie."""
        self._queue(name, value, options)
        if options.signed:
            signature = sign_cookie(name, value, self._require_secret()) if value else ""
            self._queue(name + SIGNATURE_SUFFIX, signature, options)

    def apply(self, response: Response) -> None:
        """Write queued cookies onto the response."""
        for name, value, options in self._pending:
            if options.overwrite:
                _strip_set_cookie(response, name)
            if value:
                response.set_cookie(name, value, **options.set_cookie_kwargs())
            else:
                response.delete_cookie(
                    name,
                    path=options.path,
                    domain=options.domain,
                    secure=options.secure,
                    httponly=options.httponly,
                    samesite=options.samesite,
                )
        self._pending.clear()

    def _queue(self, name: str, value: str, options: CookieOptions) -> None:
        if options.overwrite:
            self._pending = [entry for entry in self._pending if entry[0] != name]
        self._pending.append((name, value, options))

    def _require_secret(self) -> str:
        if not self._secret_key:
            raise RuntimeError("Signed session cookies require a secret key")
        return self._secret_key


def _strip_set_cookie(response: Response, name: str) -> None:
    """Drop Set-Cookie headers already on the response for ``name``."""
    prefix = f"{name}=".encode("latin-1")
    response.raw_headers[:] = [
        (header, value)
        for header, value in response.raw_headers
        if not (header.lower() == b"set-cookie" and value.startswith(prefix))
    ]


class SessionIdResolver:
    """Reads and writes the session identifier cookie."""

    def __init__(self, cookies: SessionCookies, key: str, options: CookieOptions):
        self.cookies = cookies
        self.key = key
        self.options = options

    def resolve(self) -> Optional[str]:
        session_id = self.cookies.get(self.key, self.options)
        if session_id:
            logger.debug("sid %s", mask_session_id(session_id))
        return session_id

    def issue(self) -> str:
        session_id = generate_session_id()
        logger.debug("issued sid %s", mask_session_id(session_id))
        return session_id

    def persist(self, session_id: str) -> None:
        self.cookies.set(self.key, session_id, self.options)

    def clear(self) -> None:
        self.cookies.set(self.key, "", self.options)
