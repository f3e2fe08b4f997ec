"""
Test helper functions for common testing operations

These helpers provide a recording session store, cookie builders and
response inspection utilities shared across the test suite.
"""

from typing import Any, Dict, List, Optional, Tuple

from redis_session.core.config import SessionSettings
from redis_session.core.errors import StoreUnavailable, StoreWriteFailure
from redis_session.core.logging_config import SessionLogFormatter
from redis_session.core.security import SIGNATURE_SUFFIX, sign_cookie

TEST_SECRET_KEY = "test-secret-key-for-signing-session-cookies-0123456789"


class RecordingSessionStore:
    """In-memory session store that records every call made against it"""

    def __init__(self, records: Optional[Dict[str, str]] = None):
        self.records: Dict[str, str] = dict(records or {})
        self.calls: List[Tuple[str, ...]] = []
        self.fail_reads = False
        self.fail_writes = False

    async def load(self, session_id: str) -> Optional[str]:
        self.calls.append(("load", session_id))
        if self.fail_reads:
            raise StoreUnavailable("connection refused")
        return self.records.get(session_id)

    async def save(self, session_id: str, record: str) -> None:
        self.calls.append(("save", session_id, record))
        if self.fail_writes:
            raise StoreWriteFailure("save", session_id, ConnectionError("connection refused"))
        self.records[session_id] = record

    async def delete(self, session_id: str) -> None:
        self.calls.append(("delete", session_id))
        if self.fail_writes:
            raise StoreWriteFailure("delete", session_id, ConnectionError("connection refused"))
        self.records.pop(session_id, None)

    def calls_for(self, operation: str) -> List[Tuple[str, ...]]:
        """Return recorded calls for one operation"""
        return [call for call in self.calls if call[0] == operation]

    @property
    def writes(self) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[0] in ("save", "delete")]


def cookie_header(settings: SessionSettings, session_id: str, signature: Optional[str] = None) -> Dict[str, str]:
    """Build a Cookie request header carrying a (signed) session id"""
    parts = [f"{settings.key}={session_id}"]
    if settings.cookie.signed:
        if signature is None:
            signature = sign_cookie(settings.key, session_id, settings.secret_key)
        parts.append(f"{settings.key}{SIGNATURE_SUFFIX}={signature}")
    return {"cookie": "; ".join(parts)}


def response_cookies(response: Any) -> Dict[str, str]:
    """Map cookie names to the raw Set-Cookie header written for them"""
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        name = header.split("=", 1)[0]
        cookies[name] = header
    return cookies


def cookie_value(set_cookie_header: str) -> str:
    """Extract the value from a raw Set-Cookie header"""
    return set_cookie_header.split(";", 1)[0].split("=", 1)[1].strip('"')


def assert_no_sensitive_data_in_logs(caplog, sensitive_patterns: list[str]):
    """Assert that sensitive data patterns don't appear in plain or JSON log output"""
    formatter = SessionLogFormatter()
    all_logs = " ".join(
        record.getMessage() + " " + formatter.format(record) for record in caplog.records
    )

    for pattern in sensitive_patterns:
        assert pattern not in all_logs, f"Sensitive pattern '{pattern}' found in logs"
