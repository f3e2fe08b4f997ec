"""
Global test configuration and fixtures for redis-session

This module provides shared fixtures: test settings with a fixed signing
key, a recording in-memory store, and pytest marker registration.
"""

import pytest

from redis_session.core.config import CookieOptions, SessionSettings
from tests.utils.helpers import TEST_SECRET_KEY, RecordingSessionStore


# ============================================================================
# Settings Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_settings():
    """Session settings with a deterministic signing key"""
    return SessionSettings(secret_key=TEST_SECRET_KEY)


@pytest.fixture(scope="function")
def unsigned_settings():
    """Session settings with cookie signing disabled"""
    return SessionSettings(cookie=CookieOptions(signed=False))


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def store():
    """Empty recording session store"""
    return RecordingSessionStore()


# ============================================================================
# Test Markers and Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers and settings"""
    config.addinivalue_line(
        "markers", "unit: fast isolated unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: tests that drive the middleware through an application"
    )
    config.addinivalue_line(
        "markers", "security: tests covering cookie signing and identifier handling"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers based on file location"""
    for item in items:
        if "integration" in str(item.path):
            item.add_marker(pytest.mark.integration)
        if "security" in str(item.path):
            item.add_marker(pytest.mark.security)
