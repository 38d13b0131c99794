"""
Pytest Configuration for ExamGuard Tests
"""
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from examguard.config import Settings
from examguard.proctor.clock import Clock


START = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Clock that only moves when told to"""
    
    def __init__(self, start: datetime = START):
        self.current = start
    
    def now(self) -> datetime:
        return self.current
    
    def advance(self, seconds: float):
        self.current = self.current + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit_dir(tmp_path):
    return tmp_path / "audit"


@pytest.fixture
def test_settings(audit_dir):
    """Settings isolated from the environment"""
    return Settings(
        AUDIT_LOG_DIR=str(audit_dir),
        AUDIT_ENABLED=True,
        HEARTBEAT_INTERVAL=30.0,
        TERMINATION_THRESHOLD=5,
        RECENT_VIOLATIONS_LIMIT=10,
        DEBUG=True
    )


@pytest.fixture
def context(test_settings, clock):
    """Fresh proctor context per test"""
    from examguard.proctor.context import build_context
    
    ctx = build_context(test_settings, clock=clock)
    yield ctx
    ctx.close()


@pytest.fixture
def service(context):
    return context.service


@pytest.fixture
def app(test_settings, context):
    """FastAPI app wired to the test context"""
    from examguard.main import create_app
    return create_app(test_settings, context)


@pytest.fixture
def client(app):
    """FastAPI test client"""
    return TestClient(app)
