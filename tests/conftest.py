"""
Pytest configuration for the sales sync tests.
"""
import sys
from pathlib import Path

import pytest

# factories.py lives next to this file
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from salesync.core.config import settings  # noqa: E402
from salesync.services.sync.run_log import RunLog  # noqa: E402


@pytest.fixture
def run_log():
    """Fresh run log per test"""
    return RunLog()


@pytest.fixture(autouse=True)
def single_connect_attempt(monkeypatch):
    """No connect retries (and no backoff sleeps) in tests"""
    monkeypatch.setattr(settings, "db_connect_attempts", 1)
