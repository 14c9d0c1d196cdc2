"""Test configuration for importing the application package."""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
APP_DIR = ROOT / "backend"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from tests.fakes import InMemoryJobStore  # noqa: E402


@pytest.fixture
def store():
    return InMemoryJobStore()
