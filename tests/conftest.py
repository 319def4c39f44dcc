"""Pytest configuration and fixtures shared across all test modules.

APP_ENV is pinned before any import touches the settings module so no
developer .env file leaks into the test run.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest


@pytest.fixture
def clock() -> Mock:
    """Millisecond clock frozen at t=1_000_000 until a test moves it."""
    return Mock(return_value=1_000_000)
