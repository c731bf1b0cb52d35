"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import of the settings module so
no local .env file leaks into the tests.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_FORMAT", "plain")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from placement_gateway.core.app_factory import create_app
from placement_gateway.core.config import AppSettings


@pytest.fixture
def make_client():
    """Factory building a TestClient around a fresh app with AppSettings overrides."""

    def _make(**overrides) -> TestClient:
        return TestClient(create_app(AppSettings(**overrides)))

    return _make
