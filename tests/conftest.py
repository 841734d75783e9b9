"""
This file contains shared fixtures and configuration for the test suite.

Pytest will automatically discover and use the fixtures defined in this file.

Tests never reach a real LLM provider: `fake_llm` stands in for the shared
client and is installed as a FastAPI dependency override for HTTP tests.
"""

import os

# Keep test runs from writing log files; read when app.utils.logger is imported
os.environ.setdefault("LOG_TO_FILE", "false")

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tests.fakes import FakeLLMClient, completion, events_json


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    """Fake client answering every call with three ancient events."""
    content = events_json(
        {"year": "9500 BC", "title": "Göbekli Tepe built"},
        {"year": "3000", "title": "Stonehenge begun"},
        {"year": "776", "title": "First Olympic Games"},
    )
    return FakeLLMClient(lambda messages: completion(content))


@pytest.fixture(scope="session")
def app() -> FastAPI:
    """
    Create a new application instance for the test session.
    """
    # Import the factory function here to ensure it's fresh for the test session.
    from main import create_app

    return create_app()


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """
    Fixture to get a test client for making API requests.
    The TestClient handles the application's lifespan events (startup/shutdown).
    """
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
