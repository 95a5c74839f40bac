"""
Pytest configuration and shared fixtures.

Routes get their settings and completions client through FastAPI
dependencies; the fixtures below override both so no test touches the
network or the real environment.
"""

import pytest
from fastapi.testclient import TestClient

from app.main import app, get_client
from app.settings import Settings, get_settings


class FakeCompletions:
    """Stands in for CompletionsClient and records every call."""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def complete(self, messages, json_mode=False):
        self.calls.append({"messages": messages, "json_mode": json_mode})
        if self.error is not None:
            raise self.error
        return self.content


@pytest.fixture
def fake_completions():
    return FakeCompletions()


@pytest.fixture
def client(fake_completions):
    """Test client with a configured key and the fake upstream."""
    app.dependency_overrides[get_settings] = lambda: Settings(OPENAI_API_KEY="test-key")
    app.dependency_overrides[get_client] = lambda: fake_completions
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def unconfigured_client():
    """Test client with no OPENAI_API_KEY configured."""
    app.dependency_overrides[get_settings] = lambda: Settings(OPENAI_API_KEY=None)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_articles(n):
    return [
        {
            "title": f"Story {i}",
            "description": f"Description {i}",
            "content": f"Content {i}",
            "category": "science",
            "source": "Example News",
            "sourceKey": "example",
            "url": f"https://example.com/{i}",
        }
        for i in range(n)
    ]


@pytest.fixture
def make_articles():
    """Factory for `n` fully populated article dicts."""
    return _make_articles


@pytest.fixture
def articles():
    return _make_articles(3)
