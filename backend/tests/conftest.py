"""Pytest configuration and fixtures."""
import json
import pytest
from types import SimpleNamespace
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

from tracepulse.services.cache import BaseCache
from tracepulse.services.correlation import Event
from tracepulse.services.system_map import DependencyGraph


class InMemoryCache(BaseCache):
    """Dict-backed cache that records TTLs, for tests."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    def get_json(self, key: str) -> Optional[Any]:
        value = self.store.get(key)
        return json.loads(value) if value else None

    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        self.store[key] = json.dumps(value)
        self.ttls[key] = ttl

    def delete(self, key: str) -> None:
        self.store.pop(key, None)


@pytest.fixture
def memory_cache():
    """Empty in-memory cache."""
    return InMemoryCache()


@pytest.fixture
def chain_graph():
    """A depends on B, B depends on C."""
    return DependencyGraph.from_document({
        "services": {
            "A": {"depends_on": ["B"]},
            "B": {"depends_on": ["C"]},
            "C": {},
        }
    })


@pytest.fixture
def shop_graph():
    """A small storefront topology with a shared database."""
    return DependencyGraph.from_document({
        "version": "2.1",
        "services": {
            "Web": {"depends_on": ["Checkout", "Catalog"]},
            "Mobile": {"depends_on": ["Checkout"]},
            "Checkout": {"depends_on": ["Payments", "Postgres"]},
            "Catalog": {"depends_on": ["Postgres"]},
            "Payments": {"depends_on": ["Stripe"]},
            "Postgres": {},
        },
    })


@pytest.fixture
def make_event():
    """Factory for events with sensible defaults."""
    def _make(**overrides) -> Event:
        data: Dict[str, Any] = {
            "event_type": "request_completed",
            "correlation_id": "txn-1",
            "service": "Checkout",
            "level": "info",
            "priority": "low",
            "timestamp": "2026-10-17T10:00:00Z",
            "details": {},
        }
        data.update(overrides)
        return Event(**data)
    return _make


def _chat_completion(content: Optional[str]):
    """Minimal stand-in for an OpenAI chat completion response."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def mock_openai_client():
    """OpenAI client whose chat completion returns one well-formed hypothesis."""
    client = MagicMock()
    client.chat.completions.create.return_value = _chat_completion(json.dumps({
        "hypotheses": [
            {
                "title": "Payments timeout",
                "description": "Checkout blocks on the payments provider",
                "confidence": 82,
                "evidence": [
                    {"type": "system_map", "source": "System map", "detail": "Checkout depends on Payments", "confidence": 75}
                ],
                "suggestedActions": ["Check Payments latency"],
                "relatedServices": ["Payments"],
            }
        ]
    }))
    return client
