"""
Shared test fixtures for the content combiner function.

Provides mock implementations of:
- Pub/Sub Publisher and Subscriber
- requests sessions for the content services and the policy agent
- Sample content and annotation messages
"""

import pytest
import json
import sys
from pathlib import Path
from unittest.mock import MagicMock
from typing import List, Dict, Any, Optional

# Add the repository root to path for imports
FUNCTIONS_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(FUNCTIONS_ROOT))
sys.path.insert(0, str(Path(__file__).parent))

import requests

from fixtures.messages import (
    CONTENT_UUID,
    create_content,
    create_content_message,
    create_internal_content,
    create_thing,
)


# ============================================================================
# PUB/SUB MOCKING
# ============================================================================

class MockPublisher:
    """Mock Pub/Sub Publisher."""

    def __init__(self):
        self.published_messages: List[Dict] = []
        self.topics: List[str] = []
        self.fail_with: Optional[Exception] = None

    def topic_path(self, project: str, topic: str) -> str:
        return f"projects/{project}/topics/{topic}"

    def publish(self, topic_path: str, data: bytes, **attributes):
        future = MagicMock()
        if self.fail_with is not None:
            future.result.side_effect = self.fail_with
            return future
        message_id = f"message-{len(self.published_messages)}"
        future.result.return_value = message_id
        self.published_messages.append({
            "topic": topic_path,
            "data": data,
            "attributes": attributes,
            "message_id": message_id
        })
        return future

    def get_topic(self, request=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.topics.append(request["topic"])
        return MagicMock(name=request["topic"])


class MockPubSubMessage:
    """Mock message handed to a streaming pull callback."""

    def __init__(self, data: bytes, attributes: Optional[Dict[str, str]] = None, message_id: str = "1"):
        self.data = data
        self.attributes = attributes or {}
        self.message_id = message_id
        self.acked = False

    def ack(self):
        self.acked = True


class MockSubscriber:
    """Mock Pub/Sub Subscriber recording streaming pulls."""

    def __init__(self):
        self.callbacks: Dict[str, Any] = {}
        self.futures: Dict[str, MagicMock] = {}

    def subscription_path(self, project: str, subscription: str) -> str:
        return f"projects/{project}/subscriptions/{subscription}"

    def subscribe(self, path: str, callback=None):
        self.callbacks[path] = callback
        future = MagicMock()
        self.futures[path] = future
        return future


@pytest.fixture
def mock_publisher():
    """Provides a mock Pub/Sub publisher."""
    return MockPublisher()


@pytest.fixture
def mock_subscriber():
    """Provides a mock Pub/Sub subscriber."""
    return MockSubscriber()


# ============================================================================
# HTTP MOCKING
# ============================================================================

class MockResponse:
    """Mock requests.Response."""

    def __init__(self, status_code: int = 200, json_data: Any = None, content: Optional[bytes] = None):
        self.status_code = status_code
        self._json_data = json_data
        if content is None:
            content = json.dumps(json_data).encode() if json_data is not None else b""
        self.content = content

    def json(self):
        return json.loads(self.content)


class MockSession:
    """
    Mock requests.Session.

    Responses are registered per URL; unknown URLs answer 404. Every call is
    recorded in `calls` as (method, url, kwargs).
    """

    def __init__(self):
        self.responses: Dict[str, Any] = {}
        self.calls: List[tuple] = []

    def add(self, url: str, response):
        """Register a MockResponse, or an exception to raise, for a URL."""
        self.responses[url] = response

    def _respond(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.get(url, MockResponse(404))
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url: str, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url: str, **kwargs):
        return self._respond("POST", url, **kwargs)

    def urls(self) -> List[str]:
        return [url for _, url, _ in self.calls]


@pytest.fixture
def mock_session():
    """Provides a mock requests session answering 404 by default."""
    return MockSession()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")


# ============================================================================
# SAMPLE DATA FIXTURES
# ============================================================================

@pytest.fixture
def content_uuid():
    return CONTENT_UUID


@pytest.fixture
def sample_content():
    """Article payload as found in a content publication event."""
    return create_content()


@pytest.fixture
def sample_content_message():
    """Content publication event body."""
    return create_content_message()


@pytest.fixture
def sample_internal_content():
    """Internal content API response with two embedded annotations."""
    return create_internal_content(things=[
        create_thing(),
        create_thing(
            thing_id="http://base-url/271ee5f7-d808-497d-bed3-1b961953dedc",
            pref_label="Banks",
            predicate="http://base-url/isClassifiedBy",
            types=["http://base-url/core/Thing", "http://base-url/concept/Concept"],
        ),
    ])


# ============================================================================
# ENVIRONMENT FIXTURES
# ============================================================================

@pytest.fixture
def env_local(monkeypatch):
    """Set environment to local mode."""
    monkeypatch.setenv("ENVIRONMENT", "local")
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "test-project")
