"""Pytest configuration and fixtures for firedoc tests."""

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

import pytest
from dotenv import load_dotenv

from firedoc.abc import Transport
from firedoc.database import Database

# Load environment variables
load_dotenv()

PROJECT = "test-project"
ROOT = f"projects/{PROJECT}/databases/(default)/documents"


class RecordingTransport(Transport):
    """In-memory transport: records every call and replays queued responses.

    Queued items are returned in order; an exception instance is raised instead.
    """

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses: List[Any] = list(responses or [])
        self.calls: List[Tuple[str, str, Any]] = []

    @property
    def document_root(self) -> str:
        return ROOT

    def queue(self, *responses: Any) -> "RecordingTransport":
        self.responses.extend(responses)
        return self

    def submit(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        self.calls.append((method, path, body))
        if not self.responses:
            return {}
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def wire_document(identifier: str, fields: dict, collection: str = "users") -> dict:
    """Build a Firestore document resource as the service returns it."""
    return {
        "name": f"{ROOT}/{collection}/{identifier}",
        "fields": fields,
        "createTime": "2024-01-01T00:00:00.000000Z",
        "updateTime": "2024-01-01T00:00:00.000000Z",
    }


@pytest.fixture
def make_document():
    """Factory for wire documents."""
    return wire_document


@pytest.fixture
def transport():
    """Fresh recording transport per test."""
    return RecordingTransport()


@pytest.fixture
def db(transport):
    """Database bound to the recording transport."""
    return Database(transport)


@pytest.fixture
def sample_document():
    """Native document covering every round-trippable value kind."""
    return {
        "name": "foo",
        "count": 1,
        "ratio": 0.25,
        "active": True,
        "deleted": None,
        "tags": ["a", "b", 3],
        "address": {"city": "Lyon", "zip": "69001", "geo": {"floor": 2}},
        "created": datetime(2024, 5, 17, 8, 30, 15, 123000, tzinfo=timezone.utc),
        "matrix": [[1, 2], [3.5, None]],
    }


@pytest.fixture
def wire_user():
    """Wire fields for {"name": "foo", "count": 1}."""
    return {"name": {"stringValue": "foo"}, "count": {"integerValue": "1"}}
