"""
Pytest configuration and fixtures.

Provides a per-test SQLite database, an in-memory Redis stand-in and simple
collaborator fakes for the swipe pipeline.
"""

import fnmatch
import threading
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.interfaces import (
    Application,
    ApplicationStore,
    CandidatePool,
    ConversationStore,
    PushEndpoint,
    PushSubscriptionRegistry,
)
from database.models import Base


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "concurrency: marks multi-threaded store tests (deselect with '-m \"not concurrency\"')"
    )


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite so several threads can share one database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'swipematch_test.db'}",
        connect_args={"timeout": 30, "check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


class FakeRedis:
    """Thread-safe stand-in for the handful of Redis commands the cache uses."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self._lock = threading.Lock()

    def ping(self):
        return True

    def get(self, key):
        with self._lock:
            return self.store.get(key)

    def setex(self, key, ttl, value):
        with self._lock:
            self.store[key] = value
            self.ttls[key] = ttl
        return True

    def incr(self, key):
        with self._lock:
            value = int(self.store.get(key, 0)) + 1
            self.store[key] = str(value)
            return value

    def expire(self, key, ttl):
        with self._lock:
            self.ttls[key] = ttl
        return True

    def delete(self, *keys):
        with self._lock:
            removed = 0
            for key in keys:
                if self.store.pop(key, None) is not None:
                    removed += 1
                self.ttls.pop(key, None)
            return removed

    def scan(self, cursor=0, match="*", count=100):
        with self._lock:
            return 0, [k for k in self.store if fnmatch.fnmatch(k, match)]

    def info(self):
        return {"used_memory_human": "1M"}


@pytest.fixture
def fake_redis():
    return FakeRedis()


class InMemoryCandidatePool(CandidatePool):
    def __init__(self, pools: Optional[Dict[str, List[str]]] = None, entities=None, audience=None):
        self.pools = pools or {}
        self.entities = set(entities or [])
        for pool in self.pools.values():
            self.entities.update(pool)
        self.audience = audience or {}
        self.fetch_count = 0

    def fetch_candidate_pool(self, user_id: str) -> List[str]:
        self.fetch_count += 1
        return list(self.pools.get(user_id, []))

    def entity_exists(self, entity_id: str) -> bool:
        return entity_id in self.entities

    def audience_for(self, entity_id: str) -> List[str]:
        return list(self.audience.get(entity_id, []))


class InMemoryApplicationStore(ApplicationStore):
    def __init__(self, applications=None):
        self.applications = {a.id: a for a in (applications or [])}

    def get_application(self, application_id: str) -> Optional[Application]:
        return self.applications.get(application_id)


class InMemoryConversationStore(ConversationStore):
    def __init__(self):
        self.created = []
        self._lock = threading.Lock()

    def create_conversation(self, user_a: str, user_b: str) -> str:
        with self._lock:
            self.created.append((user_a, user_b))
            return f"conv-{len(self.created)}"


class InMemoryPushRegistry(PushSubscriptionRegistry):
    def __init__(self, endpoints: Optional[Dict[str, List[PushEndpoint]]] = None):
        self.endpoints = endpoints or {}

    def get_endpoints(self, user_id: str) -> List[PushEndpoint]:
        return list(self.endpoints.get(user_id, []))
