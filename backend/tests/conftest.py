# backend/tests/conftest.py
import os

os.environ.setdefault("EPHEMERA_REAPER_ENABLED", "false")
os.environ.setdefault("EPHEMERA_JWT_SECRET_KEY", "test-secret-key")

import threading
from datetime import datetime, timedelta, timezone

import pytest
from redis.exceptions import LockNotOwnedError
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from ephemera.config import Settings
from ephemera.main import app
from ephemera.models.instance import Instance, Snapshot
from ephemera.models.labels import Labels
from ephemera.services.control_service import get_control_service
from ephemera.services.termination_guard import TerminationGuard
from ephemera.utils.security import create_access_token

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    return Settings(
        hcloud_token="test-token",
        dns_api_token="dns-token",
        dns_zone_id="zone-1",
        dns_domain="example.com",
        unlock_poll_interval_seconds=5.0,
        unlock_timeout_seconds=60.0,
        action_timeout_seconds=900.0,
    )


@pytest.fixture
def settings_without_dns(settings):
    return settings.model_copy(update={"dns_zone_id": ""})


@pytest.fixture
def make_instance():
    def _make(name="alpha", status="running", ttl=None, managed=True, **kwargs):
        labels = Labels.for_instance(name, ttl or NOW + timedelta(hours=1)) if managed else Labels()
        extra_labels = kwargs.pop("labels", None)
        if extra_labels is not None:
            labels = Labels(extra_labels)
        defaults = dict(
            id=42,
            name=name,
            status=status,
            server_type="cx22",
            labels=labels,
            ipv4="203.0.113.10",
            ipv6="2001:db8::1",
            created=NOW - timedelta(hours=2),
        )
        defaults.update(kwargs)
        return Instance(**defaults)
    return _make


@pytest.fixture
def make_snapshot():
    def _make(id=100, service="alpha", server_type="cx22", created=None, labels=None, **kwargs):
        if labels is None:
            labels = Labels.for_snapshot(service, server_type)
        defaults = dict(
            id=id,
            image_type="snapshot",
            created=created or NOW - timedelta(days=1),
            labels=Labels(labels.as_dict() if isinstance(labels, Labels) else labels),
            description=f"{service}/2024-04-30T12:00:00+00:00",
        )
        defaults.update(kwargs)
        return Snapshot(**defaults)
    return _make


@pytest.fixture
def mock_compute_service():
    """Mock compute service for unit tests."""
    mock_service = MagicMock()
    mock_service.shutdown.return_value = 1
    mock_service.reboot.return_value = 2
    mock_service.delete_server.return_value = 3
    mock_service.change_dns_ptr.return_value = 4
    mock_service.watch_action.side_effect = lambda action_id: iter([50, 100])
    mock_service.get_server_type.return_value = "cx32"
    return mock_service


@pytest.fixture
def mock_dns_service():
    mock_service = MagicMock()
    mock_service.create_record.side_effect = ["a-record-1", "aaaa-record-1"]
    return mock_service


@pytest.fixture
def mock_control_service():
    """Mock control facade for API tests."""
    return MagicMock()


@pytest.fixture
def client(mock_control_service):
    app.dependency_overrides[get_control_service] = lambda: mock_control_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(*roles):
        token = create_access_token("tester", roles or ["user"])
        return {"Authorization": f"Bearer {token}"}
    return _headers


class FakeRedis:
    """In-memory stand-in for the few lock calls the termination guard makes."""

    def __init__(self):
        self.keys = {}
        self.mutex = threading.Lock()

    def lock(self, name, timeout=None, blocking=True):
        return FakeRedisLock(self, name)

    def exists(self, name):
        return 1 if name in self.keys else 0


class FakeRedisLock:
    def __init__(self, redis, name):
        self.redis = redis
        self.name = name
        self.token = object()

    def acquire(self):
        with self.redis.mutex:
            if self.name in self.redis.keys:
                return False
            self.redis.keys[self.name] = self.token
            return True

    def release(self):
        with self.redis.mutex:
            if self.redis.keys.get(self.name) is not self.token:
                raise LockNotOwnedError("lock not owned")
            del self.redis.keys[self.name]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def termination_guard(fake_redis):
    return TerminationGuard(fake_redis, timeout=3600.0)
