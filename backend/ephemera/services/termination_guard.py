# backend/ephemera/services/termination_guard.py
"""
Per-service termination lock shared by every process of the control plane.

The API process (requests and the reaper) and the dramatiq workers all take
the same Redis lock before terminating a service, so at most one termination
per name runs at a time across the deployment.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

import redis
from redis.exceptions import LockError, RedisError

from ephemera.config import Settings
from ephemera.errors import AlreadyInProgress, ProviderError

logger = logging.getLogger(__name__)

LOCK_PREFIX = "ephemera:terminate:"


class TerminationGuard:
    def __init__(self, client: redis.Redis, timeout: float):
        self.client = client
        # Bounds how long a crashed holder can block the name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "TerminationGuard":
        return cls(redis.Redis.from_url(settings.redis_url), settings.termination_lock_timeout_seconds)

    def key(self, name: str) -> str:
        return f"{LOCK_PREFIX}{name}"

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        """Hold the lock for ``name`` or raise AlreadyInProgress if someone else does."""
        lock = self.client.lock(self.key(name), timeout=self.timeout, blocking=False)
        try:
            acquired = lock.acquire()
        except RedisError as e:
            logger.error(f"Failed to acquire termination lock for {name}: {e}")
            raise ProviderError(
                f"failed to acquire termination lock for {name}: {e}",
                operation="acquire termination lock",
                resource=name,
            ) from e
        if not acquired:
            raise AlreadyInProgress(name)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                logger.warning(f"Termination lock for {name} expired before release")
            except RedisError as e:
                logger.error(f"Failed to release termination lock for {name}, it expires in {self.timeout:g}s: {e}")

    def is_held(self, name: str) -> bool:
        try:
            return bool(self.client.exists(self.key(name)))
        except RedisError as e:
            raise ProviderError(
                f"failed to read termination lock for {name}: {e}",
                operation="read termination lock",
                resource=name,
            ) from e
