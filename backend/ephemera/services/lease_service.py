# backend/ephemera/services/lease_service.py
"""Extending and pruning the TTL of running instances."""
import logging
from datetime import datetime, timezone
from typing import Callable

from ephemera.config import Settings
from ephemera.errors import InstanceNotFound, MissingTTL, NotManagedError, TTLBoundExceeded, ValidationError
from ephemera.models.labels import Labels
from ephemera.services.compute_service import ComputeService
from ephemera.services.ttl_policy import max_horizon, parse_ttl, utcnow

logger = logging.getLogger(__name__)


class LeaseService:
    def __init__(self, settings: Settings, compute: ComputeService, now: Callable[[], datetime] = utcnow):
        self.settings = settings
        self.compute = compute
        self._now = now

    def extend(self, name: str, duration: str) -> datetime:
        return self.adjust_ttl(name, duration, inverse=False)

    def prune(self, name: str, duration: str) -> datetime:
        return self.adjust_ttl(name, duration, inverse=True)

    def adjust_ttl(self, name: str, duration: str, inverse: bool = False) -> datetime:
        """
        Move the stored TTL of an instance forward (extend) or backward (prune).

        The delta is applied to the currently stored TTL, not to now. The
        result may not lie further than the maximum horizon ahead of now.

        Returns:
            The new absolute TTL
        """
        delta = parse_ttl(duration)
        if inverse:
            delta = -delta

        instance = self.compute.get_server(name)
        if instance is None:
            raise InstanceNotFound(name)
        if not instance.is_managed:
            raise NotManagedError(name)

        computed = {}

        def apply_delta(labels: Labels) -> None:
            # Evaluated against the freshly read label map
            try:
                current = labels.ttl
            except ValueError as e:
                raise ValidationError(f"instance {name} has an unreadable ttl label: {e}") from e
            if current is None:
                raise MissingTTL(f"instance {name} has no ttl label")
            # Integer epoch seconds, clamped at 0
            new_epoch = max(0, int(current.timestamp()) + int(delta.total_seconds()))
            horizon = self._now() + max_horizon(self.settings)
            if new_epoch > horizon.timestamp():
                raise TTLBoundExceeded(
                    f"instance {name} cannot be extended beyond {self.settings.max_ttl_hours}h from now"
                )
            labels.set_ttl(datetime.fromtimestamp(new_epoch, tz=timezone.utc))
            computed["ttl"] = labels.ttl

        self.compute.update_server_labels(instance.id, apply_delta)
        new_ttl = computed["ttl"]
        logger.info(f"{'Pruned' if inverse else 'Extended'} ttl of instance {name} to {new_ttl.isoformat()}")
        return new_ttl
