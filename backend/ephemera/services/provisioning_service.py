# backend/ephemera/services/provisioning_service.py
"""Creation of instances from the active blueprint or a service's latest snapshot."""
import logging
from datetime import datetime
from typing import Callable, Optional

from ephemera.config import Settings
from ephemera.errors import BlueprintNotFound, SnapshotNotFound
from ephemera.models.instance import Instance, Snapshot
from ephemera.models.labels import (
    ACTIVE_BLUEPRINT_SELECTOR,
    Labels,
    find_active_blueprint,
    latest_snapshot,
    service_selector,
)
from ephemera.services.compute_service import ComputeService
from ephemera.services.dns_attachment import DNSAttachment
from ephemera.services.ttl_policy import initial_ttl, utcnow

logger = logging.getLogger(__name__)


class ProvisioningService:
    def __init__(
        self,
        settings: Settings,
        compute: ComputeService,
        dns_attachment: DNSAttachment,
        now: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.compute = compute
        self.dns_attachment = dns_attachment
        self._now = now

    def find_blueprint(self, service: str) -> Snapshot:
        images = self.compute.list_images(label_selector=ACTIVE_BLUEPRINT_SELECTOR)
        blueprint = find_active_blueprint(images)
        if blueprint is None:
            raise BlueprintNotFound(service)
        return blueprint

    def find_latest_snapshot(self, service: str) -> Optional[Snapshot]:
        images = self.compute.list_images(label_selector=service_selector(service), snapshots_only=True)
        return latest_snapshot(images, service)

    def create_new(self, name: str, instance_type: str, requested_ttl: str) -> Instance:
        """Create a brand-new service from the active blueprint image."""
        blueprint = self.find_blueprint(name)
        ttl = initial_ttl(self.settings, requested_ttl, self._now())
        logger.info(f"Creating new instance {name} ({instance_type}) from blueprint {blueprint.id}, ttl {ttl.isoformat()}")
        return self._provision(name, instance_type, blueprint, ttl)

    def restart(self, name: str, requested_ttl: str) -> Instance:
        """Recreate a stopped service from its most recent snapshot, using the size stored on it."""
        snapshot = self.find_latest_snapshot(name)
        if snapshot is None:
            raise SnapshotNotFound(name)
        instance_type = snapshot.labels.server_type or self.settings.default_instance_type
        if snapshot.labels.server_type is None:
            logger.warning(f"Snapshot {snapshot.id} of {name} has no server type, using {instance_type}")
        ttl = initial_ttl(self.settings, requested_ttl, self._now())
        logger.info(f"Starting instance {name} ({instance_type}) from snapshot {snapshot.id}, ttl {ttl.isoformat()}")
        return self._provision(name, instance_type, snapshot, ttl)

    def _provision(self, name: str, instance_type: str, image: Snapshot, ttl: datetime) -> Instance:
        instance = self.compute.create_server(
            name=name,
            server_type=instance_type,
            image_id=image.id,
            labels=Labels.for_instance(name, ttl),
        )
        if not self.settings.dns_enabled:
            logger.info(f"No dns zone configured, skipping dns for instance {name}")
            return instance
        instance.dns_name = self.dns_attachment.attach(instance)
        return instance
