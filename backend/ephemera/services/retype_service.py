# backend/ephemera/services/retype_service.py
import logging

from ephemera.config import Settings
from ephemera.errors import InstanceStillRunning, InvalidInstanceType, SnapshotNotFound
from ephemera.models.instance import Snapshot
from ephemera.models.labels import Labels, latest_snapshot, service_selector
from ephemera.services.compute_service import ComputeService

logger = logging.getLogger(__name__)


class RetypeService:
    """Changes the instance type a stopped service will be restarted with."""

    def __init__(self, settings: Settings, compute: ComputeService):
        self.settings = settings
        self.compute = compute

    def change_type(self, name: str, new_type: str) -> Snapshot:
        if self.compute.get_server(name) is not None:
            raise InstanceStillRunning(name)

        images = self.compute.list_images(label_selector=service_selector(name), snapshots_only=True)
        snapshot = latest_snapshot(images, name)
        if snapshot is None:
            raise SnapshotNotFound(name)

        if self.compute.get_server_type(new_type) is None:
            raise InvalidInstanceType(f"instance type {new_type} is invalid")

        def set_server_type(labels: Labels) -> None:
            labels.server_type = new_type

        updated = self.compute.update_image_labels(snapshot.id, set_server_type)
        logger.info(f"Service {name} will restart as {new_type} (snapshot {snapshot.id})")
        return updated
