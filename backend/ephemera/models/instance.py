# backend/ephemera/models/instance.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ephemera.models.labels import Labels


class InstanceStatus(str, Enum):
    INITIALIZING = "initializing"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    OFF = "off"
    DELETING = "deleting"
    MIGRATING = "migrating"
    REBUILDING = "rebuilding"
    UNKNOWN = "unknown"
    # Not a provider status: a service that only exists as a snapshot
    TERMINATED = "terminated"


# Statuses the reaper is allowed to act on
REAPABLE_STATUSES = (InstanceStatus.RUNNING.value, InstanceStatus.OFF.value)


class ImageType(str, Enum):
    SYSTEM = "system"
    SNAPSHOT = "snapshot"
    BACKUP = "backup"
    APP = "app"


@dataclass
class Snapshot:
    """Provider image (snapshot, backup or system image)."""

    id: int
    image_type: str
    created: datetime
    labels: Labels = field(default_factory=Labels)
    description: Optional[str] = None
    name: Optional[str] = None
    delete_protected: bool = False

    @property
    def is_snapshot(self) -> bool:
        return self.image_type == ImageType.SNAPSHOT.value

    @property
    def is_active_blueprint(self) -> bool:
        return self.labels.is_active_blueprint


@dataclass
class Instance:
    """Provider server as seen by the control plane."""

    id: int
    name: str
    status: str
    server_type: str
    labels: Labels = field(default_factory=Labels)
    locked: bool = False
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None
    image: Optional[Snapshot] = None
    created: Optional[datetime] = None
    dns_name: Optional[str] = None

    @property
    def is_managed(self) -> bool:
        return self.labels.is_managed
