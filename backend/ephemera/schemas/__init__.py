# backend/ephemera/schemas/__init__.py
from ephemera.schemas.instance import (
    InstanceCreate,
    InstanceStart,
    TTLAdjust,
    InstanceRetype,
    TTLResponse,
    InstanceResponse,
)
from ephemera.schemas.snapshot import SnapshotResponse

__all__ = [
    "InstanceCreate", "InstanceStart", "TTLAdjust", "InstanceRetype",
    "TTLResponse", "InstanceResponse",
    "SnapshotResponse",
]
