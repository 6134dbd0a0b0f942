# backend/ephemera/schemas/snapshot.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ephemera.models.instance import Snapshot


class SnapshotResponse(BaseModel):
    id: int
    service: Optional[str] = None
    server_type: Optional[str] = None
    description: Optional[str] = None
    image_type: str
    active_blueprint: bool = False
    delete_protected: bool = False
    created: datetime

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "SnapshotResponse":
        return cls(
            id=snapshot.id,
            service=snapshot.labels.service,
            server_type=snapshot.labels.server_type,
            description=snapshot.description,
            image_type=snapshot.image_type,
            active_blueprint=snapshot.is_active_blueprint,
            delete_protected=snapshot.delete_protected,
            created=snapshot.created,
        )
