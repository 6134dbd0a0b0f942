# backend/ephemera/api/snapshots.py
"""API endpoints for managed snapshots and the merged service listing."""
from typing import List

from fastapi import APIRouter

from ephemera.api.deps import AnyUser, Control, to_http_exception
from ephemera.errors import ControlError
from ephemera.schemas.instance import InstanceResponse
from ephemera.schemas.snapshot import SnapshotResponse

router = APIRouter(tags=["Snapshots"])


@router.get("/snapshots", response_model=List[SnapshotResponse])
def list_snapshots(control: Control, principal: AnyUser):
    """List snapshots owned by the control plane, newest first."""
    try:
        snapshots = control.list_snapshots()
    except ControlError as e:
        raise to_http_exception(e)
    snapshots.sort(key=lambda s: s.created, reverse=True)
    return [SnapshotResponse.from_snapshot(s) for s in snapshots]


@router.get("/services", response_model=List[InstanceResponse])
def list_services(control: Control, principal: AnyUser):
    """List running and terminated services."""
    try:
        services = control.list_services()
    except ControlError as e:
        raise to_http_exception(e)
    return [InstanceResponse.from_instance(s) for s in services]
