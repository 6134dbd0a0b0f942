# backend/ephemera/api/instances.py
from typing import List
import logging

from fastapi import APIRouter, Response, status

from ephemera.api.deps import AdminUser, AnyUser, Control, Operator, to_http_exception
from ephemera.errors import ControlError
from ephemera.schemas.instance import (
    InstanceCreate,
    InstanceResponse,
    InstanceRetype,
    InstanceStart,
    TTLAdjust,
    TTLResponse,
)
from ephemera.schemas.snapshot import SnapshotResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/instances", tags=["Instances"])


@router.get("", response_model=List[InstanceResponse])
def list_instances(control: Control, principal: AnyUser):
    """List all managed instances"""
    try:
        instances = control.list_managed()
    except ControlError as e:
        raise to_http_exception(e)
    return [InstanceResponse.from_instance(i) for i in instances]


@router.post("", response_model=InstanceResponse, status_code=status.HTTP_201_CREATED)
def create_instance(data: InstanceCreate, control: Control, principal: AdminUser):
    """Create a new service from the active blueprint"""
    try:
        instance = control.create_new(data.name, data.server_type, data.ttl)
    except ControlError as e:
        logger.error(f"Failed to create instance {data.name}: {e}")
        raise to_http_exception(e)
    return InstanceResponse.from_instance(instance)


@router.post("/{name}/_start", response_model=InstanceResponse, status_code=status.HTTP_201_CREATED)
def start_instance(name: str, data: InstanceStart, control: Control, principal: Operator):
    """Start a terminated service from its latest snapshot"""
    try:
        instance = control.restart(name, data.ttl)
    except ControlError as e:
        logger.error(f"Failed to start instance {name}: {e}")
        raise to_http_exception(e)
    return InstanceResponse.from_instance(instance)


@router.post("/{name}/_reboot", response_model=InstanceResponse)
def reboot_instance(name: str, control: Control, principal: Operator, background: bool = False):
    if background:
        from ephemera.tasks import reboot_instance_task
        reboot_instance_task.send(name)
        return Response(status_code=status.HTTP_202_ACCEPTED)
    try:
        instance = control.reboot(name)
    except ControlError as e:
        logger.error(f"Failed to reboot instance {name}: {e}")
        raise to_http_exception(e)
    return InstanceResponse.from_instance(instance)


def _adjust_ttl(control, name: str, ttl: str, inverse: bool) -> TTLResponse:
    try:
        if inverse:
            new_ttl = control.prune(name, ttl)
        else:
            new_ttl = control.extend(name, ttl)
    except ControlError as e:
        logger.error(f"Failed to {'prune' if inverse else 'extend'} instance {name}: {e}")
        raise to_http_exception(e)
    return TTLResponse(name=name, ttl=new_ttl)


@router.put("/{name}/_extend", response_model=TTLResponse)
def extend_instance(name: str, data: TTLAdjust, control: Control, principal: Operator):
    """Move the ttl of a running instance forward"""
    return _adjust_ttl(control, name, data.ttl, data.inverse)


@router.put("/{name}/_prune", response_model=TTLResponse)
def prune_instance(name: str, data: TTLAdjust, control: Control, principal: Operator):
    """Move the ttl of a running instance backward"""
    return _adjust_ttl(control, name, data.ttl, True)


@router.put("/{name}/_type", response_model=SnapshotResponse)
def change_instance_type(name: str, data: InstanceRetype, control: Control, principal: AdminUser):
    """Change the type a terminated service restarts with"""
    try:
        snapshot = control.retype(name, data.server_type)
    except ControlError as e:
        logger.error(f"Failed to change type of {name}: {e}")
        raise to_http_exception(e)
    return SnapshotResponse.from_snapshot(snapshot)


@router.delete("/{name}", response_model=SnapshotResponse)
def terminate_instance(name: str, control: Control, principal: Operator, background: bool = False):
    """Snapshot and delete a running instance"""
    if background:
        from ephemera.tasks import terminate_instance_task
        terminate_instance_task.send(name)
        return Response(status_code=status.HTTP_202_ACCEPTED)
    try:
        snapshot = control.terminate(name)
    except ControlError as e:
        logger.error(f"Failed to terminate instance {name}: {e}")
        raise to_http_exception(e)
    return SnapshotResponse.from_snapshot(snapshot)
