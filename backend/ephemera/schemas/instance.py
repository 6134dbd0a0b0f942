# backend/ephemera/schemas/instance.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ephemera.models.instance import Instance

# Provider server names double as DNS labels
NAME_PATTERN = r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$"
DURATION_DESCRIPTION = "Duration such as 2h, 1h30m or 45m"


class InstanceCreate(BaseModel):
    name: str = Field(..., pattern=NAME_PATTERN, description="Service name, also the instance name")
    server_type: Optional[str] = Field(None, min_length=1, max_length=32, description="Provider server type, e.g. cx22")
    ttl: str = Field("12h", min_length=1, max_length=32, description=DURATION_DESCRIPTION)


class InstanceStart(BaseModel):
    ttl: str = Field("12h", min_length=1, max_length=32, description=DURATION_DESCRIPTION)


class TTLAdjust(BaseModel):
    ttl: str = Field(..., min_length=1, max_length=32, description=DURATION_DESCRIPTION)
    # Kept for clients that prune through the extend endpoint
    inverse: bool = Field(default=False, description="Move the ttl backward instead of forward")


class InstanceRetype(BaseModel):
    server_type: str = Field(..., min_length=1, max_length=32)


class TTLResponse(BaseModel):
    name: str
    ttl: datetime


class InstanceResponse(BaseModel):
    id: int
    name: str
    service: Optional[str] = None
    status: str
    server_type: str
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None
    dns_name: Optional[str] = None
    ttl: Optional[datetime] = None
    locked: bool = False
    created: Optional[datetime] = None

    @classmethod
    def from_instance(cls, instance: Instance) -> "InstanceResponse":
        try:
            ttl = instance.labels.ttl
        except ValueError:
            ttl = None
        return cls(
            id=instance.id,
            name=instance.name,
            service=instance.labels.service,
            status=instance.status,
            server_type=instance.server_type,
            ipv4=instance.ipv4,
            ipv6=instance.ipv6,
            dns_name=instance.dns_name,
            ttl=ttl,
            locked=instance.locked,
            created=instance.created,
        )
