# backend/ephemera/models/__init__.py
from ephemera.models.labels import (
    Labels,
    LABEL_MANAGED_BY,
    LABEL_SERVICE,
    LABEL_TTL,
    LABEL_ACTIVE_BLUEPRINT,
    LABEL_SERVER_TYPE,
    LABEL_DNS_A_RECORD_ID,
    LABEL_DNS_AAAA_RECORD_ID,
    MANAGED_BY_VALUE,
    latest_snapshot,
    find_active_blueprint,
)
from ephemera.models.instance import Instance, InstanceStatus, ImageType, Snapshot, REAPABLE_STATUSES
from ephemera.models.principal import Principal, Role, AVAILABLE_ROLES

__all__ = [
    "Labels",
    "LABEL_MANAGED_BY", "LABEL_SERVICE", "LABEL_TTL", "LABEL_ACTIVE_BLUEPRINT",
    "LABEL_SERVER_TYPE", "LABEL_DNS_A_RECORD_ID", "LABEL_DNS_AAAA_RECORD_ID",
    "MANAGED_BY_VALUE",
    "latest_snapshot", "find_active_blueprint",
    "Instance", "InstanceStatus", "ImageType", "Snapshot", "REAPABLE_STATUSES",
    "Principal", "Role", "AVAILABLE_ROLES",
]
