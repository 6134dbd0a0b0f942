# backend/ephemera/models/labels.py
"""
Label model.

The control plane keeps no database: ownership, service name, TTL, image
lineage and DNS bookkeeping all live as key/value labels on the provider's
servers and images. ``Labels`` is the typed view every component uses to
read and mutate those maps.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ephemera.models.instance import Snapshot

logger = logging.getLogger(__name__)

LABEL_PREFIX = "ephemera.dev"

LABEL_MANAGED_BY = f"{LABEL_PREFIX}/managed-by"
LABEL_SERVICE = f"{LABEL_PREFIX}/service"
LABEL_TTL = f"{LABEL_PREFIX}/ttl"
LABEL_ACTIVE_BLUEPRINT = f"{LABEL_PREFIX}/active-blueprint"
LABEL_SERVER_TYPE = f"{LABEL_PREFIX}/server-type"
LABEL_DNS_A_RECORD_ID = f"{LABEL_PREFIX}/dns-a-record-id"
LABEL_DNS_AAAA_RECORD_ID = f"{LABEL_PREFIX}/dns-aaaa-record-id"

MANAGED_BY_VALUE = "ephemera"

MANAGED_SELECTOR = f"{LABEL_MANAGED_BY}={MANAGED_BY_VALUE}"
ACTIVE_BLUEPRINT_SELECTOR = f"{LABEL_ACTIVE_BLUEPRINT}=true"


def service_selector(service: str) -> str:
    return f"{LABEL_SERVICE}={service}"


class Labels:
    """Typed accessor over a provider label map. Always works on a copy."""

    def __init__(self, raw: Optional[Dict[str, str]] = None):
        self._raw: Dict[str, str] = dict(raw or {})

    @classmethod
    def for_instance(cls, service: str, ttl: datetime) -> "Labels":
        labels = cls({
            LABEL_MANAGED_BY: MANAGED_BY_VALUE,
            LABEL_SERVICE: service,
        })
        labels.set_ttl(ttl)
        return labels

    @classmethod
    def for_snapshot(cls, service: str, server_type: str) -> "Labels":
        return cls({
            LABEL_MANAGED_BY: MANAGED_BY_VALUE,
            LABEL_SERVICE: service,
            LABEL_SERVER_TYPE: server_type,
        })

    def as_dict(self) -> Dict[str, str]:
        return dict(self._raw)

    def get(self, key: str) -> Optional[str]:
        return self._raw.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._raw

    def __eq__(self, other) -> bool:
        if isinstance(other, Labels):
            return self._raw == other._raw
        if isinstance(other, dict):
            return self._raw == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"Labels({self._raw!r})"

    # Ownership

    @property
    def is_managed(self) -> bool:
        return self._raw.get(LABEL_MANAGED_BY) == MANAGED_BY_VALUE

    @property
    def service(self) -> Optional[str]:
        return self._raw.get(LABEL_SERVICE)

    @property
    def is_active_blueprint(self) -> bool:
        return self._raw.get(LABEL_ACTIVE_BLUEPRINT) == "true"

    # TTL

    @property
    def has_ttl(self) -> bool:
        return LABEL_TTL in self._raw

    @property
    def ttl(self) -> Optional[datetime]:
        """
        Absolute expiry as an aware UTC datetime.

        Returns None when the label is absent and raises ValueError when it
        is present but not a Unix timestamp.
        """
        value = self._raw.get(LABEL_TTL)
        if value is None:
            return None
        try:
            epoch = int(value)
        except ValueError:
            raise ValueError(f"ttl label {value!r} is not a unix timestamp")
        try:
            return datetime.fromtimestamp(epoch, tz=timezone.utc)
        except (OverflowError, OSError):
            raise ValueError(f"ttl label {value!r} is out of range")

    def set_ttl(self, ttl: datetime) -> None:
        self._raw[LABEL_TTL] = str(max(0, int(ttl.timestamp())))

    # Sizing

    @property
    def server_type(self) -> Optional[str]:
        return self._raw.get(LABEL_SERVER_TYPE)

    @server_type.setter
    def server_type(self, value: str) -> None:
        self._raw[LABEL_SERVER_TYPE] = value

    # DNS bookkeeping

    @property
    def dns_a_record_id(self) -> Optional[str]:
        return self._raw.get(LABEL_DNS_A_RECORD_ID)

    @dns_a_record_id.setter
    def dns_a_record_id(self, value: str) -> None:
        self._raw[LABEL_DNS_A_RECORD_ID] = value

    @property
    def dns_aaaa_record_id(self) -> Optional[str]:
        return self._raw.get(LABEL_DNS_AAAA_RECORD_ID)

    @dns_aaaa_record_id.setter
    def dns_aaaa_record_id(self, value: str) -> None:
        self._raw[LABEL_DNS_AAAA_RECORD_ID] = value


def latest_snapshot(images: Iterable["Snapshot"], service: str) -> Optional["Snapshot"]:
    """Newest snapshot labelled with ``service``; on equal timestamps the first one seen wins."""
    latest = None
    for image in images:
        if image.labels.service != service:
            continue
        if latest is None or image.created > latest.created:
            latest = image
    return latest


def find_active_blueprint(images: Iterable["Snapshot"]) -> Optional["Snapshot"]:
    blueprints = [image for image in images if image.labels.is_active_blueprint]
    if not blueprints:
        return None
    if len(blueprints) > 1:
        logger.warning(
            f"Found {len(blueprints)} images marked as active blueprint, using the newest one"
        )
    return max(blueprints, key=lambda image: image.created)
