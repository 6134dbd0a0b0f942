# backend/ephemera/services/dns_service.py
"""DNS provider adapter: create and delete zone records over HTTP."""
import logging
from typing import Optional

import httpx

from ephemera.config import Settings, get_settings
from ephemera.errors import ProviderError

logger = logging.getLogger(__name__)


class DNSService:
    """Service for managing DNS records of the configured zone."""

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self.client = httpx.Client(
            base_url=settings.dns_api_url,
            headers={"Auth-API-Token": settings.dns_api_token},
            timeout=settings.dns_request_timeout,
            transport=transport,
        )

    def create_record(
        self,
        zone_id: str,
        record_type: str,
        name: str,
        value: str,
        ttl: Optional[int] = None,
    ) -> str:
        """
        Create a DNS record.

        Args:
            zone_id: Zone to create the record in
            record_type: "A" or "AAAA"
            name: Record name relative to the zone, e.g. "alpha.svc"
            value: Address the record points to
            ttl: Record TTL in seconds, defaults to the configured record TTL

        Returns:
            Record ID
        """
        payload = {
            "zone_id": zone_id,
            "type": record_type,
            "name": name,
            "value": value,
            "ttl": ttl if ttl is not None else self.settings.dns_record_ttl,
        }
        try:
            response = self.client.post("/records", json=payload)
            response.raise_for_status()
            record_id = response.json()["record"]["id"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Failed to create dns {record_type} record {name}: {e}")
            raise ProviderError(
                f"failed to create dns {record_type} record {name}: {e}",
                operation="create dns record",
                resource=name,
            ) from e
        logger.info(f"Created dns {record_type} record {name} -> {value} ({record_id})")
        return record_id

    def delete_record(self, record_id: str) -> None:
        try:
            response = self.client.delete(f"/records/{record_id}")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to delete dns record {record_id}: {e}")
            raise ProviderError(
                f"failed to delete dns record {record_id}: {e}",
                operation="delete dns record",
                resource=record_id,
            ) from e
        logger.info(f"Deleted dns record {record_id}")

    def close(self) -> None:
        self.client.close()


# Singleton instance
_dns_service: Optional[DNSService] = None


def get_dns_service() -> DNSService:
    """Get the DNS service singleton."""
    global _dns_service
    if _dns_service is None:
        _dns_service = DNSService(get_settings())
    return _dns_service
