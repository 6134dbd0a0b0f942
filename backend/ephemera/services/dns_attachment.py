# backend/ephemera/services/dns_attachment.py
import logging

from ephemera.config import Settings
from ephemera.errors import ControlError, ProviderError
from ephemera.models.instance import Instance
from ephemera.models.labels import Labels
from ephemera.services.compute_service import ComputeService
from ephemera.services.dns_service import DNSService

logger = logging.getLogger(__name__)


class DNSAttachment:
    """Publishes forward and reverse DNS for freshly provisioned instances."""

    def __init__(self, settings: Settings, compute: ComputeService, dns: DNSService):
        self.settings = settings
        self.compute = compute
        self.dns = dns

    def record_name(self, instance_name: str) -> str:
        return f"{instance_name}.svc"

    def fqdn(self, instance_name: str) -> str:
        return f"{self.record_name(instance_name)}.{self.settings.dns_domain}"

    def attach(self, instance: Instance) -> str:
        """
        Create A/AAAA records for the instance, remember their IDs in the
        instance labels and point reverse DNS at the new name.

        The instance is not rolled back when a step fails.

        Returns:
            Fully qualified DNS name
        """
        try:
            return self._attach(instance)
        except ControlError as e:
            raise ProviderError(
                f"failed to attach dns records to instance {instance.name}: {e}",
                operation="attach dns",
                resource=instance.name,
            ) from e

    def _attach(self, instance: Instance) -> str:
        zone_id = self.settings.dns_zone_id
        record_name = self.record_name(instance.name)
        fqdn = self.fqdn(instance.name)

        a_record_id = None
        aaaa_record_id = None
        if instance.ipv4:
            a_record_id = self.dns.create_record(zone_id, "A", record_name, instance.ipv4)
        if instance.ipv6:
            aaaa_record_id = self.dns.create_record(zone_id, "AAAA", record_name, instance.ipv6)

        def remember_records(labels: Labels) -> None:
            if a_record_id:
                labels.dns_a_record_id = a_record_id
            if aaaa_record_id:
                labels.dns_aaaa_record_id = aaaa_record_id

        updated = self.compute.update_server_labels(instance.id, remember_records)
        instance.labels = updated.labels

        if instance.ipv4:
            self.compute.change_dns_ptr(instance, instance.ipv4, fqdn)
        if instance.ipv6:
            self.compute.change_dns_ptr(instance, instance.ipv6, fqdn)

        logger.info(f"Attached dns name {fqdn} to instance {instance.name}")
        return fqdn
