# backend/ephemera/services/control_service.py
"""
Lifecycle facade.

One entry point per command the transports (HTTP API, background jobs)
offer. Each call returns the affected instance or snapshot view or raises a
typed ``ControlError``.
"""
import logging
from datetime import datetime
from typing import List, Optional

from ephemera.config import Settings, get_settings
from ephemera.errors import InstanceNotFound, NotManagedError
from ephemera.models.instance import Instance, InstanceStatus, Snapshot
from ephemera.models.labels import MANAGED_SELECTOR, latest_snapshot
from ephemera.services.actions import wait_for_action
from ephemera.services.compute_service import ComputeService, get_compute_service
from ephemera.services.dns_attachment import DNSAttachment
from ephemera.services.dns_service import DNSService, get_dns_service
from ephemera.services.lease_service import LeaseService
from ephemera.services.provisioning_service import ProvisioningService
from ephemera.services.reaper import TTLReaper
from ephemera.services.retype_service import RetypeService
from ephemera.services.termination_guard import TerminationGuard
from ephemera.services.termination_service import TerminationService

logger = logging.getLogger(__name__)


class ControlService:
    def __init__(
        self,
        settings: Settings,
        compute: ComputeService,
        dns: DNSService,
        guard: Optional[TerminationGuard] = None,
    ):
        self.settings = settings
        self.compute = compute
        self.dns = dns
        self.provisioning = ProvisioningService(settings, compute, DNSAttachment(settings, compute, dns))
        self.termination = TerminationService(
            settings, compute, dns, guard or TerminationGuard.from_settings(settings),
        )
        self.leases = LeaseService(settings, compute)
        self.retyping = RetypeService(settings, compute)
        self.reaper = TTLReaper(settings, compute, self.termination)

    # Listing

    def list_managed(self) -> List[Instance]:
        instances = self.compute.list_servers(label_selector=MANAGED_SELECTOR)
        return [i for i in instances if i.is_managed]

    def list_snapshots(self) -> List[Snapshot]:
        images = self.compute.list_images(label_selector=MANAGED_SELECTOR, snapshots_only=True)
        return [i for i in images if i.labels.is_managed]

    def list_services(self) -> List[Instance]:
        """Running instances plus stopped services represented by their latest snapshot."""
        instances = self.list_managed()
        running = {i.labels.service or i.name for i in instances}
        snapshots = self.list_snapshots()

        stopped = []
        for service in sorted({s.labels.service for s in snapshots if s.labels.service} - running):
            snapshot = latest_snapshot(snapshots, service)
            stopped.append(Instance(
                id=snapshot.id,
                name=service,
                status=InstanceStatus.TERMINATED.value,
                server_type=snapshot.labels.server_type or "",
                labels=snapshot.labels,
                image=snapshot,
                created=snapshot.created,
            ))
        return instances + stopped

    # Commands

    def create_new(self, name: str, instance_type: Optional[str], ttl: str) -> Instance:
        return self.provisioning.create_new(name, instance_type or self.settings.default_instance_type, ttl)

    def restart(self, name: str, ttl: str) -> Instance:
        return self.provisioning.restart(name, ttl)

    def terminate(self, name: str) -> Snapshot:
        return self.termination.terminate(name)

    def reboot(self, name: str) -> Instance:
        instance = self.compute.get_server(name)
        if instance is None:
            raise InstanceNotFound(name)
        if not instance.is_managed:
            raise NotManagedError(name)
        action_id = self.compute.reboot(instance)
        wait_for_action(self.compute, action_id, "reboot", name, self.settings.action_timeout_seconds)
        logger.info(f"Rebooted instance {name}")
        return instance

    def extend(self, name: str, ttl: str) -> datetime:
        return self.leases.extend(name, ttl)

    def prune(self, name: str, ttl: str) -> datetime:
        return self.leases.prune(name, ttl)

    def retype(self, name: str, instance_type: str) -> Snapshot:
        return self.retyping.change_type(name, instance_type)

    # Background loop

    def start_reaper(self) -> None:
        self.reaper.start()

    def stop_reaper(self, timeout: Optional[float] = None) -> None:
        self.reaper.stop(timeout)


# Singleton instance
_control_service: Optional[ControlService] = None


def get_control_service() -> ControlService:
    """Get the control service singleton."""
    global _control_service
    if _control_service is None:
        _control_service = ControlService(get_settings(), get_compute_service(), get_dns_service())
    return _control_service
