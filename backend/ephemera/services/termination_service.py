# backend/ephemera/services/termination_service.py
"""
Termination workflow.

Retires a running instance while keeping its state as a snapshot:

    running -> shutting down -> snapshotting -> pruning prior snapshot
            -> awaiting unlock -> deleted -> dns cleaned

Phases run strictly in order; the first failure aborts the workflow with an
error naming the phase and the instance. Nothing is retried here, the reaper
picks still-expired instances up again on its next tick.
"""
import logging
import time
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator

from ephemera.config import Settings
from ephemera.errors import (
    InstanceNotFound,
    NotManagedError,
    ProviderError,
    UnlockTimeout,
)
from ephemera.models.instance import Instance, Snapshot
from ephemera.models.labels import Labels
from ephemera.services.actions import wait_for_action
from ephemera.services.compute_service import ComputeService
from ephemera.services.dns_service import DNSService
from ephemera.services.termination_guard import TerminationGuard
from ephemera.services.ttl_policy import utcnow

logger = logging.getLogger(__name__)


class TerminationPhase(str, Enum):
    VALIDATING = "fetch"
    SHUTTING_DOWN = "shutdown"
    SNAPSHOTTING = "snapshot"
    PRUNING_PRIOR_SNAPSHOT = "prune prior snapshot"
    AWAITING_UNLOCK = "unlock wait"
    DELETED = "delete"
    DNS_CLEANED = "dns cleanup"


class TerminationService:
    def __init__(
        self,
        settings: Settings,
        compute: ComputeService,
        dns: DNSService,
        guard: TerminationGuard,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.compute = compute
        self.dns = dns
        self._sleep = sleep
        self._clock = clock
        self._now = now
        self.guard = guard

    def is_in_progress(self, name: str) -> bool:
        return self.guard.is_held(name)

    @contextmanager
    def _phase(self, phase: TerminationPhase, name: str) -> Iterator[None]:
        logger.info(f"Termination of {name}: entering phase '{phase.value}'")
        try:
            yield
        except ProviderError as e:
            raise ProviderError(
                f"termination of {name} failed during {phase.value}: {e}",
                operation=phase.value,
                resource=name,
            ) from e

    def terminate(self, name: str) -> Snapshot:
        """
        Run the full workflow for one instance.

        Returns:
            The snapshot that now holds the service's state
        """
        with self.guard.hold(name):
            return self._terminate(name)

    def _terminate(self, name: str) -> Snapshot:
        with self._phase(TerminationPhase.VALIDATING, name):
            instance = self.compute.get_server(name)
        if instance is None:
            raise InstanceNotFound(name)
        if not instance.is_managed:
            raise NotManagedError(name)

        with self._phase(TerminationPhase.SHUTTING_DOWN, name):
            action_id = self.compute.shutdown(instance)
            wait_for_action(self.compute, action_id, TerminationPhase.SHUTTING_DOWN.value, name,
                            self.settings.action_timeout_seconds, clock=self._clock)

        with self._phase(TerminationPhase.SNAPSHOTTING, name):
            snapshot = self._snapshot(instance)

        with self._phase(TerminationPhase.PRUNING_PRIOR_SNAPSHOT, name):
            self._prune_prior_image(instance)

        with self._phase(TerminationPhase.AWAITING_UNLOCK, name):
            instance = self._wait_for_unlock(name)

        with self._phase(TerminationPhase.DELETED, name):
            self.compute.delete_server(instance)
            logger.info(f"Deleted instance {name}")

        with self._phase(TerminationPhase.DNS_CLEANED, name):
            self._cleanup_dns(instance)

        logger.info(f"Termination of {name} complete, state kept in snapshot {snapshot.id}")
        return snapshot

    def _snapshot(self, instance: Instance) -> Snapshot:
        description = f"{instance.name}/{self._now().isoformat(timespec='seconds')}"
        labels = Labels.for_snapshot(instance.name, instance.server_type)
        snapshot, action_id = self.compute.create_snapshot(instance, description, labels)
        wait_for_action(self.compute, action_id, TerminationPhase.SNAPSHOTTING.value, instance.name,
                        self.settings.action_timeout_seconds, clock=self._clock)
        return snapshot

    def _prune_prior_image(self, instance: Instance) -> None:
        prior = instance.image
        if prior is None:
            logger.info(f"Skipping deletion of prior image for {instance.name}: no image recorded")
        elif not prior.is_snapshot:
            logger.info(f"Skipping deletion of prior image {prior.id} for {instance.name}: type is {prior.image_type}")
        elif prior.is_active_blueprint:
            logger.info(f"Skipping deletion of prior image {prior.id} for {instance.name}: active blueprint")
        elif prior.delete_protected:
            logger.info(f"Skipping deletion of prior image {prior.id} for {instance.name}: delete protection enabled")
        else:
            self.compute.delete_image(prior)
            logger.info(f"Deleted previous snapshot {prior.description or prior.name}[{prior.id}]")

    def _wait_for_unlock(self, name: str) -> Instance:
        interval = self.settings.unlock_poll_interval_seconds
        timeout = self.settings.unlock_timeout_seconds
        deadline = self._clock() + timeout
        while True:
            self._sleep(interval)
            instance = self.compute.get_server(name)
            if instance is None:
                raise InstanceNotFound(name)
            if not instance.locked:
                return instance
            if self._clock() >= deadline:
                raise UnlockTimeout(name, timeout)
            logger.info(f"Instance {name} is still locked, waiting")

    def _cleanup_dns(self, instance: Instance) -> None:
        if instance.labels.dns_a_record_id:
            self.dns.delete_record(instance.labels.dns_a_record_id)
        if instance.labels.dns_aaaa_record_id:
            self.dns.delete_record(instance.labels.dns_aaaa_record_id)
