# backend/ephemera/services/reaper.py
"""
TTL reaper.

A background loop that terminates every managed instance whose TTL has
passed. Failures for one instance are logged and never stop the tick.
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Optional

from ephemera.config import Settings
from ephemera.errors import AlreadyInProgress, ControlError
from ephemera.models.instance import REAPABLE_STATUSES
from ephemera.models.labels import MANAGED_SELECTOR
from ephemera.services.compute_service import ComputeService
from ephemera.services.termination_service import TerminationService
from ephemera.services.ttl_policy import utcnow
from ephemera.utils.duration import format_duration

logger = logging.getLogger(__name__)


class TTLReaper:
    def __init__(
        self,
        settings: Settings,
        compute: ComputeService,
        termination: TerminationService,
        now: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.compute = compute
        self.termination = termination
        self.interval = settings.reaper_interval_seconds
        self._now = now
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="ttl-reaper", daemon=True)
        self._thread.start()
        logger.info(f"TTL reaper started, interval {self.interval:g}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the loop. An in-flight tick finishes its current termination but starts no new one."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("TTL reaper did not stop in time, abandoning in-flight tick")
            self._thread = None
        logger.info("TTL reaper shutdown complete")

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            logger.debug("TTL reaper tick triggered")
            try:
                self.tick()
            except Exception:
                # Keep the timer armed whatever happens inside a tick
                logger.exception("TTL reaper tick failed")

    def tick(self) -> Dict[str, int]:
        """
        Check every managed instance once.

        Returns:
            Counts of checked, terminated, skipped and failed instances
        """
        summary = {"checked": 0, "terminated": 0, "skipped": 0, "failed": 0}
        try:
            instances = self.compute.list_servers(label_selector=MANAGED_SELECTOR)
        except ControlError as e:
            logger.error(f"TTL reaper failed to list instances: {e}")
            summary["failed"] += 1
            return summary

        now = self._now()
        for instance in instances:
            if not instance.is_managed:
                continue
            summary["checked"] += 1

            if instance.status not in REAPABLE_STATUSES:
                logger.warning(f"Instance {instance.name} is in status {instance.status}, skipping")
                summary["skipped"] += 1
                continue

            try:
                ttl = instance.labels.ttl
            except ValueError as e:
                logger.error(f"Failed to parse ttl of instance {instance.name}: {e}")
                summary["skipped"] += 1
                continue
            if ttl is None:
                logger.error(f"TTL label missing on instance {instance.name}")
                summary["skipped"] += 1
                continue

            if now <= ttl:
                logger.debug(f"Instance {instance.name} reaches its ttl in {format_duration(ttl - now)} ({ttl.isoformat()})")
                continue

            if self._stop.is_set():
                logger.info("TTL reaper is stopping, not starting further terminations")
                break

            logger.info(f"Instance {instance.name} is past its ttl, terminating now")
            try:
                self.termination.terminate(instance.name)
            except AlreadyInProgress:
                logger.info(f"Termination of {instance.name} is already running elsewhere")
                summary["failed"] += 1
            except ControlError as e:
                logger.error(f"Failed to terminate instance {instance.name}: {e}")
                summary["failed"] += 1
            except Exception as e:
                logger.exception(f"Unexpected error terminating instance {instance.name}: {e}")
                summary["failed"] += 1
            else:
                summary["terminated"] += 1

        return summary
