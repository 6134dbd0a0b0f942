# backend/ephemera/services/actions.py
import logging
import time
from typing import Callable

from ephemera.errors import ActionTimeout
from ephemera.services.compute_service import ComputeService

logger = logging.getLogger(__name__)


def wait_for_action(
    compute: ComputeService,
    action_id: int,
    phase: str,
    name: str,
    timeout: float,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Block until a provider action reports 100% progress.

    An error event from the provider propagates as ProviderError. A timeout
    of 0 waits for as long as the provider keeps reporting progress.
    """
    deadline = clock() + timeout if timeout > 0 else None
    for progress in compute.watch_action(action_id):
        logger.info(f"{phase} progress for instance {name}: {progress}%")
        if progress >= 100:
            logger.info(f"{phase} complete for instance {name}")
            return
        if deadline is not None and clock() >= deadline:
            raise ActionTimeout(phase, name, timeout)
    # The watcher stopped without a completion event
    raise ActionTimeout(phase, name, timeout)
