# ephemera/tasks/lifecycle_tasks.py
"""Async lifecycle tasks using Dramatiq."""
import dramatiq
import logging

from ephemera.errors import AlreadyInProgress, ControlError, NotFoundError

logger = logging.getLogger(__name__)


@dramatiq.actor(max_retries=0)
def terminate_instance_task(name: str):
    """Async task to snapshot and delete an instance."""
    logger.info(f"Starting async termination for {name}")

    from ephemera.services.control_service import get_control_service
    control = get_control_service()

    try:
        snapshot = control.terminate(name)
    except (NotFoundError, AlreadyInProgress) as e:
        logger.warning(f"Skipping termination of {name}: {e}")
        return
    except ControlError as e:
        logger.error(f"Failed to terminate {name}: {e}")
        return

    logger.info(f"Terminated {name}, kept snapshot {snapshot.id}")


@dramatiq.actor(max_retries=0)
def reboot_instance_task(name: str):
    """Async task to reboot an instance."""
    logger.info(f"Starting async reboot for {name}")

    from ephemera.services.control_service import get_control_service
    control = get_control_service()

    try:
        control.reboot(name)
    except NotFoundError as e:
        logger.warning(f"Skipping reboot of {name}: {e}")
        return
    except ControlError as e:
        logger.error(f"Failed to reboot {name}: {e}")
        return

    logger.info(f"Rebooted {name}")
