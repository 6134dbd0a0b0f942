# ephemera/tasks/__init__.py
"""Dramatiq task definitions for long running lifecycle operations."""
import dramatiq
from dramatiq.brokers.redis import RedisBroker
from ephemera.config import get_settings

settings = get_settings()

# Configure Redis broker
redis_broker = RedisBroker(url=settings.redis_url)
dramatiq.set_broker(redis_broker)

from .lifecycle_tasks import terminate_instance_task, reboot_instance_task

__all__ = [
    'terminate_instance_task',
    'reboot_instance_task',
]
