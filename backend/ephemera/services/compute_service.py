# backend/ephemera/services/compute_service.py
"""
Compute provider adapter.

Wraps the Hetzner Cloud SDK and hands plain ``Instance`` / ``Snapshot`` views
to the rest of the control plane. Every SDK failure is re-raised as a
``ProviderError`` naming the operation and the resource it touched.
"""
import ipaddress
import logging
import threading
import time
from typing import Any, Callable, Iterator, List, Optional, Tuple

from hcloud import APIException, Client
from hcloud.images import Image
from hcloud.locations import Location
from hcloud.networks import Network
from hcloud.server_types import ServerType
from hcloud.servers import Server
from hcloud.ssh_keys import SSHKey

from ephemera.config import Settings, get_settings
from ephemera.errors import ProviderError
from ephemera.models.instance import Instance, Snapshot
from ephemera.models.labels import Labels

logger = logging.getLogger(__name__)


class ComputeService:
    """Service for managing servers and images on the compute provider."""

    def __init__(self, settings: Settings, sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self.client = Client(
            token=settings.hcloud_token,
            application_name=settings.app_name.lower(),
            poll_interval=settings.hcloud_poll_interval,
        )
        self._sleep = sleep
        self._label_lock = threading.Lock()

    def _call(self, operation: str, resource: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return fn(*args, **kwargs)
        except APIException as e:
            logger.error(f"Failed to {operation} {resource}: {e}")
            raise ProviderError(
                f"failed to {operation} {resource}: {e}",
                operation=operation,
                resource=resource,
            ) from e

    # Conversions

    def _to_snapshot(self, image) -> Snapshot:
        protection = image.protection or {}
        return Snapshot(
            id=image.id,
            name=image.name,
            image_type=image.type,
            created=image.created,
            labels=Labels(image.labels),
            description=image.description,
            delete_protected=bool(protection.get("delete", False)),
        )

    def _to_instance(self, server) -> Instance:
        public_net = server.public_net
        ipv4 = public_net.ipv4.ip if public_net and public_net.ipv4 else None
        ipv6 = None
        if public_net and public_net.ipv6:
            # The provider hands out a /64; the server answers on the first host address
            network = ipaddress.ip_network(public_net.ipv6.ip, strict=False)
            ipv6 = str(network.network_address + 1)
        dns_name = None
        if public_net and public_net.ipv4 and public_net.ipv4.dns_ptr:
            dns_name = public_net.ipv4.dns_ptr
        return Instance(
            id=server.id,
            name=server.name,
            status=server.status,
            server_type=server.server_type.name,
            labels=Labels(server.labels),
            locked=bool(server.locked),
            ipv4=ipv4,
            ipv6=ipv6,
            image=self._to_snapshot(server.image) if server.image is not None else None,
            created=server.created,
            dns_name=dns_name,
        )

    # Server Operations

    def list_servers(self, label_selector: Optional[str] = None) -> List[Instance]:
        servers = self._call("list servers", label_selector or "*",
                             self.client.servers.get_all, label_selector=label_selector)
        return [self._to_instance(s) for s in servers]

    def get_server(self, name: str) -> Optional[Instance]:
        """Get a server by name, None if it does not exist."""
        server = self._call("get server", name, self.client.servers.get_by_name, name)
        if server is None:
            return None
        return self._to_instance(server)

    def create_server(
        self,
        name: str,
        server_type: str,
        image_id: int,
        labels: Labels,
    ) -> Instance:
        """
        Create and start a server in the configured location.

        Args:
            name: Server name, also used as the service name
            server_type: Provider server type, e.g. "cx22"
            image_id: Blueprint or snapshot image to boot from
            labels: Initial label map

        Returns:
            The created server
        """
        response = self._call(
            "create server", name, self.client.servers.create,
            name=name,
            server_type=ServerType(name=server_type),
            image=Image(id=image_id),
            location=Location(name=self.settings.location),
            networks=[Network(id=i) for i in self.settings.network_id_list],
            ssh_keys=[SSHKey(id=i) for i in self.settings.ssh_key_id_list],
            labels=labels.as_dict(),
            start_after_create=True,
        )
        logger.info(f"Created server: {name} ({response.server.id})")
        return self._to_instance(response.server)

    def shutdown(self, instance: Instance) -> int:
        """Request a graceful shutdown, returns the action ID."""
        action = self._call("shutdown server", instance.name,
                            self.client.servers.shutdown, Server(id=instance.id))
        logger.info(f"Requested shutdown of server: {instance.name}")
        return action.id

    def reboot(self, instance: Instance) -> int:
        action = self._call("reboot server", instance.name,
                            self.client.servers.reboot, Server(id=instance.id))
        logger.info(f"Requested reboot of server: {instance.name}")
        return action.id

    def delete_server(self, instance: Instance) -> int:
        action = self._call("delete server", instance.name,
                            self.client.servers.delete, Server(id=instance.id))
        logger.info(f"Deleted server: {instance.name}")
        return action.id

    def change_dns_ptr(self, instance: Instance, ip: str, dns_ptr: str) -> int:
        action = self._call("change reverse dns of", f"{instance.name} ({ip})",
                            self.client.servers.change_dns_ptr, Server(id=instance.id), ip, dns_ptr)
        return action.id

    def update_server_labels(self, server_id: int, mutate: Callable[[Labels], None]) -> Instance:
        """
        Read-modify-write of a server's full label map.

        The current map is re-read from the provider, ``mutate`` edits it in
        place and the complete map is written back.
        """
        with self._label_lock:
            server = self._call("get server", str(server_id), self.client.servers.get_by_id, server_id)
            labels = Labels(server.labels)
            mutate(labels)
            updated = self._call("update labels of server", server.name,
                                 self.client.servers.update, server, labels=labels.as_dict())
        return self._to_instance(updated)

    # Image Operations

    def list_images(
        self,
        label_selector: Optional[str] = None,
        snapshots_only: bool = False,
    ) -> List[Snapshot]:
        kwargs = {"label_selector": label_selector}
        if snapshots_only:
            kwargs["type"] = ["snapshot"]
        images = self._call("list images", label_selector or "*", self.client.images.get_all, **kwargs)
        return [self._to_snapshot(i) for i in images]

    def create_snapshot(self, instance: Instance, description: str, labels: Labels) -> Tuple[Snapshot, int]:
        """Capture a snapshot image of a server, returns the image and the action ID."""
        response = self._call(
            "create snapshot of", instance.name, self.client.servers.create_image,
            Server(id=instance.id),
            description=description,
            type="snapshot",
            labels=labels.as_dict(),
        )
        logger.info(f"Requested snapshot of server {instance.name}: image {response.image.id}")
        return self._to_snapshot(response.image), response.action.id

    def delete_image(self, snapshot: Snapshot) -> bool:
        result = self._call("delete image", f"{snapshot.description or snapshot.name}[{snapshot.id}]",
                            self.client.images.delete, Image(id=snapshot.id))
        logger.info(f"Deleted image: {snapshot.id}")
        return bool(result)

    def update_image_labels(self, image_id: int, mutate: Callable[[Labels], None]) -> Snapshot:
        """Read-modify-write of an image's full label map."""
        with self._label_lock:
            image = self._call("get image", str(image_id), self.client.images.get_by_id, image_id)
            labels = Labels(image.labels)
            mutate(labels)
            updated = self._call("update labels of image", str(image_id),
                                 self.client.images.update, image, labels=labels.as_dict())
        return self._to_snapshot(updated)

    # Catalog

    def get_server_type(self, name: str) -> Optional[str]:
        server_type = self._call("get server type", name, self.client.server_types.get_by_name, name)
        if server_type is None:
            return None
        return server_type.name

    # Actions

    def watch_action(self, action_id: int) -> Iterator[int]:
        """
        Poll an asynchronous provider action.

        Yields the progress percentage after every poll and finishes after
        yielding 100. An action that ends in error raises ProviderError.
        """
        while True:
            action = self._call("get action", str(action_id), self.client.actions.get_by_id, action_id)
            if action.status == "error":
                error = action.error or {}
                raise ProviderError(
                    f"action {action.command} [{action_id}] failed: {error.get('message', 'unknown error')}",
                    operation=action.command,
                    resource=str(action_id),
                )
            if action.status == "success":
                yield 100
                return
            yield action.progress or 0
            self._sleep(self.settings.hcloud_poll_interval)


# Singleton instance
_compute_service: Optional[ComputeService] = None


def get_compute_service() -> ComputeService:
    """Get the compute service singleton."""
    global _compute_service
    if _compute_service is None:
        _compute_service = ComputeService(get_settings())
    return _compute_service
