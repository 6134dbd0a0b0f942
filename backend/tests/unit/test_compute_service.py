# tests/unit/test_compute_service.py
"""Unit tests for the compute service using a mocked provider client."""
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from hcloud import APIException

from ephemera.errors import ProviderError
from ephemera.models.labels import Labels


def _server(name="alpha", labels=None, image=None):
    server = MagicMock()
    server.id = 42
    server.name = name
    server.status = "running"
    server.server_type.name = "cx22"
    server.labels = labels if labels is not None else {"ephemera.dev/managed-by": "ephemera"}
    server.locked = False
    server.public_net.ipv4.ip = "203.0.113.10"
    server.public_net.ipv4.dns_ptr = "alpha.svc.example.com"
    server.public_net.ipv6.ip = "2001:db8:1234::/64"
    server.image = image
    server.created = datetime(2024, 5, 1, tzinfo=timezone.utc)
    return server


def _image(image_id=100, image_type="snapshot", labels=None, protected=False):
    image = MagicMock()
    image.id = image_id
    image.name = None
    image.type = image_type
    image.created = datetime(2024, 4, 30, tzinfo=timezone.utc)
    image.labels = labels or {}
    image.description = "alpha/2024-04-30T00:00:00+00:00"
    image.protection = {"delete": protected}
    return image


class TestComputeService:
    """Test compute service methods with a mocked provider client."""

    @patch('ephemera.services.compute_service.Client')
    def test_get_server_converts_to_instance(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        mock_client.servers.get_by_name.return_value = _server(image=_image(protected=True))

        service = ComputeService(settings)
        instance = service.get_server("alpha")

        assert instance.name == "alpha"
        assert instance.server_type == "cx22"
        assert instance.ipv4 == "203.0.113.10"
        assert instance.ipv6 == "2001:db8:1234::1"
        assert instance.dns_name == "alpha.svc.example.com"
        assert instance.is_managed is True
        assert instance.image.id == 100
        assert instance.image.delete_protected is True

    @patch('ephemera.services.compute_service.Client')
    def test_get_server_missing_returns_none(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        mock_client.servers.get_by_name.return_value = None

        service = ComputeService(settings)
        assert service.get_server("ghost") is None

    @patch('ephemera.services.compute_service.Client')
    def test_api_errors_become_provider_errors(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        mock_client.servers.get_all.side_effect = APIException(code="unavailable", message="down", details=None)

        service = ComputeService(settings)
        with pytest.raises(ProviderError) as exc_info:
            service.list_servers(label_selector="ephemera.dev/managed-by=ephemera")

        assert exc_info.value.operation == "list servers"

    @patch('ephemera.services.compute_service.Client')
    def test_create_server_uses_configured_placement(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        mock_client.servers.create.return_value.server = _server()

        service = ComputeService(settings.model_copy(update={"network_ids": "7", "ssh_key_ids": "8,9"}))
        labels = Labels({"ephemera.dev/service": "alpha"})
        instance = service.create_server(name="alpha", server_type="cx22", image_id=100, labels=labels)

        assert instance.id == 42
        kwargs = mock_client.servers.create.call_args.kwargs
        assert kwargs["name"] == "alpha"
        assert kwargs["server_type"].name == "cx22"
        assert kwargs["image"].id == 100
        assert kwargs["location"].name == "nbg1"
        assert [n.id for n in kwargs["networks"]] == [7]
        assert [k.id for k in kwargs["ssh_keys"]] == [8, 9]
        assert kwargs["labels"] == {"ephemera.dev/service": "alpha"}
        assert kwargs["start_after_create"] is True

    @patch('ephemera.services.compute_service.Client')
    def test_update_server_labels_writes_full_map(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        current = _server(labels={"ephemera.dev/service": "alpha", "team": "blue"})
        mock_client.servers.get_by_id.return_value = current
        mock_client.servers.update.return_value = _server(labels={
            "ephemera.dev/service": "alpha", "team": "blue", "ephemera.dev/server-type": "cx32",
        })

        def set_type(labels):
            labels.server_type = "cx32"

        service = ComputeService(settings)
        instance = service.update_server_labels(42, set_type)

        mock_client.servers.update.assert_called_once_with(current, labels={
            "ephemera.dev/service": "alpha", "team": "blue", "ephemera.dev/server-type": "cx32",
        })
        assert instance.labels.server_type == "cx32"

    @patch('ephemera.services.compute_service.Client')
    def test_create_snapshot_returns_image_and_action(self, mock_client_cls, settings, make_instance):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        response = mock_client.servers.create_image.return_value
        response.image = _image(image_id=101)
        response.action.id = 9

        service = ComputeService(settings)
        snapshot, action_id = service.create_snapshot(
            make_instance(), "alpha/now", Labels.for_snapshot("alpha", "cx22"),
        )

        assert snapshot.id == 101
        assert action_id == 9
        assert mock_client.servers.create_image.call_args.kwargs["type"] == "snapshot"

    @patch('ephemera.services.compute_service.Client')
    def test_list_images_filters_snapshots(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        mock_client.images.get_all.return_value = [_image()]

        service = ComputeService(settings)
        images = service.list_images(label_selector="ephemera.dev/service=alpha", snapshots_only=True)

        assert len(images) == 1
        mock_client.images.get_all.assert_called_once_with(
            label_selector="ephemera.dev/service=alpha", type=["snapshot"],
        )

    @patch('ephemera.services.compute_service.Client')
    def test_get_server_type_unknown_returns_none(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        mock_client.server_types.get_by_name.return_value = None

        service = ComputeService(settings)
        assert service.get_server_type("cx9000") is None

    @patch('ephemera.services.compute_service.Client')
    def test_watch_action_reports_progress_until_success(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        running = MagicMock(status="running", progress=40)
        done = MagicMock(status="success", progress=100)
        mock_client.actions.get_by_id.side_effect = [running, done]
        sleeps = []

        service = ComputeService(settings, sleep=sleeps.append)
        assert list(service.watch_action(5)) == [40, 100]
        assert sleeps == [settings.hcloud_poll_interval]

    @patch('ephemera.services.compute_service.Client')
    def test_watch_action_error_raises(self, mock_client_cls, settings):
        from ephemera.services.compute_service import ComputeService

        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        failed = MagicMock(status="error", command="shutdown_server", error={"message": "boom"})
        mock_client.actions.get_by_id.return_value = failed

        service = ComputeService(settings, sleep=lambda _: None)
        with pytest.raises(ProviderError, match="boom"):
            list(service.watch_action(5))
