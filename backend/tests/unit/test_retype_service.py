# backend/tests/unit/test_retype_service.py
from datetime import timedelta

import pytest

from ephemera.errors import InstanceStillRunning, InvalidInstanceType, SnapshotNotFound
from ephemera.models.labels import Labels
from ephemera.services.retype_service import RetypeService


def test_change_type_updates_latest_snapshot(settings, mock_compute_service, make_snapshot, now):
    older = make_snapshot(id=1, created=now - timedelta(days=2))
    newer = make_snapshot(id=2, created=now - timedelta(days=1))
    mock_compute_service.get_server.return_value = None
    mock_compute_service.list_images.return_value = [older, newer]

    def update(image_id, mutate):
        labels = Labels(newer.labels.as_dict())
        mutate(labels)
        return make_snapshot(id=image_id, labels=labels)

    mock_compute_service.update_image_labels.side_effect = update

    result = RetypeService(settings, mock_compute_service).change_type("alpha", "cx32")

    assert result.id == 2
    assert result.labels.server_type == "cx32"
    mock_compute_service.get_server_type.assert_called_once_with("cx32")


def test_running_instance_cannot_be_retyped(settings, mock_compute_service, make_instance):
    mock_compute_service.get_server.return_value = make_instance()

    with pytest.raises(InstanceStillRunning):
        RetypeService(settings, mock_compute_service).change_type("alpha", "cx32")
    mock_compute_service.update_image_labels.assert_not_called()


def test_no_snapshot(settings, mock_compute_service):
    mock_compute_service.get_server.return_value = None
    mock_compute_service.list_images.return_value = []

    with pytest.raises(SnapshotNotFound):
        RetypeService(settings, mock_compute_service).change_type("alpha", "cx32")


def test_unknown_type(settings, mock_compute_service, make_snapshot):
    mock_compute_service.get_server.return_value = None
    mock_compute_service.list_images.return_value = [make_snapshot()]
    mock_compute_service.get_server_type.return_value = None

    with pytest.raises(InvalidInstanceType):
        RetypeService(settings, mock_compute_service).change_type("alpha", "cx9000")
    mock_compute_service.update_image_labels.assert_not_called()
