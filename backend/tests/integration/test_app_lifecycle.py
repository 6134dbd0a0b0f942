# backend/tests/integration/test_app_lifecycle.py
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from ephemera.main import app, settings


def test_shutdown_closes_dns_client():
    dns = MagicMock()
    with patch('ephemera.main.get_dns_service', return_value=dns):
        with TestClient(app) as test_client:
            assert test_client.get("/health").status_code == 200
            dns.close.assert_not_called()

    dns.close.assert_called_once()


def test_reaper_runs_for_the_lifetime_of_the_app():
    control = MagicMock()
    enabled = settings.model_copy(update={"reaper_enabled": True})
    with patch('ephemera.main.settings', enabled), \
         patch('ephemera.main.get_control_service', return_value=control), \
         patch('ephemera.main.get_dns_service', return_value=MagicMock()):
        with TestClient(app):
            control.start_reaper.assert_called_once()
            control.stop_reaper.assert_not_called()

    control.stop_reaper.assert_called_once_with(timeout=5.0)
