"""Tests for validators, the backend health check and log handlers."""
from unittest.mock import MagicMock, patch

import requests

from utils import check_backend_health, normalize_customer_id, validate_email, validate_phone


def test_validators():
    assert validate_phone("+919876543210")
    assert not validate_phone("12-34")
    assert validate_email("asha@example.com")
    assert not validate_email("asha@")
    assert normalize_customer_id("  bp-12 ") == "BP-12"
    assert normalize_customer_id(None) == ""


class TestBackendHealth:

    def _session(self, response=None, error=None):
        session = MagicMock()
        if error:
            session.get.side_effect = error
        else:
            session.get.return_value = response
        return session

    def test_healthy_backend(self):
        response = MagicMock(status_code=200)
        response.json.return_value = {"status": "ok", "message": "Backend server is running"}

        with patch("utils.retrying_session", return_value=self._session(response)) as factory:
            ok, message, payload = check_backend_health("http://backend/")

        assert ok is True
        assert payload["status"] == "ok"
        factory.return_value.get.assert_called_once_with("http://backend/api/health", timeout=30)

    def test_error_status(self):
        response = MagicMock(status_code=503, text="down")

        with patch("utils.retrying_session", return_value=self._session(response)):
            ok, message, _ = check_backend_health("http://backend")

        assert ok is False
        assert "503" in message

    def test_timeout(self):
        with patch("utils.retrying_session",
                   return_value=self._session(error=requests.exceptions.Timeout())):
            ok, message, _ = check_backend_health("http://backend", timeout=5)

        assert ok is False
        assert "timed out after 5 seconds" in message

    def test_unreachable(self):
        with patch("utils.retrying_session",
                   return_value=self._session(error=requests.exceptions.ConnectionError())):
            ok, message, _ = check_backend_health("http://backend")

        assert ok is False
        assert "not reachable" in message


class TestLogging:

    def test_app_and_service_logs_share_handler_setup(self, app):
        from logging.handlers import RotatingFileHandler

        from logger import LOG_FORMAT, MAX_LOG_BYTES, repair_logger

        for logger in (app.logger, repair_logger):
            file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
            assert len(file_handlers) == 1
            assert file_handlers[0].formatter._fmt == LOG_FORMAT
            assert file_handlers[0].maxBytes == MAX_LOG_BYTES
