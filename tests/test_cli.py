"""Tests for CLI interface"""

from __future__ import annotations

import io
import json
import logging
from unittest.mock import MagicMock, patch

import click
import pytest
import requests
from click.testing import CliRunner
from requests.adapters import BaseAdapter

from solidtime.cli import _die, cli, main, setup_logging
from solidtime.client import SolidtimeClient
from solidtime.domain.exceptions import SolidtimeApiException


class CannedTransport(BaseAdapter):
    """Returns one fixed JSON response for every request"""

    def __init__(self, status_code, payload):
        super().__init__()
        self.status_code = status_code
        self.payload = payload
        self.requests = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        r = requests.Response()
        r.status_code = self.status_code
        r.reason = "OK" if self.status_code == 200 else "Unprocessable Content"
        r.headers["Content-Type"] = "application/json"
        r.raw = io.BytesIO(json.dumps(self.payload).encode("utf-8"))
        r.url = request.url
        r.request = request
        return r

    def close(self):
        pass


@pytest.fixture
def env(monkeypatch, tmp_path):
    """A token in the environment and no config file in reach"""
    monkeypatch.setenv("SOLIDTIME_API_TOKEN", "cli-token")
    for name in ("SOLIDTIME_BASE_URL", "SOLIDTIME_TIMEOUT_SECONDS", "SOLIDTIME_VERBOSE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _client_factory(transport):
    return lambda options: SolidtimeClient(options, transport=transport)


class TestSetupLogging:
    """Tests for setup_logging function"""

    def test_setup_logging_info_level(self):
        """Test that logging is set to INFO level by default"""
        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        """Test that logging is set to DEBUG level when verbose"""
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.INFO


class TestDie:
    """Tests for _die function"""

    def test_die_without_exception(self):
        """Test _die without exception"""
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=False)

    def test_die_with_exception_verbose(self):
        """Test _die with exception in verbose mode"""
        exc = ValueError("Test exception")
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=True, exc=exc)


class TestMeCommand:
    """Tests for me command"""

    def test_me_command_success(self, env):
        """Test the current user is printed"""
        transport = CannedTransport(
            200,
            {
                "data": {
                    "id": "u-1",
                    "name": "Grace Hopper",
                    "email": "grace@example.com",
                    "timezone": "America/New_York",
                    "week_start": "sunday",
                }
            },
        )

        with patch("solidtime.cli.SolidtimeClient", side_effect=_client_factory(transport)):
            result = CliRunner().invoke(cli, ["me"], catch_exceptions=False)

        assert result.exit_code == 0
        assert "Grace Hopper <grace@example.com>" in result.output
        assert "ID: u-1" in result.output
        assert "Timezone: America/New_York (week starts sunday)" in result.output
        assert transport.requests[0].headers["Authorization"] == "Bearer cli-token"
        assert transport.requests[0].url == "https://app.solidtime.io/api/v1/me"

    def test_me_command_base_url_override(self, env):
        """Test --base-url is passed through to the client"""
        transport = CannedTransport(
            200,
            {"data": {"id": "u-1", "name": "G", "email": "g@x", "timezone": "UTC", "week_start": "monday"}},
        )

        with patch("solidtime.cli.SolidtimeClient", side_effect=_client_factory(transport)):
            result = CliRunner().invoke(
                cli, ["--base-url", "http://localhost:8000/api", "me"], catch_exceptions=False
            )

        assert result.exit_code == 0
        assert transport.requests[0].url == "http://localhost:8000/api/v1/me"

    @patch("solidtime.cli.SolidtimeClient")
    def test_me_command_api_error(self, mock_client_class, env):
        """Test API errors are reported without a traceback"""
        mock_client = MagicMock()
        mock_client.__enter__.return_value = mock_client
        mock_client.me.get.side_effect = SolidtimeApiException("401 Unauthorized", status_code=401)
        mock_client_class.return_value = mock_client

        result = CliRunner().invoke(cli, ["me"])

        assert result.exit_code == 1
        assert "API error: 401 Unauthorized" in result.output

    @patch("solidtime.cli.SolidtimeClient")
    def test_me_command_unexpected_error(self, mock_client_class, env):
        """Test other failures are reported as fatal"""
        mock_client = MagicMock()
        mock_client.__enter__.return_value = mock_client
        mock_client.me.get.side_effect = requests.exceptions.ConnectionError("refused")
        mock_client_class.return_value = mock_client

        result = CliRunner().invoke(cli, ["me"])

        assert result.exit_code == 1
        assert "Fatal error: refused" in result.output

    def test_me_command_without_token(self, monkeypatch, tmp_path):
        """Test a missing token is a configuration error"""
        monkeypatch.delenv("SOLIDTIME_API_TOKEN", raising=False)
        monkeypatch.chdir(tmp_path)

        result = CliRunner().invoke(cli, ["me"])

        assert result.exit_code == 1
        assert "API token is required" in result.output


class TestRequestCommand:
    """Tests for request command"""

    def test_request_command_posts_json(self, env):
        """Test --data is sent as the JSON body"""
        transport = CannedTransport(200, {"data": {"id": "t-1", "name": "billable"}})

        with patch("solidtime.cli.SolidtimeClient", side_effect=_client_factory(transport)):
            result = CliRunner().invoke(
                cli,
                ["request", "post", "/v1/organizations/o1/tags", "--data", '{"name": "billable"}'],
                catch_exceptions=False,
            )

        assert result.exit_code == 0
        assert "HTTP 200 OK" in result.output
        assert '"name": "billable"' in result.output
        sent = transport.requests[0]
        assert sent.method == "POST"
        assert json.loads(sent.body) == {"name": "billable"}

    def test_request_command_error_status(self, env):
        """Test a non-2xx status exits with code 1"""
        transport = CannedTransport(422, {"message": "The name field is required."})

        with patch("solidtime.cli.SolidtimeClient", side_effect=_client_factory(transport)):
            result = CliRunner().invoke(cli, ["request", "POST", "/v1/organizations/o1/tags", "--data", "{}"])

        assert result.exit_code == 1
        assert "HTTP 422" in result.output
        assert "The name field is required." in result.output

    def test_request_command_invalid_data(self, env):
        """Test malformed --data is rejected before any request"""
        result = CliRunner().invoke(cli, ["request", "POST", "/v1/x", "--data", "{nope"])

        assert result.exit_code == 1
        assert "--data is not valid JSON" in result.output


class TestMain:
    """Tests for main function"""

    @patch("solidtime.cli.cli")
    def test_main_calls_cli(self, mock_cli):
        """Test that main function calls cli"""
        main()
        mock_cli.assert_called_once_with(obj={})
