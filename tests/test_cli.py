"""Tests for the clawdeck command line."""

import json
import unittest
from unittest import mock

from typer.testing import CliRunner

from clawdeck.cli import app
from clawdeck.client.base import TransportMode
from clawdeck.client.errors import GatewayRemoteError


class ClawdeckCliTests(unittest.TestCase):
    """Validate command parsing and error reporting."""

    def setUp(self) -> None:
        self.runner = CliRunner()

    def test_call_prints_json_result(self) -> None:
        with mock.patch("clawdeck.cli.gateway_call", new=mock.AsyncMock(return_value={"jobs": []})) as call:
            result = self.runner.invoke(app, ["call", "cron.list", "--params", '{"all": true}'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.stdout), {"jobs": []})
        call.assert_awaited_once_with("cron.list", {"all": True}, 15.0)

    def test_call_rejects_non_object_params(self) -> None:
        with mock.patch("clawdeck.cli.gateway_call", new=mock.AsyncMock()) as call:
            result = self.runner.invoke(app, ["call", "cron.list", "--params", "[1, 2]"])
        self.assertEqual(result.exit_code, 1)
        call.assert_not_awaited()

    def test_call_reports_client_error(self) -> None:
        error = GatewayRemoteError("Gateway returned 500: boom", status_code=500)
        with mock.patch("clawdeck.cli.gateway_call", new=mock.AsyncMock(side_effect=error)):
            result = self.runner.invoke(app, ["call", "status"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error: Gateway returned 500: boom", result.output)

    def test_exec_passes_controller_args_through(self) -> None:
        with mock.patch("clawdeck.cli.run_cli", new=mock.AsyncMock(return_value="job-a\n")) as run:
            result = self.runner.invoke(app, ["exec", "cron", "list", "--all"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.stdout, "job-a\n")
        run.assert_awaited_once_with(["cron", "list", "--all"], 15.0)

    def test_exec_as_json(self) -> None:
        with mock.patch("clawdeck.cli.run_cli_json", new=mock.AsyncMock(return_value={"ok": True})) as run_json:
            result = self.runner.invoke(app, ["exec", "--as-json", "--timeout", "30", "health"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.stdout), {"ok": True})
        run_json.assert_awaited_once_with(["health"], 30.0)

    def test_transport_prints_mode(self) -> None:
        fake = mock.Mock(transport_mode=TransportMode.HTTP)
        with mock.patch("clawdeck.controller.get_client", return_value=fake):
            result = self.runner.invoke(app, ["transport"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.stdout), {"mode": "http", "probe": None})


if __name__ == "__main__":
    unittest.main()
