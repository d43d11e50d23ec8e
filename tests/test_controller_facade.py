"""Tests for the controller facade delegating to the active client."""

import unittest
from unittest import mock

from clawdeck import controller
from clawdeck.client.base import RunResult, TransportMode


class ControllerFacadeTests(unittest.IsolatedAsyncioTestCase):
    """Ensure facade calls forward arguments unchanged."""

    def setUp(self) -> None:
        self.client = mock.Mock()
        self.client.run = mock.AsyncMock(return_value="text")
        self.client.run_json = mock.AsyncMock(return_value={"ok": True})
        self.client.run_capture = mock.AsyncMock(return_value=RunResult("out", "", 0))
        self.client.gateway_rpc = mock.AsyncMock(return_value={"jobs": []})
        patcher = mock.patch("clawdeck.controller.get_client", return_value=self.client)
        patcher.start()
        self.addCleanup(patcher.stop)

    async def test_run_cli(self) -> None:
        self.assertEqual(await controller.run_cli(["status"], 5.0, stdin="x"), "text")
        self.client.run.assert_awaited_once_with(["status"], 5.0, "x")

    async def test_run_cli_json_uses_default_timeout(self) -> None:
        self.assertEqual(await controller.run_cli_json(["health"]), {"ok": True})
        self.client.run_json.assert_awaited_once_with(["health"], 15.0)

    async def test_run_cli_capture(self) -> None:
        result = await controller.run_cli_capture(["doctor"], 60.0)
        self.assertEqual(result.exit_code, 0)
        self.client.run_capture.assert_awaited_once_with(["doctor"], 60.0)

    async def test_gateway_call(self) -> None:
        self.assertEqual(await controller.gateway_call("cron.list", {"all": True}), {"jobs": []})
        self.client.gateway_rpc.assert_awaited_once_with("cron.list", {"all": True}, 15.0)

    async def test_transport_status_without_probe_state(self) -> None:
        self.client.transport_mode = TransportMode.HTTP
        self.assertEqual(await controller.transport_status(probe=True), {"mode": "http", "probe": None})

    async def test_transport_status_in_auto_mode_probes_on_request(self) -> None:
        self.client.transport_mode = TransportMode.AUTO
        self.client.probe = mock.AsyncMock()
        self.client.snapshot = mock.Mock(return_value={"state": "recovering"})

        status = await controller.transport_status()
        self.assertEqual(status, {"mode": "auto", "probe": {"state": "recovering"}})
        self.client.probe.assert_not_awaited()

        await controller.transport_status(probe=True)
        self.client.probe.assert_awaited_once_with()


if __name__ == "__main__":
    unittest.main()
