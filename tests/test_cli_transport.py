"""Tests for the subprocess-backed controller transport."""

import asyncio
import json
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from clawdeck.client.base import RunResult, TransportMode
from clawdeck.client.cli_transport import CliTransport
from clawdeck.client.errors import (
    CommandTimeoutError,
    EmptyOutputError,
    ExecutionError,
)

PYTHON = sys.executable


class _RecordingExecutor:
    """Executor stub capturing argument vectors instead of spawning."""

    def __init__(self, result: RunResult | None = None):
        self.result = result or RunResult(stdout='{"ok": true}', stderr="", exit_code=0)
        self.calls: list[dict] = []

    async def __call__(self, binary, args, *, env=None, stdin=None, timeout_seconds=15.0) -> RunResult:
        self.calls.append(
            {
                "binary": binary,
                "args": list(args),
                "env": env,
                "stdin": stdin,
                "timeout_seconds": timeout_seconds,
            }
        )
        return self.result


class CliTransportRunTests(unittest.IsolatedAsyncioTestCase):
    """Run the real interpreter as the controller binary."""

    def setUp(self) -> None:
        self.transport = CliTransport(binary=PYTHON)

    async def test_run_returns_exact_stdout(self) -> None:
        output = await self.transport.run(["-c", "import sys; sys.stdout.write('exact output\\n')"])
        self.assertEqual(output, "exact output\n")

    async def test_run_raises_with_stderr_on_failure(self) -> None:
        script = "import sys; sys.stderr.write('boom'); sys.exit(3)"
        with self.assertRaises(ExecutionError) as ctx:
            await self.transport.run(["-c", script])
        self.assertIn("boom", str(ctx.exception))
        self.assertIn("exit 3", str(ctx.exception))
        self.assertEqual(ctx.exception.exit_code, 3)

    async def test_run_failure_falls_back_to_stdout_message(self) -> None:
        script = "import sys; print('only stdout'); sys.exit(2)"
        with self.assertRaises(ExecutionError) as ctx:
            await self.transport.run(["-c", script])
        self.assertIn("only stdout", str(ctx.exception))

    async def test_run_feeds_stdin(self) -> None:
        script = "import sys; sys.stdout.write(sys.stdin.read()[::-1])"
        output = await self.transport.run(["-c", script], stdin="abc")
        self.assertEqual(output, "cba")

    async def test_run_timeout_raises_timeout_error(self) -> None:
        with self.assertRaises(CommandTimeoutError):
            await self.transport.run(["-c", "import time; time.sleep(30)"], timeout_seconds=1.0)

    async def test_run_sets_no_color(self) -> None:
        output = await self.transport.run(["-c", "import os; print(os.environ.get('NO_COLOR'))"])
        self.assertEqual(output.strip(), "1")

    async def test_run_json_appends_json_flag(self) -> None:
        script = "import json, sys; print(json.dumps({'argv': sys.argv[1:]}))"
        payload = await self.transport.run_json(["-c", script, "health"])
        self.assertEqual(payload, {"argv": ["health", "--json"]})

    async def test_run_json_skips_log_preamble(self) -> None:
        script = "print('\\x1b[32mloading plugins\\x1b[0m'); print('[1, 2, 3]')"
        payload = await self.transport.run_json(["-c", script])
        self.assertEqual(payload, [1, 2, 3])

    async def test_run_json_empty_output_raises_distinct_error(self) -> None:
        with self.assertRaises(EmptyOutputError) as ctx:
            await self.transport.run_json(["-c", "pass"])
        self.assertIn("empty output", str(ctx.exception))

    async def test_run_json_uses_stdout_of_failed_command(self) -> None:
        script = "import sys; print('{\"ok\": false}'); sys.exit(1)"
        payload = await self.transport.run_json(["-c", script])
        self.assertEqual(payload, {"ok": False})

    async def test_run_capture_never_raises(self) -> None:
        result = await self.transport.run_capture(
            ["-c", "import sys; print('out'); sys.stderr.write('err'); sys.exit(5)"]
        )
        self.assertEqual(result.stdout.strip(), "out")
        self.assertEqual(result.stderr, "err")
        self.assertEqual(result.exit_code, 5)

    @unittest.skipIf(sys.platform == "win32", "POSIX signals only")
    async def test_run_capture_reports_signal_as_none(self) -> None:
        result = await self.transport.run_capture(
            ["-c", "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"]
        )
        self.assertIsNone(result.exit_code)

    async def test_run_capture_missing_binary_does_not_raise(self) -> None:
        transport = CliTransport(binary="/nonexistent/openclaw")
        result = await transport.run_capture(["status"])
        self.assertEqual(result.exit_code, 127)
        self.assertIn("/nonexistent/openclaw", result.stderr)

    def test_transport_mode(self) -> None:
        self.assertIs(self.transport.transport_mode, TransportMode.CLI)


class CliTransportArgumentTests(unittest.IsolatedAsyncioTestCase):
    """Validate argument vectors built for RPC calls."""

    async def test_gateway_rpc_builds_argument_vector(self) -> None:
        executor = _RecordingExecutor()
        transport = CliTransport(binary="/usr/bin/openclaw", executor=executor)
        result = await transport.gateway_rpc("cron.list", {"all": True})
        self.assertEqual(result, {"ok": True})
        call = executor.calls[0]
        self.assertEqual(call["binary"], "/usr/bin/openclaw")
        self.assertEqual(
            call["args"],
            [
                "gateway",
                "call",
                "cron.list",
                "--json",
                "--params",
                json.dumps({"all": True}),
                "--timeout",
                "15000",
            ],
        )
        self.assertEqual(call["timeout_seconds"], 20.0)
        self.assertEqual(call["env"]["NO_COLOR"], "1")

    async def test_gateway_rpc_passes_long_timeout_in_milliseconds(self) -> None:
        executor = _RecordingExecutor()
        transport = CliTransport(binary="openclaw", executor=executor)
        await transport.gateway_rpc("status", timeout_seconds=30.0)
        call = executor.calls[0]
        self.assertEqual(call["args"], ["gateway", "call", "status", "--json", "--timeout", "30000"])
        self.assertEqual(call["timeout_seconds"], 35.0)

    async def test_gateway_rpc_short_timeout_omits_flag(self) -> None:
        executor = _RecordingExecutor()
        transport = CliTransport(binary="openclaw", executor=executor)
        await transport.gateway_rpc("status", timeout_seconds=8.0)
        call = executor.calls[0]
        self.assertEqual(call["args"], ["gateway", "call", "status", "--json"])
        self.assertEqual(call["timeout_seconds"], 13.0)

    async def test_gateway_rpc_malformed_output_raises(self) -> None:
        executor = _RecordingExecutor(RunResult(stdout="", stderr="", exit_code=0))
        transport = CliTransport(binary="openclaw", executor=executor)
        with self.assertRaises(EmptyOutputError):
            await transport.gateway_rpc("status")


class CliTransportFileTests(unittest.IsolatedAsyncioTestCase):
    """Validate local filesystem operations."""

    async def test_write_then_read_round_trip(self) -> None:
        transport = CliTransport(binary=PYTHON)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = str(Path(tmpdir) / "MEMORY.md")
            content = "# Notes\n\nunicode: é中\n"
            await transport.write_file(path, content)
            self.assertEqual(await transport.read_file(path), content)

    async def test_readdir_lists_names(self) -> None:
        transport = CliTransport(binary=PYTHON)
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "b.md").write_text("b", encoding="utf-8")
            (Path(tmpdir) / "a.md").write_text("a", encoding="utf-8")
            (Path(tmpdir) / "skills").mkdir()
            self.assertEqual(await transport.readdir(tmpdir), ["a.md", "b.md", "skills"])

    async def test_file_operations_run_in_worker_thread(self) -> None:
        transport = CliTransport(binary=PYTHON)
        real_to_thread = asyncio.to_thread
        with tempfile.TemporaryDirectory() as tmpdir, mock.patch(
            "clawdeck.client.cli_transport.asyncio.to_thread", side_effect=real_to_thread
        ) as to_thread:
            path = str(Path(tmpdir) / "notes.md")
            await transport.write_file(path, "x")
            await transport.read_file(path)
            await transport.readdir(tmpdir)
        self.assertEqual(to_thread.call_count, 3)


if __name__ == "__main__":
    unittest.main()
