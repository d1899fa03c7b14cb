"""
Native messaging process transport.

Spawns the extension's native-messaging CLI, writes the request envelope as
JSON to stdin and reads the response from the last JSON line on stdout.
`<command> --ping` answers `{"ok": true, "protocolVersion": "1"}`.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Literal, Optional, Sequence

from pydantic import BaseModel

from context_grabber.errors import TransportError
from context_grabber.models.envelope import HostRequestMessage
from context_grabber.models.events import DEFAULT_TIMEOUT_MS, PROTOCOL_VERSION, ErrorCode

logger = logging.getLogger(__name__)


class PingStatus(BaseModel):
    state: Literal["ready", "protocol_mismatch", "unreachable"]
    label: str


class ProcessOutput(BaseModel):
    status: int
    stdout: str
    stderr: str


def parse_last_json_line(stdout: str) -> Any:
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    if not lines:
        raise TransportError("Native messaging CLI returned no JSON output.")
    try:
        return json.loads(lines[-1])
    except json.JSONDecodeError as e:
        raise TransportError(f"Native messaging CLI returned invalid JSON: {e}")


def is_ping_response(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and isinstance(value.get("ok"), bool)
        and isinstance(value.get("protocolVersion"), str)
    )


class ProcessTransport:
    def __init__(
        self,
        command: Sequence[str],
        timeout_ms: float = DEFAULT_TIMEOUT_MS,
        cwd: Optional[str] = None,
        env: Optional[dict[str, str]] = None,
    ):
        if not command:
            raise ValueError("command must name the native messaging executable")
        self._command = list(command)
        self._timeout_ms = timeout_ms
        self._cwd = cwd
        self._env = env

    async def _run(self, args: list[str], stdin_text: Optional[str], timeout_ms: float) -> ProcessOutput:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._command, *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
                env=self._env,
            )
        except OSError as e:
            logger.error(f"Failed to spawn {self._command[0]}: {e}")
            raise TransportError(f"Failed to start native messaging CLI: {e}")

        stdin_bytes = stdin_text.encode("utf-8") if stdin_text is not None else None
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(stdin_bytes), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise TransportError("Native messaging CLI timed out.", code=ErrorCode.TIMEOUT)
        except asyncio.CancelledError:
            proc.kill()
            raise

        return ProcessOutput(
            status=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def send(self, request: HostRequestMessage) -> Any:
        """Send one capture request. Non-zero exits still carry an error envelope on stdout."""
        output = await self._run([], json.dumps(request.to_wire()), request.payload.timeout_ms)
        if not output.stdout.strip():
            stderr = output.stderr.strip()
            message = "Native messaging bridge produced no JSON output"
            raise TransportError(f"{message}: {stderr}" if stderr else f"{message}.")
        return parse_last_json_line(output.stdout)

    async def ping(self) -> PingStatus:
        unreachable = PingStatus(state="unreachable", label="unreachable")
        try:
            output = await self._run(["--ping"], None, self._timeout_ms)
            if output.status != 0:
                return unreachable
            parsed = parse_last_json_line(output.stdout)
        except TransportError as e:
            logger.warning(f"Ping failed: {e}")
            return unreachable

        if not is_ping_response(parsed) or parsed["ok"] is not True:
            return unreachable
        if parsed["protocolVersion"] == PROTOCOL_VERSION:
            return PingStatus(state="ready", label=f"ready/protocol {parsed['protocolVersion']}")
        return PingStatus(state="protocol_mismatch", label=f"protocol mismatch ({parsed['protocolVersion']})")

    async def __call__(self, request: HostRequestMessage) -> Any:
        return await self.send(request)
