"""
Context Grabber CLI: `cgrab` command.

Commands:
  cgrab capture --browser B      Capture the active tab through a native bridge
  cgrab render <payload.json>    Normalize and render a stored capture payload
  cgrab validate <message.json>  Validate an extension response envelope
  cgrab ping                     Check the native messaging CLI
  cgrab native-host              Answer one host capture request (extension side)
  cgrab config <cmd>             Show or edit ~/.context-grabber/config.json
"""

import asyncio
import json
import logging
import os
import shlex
from pathlib import Path
from typing import Any, Optional, Union

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install context-grabber[cli]")

from context_grabber import __version__
from context_grabber.errors import ConfigError
from context_grabber.models.events import DEFAULT_TIMEOUT_MS
from context_grabber.transport.http import HttpTransport
from context_grabber.transport.process import ProcessTransport

console = Console(stderr=True)
DEFAULT_CONFIG_FILE = Path.home() / ".context-grabber" / "config.json"

DEFAULT_CONFIG: dict[str, Any] = {
    "timeout_ms": DEFAULT_TIMEOUT_MS,
    "include_selection_text": True,
}


def _config_file() -> Path:
    override = os.environ.get("CONTEXT_GRABBER_CONFIG")
    return Path(override) if override else DEFAULT_CONFIG_FILE


def _load_config() -> dict:
    try:
        return {**DEFAULT_CONFIG, **json.loads(_config_file().read_text())}
    except (FileNotFoundError, json.JSONDecodeError):
        return dict(DEFAULT_CONFIG)


def _save_config(cfg: dict) -> None:
    path = _config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg, indent=2))


def _split_command(value: Union[str, list[str], None]) -> Optional[list[str]]:
    if not value:
        return None
    return shlex.split(value) if isinstance(value, str) else list(value)


def _get_transport(
    native_command: Optional[str] = None,
    endpoint: Optional[str] = None,
    timeout_ms: Optional[float] = None,
) -> Union[ProcessTransport, HttpTransport]:
    """Command-line options win over config; endpoint wins over a native command."""
    cfg = _load_config()
    endpoint = endpoint or (None if native_command else cfg.get("endpoint"))
    if endpoint:
        return HttpTransport(endpoint)

    command = _split_command(native_command) or _split_command(cfg.get("native_command"))
    if not command:
        raise ConfigError("No transport configured. Pass --command/--endpoint or run `cgrab config set native_command ...`.")
    return ProcessTransport(command, timeout_ms=timeout_ms or cfg["timeout_ms"])


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging on stderr")
def main(verbose: bool):
    """Context Grabber CLI: capture the active tab as LLM-ready markdown."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands from separate modules
from context_grabber.cli.capture import capture_cmd, ping_cmd
from context_grabber.cli.config import config
from context_grabber.cli.payloads import render_cmd, validate_cmd
from context_grabber.cli.native_host import native_host_cmd

main.add_command(capture_cmd)
main.add_command(ping_cmd)
main.add_command(render_cmd)
main.add_command(validate_cmd)
main.add_command(native_host_cmd)
main.add_command(config)


if __name__ == "__main__":
    main()
