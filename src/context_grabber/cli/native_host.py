"""CLI: cgrab native-host

Extension side of the native messaging bridge. Reads one host.capture.request
envelope from stdin and writes the response envelope as a single JSON line.
The page snapshot comes from --snapshot or CONTEXT_GRABBER_SNAPSHOT_PATH.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from context_grabber.models.envelope import HostRequestMessage
from context_grabber.models.events import PROTOCOL_VERSION
from context_grabber.responder import ExtractionInput, handle_host_capture_request
from context_grabber.snapshot import to_extraction_input

logger = logging.getLogger(__name__)

BROWSER_LABELS = {"chrome": "Chrome", "safari": "Safari"}


def _run(coro):
    from context_grabber.cli.main import _run
    return _run(coro)


def _read_request(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Host request is not valid JSON: {e}")
        return None


@click.command("native-host")
@click.option("--browser", type=click.Choice(["chrome", "safari"]), default="chrome")
@click.option("--snapshot", "snapshot_path", envvar="CONTEXT_GRABBER_SNAPSHOT_PATH", default=None,
              type=click.Path(dir_okay=False), help="JSON page snapshot to answer with")
@click.option("--ping", is_flag=True, help="Report readiness and protocol version")
def native_host_cmd(browser: str, snapshot_path: Optional[str], ping: bool):
    """Answer one host capture request read from stdin."""
    if ping:
        click.echo(json.dumps({"ok": True, "protocolVersion": PROTOCOL_VERSION}))
        return

    label = BROWSER_LABELS[browser]

    async def load_capture(request: HostRequestMessage) -> ExtractionInput:
        if not snapshot_path:
            raise FileNotFoundError("no page snapshot configured")
        raw_snapshot = json.loads(Path(snapshot_path).read_text(encoding="utf-8"))
        return to_extraction_input(raw_snapshot, request.payload.include_selection_text, label)

    request = _read_request(click.get_text_stream("stdin").read())
    response = _run(handle_host_capture_request(request, load_capture, browser))
    click.echo(json.dumps(response.to_wire(), ensure_ascii=False))
