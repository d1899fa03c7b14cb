"""CLI: cgrab capture, cgrab ping"""

import json
from typing import Optional

import click
from rich.console import Console

from context_grabber.capture import BrowserCaptureMetadata, request_browser_capture
from context_grabber.errors import ConfigError
from context_grabber.transport.process import ProcessTransport

console = Console(stderr=True)


def _load_config() -> dict:
    from context_grabber.cli.main import _load_config
    return _load_config()


def _get_transport(native_command=None, endpoint=None, timeout_ms=None):
    from context_grabber.cli.main import _get_transport
    return _get_transport(native_command, endpoint, timeout_ms)


def _split_command(value):
    from context_grabber.cli.main import _split_command
    return _split_command(value)


def _run(coro):
    from context_grabber.cli.main import _run
    return _run(coro)


@click.command("capture")
@click.option("--browser", type=click.Choice(["chrome", "safari"]), required=True)
@click.option("--url", default=None, help="Known tab URL, used if extraction fails")
@click.option("--title", default=None, help="Known tab title, used if extraction fails")
@click.option("--site-name", default=None)
@click.option("--mode", type=click.Choice(["manual_hotkey", "manual_menu"]), default="manual_menu")
@click.option("--timeout-ms", type=click.IntRange(min=1), default=None)
@click.option("--request-id", default=None)
@click.option("--command", "native_command", default=None, help="Native messaging CLI command line")
@click.option("--endpoint", default=None, help="HTTP bridge endpoint")
@click.option("--no-selection", is_flag=True, help="Do not request the selected text")
@click.option("--json-output", "--json", is_flag=True)
def capture_cmd(
    browser: str,
    url: Optional[str],
    title: Optional[str],
    site_name: Optional[str],
    mode: str,
    timeout_ms: Optional[int],
    request_id: Optional[str],
    native_command: Optional[str],
    endpoint: Optional[str],
    no_selection: bool,
    json_output: bool,
):
    """Capture the active browser tab as markdown."""
    cfg = _load_config()
    timeout = timeout_ms or cfg["timeout_ms"]
    try:
        transport = _get_transport(native_command, endpoint, timeout)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    async def _capture():
        metadata = BrowserCaptureMetadata(browser=browser, url=url, title=title, site_name=site_name)
        try:
            return await request_browser_capture(
                metadata=metadata,
                send=transport.send,
                request_id=request_id,
                mode=mode,
                timeout_ms=timeout,
                include_selection_text=not no_selection and cfg.get("include_selection_text", True),
            )
        finally:
            if hasattr(transport, "close"):
                await transport.close()

    attempt = _run(_capture())

    if json_output:
        click.echo(json.dumps({
            "requestId": attempt.request.payload.request_id,
            "extractionMethod": attempt.extraction_method,
            "errorCode": attempt.error_code,
            "warnings": attempt.warnings,
            "context": attempt.normalized_context.to_wire(),
            "markdown": attempt.markdown,
        }, indent=2))
        return

    if attempt.error_code:
        console.print(f"[yellow]Fallback ({attempt.error_code}):[/yellow] {attempt.warnings[0]}")
    else:
        console.print(f"[green]Captured via {attempt.extraction_method}[/green]")
    click.echo(attempt.markdown, nl=False)


@click.command("ping")
@click.option("--command", "native_command", default=None, help="Native messaging CLI command line")
def ping_cmd(native_command: Optional[str]):
    """Check that the native messaging CLI answers with our protocol version."""
    cfg = _load_config()
    command = _split_command(native_command) or _split_command(cfg.get("native_command"))
    if not command:
        console.print("[red]No native command configured. Pass --command.[/red]")
        raise SystemExit(1)

    with console.status("Pinging native host..."):
        status = _run(ProcessTransport(command, timeout_ms=cfg["timeout_ms"]).ping())

    color = {"ready": "green", "protocol_mismatch": "yellow"}.get(status.state, "red")
    console.print(f"[{color}]{status.label}[/{color}]")
    if status.state != "ready":
        raise SystemExit(1)
