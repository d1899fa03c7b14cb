"""CLI: cgrab render, cgrab validate"""

import json
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from context_grabber.capture import utc_now_iso
from context_grabber.contracts import validate_response
from context_grabber.markdown import render_markdown
from context_grabber.models.context import NormalizeOptions
from context_grabber.models.envelope import BrowserContextPayload, DesktopContextPayload
from context_grabber.models.events import ExtractionMethod
from context_grabber.normalizer import normalize_context

console = Console(stderr=True)


def _read_json(path: str):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]{path} is not valid JSON: {e}[/red]")
        raise SystemExit(1)


@click.command("render")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--id", "capture_id", default=None, help="Capture id (defaults to the file name)")
@click.option("--captured-at", default=None, help="ISO-8601 capture time (defaults to now)")
@click.option(
    "--method",
    type=click.Choice(["browser_extension", "accessibility", "ocr", "metadata_only"]),
    default=None,
    help="Extraction method (defaults by payload source)",
)
@click.option("--json-output", "--json", is_flag=True, help="Print the normalized context instead of markdown")
def render_cmd(payload_file: str, capture_id: Optional[str], captured_at: Optional[str], method: Optional[str], json_output: bool):
    """Normalize a stored browser or desktop payload and print markdown."""
    raw = _read_json(payload_file)
    is_desktop = isinstance(raw, dict) and raw.get("source") == "desktop"
    model = DesktopContextPayload if is_desktop else BrowserContextPayload
    try:
        payload = model.model_validate(raw, by_alias=True, by_name=False)
    except ValidationError as e:
        console.print(f"[red]Invalid {'desktop' if is_desktop else 'browser'} payload:[/red] {e}")
        raise SystemExit(1)

    if method is None:
        if is_desktop:
            method = ExtractionMethod.OCR if payload.used_ocr else ExtractionMethod.ACCESSIBILITY
        else:
            method = ExtractionMethod.BROWSER_EXTENSION

    context = normalize_context(payload, NormalizeOptions(
        id=capture_id or Path(payload_file).stem,
        captured_at=captured_at or utc_now_iso(),
        extraction_method=method,
    ))
    if json_output:
        click.echo(json.dumps(context.to_wire(), indent=2))
        return
    click.echo(render_markdown(context, payload), nl=False)


@click.command("validate")
@click.argument("message_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json-output", "--json", is_flag=True)
def validate_cmd(message_file: str, json_output: bool):
    """Validate an extension capture response envelope."""
    result = validate_response(_read_json(message_file))

    if json_output:
        click.echo(json.dumps({
            "ok": result.ok,
            "issues": [issue.model_dump() for issue in result.issues],
        }, indent=2))
    elif result.ok:
        capture = result.value.payload.capture
        console.print(f"[green]Valid extension response[/green] ({capture.browser}: {capture.url})")
    else:
        table = Table(title=f"Validation issues ({len(result.issues)})")
        table.add_column("Code", style="bold red")
        table.add_column("Message")
        for issue in result.issues:
            table.add_row(issue.code, issue.message)
        console.print(table)

    if not result.ok:
        raise SystemExit(1)
