"""CLI: cgrab config show|set|reset"""

import json

import click
from rich.console import Console
from rich.table import Table

console = Console()

BOOL_VALUES = {"true": True, "1": True, "yes": True, "false": False, "0": False, "no": False}


def _load_config() -> dict:
    from context_grabber.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from context_grabber.cli.main import _save_config
    _save_config(cfg)


def _config_file():
    from context_grabber.cli.main import _config_file
    return _config_file()


def _parse_value(key: str, value: str):
    if key == "timeout_ms":
        try:
            parsed = int(value)
        except ValueError:
            raise click.BadParameter("timeout_ms must be an integer", param_hint="VALUE")
        if parsed <= 0:
            raise click.BadParameter("timeout_ms must be positive", param_hint="VALUE")
        return parsed
    if key == "include_selection_text":
        if value.lower() not in BOOL_VALUES:
            raise click.BadParameter("expected true or false", param_hint="VALUE")
        return BOOL_VALUES[value.lower()]
    return value


@click.group()
def config():
    """Show or edit the CLI configuration."""


@config.command("show")
@click.option("--json-output", "--json", is_flag=True)
def config_show(json_output):
    """Print the effective configuration."""
    cfg = _load_config()
    if json_output:
        click.echo(json.dumps(cfg, indent=2))
        return
    table = Table(title=str(_config_file()))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in sorted(cfg.items()):
        table.add_row(key, json.dumps(value))
    console.print(table)


@config.command("set")
@click.argument("key", type=click.Choice(["timeout_ms", "native_command", "endpoint", "include_selection_text"]))
@click.argument("value")
def config_set(key, value):
    """Set one configuration key."""
    cfg = _load_config()
    cfg[key] = _parse_value(key, value)
    _save_config(cfg)
    console.print(f"[green]{key} = {json.dumps(cfg[key])}[/green]")


@config.command("reset")
def config_reset():
    """Delete the configuration file."""
    path = _config_file()
    if path.exists():
        path.unlink()
    console.print("[green]Configuration reset.[/green]")
