#!/usr/bin/env python3
"""
protolock-gate command line interface

Runs the protolock backwards compatibility gate for a project, or one of its
individual steps.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from .classifier import detect_classifier
from .config import GateConfig, load_config
from .errors import CompatibilityFailure, GateError
from .gate import BackwardsCompatibilityGate, error_report
from .utils.json_logger import configure_console_logging, configure_json_logging

app = typer.Typer(
    name="protolock-gate",
    help="Backwards compatibility gate for protocol buffer schemas",
    rich_markup_mode="rich",
)
console = Console()

EXIT_INCOMPATIBLE = 1
EXIT_ERROR = 2


class _Settings:
    def __init__(self, config_path: Optional[Path], overrides: dict) -> None:
        self.config_path = config_path
        self.overrides = overrides

    def load(self, **extra) -> GateConfig:
        overrides = dict(self.overrides)
        overrides.update(extra)
        config = load_config(self.config_path, **overrides)
        if not config.classifier:
            detected = detect_classifier()
            if detected:
                logging.getLogger(__name__).debug(f"Detected classifier {detected}")
                config = config.with_overrides(classifier=detected)
        return config


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to protolock-gate.yaml"
    ),
    classifier: Optional[str] = typer.Option(
        None, "--classifier", help="Platform classifier, e.g. linux-x86_64"
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", help="Build output directory"
    ),
    plugin_dir: Optional[Path] = typer.Option(
        None, "--plugin-dir", help="Directory for resolved plugin executables"
    ),
    plugins: Optional[List[str]] = typer.Option(
        None, "--plugin", help="Plugin spec (group:artifact:version[:type[:classifier]] or name)"
    ),
    offline: Optional[bool] = typer.Option(
        None, "--offline/--online", help="Resolve plugins from the local repository only"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_json: bool = typer.Option(False, "--log-json", help="Emit logs as JSON lines"),
) -> None:
    """Backwards compatibility gate for protocol buffer schemas."""
    level = logging.DEBUG if verbose else logging.INFO
    if log_json:
        configure_json_logging(level)
    else:
        configure_console_logging(level)

    ctx.obj = _Settings(
        config_path,
        {
            "classifier": classifier,
            "output_dir": output_dir,
            "plugin_dir": plugin_dir,
            "plugins": plugins or None,
            "offline": offline,
        },
    )


@app.command("check")
def check_cmd(
    ctx: typer.Context,
    proto_root: Optional[Path] = typer.Option(
        None, "--proto-root", help="Directory containing .proto sources"
    ),
    lock_dir: Optional[Path] = typer.Option(
        None, "--lock-dir", help="Directory holding proto.lock (defaults to proto root)"
    ),
    options: Optional[str] = typer.Option(
        None, "--options", help="Extra options passed verbatim to protolock"
    ),
    allow_breaking_changes: Optional[bool] = typer.Option(
        None,
        "--allow-breaking-changes/--no-allow-breaking-changes",
        help="Report incompatible changes without failing",
    ),
    skip: Optional[bool] = typer.Option(None, "--skip/--no-skip", help="Skip the check"),
    report: Optional[Path] = typer.Option(
        None, "--report", help="Write a JSON report to this path"
    ),
) -> None:
    """Run the backwards compatibility check."""
    config = None
    try:
        config = ctx.obj.load(
            proto_root=proto_root,
            lock_dir=lock_dir,
            options=options,
            allow_breaking_changes=allow_breaking_changes,
            skip=skip,
        )
        gate = BackwardsCompatibilityGate(config)
        outcome = gate.execute()
    except CompatibilityFailure as e:
        console.print(f"[red]FAIL: {e.message}[/red]")
        for line in e.diagnostics:
            console.print(f"  {line}", markup=False, soft_wrap=True)
        if report:
            _write_report(report, gate.failure_report(e).model_dump_json(indent=2))
        raise typer.Exit(code=EXIT_INCOMPATIBLE)
    except GateError as e:
        console.print(f"[red]ERROR: {escape(str(e))}[/red]")
        if report:
            _write_report(report, error_report(e, config).model_dump_json(indent=2))
        raise typer.Exit(code=EXIT_ERROR)

    style = "yellow" if outcome.status.value in ("allowed", "skipped") else "green"
    console.print(f"[{style}]OK: {escape(outcome.message)}[/{style}]")
    if report:
        _write_report(report, gate.report(outcome).model_dump_json(indent=2))


@app.command("provision")
def provision_cmd(ctx: typer.Context) -> None:
    """Provision the protolock binary and print its path."""
    try:
        handle = BackwardsCompatibilityGate(ctx.obj.load()).provision()
    except GateError as e:
        console.print(f"[red]ERROR: {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_ERROR)
    console.print(str(handle.path), markup=False, soft_wrap=True)


@app.command("plugins")
def plugins_cmd(ctx: typer.Context) -> None:
    """Resolve the configured plugins and print their names and PATH."""
    try:
        resolved = BackwardsCompatibilityGate(ctx.obj.load()).resolve_plugins()
    except GateError as e:
        console.print(f"[red]ERROR: {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_ERROR)

    if not resolved.names:
        console.print("[yellow]No plugins configured[/yellow]")
        return
    for name in resolved.names:
        console.print(name, markup=False, soft_wrap=True)
    console.print(f"PATH={resolved.path}", markup=False, soft_wrap=True)


@app.command("detect")
def detect_cmd() -> None:
    """Print the platform classifier of this machine."""
    detected = detect_classifier()
    if not detected:
        console.print("[red]Unable to detect the platform classifier[/red]")
        raise typer.Exit(code=EXIT_ERROR)
    console.print(detected, markup=False, soft_wrap=True)


def _write_report(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


if __name__ == "__main__":
    app()
