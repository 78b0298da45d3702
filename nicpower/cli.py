"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

import typer

from nicpower.core.errors import NicpowerError
from nicpower.core.model import InspectOptions
from nicpower.core.service import InspectorService
from nicpower.presenters import RENDERERS
from nicpower.providers.powershell import PowerShellRunner

app = typer.Typer(help="Read-only inventory of network adapter power-saving features")


class OutputFormat(str, Enum):
    table = "table"
    csv = "csv"
    json = "json"


def _build_service(powershell: str | None = None, timeout: float = 30.0) -> InspectorService:
    service = InspectorService(runner=PowerShellRunner(powershell, timeout_s=timeout))
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


class _EchoHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        typer.echo(self.format(record), err=True)


_TRACE_HANDLER = _EchoHandler()
_TRACE_HANDLER.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))


def _trace_queries() -> None:
    # Diagnostics are echoed from the report; only PowerShell command lines are logged.
    logger = logging.getLogger("nicpower.providers")
    logger.setLevel(logging.DEBUG)
    if _TRACE_HANDLER not in logger.handlers:
        logger.addHandler(_TRACE_HANDLER)


@app.command("inspect")
def inspect_adapters(
    adapters: list[str] | None = typer.Argument(None, help="Adapter names; all adapters when omitted"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print every diagnostic"),
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", "-f", help="Report format"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the report to a file"),
    workers: int = typer.Option(1, "--workers", min=1, help="Adapters inspected in parallel"),
    deadline: float | None = typer.Option(None, "--deadline", min=0.0, help="Overall deadline in seconds"),
    powershell: str | None = typer.Option(None, "--powershell", help="PowerShell executable"),
    timeout: float = typer.Option(30.0, "--timeout", min=0.1, help="Per-query timeout in seconds"),
) -> None:
    """Report power-saving feature status for network adapters."""
    if verbose:
        _trace_queries()
    try:
        service = _build_service(powershell, timeout)
        names = tuple(adapters) if adapters else tuple(a.name for a in service.list_adapters())
        report = service.run(InspectOptions(adapters=names, workers=workers, deadline_s=deadline))
    except NicpowerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if verbose:
        for diagnostic in report.diagnostics:
            typer.echo(f"Warning: {diagnostic}", err=True)
    elif report.diagnostics:
        typer.echo(
            f"{len(report.diagnostics)} warning(s) suppressed; rerun with --verbose for details",
            err=True,
        )

    if not report.rows and output_format is OutputFormat.table:
        typer.echo("No adapters inspected")
        return

    rendered = RENDERERS[output_format.value](report.rows)
    if output is None:
        typer.echo(rendered.rstrip("\n"))
        return
    try:
        output.write_text(rendered, encoding="utf-8")
    except OSError as exc:
        typer.echo(f"Error: could not write {output}: {exc}", err=True)
        raise typer.Exit(code=1) from None
    typer.echo(f"Wrote {len(report.rows)} rows to {output}")


@app.command("adapters")
def list_adapters(
    powershell: str | None = typer.Option(None, "--powershell", help="PowerShell executable"),
    timeout: float = typer.Option(30.0, "--timeout", min=0.1, help="Per-query timeout in seconds"),
) -> None:
    """List network adapters visible on this host."""
    try:
        service = _build_service(powershell, timeout)
        adapters = service.list_adapters()
        if not adapters:
            typer.echo("No network adapters found")
            return

        for adapter in adapters:
            typer.echo(f"{adapter.name}: {adapter.description}")
    except NicpowerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("features")
def list_features() -> None:
    """List the power-saving features and the display names they match."""
    try:
        service = _build_service()
        for feature in service.list_features():
            typer.echo(f"{feature.name}: {', '.join(feature.patterns)}")
    except NicpowerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
