"""
cosmwasm-guard CLI

Exit codes: 0 clean, 1 findings reported, 2 analysis error.
"""

from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cosmwasm_guard import __version__
from cosmwasm_guard.cache import CacheManager
from cosmwasm_guard.config import CONFIG_FILE_NAME, ProjectConfig, get_settings
from cosmwasm_guard.detectors import all_detectors
from cosmwasm_guard.errors import GuardError
from cosmwasm_guard.finding import Severity
from cosmwasm_guard.observability import setup_logging
from cosmwasm_guard.output import print_report, render_json, render_sarif
from cosmwasm_guard.pipeline import analyze_path, select_detectors

EXIT_FINDINGS = 1
EXIT_ERROR = 2

app = typer.Typer(
    name="cosmwasm-guard",
    help="Static analysis for CosmWasm smart contracts",
    add_completion=False,
    no_args_is_help=True,
)

err_console = Console(stderr=True)


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    SARIF = "sarif"


class SeverityFilter(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


def _split_names(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"cosmwasm-guard {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Static analysis for CosmWasm smart contracts"""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)


@app.command()
def analyze(
    path: Path = typer.Argument(..., help="Path to .rs file or directory containing a CosmWasm contract"),
    format: OutputFormat | None = typer.Option(None, "--format", "-f", help="Output format (default from config)"),
    severity: SeverityFilter | None = typer.Option(
        None, "--severity", "-s", help="Minimum severity to report (default from config)"
    ),
    detectors: str | None = typer.Option(None, "--detectors", "-d", help="Run only these detectors (comma-separated)"),
    exclude: str | None = typer.Option(None, "--exclude", "-e", help="Exclude these detectors (comma-separated)"),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help=f"Path to config file (default: {CONFIG_FILE_NAME})"
    ),
    audit: bool = typer.Option(False, "--audit", help="Audit mode: report every severity down to informational"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress banner and summary"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Incremental cache directory"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the incremental cache"),
):
    """
    Analyze CosmWasm contract(s) for vulnerabilities.
    """
    settings = get_settings()

    try:
        config = ProjectConfig.load(config_path)

        if audit:
            min_severity = Severity.INFORMATIONAL
        elif severity is not None:
            min_severity = Severity.parse(severity.value)
        else:
            min_severity = config.severity_threshold

        cache = None
        if settings.cache_enabled and not no_cache:
            cache = CacheManager.open(cache_dir or settings.cache_dir)

        if not quiet:
            err_console.print(f"[dim]Analyzing {escape(str(path))}...[/dim]")

        report = analyze_path(
            path,
            config=config,
            detectors=select_detectors(config, _split_names(detectors), _split_names(exclude)),
            min_severity=min_severity,
            cache=cache,
            parallel_threshold=settings.parallel_threshold,
        )
    except GuardError as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=EXIT_ERROR) from e

    output_format = format.value if format is not None else config.global_.output_format
    match output_format:
        case "json":
            typer.echo(render_json(report))
        case "sarif":
            typer.echo(render_sarif(report))
        case _:
            print_report(report, Console(no_color=no_color, highlight=False), quiet=quiet)

    if report.has_findings:
        raise typer.Exit(code=EXIT_FINDINGS)


@app.command("list")
def list_detectors():
    """
    List all available detectors.
    """
    detectors = all_detectors()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Confidence")
    table.add_column("Description")

    for detector in detectors:
        table.add_row(detector.name, detector.severity.value, detector.confidence.value, detector.description)

    console = Console(highlight=False)
    console.print(table)
    console.print(f"\nTotal: {len(detectors)} detectors")


@app.command()
def init():
    """
    Generate a default .cosmwasm-guard.toml config file.
    """
    path = Path(CONFIG_FILE_NAME)
    if path.exists():
        err_console.print(f"Config file already exists: {path}")
        return

    path.write_text(ProjectConfig.default_toml(), encoding="utf-8")
    typer.echo(f"Created {path}")


@app.command("clear-cache")
def clear_cache(
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Incremental cache directory"),
):
    """
    Delete all cached analysis artifacts.
    """
    target = cache_dir or get_settings().cache_dir
    if not target.exists():
        typer.echo(f"No cache at {target}")
        return

    if not CacheManager.open(target).clear():
        err_console.print(f"[bold red]Error:[/bold red] failed to clear cache at {escape(str(target))}")
        raise typer.Exit(code=EXIT_ERROR)
    typer.echo(f"Cleared cache at {target}")


if __name__ == "__main__":
    app()
