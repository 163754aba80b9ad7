"""
Human-readable report (rich)
"""

from rich.console import Console
from rich.markup import escape

from cosmwasm_guard.finding import Severity
from cosmwasm_guard.report import AnalysisReport

SEVERITY_STYLES = {
    Severity.HIGH: ("HIGH", "bold red"),
    Severity.MEDIUM: ("MEDIUM", "bold yellow"),
    Severity.LOW: ("LOW", "blue"),
    Severity.INFORMATIONAL: ("INFO", "dim"),
}


def print_report(report: AnalysisReport, console: Console, quiet: bool = False) -> None:
    """Print findings; `quiet` drops the banner and the summary"""
    if not quiet:
        console.print()
        console.print("  [bold]cosmwasm-guard - CosmWasm Static Analysis[/bold]")
        console.print(f"  Files analyzed: {len(report.files_analyzed)}")
        console.print()

    if not report.findings:
        if not quiet:
            console.print("  [bold green]✓[/bold green] No issues found.")
            console.print()
        return

    for finding in report.findings:
        label, style = SEVERITY_STYLES[finding.severity]
        console.print(f"  \\[[{style}]{label}[/{style}]] {escape(finding.title)} ({finding.detector_name})")
        console.print(f"    {escape(finding.description)}")

        for loc in finding.locations:
            console.print(f"    [dim]-->[/dim] {escape(loc.file)}:{loc.start_line}")
            if loc.snippet:
                for line in loc.snippet.splitlines():
                    console.print(f"    [dim]|[/dim] {escape(line)}")

        if finding.recommendation:
            console.print(f"    [green]Fix:[/green] {escape(finding.recommendation)}")
        console.print()

    if not quiet:
        counts = report.findings_by_severity
        console.print("  [bold underline]Summary[/bold underline]")
        console.print(f"    High:          {counts.high}")
        console.print(f"    Medium:        {counts.medium}")
        console.print(f"    Low:           {counts.low}")
        console.print(f"    Informational: {counts.informational}")
        console.print(f"    Total:         {report.total_findings}")
        console.print()
