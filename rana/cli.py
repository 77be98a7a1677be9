"""
RANA CLI
========
Security scanning, guardrail checks, cost summaries and provider status.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from rana.config import settings
from rana.core.errors import RanaError
from rana.core.keys import ApiKeyManager
from rana.core.logging import configure_logging
from rana.ledger import create_cost_store
from rana.ledger.tracker import period_start
from rana.providers import PROVIDERS
from rana.schemas.cost import CostQuery, CostSummary
from rana.security.scanner import SEVERITY_ORDER, Finding, ScanReport, scan_path

app = typer.Typer(help="RANA command line tools.")
security_app = typer.Typer(help="Security scanning and checks.")
app.add_typer(security_app, name="security")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

SEVERITY_STYLES = {"critical": "red", "high": "yellow", "medium": "blue", "low": "dim"}
DISPLAY_LIMITS = {"critical": 10, "high": 10, "medium": 5, "low": 0}


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs")) -> None:
    """RANA CLI."""
    configure_logging("DEBUG" if verbose else "WARNING", "console")


def _print_findings(report: ScanReport) -> None:
    for severity in reversed(SEVERITY_ORDER):
        findings = report.by_severity(severity)
        limit = DISPLAY_LIMITS[severity]
        if not findings or not limit:
            continue
        style = SEVERITY_STYLES[severity]
        console.print(f"[bold {style}]{severity.title()} ({len(findings)}):[/]")
        for finding in findings[:limit]:
            _print_finding(finding, style, show_match=severity == "critical")
        if len(findings) > limit:
            console.print(f"[dim]  ... and {len(findings) - limit} more[/]")
        console.print()


def _print_finding(finding: Finding, style: str, show_match: bool) -> None:
    console.print(f"[{style}]  {finding.file}:{finding.line}[/]")
    console.print(f"[dim]    {finding.description}[/]")
    if show_match:
        console.print(f"[dim]    Match: {finding.match}[/]", markup=False)


def _summary_table(report: ScanReport) -> Table:
    table = Table(title="Summary")
    table.add_column("Severity")
    table.add_column("Findings", justify="right")
    for severity in reversed(SEVERITY_ORDER):
        table.add_row(severity.title(), str(len(report.by_severity(severity))), style=SEVERITY_STYLES[severity])
    return table


def _run_scan(path: Path, severity: str, secrets_only: bool, pii_only: bool) -> int:
    if severity not in SEVERITY_ORDER:
        console.print(f"[red]Error:[/] severity must be one of: {', '.join(SEVERITY_ORDER)}")
        return EXIT_CODE_FAIL
    if secrets_only and pii_only:
        console.print("[red]Error:[/] --secrets-only and --pii-only are mutually exclusive")
        return EXIT_CODE_FAIL

    types = ("secret",) if secrets_only else ("pii",) if pii_only else None
    try:
        report = scan_path(path, min_severity=severity, types=types)
    except Exception as e:
        console.print(f"[red]Scan failed:[/] {e}")
        return EXIT_CODE_FAIL

    console.print("\n[bold blue]Security Scan Results[/]\n")
    console.print(f"Files scanned: {report.files_scanned}")
    console.print(f"Issues found: {len(report.findings)}\n")

    if not report.findings:
        console.print("[bold green]No security issues found![/]")
        return EXIT_CODE_PASS

    _print_findings(report)
    console.print(_summary_table(report))

    if report.failed:
        console.print("[bold red]Security scan failed - fix critical and high issues[/]")
        return EXIT_CODE_FAIL
    return EXIT_CODE_PASS


@security_app.command("scan")
def security_scan(
    path: Path = typer.Argument(Path("."), help="File or directory to scan"),
    severity: str = typer.Option("medium", "--severity", "-s", help="Minimum severity to report"),
    secrets_only: bool = typer.Option(False, "--secrets-only", help="Only scan for secrets"),
    pii_only: bool = typer.Option(False, "--pii-only", help="Only scan for PII"),
) -> None:
    """Scan a codebase for secrets and PII."""
    raise typer.Exit(code=_run_scan(path, severity, secrets_only, pii_only))


@security_app.command("check")
def security_check(path: Path = typer.Argument(Path("."), help="File or directory to scan")) -> None:
    """Quick security check (critical and high severity only)."""
    raise typer.Exit(code=_run_scan(path, "high", False, False))


@app.command()
def check(path: Path = typer.Argument(Path("."), help="Project root")) -> None:
    """Run guardrail checks: source scan and credential configuration."""
    console.print("\n[bold blue]RANA Guardrail Checks[/]\n")
    failed = False

    console.print("[bold]1. Security Scan[/]")
    try:
        report = scan_path(path, min_severity="high")
    except Exception as e:
        console.print(f"[yellow]   Could not complete security scan: {e}[/]")
        failed = True
    else:
        if report.findings:
            console.print(f"[red]   {len(report.findings)} critical/high issues found[/]")
            console.print("[dim]   Run: rana security scan for details[/]")
            failed = True
        else:
            console.print("[green]   No critical security issues[/]")

    console.print("\n[bold]2. Provider Credentials[/]")
    valid, errors = ApiKeyManager.from_settings(settings).validate()
    if valid:
        console.print("[green]   Credentials configured[/]")
    else:
        for error in errors:
            console.print(f"[yellow]   {error}[/]")

    console.print()
    raise typer.Exit(code=EXIT_CODE_FAIL if failed else EXIT_CODE_PASS)


async def _load_summary(period: str, provider: Optional[str]) -> CostSummary:
    store = create_cost_store(settings)
    await store.initialize()
    try:
        return await store.get_summary(CostQuery(start_date=period_start(period), provider=provider))
    finally:
        await store.close()


@app.command()
def costs(
    period: str = typer.Option("daily", "--period", "-p", help="hourly, daily, weekly, monthly or total"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Only this provider"),
) -> None:
    """Show the cost ledger summary."""
    if period not in ("hourly", "daily", "weekly", "monthly", "total"):
        console.print(f"[red]Error:[/] unknown period: {period}")
        raise typer.Exit(code=EXIT_CODE_FAIL)

    try:
        summary = asyncio.run(_load_summary(period, provider))
    except Exception as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(code=EXIT_CODE_FAIL)

    table = Table(title=f"Costs ({period})")
    table.add_column("Provider")
    table.add_column("Requests", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost (USD)", justify="right")
    for name, bucket in sorted(summary.by_provider.items()):
        table.add_row(name, str(bucket.requests), f"{bucket.tokens:,}", f"${bucket.cost:.6f}")
    table.add_row(
        "[bold]Total[/]",
        str(summary.total_requests),
        f"{summary.total_tokens:,}",
        f"${summary.total_cost:.6f}",
    )
    console.print(table)
    console.print(f"Cache hits: {summary.cache_hits}  Avg latency: {summary.avg_latency:.0f} ms")


@app.command()
def providers() -> None:
    """Show which providers have credentials under the active tier."""
    keys = ApiKeyManager.from_settings(settings)
    valid, errors = keys.validate()

    table = Table(title=f"Providers (tier: {keys.tier})")
    table.add_column("Provider")
    table.add_column("Default model")
    table.add_column("Available")
    for name, spec in PROVIDERS.items():
        try:
            available = valid and keys.is_provider_available(name)
        except RanaError:
            available = False
        table.add_row(name, spec.default_model, "[green]yes[/]" if available else "[dim]no[/]")
    console.print(table)
    for error in errors:
        console.print(f"[yellow]{error}[/]")


if __name__ == "__main__":
    app()
