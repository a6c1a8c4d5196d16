"""CLI entry point for aumos-ruleguard.

Invoked as::

    ruleguard [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m aumos_ruleguard.cli.main

Commands
--------
- validate   Validate a ruleset file and report errors, conflicts and suggestions
- stats      Show rule statistics for a ruleset file
- resolve    Apply verified auto-fixes and print the resolution report
- version    Show version information
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

_SEVERITY_STYLES: dict[str, str] = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "cyan",
}


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumos-ruleguard")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Ruleguard CLI: zero-bypass validation of deny/allow/ask rulesets."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from aumos_ruleguard import __version__

    console.print(
        Panel(
            f"[bold]aumos-ruleguard[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Zero-bypass validator for deny/allow/ask permission rulesets.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--settings",
    "-s",
    "settings_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to ruleguard.yaml engine settings.",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format.",
)
@click.option("--strict", is_flag=True, default=False, help="Abort on missed deadlines and resolve strictly.")
@click.option("--no-cache", is_flag=True, default=False, help="Bypass the result cache.")
@click.option("--timeout-ms", type=float, default=None, help="Deadline for the validation call.")
def validate_command(
    config_path: str,
    settings_path: str | None,
    output_format: str,
    strict: bool,
    no_cache: bool,
    timeout_ms: float | None,
) -> None:
    """Validate a ruleset file; exit 1 when it is invalid."""
    from aumos_ruleguard.config.settings import SettingsLoader
    from aumos_ruleguard.validation.engine import ValidationEngine, ValidationOptions

    loader = SettingsLoader()
    try:
        settings = loader.load(Path(settings_path)) if settings_path else loader.defaults()
        document = loader.load_ruleset(Path(config_path))
    except Exception as exc:
        err_console.print(f"[red]Failed to load input:[/red] {exc}")
        sys.exit(1)

    engine = ValidationEngine(settings)
    result = engine.validate(
        document,
        ValidationOptions(strict_mode=strict, skip_cache=no_cache, timeout_ms=timeout_ms),
    )

    if output_format == "json":
        click.echo(result.model_dump_json(indent=2))
        sys.exit(0 if result.is_valid else 1)

    status_str = "[green]VALID[/green]" if result.is_valid else "[red]INVALID[/red]"
    console.print(Panel(status_str, title=f"Ruleset: {config_path}", border_style="blue"))
    console.print(
        f"  Rules processed: [cyan]{result.performance.rules_processed}[/cyan]  "
        f"Time: [cyan]{result.performance.elapsed_ms:.2f}ms[/cyan]  "
        f"Security score: [cyan]{result.security_score if result.security_score is not None else 'n/a'}[/cyan]"
    )

    if result.errors:
        table = Table(title="Errors", box=box.SIMPLE)
        table.add_column("Kind", style="red")
        table.add_column("Severity")
        table.add_column("Location", style="dim")
        table.add_column("Message")
        for error in result.errors:
            severity = error.severity.value
            table.add_row(
                error.kind.value,
                f"[{_SEVERITY_STYLES.get(severity, 'white')}]{severity}[/]",
                error.location or "",
                error.message,
            )
        console.print(table)

    if result.warnings:
        table = Table(title="Warnings", box=box.SIMPLE)
        table.add_column("Kind", style="yellow")
        table.add_column("Location", style="dim")
        table.add_column("Message")
        for warning in result.warnings:
            table.add_row(warning.kind.value, warning.location or "", warning.message)
        console.print(table)

    if result.conflicts:
        table = Table(title="Conflicts", box=box.SIMPLE)
        table.add_column("Kind", style="magenta")
        table.add_column("Impact")
        table.add_column("Rules", style="cyan")
        for conflict in result.conflicts:
            impact = conflict.security_impact.value
            table.add_row(
                conflict.kind.value,
                f"[{_SEVERITY_STYLES.get(impact, 'white')}]{impact}[/]",
                ", ".join(f"{rule.category.value}:{rule.pattern}" for rule in conflict.conflicting_rules),
            )
        console.print(table)

    if result.suggestions:
        console.print("\n[bold]Suggestions[/bold]")
        for suggestion in result.suggestions:
            marker = "[green]fix[/green]" if suggestion.auto_fix is not None else suggestion.kind.value
            console.print(f"  - ({marker}) {suggestion.message}")

    sys.exit(0 if result.is_valid else 1)


# ---------------------------------------------------------------------------
# stats
# ---------------------------------------------------------------------------


@cli.command(name="stats")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
def stats_command(config_path: str) -> None:
    """Show rule statistics for a ruleset file."""
    from aumos_ruleguard.config.settings import SettingsLoader
    from aumos_ruleguard.validation.engine import ValidationEngine

    try:
        document = SettingsLoader().load_ruleset(Path(config_path))
        stats = ValidationEngine().get_rule_statistics(document)
    except Exception as exc:
        err_console.print(f"[red]Failed to compute statistics:[/red] {exc}")
        sys.exit(1)

    table = Table(title=f"Rule Statistics: {config_path}", box=box.SIMPLE)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Total rules", str(stats.total_rules))
    for category, count in stats.by_category.items():
        table.add_row(f"  {category}", str(count))
    table.add_row("Average pattern length", f"{stats.complexity.average_pattern_length:.1f}")
    table.add_row("Longest pattern", str(stats.complexity.max_pattern_length))
    table.add_row("Regex / glob / literal", (
        f"{stats.complexity.regex_count} / {stats.complexity.glob_count} / {stats.complexity.literal_count}"
    ))
    table.add_row("Estimated coverage", f"{stats.coverage.estimated_coverage:.0f}%")
    console.print(table)

    if stats.coverage.redundant_rules:
        console.print("[yellow]Redundant rules:[/yellow] " + ", ".join(stats.coverage.redundant_rules))
    if stats.coverage.uncovered_patterns:
        console.print("[dim]Not constrained by any deny rule:[/dim] " + ", ".join(stats.coverage.uncovered_patterns))


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


@cli.command(name="resolve")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--level",
    "-l",
    type=click.Choice(["strict", "moderate", "permissive"]),
    default="strict",
    show_default=True,
    help="Security level used to pick resolutions.",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["markdown", "json"]),
    default="markdown",
    show_default=True,
    help="Report format.",
)
@click.option(
    "--output",
    "-o",
    "output_file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the resolved ruleset (JSON) to this path.",
)
def resolve_command(config_path: str, level: str, output_format: str, output_file: str | None) -> None:
    """Apply verified auto-fixes to a ruleset and print the resolution report."""
    from aumos_ruleguard.config.settings import SettingsLoader
    from aumos_ruleguard.rules.model import normalize_rules
    from aumos_ruleguard.validation.engine import ValidationEngine

    try:
        config = SettingsLoader().load_ruleset_config(Path(config_path))
    except Exception as exc:
        err_console.print(f"[red]Failed to load ruleset:[/red] {exc}")
        sys.exit(1)

    engine = ValidationEngine()
    rules = normalize_rules(config)
    detection = engine.detector.detect(rules)
    resolver = engine.resolver(level)
    suggestions = resolver.resolve_all(detection.conflicts, rules)
    outcome = resolver.apply_resolutions(config, suggestions)

    click.echo(resolver.generate_report(outcome, fmt=output_format))

    if output_file:
        Path(output_file).write_text(json.dumps(outcome.resolved_config, indent=2), encoding="utf-8")
        console.print(f"[green]Resolved ruleset written to[/green] [bold]{output_file}[/bold]")

    sys.exit(0 if outcome.success else 1)


if __name__ == "__main__":
    cli()
