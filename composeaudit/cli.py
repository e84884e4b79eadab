"""
Command-line interface for composeaudit
"""

import logging
from pathlib import Path
from typing import Iterable, List, NoReturn, Optional
import typer
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import PROFILES, EngineProfile, get_profile, load_profile
from .errors import ComposeAuditError
from .report.console import ConsoleReporter
from .rules.engine import RuleEngine
from .rules.models import Severity

# Initialize typer app
app = typer.Typer(
    name="composeaudit",
    help="Static security audit for docker-compose manifests and Dockerfiles",
    add_completion=False
)

console = Console()

OUTPUT_FORMATS = ("console", "json")


def version_callback(value: bool):
    if value:
        typer.echo(f"composeaudit version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True,
        help="Show version and exit"
    )
):
    """Static security audit for docker-compose manifests and Dockerfiles"""
    pass


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; --verbose switches to DEBUG"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def read_file(path: str) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def resolve_profile(profile: str, disabled: Optional[List[str]] = None) -> EngineProfile:
    """A named profile or a YAML profile file, with extra rules switched off"""
    resolved = get_profile(profile) if profile in PROFILES else load_profile(profile)
    if disabled:
        resolved = resolved.with_rules({rule_id: "off" for rule_id in disabled})
    return resolved


def exit_code(severities: Iterable[Severity]) -> int:
    """1 for high/critical findings, 2 for medium/low only, 0 when clean"""
    severities = [s for s in severities if s != Severity.INFO]
    if any(s.at_least(Severity.HIGH) for s in severities):
        return 1
    if severities:
        return 2
    return 0


def check_format(output_format: str) -> None:
    if output_format not in OUTPUT_FORMATS:
        typer.echo(f"Invalid format: {output_format}. Use: {', '.join(OUTPUT_FORMATS)}")
        raise typer.Exit(1)


def fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]❌ Error:[/bold red] {error}")
    raise typer.Exit(1)


ProfileOption = typer.Option(
    "default", "--profile", "-p",
    help="Profile name (default, strict, lenient) or path to a YAML profile"
)
FormatOption = typer.Option(
    "console", "--format", "-f",
    help="Output format: console, json"
)
DisableOption = typer.Option(
    None, "--disable", "-d", help="Rule id to switch off (can be repeated)"
)
VerboseOption = typer.Option(False, "--verbose", help="Enable debug logging")
ColorOption = typer.Option(True, "--color/--no-color", help="Enable/disable colored output")


@app.command()
def audit(
    compose_file: str = typer.Argument(..., help="docker-compose file to audit"),
    dockerfile: Optional[str] = typer.Option(
        None, "--dockerfile", help="Dockerfile to audit together with the manifest"
    ),
    profile: str = ProfileOption,
    output_format: str = FormatOption,
    disabled: Optional[List[str]] = DisableOption,
    show_topology: bool = typer.Option(
        False, "--topology", "-t", help="Print the service network topology"
    ),
    verbose: bool = VerboseOption,
    color: bool = ColorOption,
):
    """Audit a docker-compose manifest (and optionally its Dockerfile)"""
    configure_logging(verbose)
    check_format(output_format)

    try:
        engine = RuleEngine(resolve_profile(profile, disabled))
        compose_text = read_file(compose_file)
        dockerfile_text = read_file(dockerfile) if dockerfile else None
        if dockerfile_text is None:
            report = engine.validate(compose_text)
        else:
            report = engine.audit(compose=compose_text, dockerfile=dockerfile_text)
    except (ComposeAuditError, OSError) as e:
        fail(e)

    if output_format == "json":
        typer.echo(report.model_dump_json(indent=2))
    else:
        reporter = ConsoleReporter(use_colors=color)
        reporter.print_report(report, title=f"📊 {compose_file}")
        if show_topology and report.topology is not None:
            reporter.console.print()
            reporter.print_topology(report.topology)

    raise typer.Exit(exit_code(f.severity for f in report.findings))


@app.command("dockerfile")
def dockerfile_command(
    path: str = typer.Argument(..., help="Dockerfile to lint"),
    profile: str = ProfileOption,
    output_format: str = FormatOption,
    disabled: Optional[List[str]] = DisableOption,
    verbose: bool = VerboseOption,
    color: bool = ColorOption,
):
    """Lint a Dockerfile and look for secrets in it"""
    configure_logging(verbose)
    check_format(output_format)

    try:
        engine = RuleEngine(resolve_profile(profile, disabled))
        report = engine.validate_dockerfile_file(path, read_file)
    except (ComposeAuditError, OSError) as e:
        fail(e)

    if output_format == "json":
        typer.echo(report.model_dump_json(indent=2))
    else:
        ConsoleReporter(use_colors=color).print_report(report, title=f"📊 {path}")

    raise typer.Exit(exit_code(f.severity for f in report.findings))


@app.command()
def secrets(
    path: str = typer.Argument(..., help="File or directory to scan for secrets"),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", "-i", help="Glob to skip (can be repeated)"
    ),
    ignore_test_values: bool = typer.Option(
        False, "--ignore-test-values", help="Suppress matches that look like test data"
    ),
    workers: int = typer.Option(1, "--workers", "-w", help="Files scanned in parallel"),
    profile: str = ProfileOption,
    output_format: str = FormatOption,
    verbose: bool = VerboseOption,
    color: bool = ColorOption,
):
    """Scan a file or directory tree for hardcoded credentials"""
    configure_logging(verbose)
    check_format(output_format)

    target = Path(path)
    if not target.exists():
        typer.echo(f"Path not found: {path}")
        raise typer.Exit(1)

    try:
        resolved = resolve_profile(profile)
        if ignore_test_values:
            resolved = resolved.model_copy(update={"ignore_test_values": True})
        engine = RuleEngine(resolved)

        if target.is_file():
            paths = [str(target)]
            root = str(target.parent)
        else:
            paths = [str(p) for p in sorted(target.rglob("*")) if p.is_file()]
            root = str(target)

        result = engine.scan_directory(root, paths=paths, read_file=read_file,
                                       ignore=ignore or (), max_workers=workers)
    except ComposeAuditError as e:
        fail(e)

    if output_format == "json":
        typer.echo(result.model_dump_json(indent=2))
    else:
        ConsoleReporter(use_colors=color).print_secret_matches(result)

    raise typer.Exit(exit_code(m.severity for m in result.findings))


@app.command()
def topology(
    compose_file: str = typer.Argument(..., help="docker-compose file"),
    source: Optional[str] = typer.Option(None, "--from", help="Show the path starting at this service"),
    target: Optional[str] = typer.Option(None, "--to", help="Show the path ending at this service"),
    output_format: str = FormatOption,
    verbose: bool = VerboseOption,
    color: bool = ColorOption,
):
    """Show which services can reach each other over shared networks"""
    configure_logging(verbose)
    check_format(output_format)

    try:
        report = RuleEngine().validate_file(compose_file, read_file)
    except (ComposeAuditError, OSError) as e:
        fail(e)

    graph = report.topology
    if output_format == "json":
        typer.echo(graph.model_dump_json(indent=2))
    else:
        ConsoleReporter(use_colors=color).print_topology(graph)

    if source and target:
        path = graph.shortest_path(source, target)
        if path is None:
            typer.echo(f"{target} is not reachable from {source}")
            raise typer.Exit(1)
        typer.echo(" -> ".join(path))


@app.command()
def rules(
    profile: str = ProfileOption,
    output_format: str = typer.Option(
        "table", "--format", "-f",
        help="Output format: table, json, ids"
    ),
    severity: Optional[str] = typer.Option(
        None, "--severity", "-s",
        help="Filter by severity: critical, high, medium, low"
    ),
    evaluator: Optional[str] = typer.Option(
        None, "--evaluator", "-e",
        help="Filter by evaluator: service, secrets, network, dockerfile"
    ),
):
    """List available rules"""
    try:
        engine = RuleEngine(resolve_profile(profile))
    except ComposeAuditError as e:
        fail(e)

    filtered_rules = engine.list_rules()

    if severity:
        try:
            severity_filter = Severity(severity.lower())
        except ValueError:
            console.print(f"Invalid severity: {severity}")
            raise typer.Exit(1)
        filtered_rules = [r for r in filtered_rules if r.severity == severity_filter]

    if evaluator:
        filtered_rules = [r for r in filtered_rules if r.evaluator == evaluator]

    if not filtered_rules:
        console.print("No rules match the specified filters")
        raise typer.Exit(0)

    enabled = {r.id: engine.profile.is_rule_enabled(r.id) for r in filtered_rules}

    if output_format == "json":
        import json
        rules_data = [dict(r.model_dump(mode="json"), enabled=enabled[r.id]) for r in filtered_rules]
        typer.echo(json.dumps(rules_data, indent=2))

    elif output_format == "ids":
        for rule in sorted(filtered_rules, key=lambda r: r.id):
            typer.echo(rule.id)

    else:
        reporter = ConsoleReporter()
        reporter.print_rules(filtered_rules, enabled)
        reporter.print_rule_stats(engine.get_statistics())


if __name__ == "__main__":
    app()
