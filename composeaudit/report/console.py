"""
Console reporter for terminal output with colors and formatting
"""

from typing import List, Dict, Any, Optional
from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.tree import Tree
from rich import box

from ..rules.models import Finding, Severity, RuleInfo, SEVERITY_ORDER
from ..scanning.models import DirectoryScanResult, PatternMatch
from ..graph.models import TopologyGraph
from .models import Report


class ConsoleReporter:
    """Rich console reporter for audit results"""

    def __init__(self, use_colors: bool = True, quiet: bool = False,
                 console: Optional[Console] = None):
        self.console = console or Console(force_terminal=use_colors or None, no_color=not use_colors)
        self.quiet = quiet

        # Severity colors
        self.severity_colors = {
            Severity.INFO: "dim",
            Severity.LOW: "blue",
            Severity.MEDIUM: "yellow",
            Severity.HIGH: "red",
            Severity.CRITICAL: "bold red"
        }

        # Severity symbols
        self.severity_symbols = {
            Severity.INFO: "·",
            Severity.LOW: "ℹ",
            Severity.MEDIUM: "⚠",
            Severity.HIGH: "⚠",
            Severity.CRITICAL: "🔥"
        }

    def _score_style(self, score: int) -> str:
        if score >= 80:
            return "green"
        if score >= 50:
            return "yellow"
        return "red"

    def print_summary(self, report: Report, title: str = "📊 Audit Summary") -> None:
        """Print score and finding counts"""
        if self.quiet:
            return

        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")

        table.add_row("Score", Text(f"{report.score}/100", style=self._score_style(report.score)))
        table.add_row("Total Findings", str(report.summary.total))
        table.add_row("", "")  # Separator

        for severity in SEVERITY_ORDER:
            count = report.summary.count(severity)
            if count > 0:
                symbol = self.severity_symbols[severity]
                color = self.severity_colors[severity]
                table.add_row(
                    f"{symbol} {severity.value.title()}",
                    Text(str(count), style=color)
                )

        if report.evaluator_scores:
            table.add_row("", "")
            for name, score in report.evaluator_scores.items():
                table.add_row(f"{name} score", Text(str(score), style=self._score_style(score)))

        self.console.print(table)
        self.console.print()

    def print_findings(self, report: Report, min_severity: Severity = Severity.INFO) -> None:
        """Print detailed findings grouped by service"""
        filtered = [f for f in report.findings if f.severity.at_least(min_severity)]
        if not filtered:
            return

        groups: Dict[str, List[Finding]] = {}
        for finding in filtered:
            groups.setdefault(self._group_name(finding), []).append(finding)

        for group, findings in groups.items():
            self.console.print(f"\n📦 [bold blue]{group}[/bold blue]")
            self.console.print(f"   Found {len(findings)} finding(s)")

            for finding in sorted(findings, key=lambda f: f.severity.rank):
                self._print_finding(finding)

    @staticmethod
    def _group_name(finding: Finding) -> str:
        if finding.scope:
            return finding.scope
        if finding.source == "dockerfile" or finding.line is not None:
            return "Dockerfile"
        return "(manifest)"

    def _print_finding(self, finding: Finding) -> None:
        """Print a single finding"""
        severity = finding.severity
        symbol = self.severity_symbols[severity]
        color = self.severity_colors[severity]

        header = f"{symbol} [{color}]{severity.value.upper()}[/{color}] {finding.rule}"
        self.console.print(f"\n  {header}")
        if finding.line is not None:
            self.console.print(f"     Line {finding.line}")
        self.console.print(f"     {finding.message}")

        if finding.fix:
            self.console.print(f"     💡 [dim]{finding.fix}[/dim]")

    def print_recommendations(self, report: Report) -> None:
        if self.quiet or not report.recommendations:
            return

        table = Table(title="🛠  Recommendations", box=box.SIMPLE)
        table.add_column("Severity")
        table.add_column("Rule", style="bold")
        table.add_column("Fix")

        for rec in report.recommendations:
            color = self.severity_colors[rec.severity]
            table.add_row(Text(rec.severity.value, style=color), rec.rule, rec.fix)

        self.console.print(table)

    def print_topology(self, topology: TopologyGraph) -> None:
        """Print networks, their members and externally reachable services"""
        tree = Tree("🌐 [bold]Network topology[/bold]")

        networks = tree.add("Networks")
        for network, members in topology.memberships.items():
            networks.add(f"[cyan]{network}[/cyan]: {', '.join(members) or '(unused)'}")

        services = tree.add("Services")
        for node in topology.nodes:
            marker = " [red](published)[/red]" if node in topology.external_access_points else ""
            neighbours = ', '.join(topology.neighbors(node)) or '-'
            services.add(f"{node}{marker} → {neighbours}")

        exposed = topology.reachable_from_external()
        if exposed:
            tree.add(f"Reachable from outside: {', '.join(exposed)}")

        self.console.print(tree)

    def print_report(self, report: Report, title: str = "📊 Audit Summary") -> None:
        """Summary, findings and recommendations of one report"""
        self.print_summary(report, title=title)
        if not report.findings:
            self.print_no_findings()
            return
        self.print_findings(report)
        self.console.print()
        self.print_recommendations(report)

    def print_secret_matches(self, result: DirectoryScanResult) -> None:
        """Print directory scan matches grouped by file"""
        if not self.quiet:
            self.console.print(
                f"🔎 Scanned {result.total_files} file(s), "
                f"{result.files_with_secrets} with secrets"
            )

        for file_path, matches in result.findings_by_file().items():
            self.console.print(f"\n📁 [bold blue]{file_path}[/bold blue]")
            for match in matches:
                self._print_match(match)

        if result.skipped:
            self.console.print(f"\n⚠️  [bold red]Skipped ({len(result.skipped)})[/bold red]")
            for path in result.skipped:
                self.console.print(f"   {path}")

        if not result.findings:
            self.print_no_findings()

    def _print_match(self, match: PatternMatch) -> None:
        color = self.severity_colors[match.severity]
        self.console.print(
            f"  [{color}]{match.severity.value.upper()}[/{color}] {match.type} "
            f"at {match.line}:{match.column}"
        )
        self.console.print(f"     [dim]{match.snippet}[/dim]", markup=False, highlight=False)

    def print_no_findings(self) -> None:
        """Print message when no findings are found"""
        if not self.quiet:
            self.console.print("\n✅ [green]No security issues found![/green]")

    def print_rules(self, rules: List[RuleInfo], enabled: Dict[str, bool]) -> None:
        """Print the rule registry"""
        table = Table(title="📋 Rules", box=box.ROUNDED)
        table.add_column("Rule", style="bold")
        table.add_column("Severity")
        table.add_column("Evaluator")
        table.add_column("Enabled", justify="center")
        table.add_column("Description")

        for rule in rules:
            color = self.severity_colors[rule.severity]
            table.add_row(
                rule.id,
                Text(rule.severity.value, style=color),
                rule.evaluator,
                "✓" if enabled.get(rule.id, True) else "✗",
                rule.description,
            )

        self.console.print(table)

    def print_rule_stats(self, engine_stats: Dict[str, Any]) -> None:
        """Print rule engine statistics"""
        if self.quiet:
            return

        total_rules = engine_stats.get('total_rules', 0)
        enabled_rules = engine_stats.get('enabled_rules', total_rules)
        severity_counts = engine_stats.get('severity_counts', {})

        self.console.print(f"\n📋 {enabled_rules} of {total_rules} rules enabled "
                           f"(profile: {engine_stats.get('profile', 'default')})")

        if severity_counts:
            severity_text = []
            for severity, count in severity_counts.items():
                if count > 0:
                    severity_text.append(f"{count} {severity}")

            if severity_text:
                self.console.print(f"     {' • '.join(severity_text)}")
