"""Render analysis, expansion and diff results to the terminal (Rich) or as JSON."""
from __future__ import annotations

import json
from typing import Optional, Union

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import (
    AnalysisResult,
    ExpansionResult,
    Issue,
    PatternExpansion,
    Severity,
    VersionDiff,
)

Result = Union[AnalysisResult, ExpansionResult, VersionDiff]


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------

class TextFormatter:
    """Renders results using Rich for human-readable terminal output."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def render(self, result: Result) -> None:
        if isinstance(result, AnalysisResult):
            self._render_analysis(result)
        elif isinstance(result, ExpansionResult):
            self._render_expansion(result)
        elif isinstance(result, VersionDiff):
            self._render_diff(result)
        else:
            raise TypeError(f"Cannot render {type(result).__name__}")

    def _render_analysis(self, result: AnalysisResult) -> None:
        c = self.console

        label = Text()
        label.append("Risk level: ", style="bold")
        label.append(f"{result.risk_level}/10", style=_risk_style(result.risk_level))
        c.print(label)
        c.print(f"[bold]Summary:[/bold] {result.summary}")

        if result.issues:
            c.print()
            table = Table(
                title="Issues",
                show_header=True,
                header_style="bold",
                box=None,
                padding=(0, 2),
            )
            table.add_column("Severity")
            table.add_column("Type", style="dim")
            table.add_column("Statement")
            table.add_column("Title")
            table.add_column("Remediation")
            for issue in result.issues:
                table.add_row(
                    Text(issue.severity.value, style=_severity_style(issue.severity)),
                    issue.type.value,
                    _statement_label(issue),
                    issue.title,
                    issue.remediation,
                )
            c.print(table)

        if result.detected_methods:
            c.print()
            table = Table(
                title="Escalation methods",
                show_header=True,
                header_style="bold",
                box=None,
                padding=(0, 2),
            )
            table.add_column("Method")
            table.add_column("Category", style="dim")
            table.add_column("Risk")
            table.add_column("Description")
            for dm in result.detected_methods:
                table.add_row(
                    dm.method,
                    dm.technique.category,
                    Text(str(dm.technique.risk_level), style=_risk_style(dm.technique.risk_level)),
                    dm.technique.description,
                )
            c.print(table)

        s = result.stats
        c.print()
        c.print(
            f"[bold]Issues:[/bold] {s.total_issues} "
            f"([red]{s.critical_issues} critical[/red], "
            f"[yellow]{s.high_issues} high[/yellow], "
            f"{s.medium_issues} medium)  "
            f"[bold]Escalation methods:[/bold] {s.escalation_methods}"
        )

    def _render_expansion(self, result: ExpansionResult) -> None:
        c = self.console
        if not result.is_valid:
            for error in result.errors:
                c.print(f"[bold red]Invalid policy:[/bold red] {error}")
            return

        s = result.summary
        impact = Text()
        impact.append("Impact: ", style="bold")
        impact.append(s.impact_level.value.upper(), style=_severity_style(s.impact_level))
        c.print(impact)
        c.print(
            f"[bold]Patterns:[/bold] {s.total_patterns} "
            f"({s.wildcard_patterns} wildcard, {s.exact_patterns} exact)  "
            f"[bold]Expanded actions:[/bold] {s.total_expanded_actions}  "
            f"[bold]Ratio:[/bold] {s.expansion_ratio:.1f}x"
        )
        if s.services_affected:
            c.print(f"[bold]Services:[/bold] {', '.join(s.services_affected)}")

        for stmt in result.statements:
            c.print()
            table = Table(
                title=f"Statement {stmt.index} ({stmt.effect})",
                show_header=True,
                header_style="bold",
                box=None,
                padding=(0, 2),
            )
            table.add_column("Pattern")
            table.add_column("Actions", justify="right")
            table.add_column("Sample", style="dim")
            for exp in stmt.expansions:
                table.add_row(_pattern_label(exp), str(exp.expanded_count), ", ".join(exp.sample_actions))
            c.print(table)

    def _render_diff(self, result: VersionDiff) -> None:
        c = self.console
        c.print(
            f"[bold]Added:[/bold] [green]{result.added_count}[/green]  "
            f"[bold]Removed:[/bold] [red]{result.removed_count}[/red]  "
            f"[bold]Modified:[/bold] {result.modified_count}"
        )
        for title, diff_set in (("Actions", result.actions), ("Resources", result.resources)):
            if not (diff_set.added or diff_set.removed or diff_set.unchanged):
                continue
            c.print()
            c.print(f"[bold]{title}[/bold]")
            for value in diff_set.added:
                c.print(Text(f"+ {value}", style="green"))
            for value in diff_set.removed:
                c.print(Text(f"- {value}", style="red"))
            for value in diff_set.unchanged:
                c.print(Text(f"  {value}", style="dim"))


class JsonFormatter:
    """Renders results as a JSON document to stdout."""

    def __init__(self, indent: int = 2) -> None:
        self.indent = indent

    def render(self, result: Result) -> None:
        print(json.dumps(to_dict(result), indent=self.indent, default=str))


def get_formatter(
    output: str, console: Optional[Console] = None
) -> TextFormatter | JsonFormatter:
    """Factory: ``'text'`` → TextFormatter, ``'json'`` → JsonFormatter."""
    if output == "json":
        return JsonFormatter()
    return TextFormatter(console=console)


def to_dict(result: Result) -> dict:
    if isinstance(result, AnalysisResult):
        return analysis_to_dict(result)
    if isinstance(result, ExpansionResult):
        return expansion_to_dict(result)
    if isinstance(result, VersionDiff):
        return diff_to_dict(result)
    raise TypeError(f"Cannot serialize {type(result).__name__}")


def analysis_to_dict(result: AnalysisResult) -> dict:
    return {
        "issues": [_issue_to_dict(i) for i in result.issues],
        "riskLevel": result.risk_level,
        "detectedMethods": [
            {
                "method": dm.method,
                "permissions": list(dm.technique.required_permissions),
                "optional": list(dm.technique.optional_permissions),
                "riskLevel": dm.technique.risk_level,
                "category": dm.technique.category,
                "description": dm.technique.description,
            }
            for dm in result.detected_methods
        ],
        "summary": result.summary,
        "stats": {
            "totalIssues": result.stats.total_issues,
            "criticalIssues": result.stats.critical_issues,
            "highIssues": result.stats.high_issues,
            "mediumIssues": result.stats.medium_issues,
            "escalationMethods": result.stats.escalation_methods,
        },
    }


def expansion_to_dict(result: ExpansionResult) -> dict:
    s = result.summary
    return {
        "isValid": result.is_valid,
        "errors": list(result.errors),
        "summary": {
            "totalStatements": s.total_statements,
            "totalPatterns": s.total_patterns,
            "wildcardPatterns": s.wildcard_patterns,
            "exactPatterns": s.exact_patterns,
            "totalExpandedActions": s.total_expanded_actions,
            "expansionRatio": s.expansion_ratio,
            "servicesAffected": list(s.services_affected),
            "impactLevel": s.impact_level.value,
        },
        "statements": [
            {
                "index": stmt.index,
                "effect": stmt.effect,
                "patterns": list(stmt.patterns),
                "wildcardPatterns": stmt.wildcard_patterns,
                "exactPatterns": stmt.exact_patterns,
                "totalExpandedActions": stmt.total_expanded_actions,
                "servicesAffected": list(stmt.services_affected),
                "expansions": [_expansion_to_dict(e) for e in stmt.expansions],
            }
            for stmt in result.statements
        ],
    }


def diff_to_dict(result: VersionDiff) -> dict:
    return {
        "actions": {
            "added": list(result.actions.added),
            "removed": list(result.actions.removed),
            "unchanged": list(result.actions.unchanged),
        },
        "resources": {
            "added": list(result.resources.added),
            "removed": list(result.resources.removed),
            "unchanged": list(result.resources.unchanged),
        },
        "addedCount": result.added_count,
        "removedCount": result.removed_count,
        "modifiedCount": result.modified_count,
    }


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _risk_style(risk_level: int) -> str:
    if risk_level >= 9:
        return "bold red"
    if risk_level >= 7:
        return "bold yellow"
    if risk_level >= 5:
        return "yellow"
    return "green"


def _severity_style(severity: Severity) -> str:
    if severity == Severity.CRITICAL:
        return "bold red"
    if severity == Severity.HIGH:
        return "red"
    if severity == Severity.MEDIUM:
        return "yellow"
    return "green"


def _statement_label(issue: Issue) -> str:
    return "-" if issue.statement_index < 0 else str(issue.statement_index)


def _pattern_label(expansion: PatternExpansion) -> str:
    if expansion.is_not_action:
        return f"NOT {expansion.original_pattern}"
    return expansion.original_pattern


def _issue_to_dict(issue: Issue) -> dict:
    data = {
        "type": issue.type.value,
        "severity": issue.severity.value,
        "statementIndex": issue.statement_index,
        "title": issue.title,
        "description": issue.description,
        "remediation": issue.remediation,
    }
    if issue.category is not None:
        data["category"] = issue.category
    return data


def _expansion_to_dict(expansion: PatternExpansion) -> dict:
    return {
        "originalPattern": expansion.original_pattern,
        "hasWildcard": expansion.has_wildcard,
        "isNotAction": expansion.is_not_action,
        "expandedActions": list(expansion.expanded_actions),
        "expandedCount": expansion.expanded_count,
        "sampleActions": list(expansion.sample_actions),
    }
