"""Run-scoped accumulation of warnings and errors.

Library code never prints; it records issues here and the CLI decides how
to render them.

Usage:
    diagnostics = Diagnostics()
    diagnostics.add_warning("orders", "unresolved_entity", "Entity 'user' not found")

    if diagnostics.has_warnings():
        console.print(diagnostics.format_report())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from rich.markup import escape

Severity = Literal["error", "warning"]

IssueKind = Literal[
    "parse_error",
    "no_semantic_model",
    "duplicate_entity",
    "unresolved_entity",
    "dependency_cycle",
    "missing_primary_entity",
    "unresolved_metric",
    "unsupported_metric",
    "circular_metric",
    "metric_omitted",
    "metric_deferred",
    "time_spine",
    "model_failed",
]


@dataclass
class Issue:
    """A single recorded problem.

    Attributes:
        severity: Whether this is an error or warning.
        kind: Category of the issue.
        subject: Model, metric or file the issue is about.
        message: Human-readable description.
    """

    severity: Severity
    kind: IssueKind
    subject: str
    message: str


@dataclass
class Diagnostics:
    """Container for all issues recorded during one run."""

    issues: list[Issue] = field(default_factory=list)

    def add_error(self, subject: str, kind: IssueKind, message: str) -> None:
        self.issues.append(Issue("error", kind, subject, message))

    def add_warning(self, subject: str, kind: IssueKind, message: str) -> None:
        self.issues.append(Issue("warning", kind, subject, message))

    @property
    def errors(self) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    def has_warnings(self) -> bool:
        return any(issue.severity == "warning" for issue in self.issues)

    def by_kind(self, kind: IssueKind) -> list[Issue]:
        return [issue for issue in self.issues if issue.kind == kind]

    def format_report(self) -> str:
        """Generate rich formatted output grouped by severity.

        Returns:
            Formatted string with errors first, then warnings.
        """
        parts: list[str] = []

        if self.errors:
            parts.append("[bold red]Errors:[/bold red]")
            for issue in self.errors:
                parts.append(
                    f"[red]✗[/red] [bold]{escape(issue.subject)}[/bold]: "
                    f"{escape(issue.message)}"
                )
            parts.append("")

        if self.warnings:
            parts.append("[bold yellow]Warnings:[/bold yellow]")
            for issue in self.warnings:
                parts.append(
                    f"[yellow]⚠[/yellow] [bold]{escape(issue.subject)}[/bold]: "
                    f"{escape(issue.message)}"
                )
            parts.append("")

        return "\n".join(parts)
