"""Combine scanner and escalation matcher output into an AnalysisResult."""
from __future__ import annotations

import logging
from typing import Optional

from .closure import resolve
from .matcher import detected
from .models import (
    AnalysisResult,
    AnalysisStats,
    DetectedMethod,
    EscalationTechnique,
    Issue,
    IssueType,
    Severity,
)
from .policy import parse_document
from .scanner import scan
from .techniques import EscalationCatalog, default_catalog

logger = logging.getLogger(__name__)

NO_STATEMENTS_SUMMARY = "No policy statements found"


def analyze(document, catalog: Optional[EscalationCatalog] = None) -> AnalysisResult:
    """
    Analyze *document* for shadow-admin conditions.

    *document* may be a raw policy dict, a JSON string or a PolicyDocument.
    A document without a ``Statement`` field is not an error: it yields a
    zero-risk result with summary ``"No policy statements found"``.

    The result depends only on *document* and *catalog*; repeated calls
    return equal results.
    """
    doc = parse_document(document)
    if not doc.has_statements:
        return AnalysisResult(
            issues=(),
            risk_level=0,
            detected_methods=(),
            summary=NO_STATEMENTS_SUMMARY,
            stats=AnalysisStats(),
        )

    if catalog is None:
        catalog = default_catalog()
    closure = resolve(doc, catalog)
    techniques = detected(closure, catalog)

    issues = list(scan(doc))
    issues.extend(_escalation_issue(t) for t in techniques)

    risk_level = _risk_level(issues, techniques)
    detected_methods = tuple(DetectedMethod(method=t.name, technique=t) for t in techniques)
    summary = _build_summary(
        risk_level=risk_level,
        method_count=len(detected_methods),
        issue_count=len(issues),
    )

    logger.debug(
        "Analysis complete: risk=%d, %d issue(s), %d technique(s)",
        risk_level, len(issues), len(detected_methods),
    )
    return AnalysisResult(
        issues=tuple(issues),
        risk_level=risk_level,
        detected_methods=detected_methods,
        summary=summary,
        stats=_build_stats(issues, len(detected_methods)),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _escalation_issue(technique: EscalationTechnique) -> Issue:
    return Issue(
        type=IssueType.PRIVILEGE_ESCALATION,
        severity=Severity.CRITICAL if technique.risk_level >= 9 else Severity.HIGH,
        statement_index=-1,
        title=f"Privilege Escalation: {technique.name}",
        description=technique.description,
        category=technique.category,
        remediation="Remove or restrict: " + ", ".join(technique.required_permissions),
    )


def _risk_level(issues: list[Issue], techniques: tuple[EscalationTechnique, ...]) -> int:
    types = {i.type for i in issues}
    if IssueType.FULL_ADMIN in types:
        return 10

    levels = [0]
    if IssueType.WILDCARD_ACTION in types:
        levels.append(8)
    if IssueType.WILDCARD_RESOURCE in types:
        levels.append(6)
    levels.extend(t.risk_level for t in techniques)
    return max(levels)


def _build_summary(*, risk_level: int, method_count: int, issue_count: int) -> str:
    if risk_level == 10:
        return "CRITICAL: Full admin or direct privilege escalation possible"
    if risk_level >= 8:
        return f"HIGH RISK: {method_count} privilege escalation method(s) detected"
    if risk_level >= 5:
        return "MEDIUM RISK: Some dangerous permissions present"
    if issue_count > 0:
        return "LOW RISK: Minor security concerns detected"
    return "No significant security issues detected"


def _build_stats(issues: list[Issue], method_count: int) -> AnalysisStats:
    return AnalysisStats(
        total_issues=len(issues),
        critical_issues=sum(1 for i in issues if i.severity == Severity.CRITICAL),
        high_issues=sum(1 for i in issues if i.severity == Severity.HIGH),
        medium_issues=sum(1 for i in issues if i.severity == Severity.MEDIUM),
        escalation_methods=method_count,
    )
