"""Catalog-independent checks for blanket wildcard grants."""
from __future__ import annotations

from .models import Issue, IssueType, PolicyDocument, Severity
from .policy import parse_document


def scan(document) -> tuple[Issue, ...]:
    """
    Flag full-admin statements and wildcard actions / resources.

    FULL_ADMIN is reported per Allow statement with ``Action: "*"`` and
    ``Resource: "*"``.  WILDCARD_ACTION and WILDCARD_RESOURCE are reported
    at most once per document, and not at all once a FULL_ADMIN is present.
    """
    doc: PolicyDocument = parse_document(document)
    issues: list[Issue] = []
    wildcard_action = False
    wildcard_resource = False

    for idx, stmt in enumerate(doc.statements):
        if stmt.has_wildcard_action:
            wildcard_action = True
            if stmt.has_wildcard_resource and stmt.is_allow:
                issues.append(_full_admin(idx))
        if stmt.has_wildcard_resource:
            wildcard_resource = True

    full_admin = any(i.type == IssueType.FULL_ADMIN for i in issues)
    if wildcard_action and not full_admin:
        issues.append(
            Issue(
                type=IssueType.WILDCARD_ACTION,
                severity=Severity.HIGH,
                statement_index=-1,
                title="Wildcard Actions Detected",
                description=(
                    "Policy contains wildcard (*) in Action field which may "
                    "grant excessive permissions"
                ),
                remediation="Use specific action names instead of wildcards",
            )
        )
    if wildcard_resource and not full_admin:
        issues.append(
            Issue(
                type=IssueType.WILDCARD_RESOURCE,
                severity=Severity.MEDIUM,
                statement_index=-1,
                title="Wildcard Resources Detected",
                description=(
                    "Policy contains wildcard (*) in Resource field which "
                    "applies to all resources"
                ),
                remediation="Restrict to specific resource ARNs when possible",
            )
        )
    return tuple(issues)


def _full_admin(idx: int) -> Issue:
    return Issue(
        type=IssueType.FULL_ADMIN,
        severity=Severity.CRITICAL,
        statement_index=idx,
        title="Full Administrator Access",
        description=(
            'This statement grants Action: "*" on Resource: "*" - full admin permissions'
        ),
        remediation="Restrict to specific actions and resources required for the task",
    )
