"""Pure data models for iamshadow. No I/O, no AWS calls."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Effect(Enum):
    ALLOW = "Allow"
    DENY = "Deny"


class IssueType(Enum):
    FULL_ADMIN = "FULL_ADMIN"
    WILDCARD_ACTION = "WILDCARD_ACTION"
    WILDCARD_RESOURCE = "WILDCARD_RESOURCE"
    PRIVILEGE_ESCALATION = "PRIVILEGE_ESCALATION"


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


# ---------------------------------------------------------------------------
# Policy documents
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Statement:
    """One normalized policy statement.

    List fields keep the strings as written (de-duplicated, first spelling
    wins); comparison happens on the normalized form.
    """

    effect: str = Effect.ALLOW.value
    actions: tuple[str, ...] = ()
    not_actions: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()
    not_resources: tuple[str, ...] = ()
    sid: Optional[str] = None
    conditions: Optional[dict] = None

    @property
    def is_allow(self) -> bool:
        return self.effect == Effect.ALLOW.value

    @property
    def is_deny(self) -> bool:
        return self.effect == Effect.DENY.value

    @property
    def has_wildcard_action(self) -> bool:
        return "*" in self.actions

    @property
    def has_wildcard_resource(self) -> bool:
        return "*" in self.resources


@dataclass(frozen=True)
class PolicyDocument:
    """A parsed policy document.

    *has_statements* is False when the source document had no ``Statement``
    field at all, which callers treat as degenerate input.
    """

    statements: tuple[Statement, ...] = ()
    version: Optional[str] = None
    has_statements: bool = True


# ---------------------------------------------------------------------------
# Escalation catalog entries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EscalationTechnique:
    """A catalogued combination of permissions that enables escalation."""

    name: str
    required_permissions: tuple[str, ...]
    optional_permissions: tuple[str, ...]
    risk_level: int
    category: str
    description: str

    @property
    def services(self) -> tuple[str, ...]:
        seen: list[str] = []
        for perm in self.required_permissions:
            service = perm.split(":", 1)[0]
            if service not in seen:
                seen.append(service)
        return tuple(seen)


@dataclass(frozen=True)
class TechniqueMatch:
    """Outcome of matching one technique against a permission closure."""

    technique: EscalationTechnique
    satisfied: bool
    missing: tuple[str, ...] = ()
    denied: tuple[str, ...] = ()
    optional_present: tuple[str, ...] = ()

    @property
    def detected(self) -> bool:
        return self.satisfied and not self.denied


@dataclass(frozen=True)
class DetectedMethod:
    """A detected technique tagged with its catalog name."""

    method: str
    technique: EscalationTechnique


# ---------------------------------------------------------------------------
# Analysis results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Issue:
    """A single finding produced by the scanner or the escalation matcher."""

    type: IssueType
    severity: Severity
    statement_index: int
    title: str
    description: str
    remediation: str
    category: Optional[str] = field(default=None)


@dataclass(frozen=True)
class AnalysisStats:
    total_issues: int = 0
    critical_issues: int = 0
    high_issues: int = 0
    medium_issues: int = 0
    escalation_methods: int = 0


@dataclass(frozen=True)
class AnalysisResult:
    """Security verdict for one policy document."""

    issues: tuple[Issue, ...]
    risk_level: int
    detected_methods: tuple[DetectedMethod, ...]
    summary: str
    stats: AnalysisStats = field(default_factory=AnalysisStats)


# ---------------------------------------------------------------------------
# Wildcard expansion
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatternExpansion:
    original_pattern: str
    has_wildcard: bool
    is_not_action: bool
    expanded_actions: tuple[str, ...]

    @property
    def expanded_count(self) -> int:
        return len(self.expanded_actions)

    @property
    def sample_actions(self) -> tuple[str, ...]:
        return self.expanded_actions[:5]


@dataclass(frozen=True)
class StatementExpansion:
    """Expansion figures for one statement. *index* is 1-based."""

    index: int
    effect: str
    patterns: tuple[str, ...]
    wildcard_patterns: int
    exact_patterns: int
    total_expanded_actions: int
    services_affected: tuple[str, ...]
    expansions: tuple[PatternExpansion, ...]


@dataclass(frozen=True)
class ExpansionSummary:
    total_statements: int = 0
    total_patterns: int = 0
    wildcard_patterns: int = 0
    exact_patterns: int = 0
    total_expanded_actions: int = 0
    expansion_ratio: float = 0.0
    services_affected: tuple[str, ...] = ()
    impact_level: Severity = Severity.LOW


@dataclass(frozen=True)
class ExpansionResult:
    """Blast-radius figures for one policy document."""

    is_valid: bool
    summary: ExpansionSummary
    statements: tuple[StatementExpansion, ...] = ()
    errors: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Version diff
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DiffSet:
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    unchanged: tuple[str, ...] = ()


@dataclass(frozen=True)
class VersionDiff:
    """Set differences of actions and resources between two documents."""

    actions: DiffSet
    resources: DiffSet
    added_count: int
    removed_count: int
    modified_count: int = 0


@dataclass(frozen=True)
class PolicyVersionInfo:
    """One entry from ListPolicyVersions, optionally with its document."""

    version_id: str
    is_default: bool
    create_date: Optional[str] = None
    document: Optional[PolicyDocument] = field(default=None)
