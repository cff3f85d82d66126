"""
Wildcard expansion against the AWS action catalog.

The action catalog is the ``serviceMap`` published by the AWS policy
generator (``policies.js``)::

    {"serviceMap": {"Amazon S3": {"StringPrefix": "s3",
                                  "Actions": ["GetObject", ...]}, ...}}

Loading it is the caller's job (``load_action_catalog`` reads a local copy);
the engine only needs the loaded catalog handed to ``initialize``.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from .models import (
    ExpansionResult,
    ExpansionSummary,
    PatternExpansion,
    PolicyDocument,
    Severity,
    Statement,
    StatementExpansion,
)
from .policy import parse_document

logger = logging.getLogger(__name__)

UNKNOWN_SERVICE = "Unknown Service"
SAMPLE_SIZE = 5

_IMPACT_DESCRIPTIONS = {
    Severity.CRITICAL: "Critical - Very broad permissions",
    Severity.HIGH: "High - Broad permissions",
    Severity.MEDIUM: "Medium - Moderate permissions",
    Severity.LOW: "Low - Specific permissions",
}


class UninitializedEngineError(RuntimeError):
    """Raised when the expansion engine is used before ``initialize``."""


class CatalogUnavailableError(Exception):
    """Raised when the action catalog cannot be read or parsed."""


# ---------------------------------------------------------------------------
# Action catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ServiceActions:
    name: str
    prefix: str
    actions: tuple[str, ...]


class ActionCatalog:
    """
    Read-only index of every known ``service:Action`` string.

    Services sharing a prefix are merged and each action is listed once, so
    a catalog with repeated entries never inflates expansion counts.
    """

    def __init__(self, services: Iterable[ServiceActions]) -> None:
        self._services = tuple(services)
        names: dict[str, str] = {}
        by_prefix: dict[str, list[str]] = {}
        flat: list[str] = []
        seen: set[str] = set()
        for svc in self._services:
            prefix = svc.prefix.lower()
            names.setdefault(prefix, svc.name)
            bucket = by_prefix.setdefault(prefix, [])
            for action in svc.actions:
                full = f"{svc.prefix}:{action}"
                if full.lower() in seen:
                    continue
                seen.add(full.lower())
                bucket.append(action)
                flat.append(full)
        self._names = names
        self._by_prefix = {p: tuple(a) for p, a in by_prefix.items()}
        self._all_actions = tuple(flat)

    @classmethod
    def from_dict(cls, data: dict) -> "ActionCatalog":
        """
        Parse ``{"serviceMap": {...}}``.

        Raises:
            CatalogUnavailableError: *data* does not have the expected shape.
        """
        service_map = data.get("serviceMap") if isinstance(data, dict) else None
        if not isinstance(service_map, dict):
            raise CatalogUnavailableError("Action catalog has no serviceMap object.")

        services = []
        for name, entry in service_map.items():
            if not isinstance(entry, dict) or "StringPrefix" not in entry:
                raise CatalogUnavailableError(
                    f"Service {name!r} in action catalog has no StringPrefix."
                )
            services.append(
                ServiceActions(
                    name=name,
                    prefix=entry["StringPrefix"],
                    actions=tuple(entry.get("Actions") or ()),
                )
            )
        return cls(services)

    @classmethod
    def from_text(cls, text: str) -> "ActionCatalog":
        """Parse plain JSON or the ``app.PolicyEditorConfig = {...}`` script form."""
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end < start:
            raise CatalogUnavailableError("Action catalog contains no JSON object.")
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError as exc:
            raise CatalogUnavailableError(f"Action catalog is not valid JSON: {exc}") from exc
        return cls.from_dict(data)

    @property
    def all_actions(self) -> tuple[str, ...]:
        return self._all_actions

    @property
    def prefixes(self) -> tuple[str, ...]:
        return tuple(self._by_prefix)

    def actions_for(self, prefix: str) -> tuple[str, ...]:
        return self._by_prefix.get(prefix.lower(), ())

    def service_name(self, prefix: str) -> str:
        return self._names.get(prefix.lower(), UNKNOWN_SERVICE)

    def __len__(self) -> int:
        return len(self._all_actions)


def load_action_catalog(path: Union[str, Path]) -> ActionCatalog:
    """
    Read an action catalog from *path*.

    Raises:
        CatalogUnavailableError: the file cannot be read or parsed.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogUnavailableError(f"Cannot read action catalog {path}: {exc}") from exc
    catalog = ActionCatalog.from_text(text)
    logger.info(
        "Loaded action catalog from %s: %d services, %d actions",
        path, len(catalog.prefixes), len(catalog),
    )
    return catalog


async def load_action_catalog_async(path: Union[str, Path]) -> ActionCatalog:
    """Awaitable ``load_action_catalog``; the file read runs in a worker thread."""
    return await asyncio.to_thread(load_action_catalog, path)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class WildcardExpansionEngine:
    """Expands Action / NotAction patterns into concrete catalog actions."""

    def __init__(self, catalog: Optional[ActionCatalog] = None) -> None:
        self._catalog: Optional[ActionCatalog] = None
        if catalog is not None:
            self.initialize(catalog)

    def initialize(self, catalog: ActionCatalog) -> None:
        """Attach *catalog*. Later calls are no-ops once a catalog is set."""
        if self._catalog is not None:
            return
        self._catalog = catalog
        logger.debug("Expansion engine initialized with %d actions", len(catalog))

    @property
    def is_initialized(self) -> bool:
        return self._catalog is not None

    @property
    def catalog(self) -> ActionCatalog:
        if self._catalog is None:
            raise UninitializedEngineError(
                "Expansion engine is not initialized. Call initialize() first."
            )
        return self._catalog

    def analyze_policy(self, document) -> ExpansionResult:
        catalog = self.catalog
        doc: PolicyDocument = parse_document(document)
        if not doc.has_statements:
            return ExpansionResult(
                is_valid=False,
                summary=ExpansionSummary(),
                errors=("Policy must contain a Statement field",),
            )

        statements = tuple(
            self.analyze_statement(stmt, idx, catalog)
            for idx, stmt in enumerate(doc.statements)
        )

        total_patterns = sum(len(s.patterns) for s in statements)
        total_expanded = sum(s.total_expanded_actions for s in statements)
        ratio = total_expanded / total_patterns if total_patterns else 0.0
        services = sorted({svc for s in statements for svc in s.services_affected})

        summary = ExpansionSummary(
            total_statements=len(statements),
            total_patterns=total_patterns,
            wildcard_patterns=sum(s.wildcard_patterns for s in statements),
            exact_patterns=sum(s.exact_patterns for s in statements),
            total_expanded_actions=total_expanded,
            expansion_ratio=ratio,
            services_affected=tuple(services),
            impact_level=self.impact_level(ratio),
        )
        return ExpansionResult(is_valid=True, summary=summary, statements=statements)

    def analyze_statement(
        self,
        statement: Statement,
        index: int,
        catalog: Optional[ActionCatalog] = None,
    ) -> StatementExpansion:
        if catalog is None:
            catalog = self.catalog
        expansions = [self.expand_pattern(p, catalog=catalog) for p in statement.actions]
        expansions.extend(
            self.expand_pattern(p, is_not_action=True, catalog=catalog)
            for p in statement.not_actions
        )

        services: set[str] = set()
        for expansion in expansions:
            for action in expansion.expanded_actions:
                services.add(catalog.service_name(action.split(":", 1)[0]))

        return StatementExpansion(
            index=index + 1,
            effect=statement.effect,
            patterns=tuple(e.original_pattern for e in expansions),
            wildcard_patterns=sum(1 for e in expansions if e.has_wildcard),
            exact_patterns=sum(1 for e in expansions if not e.has_wildcard),
            total_expanded_actions=sum(e.expanded_count for e in expansions),
            services_affected=tuple(sorted(services)),
            expansions=tuple(expansions),
        )

    def expand_pattern(
        self,
        pattern: str,
        is_not_action: bool = False,
        catalog: Optional[ActionCatalog] = None,
    ) -> PatternExpansion:
        """
        Expand *pattern* against the catalog.

        ``*`` matches any run of characters, the match is anchored and
        case-insensitive.  A wildcard pattern matching nothing expands to
        itself so it is still counted once.  *catalog* defaults to the
        engine's own.
        """
        if catalog is None:
            catalog = self.catalog
        has_wildcard = "*" in pattern
        if has_wildcard:
            regex = wildcard_to_regex(pattern)
            expanded = tuple(a for a in catalog.all_actions if regex.fullmatch(a))
            if not expanded:
                expanded = (pattern,)
        else:
            expanded = (pattern,)

        return PatternExpansion(
            original_pattern=pattern,
            has_wildcard=has_wildcard,
            is_not_action=is_not_action,
            expanded_actions=expanded,
        )

    @staticmethod
    def impact_level(expansion_ratio: float) -> Severity:
        if expansion_ratio >= 100:
            return Severity.CRITICAL
        if expansion_ratio >= 50:
            return Severity.HIGH
        if expansion_ratio >= 10:
            return Severity.MEDIUM
        return Severity.LOW

    @staticmethod
    def impact_description(level: Severity) -> str:
        return _IMPACT_DESCRIPTIONS.get(level, "Unknown impact")


def wildcard_to_regex(pattern: str) -> re.Pattern:
    """``s3:Get*`` -> a case-insensitive regex for full-string matching."""
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")), re.IGNORECASE)
