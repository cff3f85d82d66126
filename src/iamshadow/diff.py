"""Set-based diff of the actions and resources of two policy versions."""
from __future__ import annotations

from .models import DiffSet, PolicyDocument, VersionDiff
from .policy import normalize_action, parse_document


def diff(old, new) -> VersionDiff:
    """
    Compare *old* and *new* as flat sets of actions and resources.

    Statement boundaries and Effect are ignored: two versions that only
    reorder or split statements show no difference.  Strings compare
    case-insensitively with whitespace removed; each side keeps its own
    spelling (``unchanged`` uses the old one).  ``modified_count`` is
    always 0 because statements are never paired one-to-one.
    """
    old_doc = parse_document(old)
    new_doc = parse_document(new)

    actions = _diff_sets(_collect(old_doc, "actions"), _collect(new_doc, "actions"))
    resources = _diff_sets(_collect(old_doc, "resources"), _collect(new_doc, "resources"))

    return VersionDiff(
        actions=actions,
        resources=resources,
        added_count=len(actions.added) + len(resources.added),
        removed_count=len(actions.removed) + len(resources.removed),
        modified_count=0,
    )


def _collect(doc: PolicyDocument, attr: str) -> dict[str, str]:
    """Map normalized form -> first spelling seen, across all statements."""
    values: dict[str, str] = {}
    for stmt in doc.statements:
        for value in getattr(stmt, attr):
            values.setdefault(normalize_action(value), value)
    return values


def _diff_sets(old: dict[str, str], new: dict[str, str]) -> DiffSet:
    return DiffSet(
        added=_sorted(new[k] for k in new.keys() - old.keys()),
        removed=_sorted(old[k] for k in old.keys() - new.keys()),
        unchanged=_sorted(old[k] for k in old.keys() & new.keys()),
    )


def _sorted(values) -> tuple[str, ...]:
    return tuple(sorted(values, key=lambda v: (v.lower(), v)))
