"""Resolve a policy document into its allowed / denied permission closure."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .models import PolicyDocument
from .permissions import ServiceWildcard, implies, parse_permission
from .policy import normalize_action, parse_document
from .techniques import EscalationCatalog, default_catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionClosure:
    """
    Allowed and denied permission strings of one document, normalized.

    ``"*"`` and ``"service:*"`` are kept verbatim next to the catalog
    permissions they were expanded into.  Allow/Deny overlap is left for the
    matcher to settle.
    """

    allowed: frozenset[str] = frozenset()
    denied: frozenset[str] = frozenset()
    has_full_wildcard_action: bool = False
    has_full_wildcard_resource: bool = False

    def grants(self, permission: str) -> bool:
        return _any_implies(self.allowed, permission)

    def denies(self, permission: str) -> bool:
        return normalize_action(permission) in self.denied


def resolve(document, catalog: Optional[EscalationCatalog] = None) -> PermissionClosure:
    """
    Build the PermissionClosure of *document*.

    An allowed ``<service>:*`` grant is expanded into every permission of
    that service known to *catalog* (the escalation catalog only, never the
    full AWS action list).  NotAction entries do not contribute.
    """
    doc: PolicyDocument = parse_document(document)
    if catalog is None:
        catalog = default_catalog()

    allowed: set[str] = set()
    denied: set[str] = set()
    wildcard_action = False
    wildcard_resource = False

    for stmt in doc.statements:
        if stmt.has_wildcard_action:
            wildcard_action = True
        if stmt.has_wildcard_resource:
            wildcard_resource = True

        for action in stmt.actions:
            normalized = normalize_action(action)
            if stmt.is_allow:
                allowed.add(normalized)
                permission = parse_permission(normalized)
                if isinstance(permission, ServiceWildcard):
                    allowed.update(catalog.permissions_for_service(permission.service))
            elif stmt.is_deny:
                denied.add(normalized)

    logger.debug(
        "Resolved closure: %d allowed, %d denied, wildcard action=%s, wildcard resource=%s",
        len(allowed), len(denied), wildcard_action, wildcard_resource,
    )
    return PermissionClosure(
        allowed=frozenset(allowed),
        denied=frozenset(denied),
        has_full_wildcard_action=wildcard_action,
        has_full_wildcard_resource=wildcard_resource,
    )


def _any_implies(grantees: frozenset[str], permission: str) -> bool:
    required = parse_permission(permission)
    return any(implies(parse_permission(g), required) for g in grantees)
