"""Match a PermissionClosure against the escalation technique catalog."""
from __future__ import annotations

import logging
from typing import Optional

from .closure import PermissionClosure
from .models import EscalationTechnique, TechniqueMatch
from .techniques import EscalationCatalog, default_catalog

logger = logging.getLogger(__name__)


def match(
    closure: PermissionClosure,
    catalog: Optional[EscalationCatalog] = None,
) -> tuple[TechniqueMatch, ...]:
    """
    Return one TechniqueMatch per technique, in catalog order.

    A required permission is satisfied when the closure allows it exactly,
    through ``"*"``, or through ``"<service>:*"``.  A required permission
    denied by name rejects the technique regardless of what is allowed; a
    Deny of ``"*"`` or ``"<service>:*"`` does not.
    Optional permissions are reported but never affect detection.
    """
    if catalog is None:
        catalog = default_catalog()
    return tuple(_match_one(closure, t) for t in catalog)


def detected(
    closure: PermissionClosure,
    catalog: Optional[EscalationCatalog] = None,
) -> tuple[EscalationTechnique, ...]:
    found = tuple(m.technique for m in match(closure, catalog) if m.detected)
    if found:
        logger.debug("Detected techniques: %s", ", ".join(t.name for t in found))
    return found


def _match_one(closure: PermissionClosure, technique: EscalationTechnique) -> TechniqueMatch:
    missing = tuple(p for p in technique.required_permissions if not closure.grants(p))
    denied = tuple(p for p in technique.required_permissions if closure.denies(p))
    optional_present = tuple(
        p for p in technique.optional_permissions if closure.grants(p)
    )
    return TechniqueMatch(
        technique=technique,
        satisfied=not missing,
        missing=missing,
        denied=denied,
        optional_present=optional_present,
    )
