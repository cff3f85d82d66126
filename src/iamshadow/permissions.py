"""Permission strings as a tagged union, with a single implication rule.

    "*"            -> UniversalWildcard()
    "iam:*"        -> ServiceWildcard("iam")
    "iam:PassRole" -> Exact("iam:passrole")

Partial wildcards such as ``iam:Get*`` are kept as Exact values: only the
whole-action and whole-service forms widen a grant here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .policy import normalize_action


@dataclass(frozen=True)
class Exact:
    action: str

    @property
    def service(self) -> str:
        return self.action.split(":", 1)[0]


@dataclass(frozen=True)
class ServiceWildcard:
    service: str


@dataclass(frozen=True)
class UniversalWildcard:
    pass


Permission = Union[Exact, ServiceWildcard, UniversalWildcard]


def parse_permission(text: str) -> Permission:
    normalized = normalize_action(text)
    if normalized == "*":
        return UniversalWildcard()
    service, sep, action = normalized.partition(":")
    if sep and service and action == "*":
        return ServiceWildcard(service)
    return Exact(normalized)


def implies(grantee: Permission, required: Permission) -> bool:
    """Return True if holding *grantee* also grants *required*."""
    if isinstance(grantee, UniversalWildcard):
        return True
    if isinstance(grantee, ServiceWildcard):
        if isinstance(required, ServiceWildcard):
            return required.service == grantee.service
        if isinstance(required, Exact):
            return required.service == grantee.service
        return False
    return isinstance(required, Exact) and required.action == grantee.action
