"""Normalize raw IAM policy JSON into PolicyDocument / Statement models."""
from __future__ import annotations

import json
from urllib.parse import unquote

from .models import Effect, PolicyDocument, Statement


class PolicyParseError(ValueError):
    """Raised when a policy document is not a JSON object."""


def parse_document(raw) -> PolicyDocument:
    """
    Build a PolicyDocument from *raw*.

    Accepts a dict, a JSON string, a URL-encoded JSON string (the form
    GetPolicyVersion returns on the wire) or an existing PolicyDocument.
    A ``Statement`` given as a single object is wrapped into a list.  A
    document with no ``Statement`` field parses to an empty document with
    ``has_statements=False``.

    Raises:
        PolicyParseError: *raw* is not a JSON object.
        TypeError: an action or resource entry is not a string.
    """
    if isinstance(raw, PolicyDocument):
        return raw
    if isinstance(raw, (str, bytes)):
        raw = _load_json(raw)
    if not isinstance(raw, dict):
        raise PolicyParseError(
            f"Policy document must be a JSON object, got {type(raw).__name__}."
        )

    version = raw.get("Version")
    raw_statements = raw.get("Statement")
    if raw_statements is None:
        return PolicyDocument(statements=(), version=version, has_statements=False)
    if isinstance(raw_statements, dict):
        raw_statements = [raw_statements]
    if not isinstance(raw_statements, list):
        raise PolicyParseError("Statement must be an object or a list of objects.")

    return PolicyDocument(
        statements=tuple(parse_statement(s) for s in raw_statements),
        version=version,
        has_statements=True,
    )


def parse_statement(raw: dict) -> Statement:
    if not isinstance(raw, dict):
        raise PolicyParseError(
            f"Statement must be a JSON object, got {type(raw).__name__}."
        )
    conditions = raw.get("Condition")
    return Statement(
        effect=normalize_effect(raw.get("Effect")),
        actions=_as_tuple(raw.get("Action"), "Action"),
        not_actions=_as_tuple(raw.get("NotAction"), "NotAction"),
        resources=_as_tuple(raw.get("Resource"), "Resource"),
        not_resources=_as_tuple(raw.get("NotResource"), "NotResource"),
        sid=raw.get("Sid"),
        conditions=dict(conditions) if isinstance(conditions, dict) else None,
    )


def normalize_action(value: str) -> str:
    """Lowercase *value* and drop all whitespace: ``" IAM:Pass Role"`` -> ``"iam:passrole"``."""
    return "".join(value.split()).lower()


def normalize_effect(value) -> str:
    if not value:
        return Effect.ALLOW.value
    text = str(value).strip()
    for effect in Effect:
        if text.lower() == effect.value.lower():
            return effect.value
    return text


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _load_json(text: str | bytes) -> object:
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    text = text.strip()
    if text.startswith("%7B") or text.startswith("%7b"):
        text = unquote(text)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise PolicyParseError(f"Policy document is not valid JSON: {exc}") from exc


def _as_tuple(value, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{field_name} must be a string or a list of strings.")

    seen: set[str] = set()
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(
                f"{field_name} entries must be strings, got {type(item).__name__}."
            )
        if item not in seen:
            seen.add(item)
            items.append(item)
    return tuple(items)
