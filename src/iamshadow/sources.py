"""Fetch policy documents and policy versions from IAM.

Thin wrapper over a caller-supplied boto3 IAM client.  Read-only: nothing
here changes a policy or its default version.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from botocore.exceptions import ClientError

from .models import PolicyDocument, PolicyVersionInfo
from .policy import parse_document

logger = logging.getLogger(__name__)

_INLINE_GETTERS = {
    "user": ("get_user_policy", "UserName"),
    "group": ("get_group_policy", "GroupName"),
    "role": ("get_role_policy", "RoleName"),
}


class PolicySourceError(Exception):
    """Raised for unrecoverable AWS-side failures while fetching policies."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


def get_policy_document(
    policy_arn: str,
    iam_client,
    version_id: Optional[str] = None,
) -> PolicyDocument:
    """
    Return the document of a managed policy.

    Uses the policy's default version unless *version_id* is given.

    Raises:
        ValueError: policy or version not found, or invalid input.
        PolicySourceError: any other AWS-side failure.
    """
    try:
        if version_id is None:
            policy = iam_client.get_policy(PolicyArn=policy_arn)["Policy"]
            version_id = policy["DefaultVersionId"]
        logger.debug("GetPolicyVersion %s %s", policy_arn, version_id)
        version = iam_client.get_policy_version(
            PolicyArn=policy_arn, VersionId=version_id
        )["PolicyVersion"]
    except ClientError as exc:
        _handle_client_error(exc)
    return parse_document(version["Document"])


def list_policy_versions(policy_arn: str, iam_client) -> tuple[PolicyVersionInfo, ...]:
    """Return all versions of a managed policy, newest first, without documents."""
    versions: list[dict] = []
    try:
        paginator = iam_client.get_paginator("list_policy_versions")
        for page in paginator.paginate(PolicyArn=policy_arn):
            versions.extend(page.get("Versions", []))
    except ClientError as exc:
        _handle_client_error(exc)

    versions.sort(key=lambda v: str(v.get("CreateDate", "")), reverse=True)
    return tuple(
        PolicyVersionInfo(
            version_id=v["VersionId"],
            is_default=bool(v.get("IsDefaultVersion", False)),
            create_date=str(v["CreateDate"]) if v.get("CreateDate") else None,
        )
        for v in versions
    )


def get_policy_versions(
    policy_arn: str,
    iam_client,
    version_ids: Iterable[str],
) -> tuple[PolicyVersionInfo, ...]:
    """
    Fetch the documents of the requested versions, in the order given.

    Used to diff two versions of the same managed policy.
    """
    known = {v.version_id: v for v in list_policy_versions(policy_arn, iam_client)}
    result: list[PolicyVersionInfo] = []
    for version_id in version_ids:
        if version_id not in known:
            raise ValueError(f"Policy {policy_arn} has no version {version_id!r}.")
        info = known[version_id]
        result.append(
            PolicyVersionInfo(
                version_id=info.version_id,
                is_default=info.is_default,
                create_date=info.create_date,
                document=get_policy_document(policy_arn, iam_client, version_id),
            )
        )
    return tuple(result)


def get_inline_policy_document(
    entity_type: str,
    entity_name: str,
    policy_name: str,
    iam_client,
) -> PolicyDocument:
    """
    Return an inline policy attached to a user, group or role.

    Raises:
        ValueError: unknown *entity_type*, or the entity / policy does not exist.
        PolicySourceError: any other AWS-side failure.
    """
    try:
        method, name_param = _INLINE_GETTERS[entity_type.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported entity type {entity_type!r}. Expected user, group or role."
        ) from None

    try:
        resp = getattr(iam_client, method)(**{name_param: entity_name, "PolicyName": policy_name})
    except ClientError as exc:
        _handle_client_error(exc)
    return parse_document(resp["PolicyDocument"])


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _handle_client_error(exc: ClientError) -> None:
    code = exc.response["Error"]["Code"]
    msg = exc.response["Error"]["Message"]
    if code == "NoSuchEntity":
        raise ValueError(f"Policy not found: {msg}") from exc
    if code == "InvalidInput":
        raise ValueError(f"Invalid request: {msg}") from exc
    raise PolicySourceError(message=msg, error_code=code) from exc
