"""
Privilege escalation technique catalog.

Based on Rhino Security Labs' AWS privilege escalation research (the
methods implemented by Pacu).  The catalog is an immutable object built
once at import; pass a different EscalationCatalog to the matcher or the
analyzer to check against a custom set.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, Optional

from .models import EscalationTechnique
from .policy import normalize_action

POLICY_MANIPULATION = "IAM Policy Manipulation"
PRINCIPAL_MANIPULATION = "Principal Manipulation"
PASSROLE_ESCALATION = "PassRole Escalation"
SPECIAL_METHODS = "Special Methods"


class EscalationCatalog:
    """Read-only, ordered collection of EscalationTechnique entries."""

    def __init__(self, techniques: Iterable[EscalationTechnique]) -> None:
        by_name: dict[str, EscalationTechnique] = {}
        for technique in techniques:
            if technique.name in by_name:
                raise ValueError(f"Duplicate escalation technique {technique.name!r}.")
            by_name[technique.name] = technique
        self._by_name = MappingProxyType(by_name)

        vocabulary: set[str] = set()
        for technique in by_name.values():
            vocabulary.update(technique.required_permissions)
            vocabulary.update(technique.optional_permissions)
        self._vocabulary = frozenset(vocabulary)

    def __iter__(self) -> Iterator[EscalationTechnique]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> Optional[EscalationTechnique]:
        return self._by_name.get(name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._by_name)

    @property
    def permission_vocabulary(self) -> frozenset[str]:
        """Every permission string any technique mentions, normalized."""
        return self._vocabulary

    def permissions_for_service(self, service: str) -> tuple[str, ...]:
        prefix = normalize_action(service) + ":"
        return tuple(sorted(p for p in self._vocabulary if p.startswith(prefix)))


def technique(
    name: str,
    required: Iterable[str],
    risk_level: int,
    category: str,
    description: str,
    optional: Iterable[str] = (),
) -> EscalationTechnique:
    """Build an EscalationTechnique with normalized permission strings."""
    if not 0 <= risk_level <= 10:
        raise ValueError(f"risk_level must be between 0 and 10, got {risk_level}.")
    return EscalationTechnique(
        name=name,
        required_permissions=_ordered_unique(required),
        optional_permissions=_ordered_unique(optional),
        risk_level=risk_level,
        category=category,
        description=description,
    )


def _ordered_unique(permissions: Iterable[str]) -> tuple[str, ...]:
    result: list[str] = []
    for perm in permissions:
        normalized = normalize_action(perm)
        if normalized not in result:
            result.append(normalized)
    return tuple(result)


_TECHNIQUES = (
    # IAM policy manipulation
    technique(
        "CreateNewPolicyVersion",
        ["iam:CreatePolicyVersion"],
        10, POLICY_MANIPULATION,
        "Can create new policy version with admin permissions and set as default",
        optional=[
            "iam:ListAttachedGroupPolicies",
            "iam:ListAttachedRolePolicies",
            "iam:ListAttachedUserPolicies",
        ],
    ),
    technique(
        "SetExistingDefaultPolicyVersion",
        ["iam:SetDefaultPolicyVersion"],
        10, POLICY_MANIPULATION,
        "Can revert to previous policy version with higher privileges",
        optional=["iam:ListPolicyVersions", "iam:ListAttachedUserPolicies"],
    ),
    technique(
        "AttachUserPolicy",
        ["iam:AttachUserPolicy"],
        10, POLICY_MANIPULATION,
        "Can attach AdministratorAccess policy to own user",
        optional=["iam:ListUsers"],
    ),
    technique(
        "AttachGroupPolicy",
        ["iam:AttachGroupPolicy"],
        10, POLICY_MANIPULATION,
        "Can attach admin policy to a group user belongs to",
        optional=["iam:ListGroupsForUser"],
    ),
    technique(
        "AttachRolePolicy",
        ["iam:AttachRolePolicy", "sts:AssumeRole"],
        10, POLICY_MANIPULATION,
        "Can attach admin policy to an assumable role",
        optional=["iam:ListRoles"],
    ),
    technique(
        "PutUserPolicy",
        ["iam:PutUserPolicy"],
        10, POLICY_MANIPULATION,
        "Can create inline policy with admin permissions on own user",
        optional=["iam:ListUserPolicies"],
    ),
    technique(
        "PutGroupPolicy",
        ["iam:PutGroupPolicy"],
        10, POLICY_MANIPULATION,
        "Can create inline admin policy on a group user belongs to",
        optional=["iam:ListGroupPolicies"],
    ),
    technique(
        "PutRolePolicy",
        ["iam:PutRolePolicy", "sts:AssumeRole"],
        10, POLICY_MANIPULATION,
        "Can create inline admin policy on an assumable role",
        optional=["iam:ListRolePolicies"],
    ),
    # Principal manipulation
    technique(
        "AddUserToGroup",
        ["iam:AddUserToGroup"],
        8, PRINCIPAL_MANIPULATION,
        "Can add self to privileged group",
        optional=["iam:ListGroups"],
    ),
    technique(
        "CreateAccessKey",
        ["iam:CreateAccessKey"],
        9, PRINCIPAL_MANIPULATION,
        "Can create access keys for privileged users",
        optional=["iam:ListUsers"],
    ),
    technique(
        "CreateLoginProfile",
        ["iam:CreateLoginProfile"],
        8, PRINCIPAL_MANIPULATION,
        "Can create console password for privileged users",
        optional=["iam:ListUsers"],
    ),
    technique(
        "UpdateLoginProfile",
        ["iam:UpdateLoginProfile"],
        8, PRINCIPAL_MANIPULATION,
        "Can reset console password for privileged users",
        optional=["iam:ListUsers"],
    ),
    technique(
        "UpdateRolePolicyToAssumeIt",
        ["iam:UpdateAssumeRolePolicy", "sts:AssumeRole"],
        9, PRINCIPAL_MANIPULATION,
        "Can modify role trust policy to assume privileged role",
        optional=["iam:ListRoles"],
    ),
    # PassRole escalation
    technique(
        "PassRoleToEC2",
        ["iam:PassRole", "ec2:RunInstances"],
        9, PASSROLE_ESCALATION,
        "Can pass privileged role to EC2 and extract credentials",
        optional=["iam:ListInstanceProfiles"],
    ),
    technique(
        "PassRoleToLambda",
        ["iam:PassRole", "lambda:CreateFunction", "lambda:InvokeFunction"],
        10, PASSROLE_ESCALATION,
        "Can create Lambda with privileged role and invoke it",
        optional=["iam:ListRoles"],
    ),
    technique(
        "PassRoleToLambdaDynamoDB",
        [
            "iam:PassRole",
            "lambda:CreateFunction",
            "lambda:CreateEventSourceMapping",
            "dynamodb:PutItem",
        ],
        9, PASSROLE_ESCALATION,
        "Can create Lambda with privileged role triggered by DynamoDB",
        optional=["dynamodb:CreateTable"],
    ),
    technique(
        "UpdateLambdaFunction",
        ["lambda:UpdateFunctionCode"],
        9, PASSROLE_ESCALATION,
        "Can modify existing Lambda function with privileged role",
        optional=["lambda:ListFunctions", "lambda:InvokeFunction"],
    ),
    technique(
        "PassRoleToGlue",
        ["iam:PassRole", "glue:CreateDevEndpoint"],
        9, PASSROLE_ESCALATION,
        "Can create Glue Dev Endpoint with privileged role",
        optional=["glue:GetDevEndpoint", "iam:ListRoles"],
    ),
    technique(
        "UpdateGlueDevEndpoint",
        ["glue:UpdateDevEndpoint"],
        8, PASSROLE_ESCALATION,
        "Can add SSH key to existing Glue Dev Endpoint",
        optional=["glue:DescribeDevEndpoints"],
    ),
    technique(
        "PassRoleToCloudFormation",
        ["iam:PassRole", "cloudformation:CreateStack"],
        9, PASSROLE_ESCALATION,
        "Can create CloudFormation stack with privileged role",
        optional=["cloudformation:DescribeStacks", "iam:ListRoles"],
    ),
    technique(
        "PassRoleToDataPipeline",
        [
            "iam:PassRole",
            "datapipeline:CreatePipeline",
            "datapipeline:PutPipelineDefinition",
        ],
        8, PASSROLE_ESCALATION,
        "Can create Data Pipeline with privileged role",
        optional=["iam:ListRoles"],
    ),
    technique(
        "PassRoleToCodeStar",
        ["iam:PassRole", "codestar:CreateProject"],
        7, PASSROLE_ESCALATION,
        "Can create CodeStar project with privileged role",
    ),
    # CodeStar special cases
    technique(
        "CodeStarCreateProjectFromTemplate",
        ["codestar:CreateProjectFromTemplate"],
        7, SPECIAL_METHODS,
        "Undocumented CodeStar API providing elevated permissions",
    ),
    technique(
        "CodeStarAssociateTeamMember",
        ["codestar:CreateProject", "codestar:AssociateTeamMember"],
        7, SPECIAL_METHODS,
        "Can gain enumeration permissions through CodeStar Owner role",
    ),
)

_DEFAULT_CATALOG = EscalationCatalog(_TECHNIQUES)


def default_catalog() -> EscalationCatalog:
    """Return the built-in catalog (one shared, immutable instance)."""
    return _DEFAULT_CATALOG
