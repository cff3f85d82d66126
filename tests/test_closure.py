"""Tests for iamshadow.closure."""
from iamshadow.closure import PermissionClosure, resolve
from iamshadow.techniques import EscalationCatalog, default_catalog, technique


def _doc(*statements):
    return {"Version": "2012-10-17", "Statement": list(statements)}


def test_allowed_and_denied_are_normalized():
    closure = resolve(
        _doc(
            {"Effect": "Allow", "Action": ["IAM:PassRole", " ec2:Run Instances"], "Resource": "*"},
            {"Effect": "Deny", "Action": "iam:PassRole", "Resource": "*"},
        )
    )
    assert "iam:passrole" in closure.allowed
    assert "ec2:runinstances" in closure.allowed
    assert closure.denied == frozenset({"iam:passrole"})


def test_allow_and_deny_are_not_reconciled():
    closure = resolve(
        _doc(
            {"Effect": "Allow", "Action": "iam:CreateAccessKey"},
            {"Effect": "Deny", "Action": "iam:CreateAccessKey"},
        )
    )
    assert "iam:createaccesskey" in closure.allowed
    assert "iam:createaccesskey" in closure.denied


def test_wildcard_flags():
    closure = resolve(_doc({"Effect": "Deny", "Action": "*", "Resource": "*"}))
    assert closure.has_full_wildcard_action
    assert closure.has_full_wildcard_resource
    assert closure.allowed == frozenset()
    assert closure.denied == frozenset({"*"})


def test_service_wildcard_expands_to_catalog_vocabulary():
    closure = resolve(_doc({"Effect": "Allow", "Action": "iam:*", "Resource": "*"}))
    assert "iam:*" in closure.allowed
    assert "iam:attachuserpolicy" in closure.allowed
    assert "iam:passrole" in closure.allowed
    assert not any(p.startswith("lambda:") for p in closure.allowed)


def test_non_iam_service_wildcard_expands_too():
    closure = resolve(_doc({"Effect": "Allow", "Action": "lambda:*", "Resource": "*"}))
    assert "lambda:createfunction" in closure.allowed
    assert "lambda:updatefunctioncode" in closure.allowed


def test_expansion_is_bounded_by_given_catalog():
    small = EscalationCatalog([technique("Only", ["iam:PassRole"], 5, "Custom", "desc")])
    closure = resolve(_doc({"Effect": "Allow", "Action": "iam:*"}), small)
    assert closure.allowed == frozenset({"iam:*", "iam:passrole"})


def test_denied_service_wildcard_is_not_expanded():
    closure = resolve(_doc({"Effect": "Deny", "Action": "iam:*"}))
    assert closure.denied == frozenset({"iam:*"})


def test_not_action_does_not_contribute():
    closure = resolve(_doc({"Effect": "Allow", "NotAction": "iam:*", "Resource": "*"}))
    assert closure.allowed == frozenset()
    assert not closure.has_full_wildcard_action


def test_missing_statement_gives_empty_closure():
    assert resolve({"Version": "2012-10-17"}) == PermissionClosure()


def test_grants_uses_wildcards():
    closure = PermissionClosure(allowed=frozenset({"s3:*"}))
    assert closure.grants("s3:GetObject")
    assert not closure.grants("iam:PassRole")
    assert PermissionClosure(allowed=frozenset({"*"})).grants("iam:PassRole")


def test_denies_matches_by_name_only():
    closure = PermissionClosure(denied=frozenset({"iam:*", "iam:passrole"}))
    assert closure.denies("iam:passrole")
    assert closure.denies("IAM:PassRole")
    assert not closure.denies("iam:attachuserpolicy")
    assert not PermissionClosure(denied=frozenset({"*"})).denies("iam:passrole")


def test_resolve_uses_default_catalog():
    closure = resolve(_doc({"Action": "glue:*"}), None)
    assert set(default_catalog().permissions_for_service("glue")) <= closure.allowed


def test_empty_catalog_is_not_replaced_by_default():
    closure = resolve(_doc({"Effect": "Allow", "Action": "iam:*"}), EscalationCatalog([]))
    assert closure.allowed == frozenset({"iam:*"})
