"""Tests for iamshadow.scanner."""
from iamshadow.models import IssueType, Severity
from iamshadow.scanner import scan


def _doc(*statements):
    return {"Version": "2012-10-17", "Statement": list(statements)}


def _types(issues):
    return [i.type for i in issues]


def test_full_admin_is_statement_scoped():
    issues = scan(
        _doc(
            {"Effect": "Allow", "Action": "s3:GetObject", "Resource": "arn:aws:s3:::b/*"},
            {"Effect": "Allow", "Action": "*", "Resource": "*"},
        )
    )
    assert _types(issues) == [IssueType.FULL_ADMIN]
    assert issues[0].statement_index == 1
    assert issues[0].severity == Severity.CRITICAL


def test_full_admin_per_statement():
    issues = scan(
        _doc(
            {"Effect": "Allow", "Action": "*", "Resource": "*"},
            {"Action": "*", "Resource": "*"},
        )
    )
    assert _types(issues) == [IssueType.FULL_ADMIN, IssueType.FULL_ADMIN]


def test_full_admin_suppresses_wildcard_issues():
    issues = scan(
        _doc(
            {"Effect": "Allow", "Action": "*", "Resource": "*"},
            {"Effect": "Allow", "Action": "*", "Resource": "arn:aws:s3:::b"},
            {"Effect": "Allow", "Action": "s3:GetObject", "Resource": "*"},
        )
    )
    assert _types(issues) == [IssueType.FULL_ADMIN]


def test_deny_star_star_is_not_full_admin():
    issues = scan(_doc({"Effect": "Deny", "Action": "*", "Resource": "*"}))
    assert _types(issues) == [IssueType.WILDCARD_ACTION, IssueType.WILDCARD_RESOURCE]


def test_wildcard_action_fires_once():
    issues = scan(
        _doc(
            {"Effect": "Allow", "Action": "*", "Resource": "arn:aws:s3:::a"},
            {"Effect": "Allow", "Action": "*", "Resource": "arn:aws:s3:::b"},
        )
    )
    assert _types(issues) == [IssueType.WILDCARD_ACTION]
    assert issues[0].statement_index == -1
    assert issues[0].severity == Severity.HIGH


def test_wildcard_resource_fires_once():
    issues = scan(
        _doc(
            {"Effect": "Allow", "Action": "s3:GetObject", "Resource": "*"},
            {"Effect": "Allow", "Action": "s3:PutObject", "Resource": "*"},
        )
    )
    assert _types(issues) == [IssueType.WILDCARD_RESOURCE]
    assert issues[0].severity == Severity.MEDIUM


def test_service_wildcard_is_not_a_wildcard_action():
    assert scan(_doc({"Effect": "Allow", "Action": "s3:*", "Resource": "arn:aws:s3:::b"})) == ()


def test_no_statements():
    assert scan({"Version": "2012-10-17"}) == ()
