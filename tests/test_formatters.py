"""Tests for iamshadow.formatters."""

import json

import pytest
from rich.console import Console

from iamshadow.analyzer import analyze
from iamshadow.diff import diff
from iamshadow.expansion import WildcardExpansionEngine
from iamshadow.formatters import (
    JsonFormatter,
    TextFormatter,
    analysis_to_dict,
    diff_to_dict,
    expansion_to_dict,
    get_formatter,
)

_ESCALATION = {
    "Version": "2012-10-17",
    "Statement": [{"Effect": "Allow", "Action": "iam:AttachUserPolicy", "Resource": "*"}],
}
_ADMIN = {
    "Version": "2012-10-17",
    "Statement": [{"Effect": "Allow", "Action": "*", "Resource": "*"}],
}


def _record_console() -> Console:
    """Return a Console that records output for later inspection."""
    return Console(record=True, highlight=False, width=160)


# ---------------------------------------------------------------------------
# TextFormatter
# ---------------------------------------------------------------------------


def test_text_formatter_analysis():
    console = _record_console()
    TextFormatter(console=console).render(analyze(_ESCALATION))
    output = console.export_text()
    assert "10/10" in output
    assert "CRITICAL" in output
    assert "AttachUserPolicy" in output
    assert "Wildcard Resources Detected" in output
    assert "Escalation methods" in output


def test_text_formatter_clean_analysis_has_no_tables():
    console = _record_console()
    TextFormatter(console=console).render(
        analyze({"Statement": [{"Action": "s3:GetObject", "Resource": "arn:aws:s3:::b"}]})
    )
    output = console.export_text()
    assert "0/10" in output
    assert "Issues" in output
    assert "Escalation methods:" in output
    assert "Remediation" not in output


def test_text_formatter_statement_index():
    console = _record_console()
    TextFormatter(console=console).render(analyze(_ADMIN))
    output = console.export_text()
    assert "Full Administrator Access" in output


def test_text_formatter_expansion(action_catalog):
    engine = WildcardExpansionEngine(action_catalog)
    result = engine.analyze_policy(
        {"Statement": [{"Action": "s3:*"}, {"Effect": "Deny", "NotAction": "iam:Get*"}]}
    )
    console = _record_console()
    TextFormatter(console=console).render(result)
    output = console.export_text()
    assert "Impact: LOW" in output
    assert "Statement 1 (Allow)" in output
    assert "NOT iam:Get*" in output
    assert "s3:GetObject" in output
    assert "Amazon S3" in output


def test_text_formatter_invalid_expansion(action_catalog):
    result = WildcardExpansionEngine(action_catalog).analyze_policy({"Version": "2012-10-17"})
    console = _record_console()
    TextFormatter(console=console).render(result)
    assert "Policy must contain a Statement field" in console.export_text()


def test_text_formatter_diff():
    result = diff(
        {"Statement": [{"Action": "s3:GetObject", "Resource": "*"}]},
        {"Statement": [{"Action": "iam:PassRole", "Resource": "*"}]},
    )
    console = _record_console()
    TextFormatter(console=console).render(result)
    output = console.export_text()
    assert "+ iam:PassRole" in output
    assert "- s3:GetObject" in output
    assert "Resources" in output


def test_text_formatter_rejects_unknown_type():
    with pytest.raises(TypeError):
        TextFormatter(console=_record_console()).render({"not": "a result"})


# ---------------------------------------------------------------------------
# JsonFormatter / dict forms
# ---------------------------------------------------------------------------


def test_json_formatter_analysis(capsys):
    JsonFormatter().render(analyze(_ESCALATION))
    data = json.loads(capsys.readouterr().out)
    assert data["riskLevel"] == 10
    assert data["summary"].startswith("CRITICAL")
    assert data["detectedMethods"][0]["method"] == "AttachUserPolicy"
    assert data["detectedMethods"][0]["permissions"] == ["iam:attachuserpolicy"]
    assert data["stats"]["escalationMethods"] == 1


def test_analysis_to_dict_issue_shape():
    data = analysis_to_dict(analyze(_ADMIN))
    issue = data["issues"][0]
    assert issue["type"] == "FULL_ADMIN"
    assert issue["severity"] == "critical"
    assert issue["statementIndex"] == 0
    assert "category" not in issue
    escalation = [i for i in data["issues"] if i["type"] == "PRIVILEGE_ESCALATION"]
    assert escalation and all("category" in i for i in escalation)


def test_analysis_to_dict_is_json_serializable():
    json.dumps(analysis_to_dict(analyze(_ADMIN)))


def test_expansion_to_dict(action_catalog):
    result = WildcardExpansionEngine(action_catalog).analyze_policy(
        {"Statement": [{"Action": "s3:Get*"}]}
    )
    data = expansion_to_dict(result)
    assert data["isValid"] is True
    assert data["summary"]["expansionRatio"] == 1
    assert data["summary"]["impactLevel"] == "low"
    expansion = data["statements"][0]["expansions"][0]
    assert expansion["originalPattern"] == "s3:Get*"
    assert expansion["expandedActions"] == ["s3:GetObject"]
    assert expansion["expandedCount"] == 1


def test_diff_to_dict():
    data = diff_to_dict(
        diff({"Statement": [{"Action": "a:b"}]}, {"Statement": [{"Action": "a:c"}]})
    )
    assert data["actions"] == {"added": ["a:c"], "removed": ["a:b"], "unchanged": []}
    assert data["addedCount"] == 1
    assert data["removedCount"] == 1
    assert data["modifiedCount"] == 0


# ---------------------------------------------------------------------------
# get_formatter factory
# ---------------------------------------------------------------------------


def test_get_formatter_text():
    assert isinstance(get_formatter("text"), TextFormatter)


def test_get_formatter_json():
    assert isinstance(get_formatter("json"), JsonFormatter)
