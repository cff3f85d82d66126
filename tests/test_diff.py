"""Tests for iamshadow.diff."""
from iamshadow.diff import diff

V1 = {
    "Version": "2012-10-17",
    "Statement": [
        {"Effect": "Allow", "Action": ["s3:GetObject", "s3:ListBucket"], "Resource": "arn:aws:s3:::b"},
        {"Effect": "Allow", "Action": "iam:GetUser", "Resource": "*"},
    ],
}
V2 = {
    "Version": "2012-10-17",
    "Statement": [
        {"Effect": "Allow", "Action": ["s3:GetObject", "s3:PutObject"], "Resource": "arn:aws:s3:::b"},
        {"Effect": "Allow", "Action": "iam:PassRole", "Resource": "arn:aws:iam::1:role/app"},
    ],
}


def test_added_removed_unchanged():
    d = diff(V1, V2)
    assert d.actions.added == ("iam:PassRole", "s3:PutObject")
    assert d.actions.removed == ("iam:GetUser", "s3:ListBucket")
    assert d.actions.unchanged == ("s3:GetObject",)
    assert d.resources.added == ("arn:aws:iam::1:role/app",)
    assert d.resources.removed == ("*",)
    assert d.resources.unchanged == ("arn:aws:s3:::b",)
    assert d.added_count == 3
    assert d.removed_count == 3
    assert d.modified_count == 0


def test_diff_is_symmetric():
    forward = diff(V1, V2)
    backward = diff(V2, V1)
    assert forward.actions.added == backward.actions.removed
    assert forward.actions.removed == backward.actions.added
    assert forward.resources.added == backward.resources.removed
    assert set(forward.actions.unchanged) == set(backward.actions.unchanged)


def test_diff_with_itself():
    d = diff(V1, V1)
    assert d.actions.added == ()
    assert d.actions.removed == ()
    assert set(d.actions.unchanged) == {"s3:GetObject", "s3:ListBucket", "iam:GetUser"}
    assert d.added_count == d.removed_count == 0


def test_statement_boundaries_are_ignored():
    merged = {
        "Statement": {
            "Effect": "Allow",
            "Action": ["iam:GetUser", "s3:ListBucket", "s3:GetObject"],
            "Resource": ["*", "arn:aws:s3:::b"],
        }
    }
    d = diff(V1, merged)
    assert d.added_count == 0
    assert d.removed_count == 0


def test_effect_is_ignored():
    allow = {"Statement": [{"Effect": "Allow", "Action": "iam:PassRole", "Resource": "*"}]}
    deny = {"Statement": [{"Effect": "Deny", "Action": "iam:PassRole", "Resource": "*"}]}
    d = diff(allow, deny)
    assert d.actions.unchanged == ("iam:PassRole",)


def test_case_and_whitespace_insensitive():
    a = {"Statement": [{"Action": "iam:PassRole"}]}
    b = {"Statement": [{"Action": "IAM:passrole "}]}
    d = diff(a, b)
    assert d.actions.added == ()
    assert d.actions.unchanged == ("iam:PassRole",)


def test_missing_statement_counts_as_empty():
    d = diff({"Version": "2012-10-17"}, V1)
    assert set(d.actions.added) == {"s3:GetObject", "s3:ListBucket", "iam:GetUser"}
    assert d.actions.removed == ()
