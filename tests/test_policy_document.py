"""Tests for the IAM policy document codec."""

import json
from unittest.mock import patch
from urllib.parse import quote

import pytest

from iamjack.aws.policy_document import (
    POLICY_VERSION,
    decode,
    encode,
    encode_json,
)
from iamjack.base.models import Effect, PermissionRule


def _rule(effect=Effect.ALLOW, actions=(), resources=(), exclusion=False):
    return PermissionRule(
        effect=effect,
        actions=actions,
        resources=resources,
        actions_are_exclusion=exclusion,
    )


# --- decode ---

class TestDecode:
    def test_list_actions_with_wildcard_resource(self):
        doc = {
            "Statement": [
                {"Effect": "Allow", "Action": ["svc:Get", "svc:List"], "Resource": "*"}
            ],
            "Version": "2012-10-17",
        }
        rules = decode(doc)
        assert len(rules) == 1
        assert rules[0].effect is Effect.ALLOW
        assert rules[0].actions_are_exclusion is False
        assert rules[0].actions == ("svc:Get", "svc:List")
        assert rules[0].resources == ()

    def test_json_string(self):
        doc = '{"Version": "2012-10-17", "Statement": [{"Effect": "Deny", "Action": "s3:*", "Resource": "*"}]}'
        rules = decode(doc)
        assert rules == [_rule(Effect.DENY, actions=("s3:*",))]

    def test_url_encoded_string(self):
        doc = {"Statement": [{"Effect": "Allow", "Action": "ec2:StartInstances", "Resource": "arn:aws:ec2:*:*:instance/i-1"}]}
        rules = decode(quote(json.dumps(doc)))
        assert rules[0].actions == ("ec2:StartInstances",)
        assert rules[0].resources == ("arn:aws:ec2:*:*:instance/i-1",)

    def test_not_action_sets_exclusion(self):
        doc = {"Statement": [{"Effect": "Allow", "NotAction": ["iam:*"], "Resource": "*"}]}
        rule = decode(doc)[0]
        assert rule.actions_are_exclusion is True
        assert rule.actions == ("iam:*",)

    def test_action_preferred_over_not_action(self):
        doc = {"Statement": [{"Effect": "Allow", "Action": "s3:Get*", "NotAction": "iam:*"}]}
        rule = decode(doc)[0]
        assert rule.actions_are_exclusion is False
        assert rule.actions == ("s3:Get*",)

    def test_wildcard_action_means_all(self):
        rule = decode({"Statement": [{"Effect": "Allow", "Action": "*", "Resource": "*"}]})[0]
        assert rule.actions == ()
        assert rule.all_actions

    def test_resource_list_order_preserved(self):
        doc = {"Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": ["arn:b", "arn:a", "arn:c"]}]}
        assert decode(doc)[0].resources == ("arn:b", "arn:a", "arn:c")

    def test_scalar_resource_becomes_single_item(self):
        doc = {"Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": "arn:aws:s3:::bucket/*"}]}
        assert decode(doc)[0].resources == ("arn:aws:s3:::bucket/*",)

    def test_lone_wildcard_in_list_means_all(self):
        doc = {"Statement": [{"Effect": "Allow", "Action": ["*"], "Resource": ["*"]}]}
        rule = decode(doc)[0]
        assert rule.actions == ()
        assert rule.resources == ()

    def test_statement_without_effect_is_skipped(self):
        doc = {
            "Statement": [
                {"Action": "s3:GetObject", "Resource": "*"},
                {"Effect": "Deny", "Action": "s3:DeleteObject", "Resource": "*"},
            ]
        }
        rules = decode(doc)
        assert rules == [_rule(Effect.DENY, actions=("s3:DeleteObject",))]

    def test_unknown_effect_is_skipped(self):
        doc = {"Statement": [{"Effect": "Audit", "Action": "s3:GetObject"}]}
        assert decode(doc) == []

    def test_not_resource_is_skipped(self):
        doc = {
            "Statement": [
                {"Effect": "Deny", "Action": "s3:*", "NotResource": "arn:aws:s3:::keep"},
                {"Effect": "Allow", "Action": "s3:GetObject", "Resource": "arn:aws:s3:::keep"},
            ]
        }
        rules = decode(doc)
        assert rules == [_rule(actions=("s3:GetObject",), resources=("arn:aws:s3:::keep",))]

    def test_skipped_statement_warns_with_context(self):
        doc = {"Statement": [{"Effect": "Deny", "Action": "s3:*", "NotResource": "arn:aws:s3:::keep"}]}
        with patch("iamjack.aws.policy_document.ij_logger") as log:
            assert decode(doc) == []
        log.warning.assert_called_once()
        assert log.warning.call_args.kwargs == {"provider": "aws", "service": "iam"}

    def test_effect_is_case_insensitive(self):
        rule = decode({"Statement": [{"Effect": "allow", "Action": "s3:GetObject"}]})[0]
        assert rule.effect is Effect.ALLOW

    def test_single_statement_object(self):
        doc = {"Version": "2012-10-17", "Statement": {"Effect": "Allow", "Action": "sqs:SendMessage", "Resource": "*"}}
        assert decode(doc) == [_rule(actions=("sqs:SendMessage",))]

    def test_unknown_top_level_fields_ignored(self):
        doc = {"Version": "2008-10-17", "Id": "abc", "Statement": []}
        assert decode(doc) == []

    def test_non_object_document_rejected(self):
        with pytest.raises(ValueError):
            decode("[1, 2]")


# --- encode ---

class TestEncode:
    def test_version_and_statement_order(self):
        doc = encode([
            _rule(Effect.ALLOW, actions=("s3:GetObject",)),
            _rule(Effect.DENY, actions=("s3:DeleteObject",)),
        ])
        assert doc["Version"] == POLICY_VERSION == "2012-10-17"
        assert [s["Effect"] for s in doc["Statement"]] == ["Allow", "Deny"]

    def test_no_resources_is_wildcard(self):
        stmt = encode([_rule(actions=("s3:GetObject",))])["Statement"][0]
        assert stmt["Resource"] == "*"

    def test_one_resource_is_scalar(self):
        stmt = encode([_rule(actions=("s3:GetObject",), resources=("arn:aws:s3:::b",))])["Statement"][0]
        assert stmt["Resource"] == "arn:aws:s3:::b"

    def test_many_resources_is_list(self):
        stmt = encode([_rule(resources=("arn:a", "arn:b"))])["Statement"][0]
        assert stmt["Resource"] == ["arn:a", "arn:b"]

    def test_no_actions_is_wildcard(self):
        stmt = encode([_rule()])["Statement"][0]
        assert stmt["Action"] == "*"

    def test_actions_always_list(self):
        stmt = encode([_rule(actions=("s3:GetObject",))])["Statement"][0]
        assert stmt["Action"] == ["s3:GetObject"]

    def test_exclusion_uses_not_action(self):
        stmt = encode([_rule(actions=("iam:*",), exclusion=True)])["Statement"][0]
        assert stmt["NotAction"] == ["iam:*"]
        assert "Action" not in stmt

    def test_encode_json_quotes_every_resource(self):
        text = encode_json([_rule(resources=("arn:a", "arn:b", "arn:c"))])
        assert '"Resource": ["arn:a", "arn:b", "arn:c"]' in text
        assert json.loads(text) == encode([_rule(resources=("arn:a", "arn:b", "arn:c"))])


# --- round trip ---

class TestRoundTrip:
    @pytest.mark.parametrize(
        "rules",
        [
            [],
            [_rule()],
            [_rule(resources=("*",))],
            [_rule(actions=("*",), resources=("arn:aws:s3:::b",))],
            [_rule(Effect.DENY, actions=("s3:DeleteBucket",), resources=("arn:aws:s3:::prod",))],
            [
                _rule(actions=("ec2:Describe*", "ec2:StartInstances"), resources=("arn:1", "arn:2")),
                _rule(Effect.DENY, actions=("ec2:TerminateInstances",)),
            ],
        ],
    )
    def test_inclusion_rules(self, rules):
        assert decode(encode(rules)) == rules

    def test_through_json(self):
        rules = [_rule(actions=("sns:Publish",), resources=("arn:aws:sns:us-east-1:123456789012:alerts",))]
        assert decode(encode_json(rules)) == rules

    def test_wildcards_stay_empty(self):
        rule = decode(encode([_rule()]))[0]
        assert rule.resources == ()
        assert rule.actions == ()

    def test_exclusion_rules(self):
        rules = [_rule(actions=("iam:*", "organizations:*"), exclusion=True)]
        assert decode(encode(rules)) == rules
