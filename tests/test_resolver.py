"""Tests for principal resolution."""

from unittest.mock import MagicMock
import pytest

from iamjack.aws.resolver import EntityResolver, fields_of, to_group, to_user
from iamjack.base.exceptions import (
    EntityNotFoundError,
    PrincipalNotFoundError,
    ProviderError,
)
from iamjack.base.models import PrincipalKind


ALICE = {"UserName": "alice", "UserId": "AIDA1", "Path": "/", "Arn": "arn:aws:iam::123456789012:user/alice"}
BOB = {"UserName": "bob", "UserId": "AIDA2", "Path": "/eng/", "Arn": "arn:aws:iam::123456789012:user/eng/bob"}
DEVS = {"GroupName": "devs", "GroupId": "AGPA1", "Path": "/", "Arn": "arn:aws:iam::123456789012:group/devs"}


def _transport(responses):
    """Transport whose ``invoke`` serves ``responses[operation]`` in order."""
    queues = {op: list(r) if isinstance(r, list) else [r] for op, r in responses.items()}
    transport = MagicMock()

    def invoke(operation, parameters=None):
        queue = queues[operation]
        resp = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(resp, Exception):
            raise resp
        return resp

    transport.invoke.side_effect = invoke
    return transport


class TestFieldsOf:
    def test_lowercases_and_strips(self):
        assert fields_of({"UserName": " alice ", "UserId": "AIDA1"}) == {"username": "alice", "userid": "AIDA1"}

    def test_drops_empty(self):
        assert fields_of({"UserName": "", "Path": None, "UserId": "x"}) == {"userid": "x"}

    def test_none(self):
        assert fields_of(None) == {}


class TestMapping:
    def test_user(self):
        user = to_user(BOB)
        assert user.id == "AIDA2"
        assert user.name == "bob"
        assert user.path == "/eng/"
        assert user.owner_account == "123456789012"

    def test_user_defaults(self):
        user = to_user({"UserName": "carol", "UserId": "AIDA3"})
        assert user.path == "/"
        assert user.arn is None
        assert user.owner_account is None

    @pytest.mark.parametrize("node", [{"UserName": "x"}, {"UserId": "x"}, {"UserName": "", "UserId": "x"}, None])
    def test_user_missing_fields(self, node):
        assert to_user(node) is None

    def test_group(self):
        group = to_group(DEVS)
        assert group.id == "AGPA1"
        assert group.name == "devs"

    def test_group_missing_id(self):
        assert to_group({"GroupName": "devs"}) is None


class TestById:
    def test_user_found_on_later_page(self):
        transport = _transport({
            "ListUsers": [
                {"Users": [ALICE], "IsTruncated": True, "Marker": "m1"},
                {"Users": [BOB], "IsTruncated": False},
            ],
        })
        user = EntityResolver(transport).user_by_id("AIDA2")
        assert user.name == "bob"
        assert transport.invoke.call_count == 2

    def test_user_missing(self):
        transport = _transport({"ListUsers": {"Users": [ALICE]}})
        assert EntityResolver(transport).user_by_id("AIDA9") is None

    def test_unparseable_entries_skipped(self):
        transport = _transport({"ListUsers": {"Users": [{"UserName": "noid"}, ALICE]}})
        assert [u.name for u in EntityResolver(transport).list_users()] == ["alice"]

    def test_group(self):
        transport = _transport({"ListGroups": {"Groups": [DEVS]}})
        assert EntityResolver(transport).group_by_id("AGPA1").name == "devs"

    def test_fresh_listing_each_time(self):
        transport = _transport({"ListUsers": {"Users": [ALICE]}})
        resolver = EntityResolver(transport)
        resolver.user_by_id("AIDA1")
        resolver.user_by_id("AIDA1")
        assert transport.invoke.call_count == 2

    def test_path_prefix(self):
        transport = _transport({"ListUsers": {"Users": [BOB]}})
        EntityResolver(transport).list_users("/eng/")
        transport.invoke.assert_called_once_with("ListUsers", {"PathPrefix": "/eng/"})


class TestByName:
    def test_user(self):
        transport = _transport({"GetUser": {"User": ALICE}})
        assert EntityResolver(transport).user_by_name("alice").id == "AIDA1"
        transport.invoke.assert_called_once_with("GetUser", {"UserName": "alice"})

    def test_user_not_found(self):
        transport = _transport({"GetUser": EntityNotFoundError("gone", error_code="NoSuchEntity")})
        assert EntityResolver(transport).user_by_name("ghost") is None

    def test_other_errors_propagate(self):
        transport = _transport({"GetUser": ProviderError("denied", status_code=403)})
        with pytest.raises(ProviderError):
            EntityResolver(transport).user_by_name("alice")

    def test_group(self):
        transport = _transport({"GetGroup": {"Group": DEVS, "Users": []}})
        assert EntityResolver(transport).group_by_name("devs").id == "AGPA1"


class TestRequire:
    def test_user_missing(self):
        transport = _transport({"ListUsers": {"Users": []}})
        with pytest.raises(PrincipalNotFoundError, match="No such user: AIDA9"):
            EntityResolver(transport).require_user("AIDA9")

    def test_group_missing(self):
        transport = _transport({"ListGroups": {"Groups": []}})
        with pytest.raises(PrincipalNotFoundError) as info:
            EntityResolver(transport).require(PrincipalKind.GROUP, "AGPA9")
        assert info.value.kind == "group"

    def test_resolve_dispatches_on_kind(self):
        transport = _transport({"ListUsers": {"Users": [ALICE]}, "ListGroups": {"Groups": [DEVS]}})
        resolver = EntityResolver(transport)
        assert resolver.resolve(PrincipalKind.USER, "AIDA1").name == "alice"
        assert resolver.resolve(PrincipalKind.GROUP, "AGPA1").name == "devs"
        assert resolver.resolve(PrincipalKind.GROUP, "AIDA1") is None
