"""User and group lookup by id or by name.

Most IAM calls address principals by name, while callers hold the
immutable provider id. IAM has no get-by-id call for users or groups, so
id lookups list every principal and scan; each lookup is a fresh listing.
"""

from __future__ import annotations

from typing import Any, Mapping

from iamjack.aws.pagination import drain
from iamjack.aws.transport import AWSTransport, is_not_found
from iamjack.base.exceptions import PrincipalNotFoundError, ProviderError
from iamjack.base.models import Group, PrincipalKind, User


def fields_of(node: Mapping[str, Any] | None) -> dict[str, Any]:
    """Flatten a response node into a lower-cased field map.

    Response node names are matched case-insensitively; string values are
    stripped and empty values dropped.
    """
    if not node:
        return {}
    flat: dict[str, Any] = {}
    for key, value in node.items():
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "":
            continue
        flat[key.lower()] = value
    return flat


def _owner_account(arn: str | None) -> str | None:
    if not arn:
        return None
    parts = arn.split(":")
    return parts[4] if len(parts) > 4 and parts[4] else None


def to_user(node: Mapping[str, Any] | None) -> User | None:
    """Build a :class:`User`, or ``None`` when id or name is missing."""
    f = fields_of(node)
    if "userid" not in f or "username" not in f:
        return None
    return User(
        id=f["userid"],
        name=f["username"],
        path=f.get("path", "/"),
        arn=f.get("arn"),
        owner_account=_owner_account(f.get("arn")),
    )


def to_group(node: Mapping[str, Any] | None) -> Group | None:
    """Build a :class:`Group`, or ``None`` when id or name is missing."""
    f = fields_of(node)
    if "groupid" not in f or "groupname" not in f:
        return None
    return Group(
        id=f["groupid"],
        name=f["groupname"],
        path=f.get("path", "/"),
        arn=f.get("arn"),
        owner_account=_owner_account(f.get("arn")),
    )


class EntityResolver:
    """Resolves principals against IAM through a transport."""

    def __init__(self, transport: AWSTransport) -> None:
        self.transport = transport

    # --- listings ---

    def list_users(self, path_prefix: str | None = None) -> list[User]:
        params = {"PathPrefix": path_prefix} if path_prefix else {}
        nodes = drain(self.transport, "ListUsers", params, "Users")
        return [u for u in map(to_user, nodes) if u is not None]

    def list_groups(self, path_prefix: str | None = None) -> list[Group]:
        params = {"PathPrefix": path_prefix} if path_prefix else {}
        nodes = drain(self.transport, "ListGroups", params, "Groups")
        return [g for g in map(to_group, nodes) if g is not None]

    # --- by id (full listing scan) ---

    def user_by_id(self, provider_user_id: str) -> User | None:
        for user in self.list_users():
            if user.id == provider_user_id:
                return user
        return None

    def group_by_id(self, provider_group_id: str) -> Group | None:
        for group in self.list_groups():
            if group.id == provider_group_id:
                return group
        return None

    # --- by name (direct call) ---

    def user_by_name(self, user_name: str) -> User | None:
        try:
            resp = self.transport.invoke("GetUser", {"UserName": user_name})
        except ProviderError as e:
            if is_not_found(e):
                return None
            raise
        return to_user(resp.get("User"))

    def group_by_name(self, group_name: str) -> Group | None:
        try:
            resp = self.transport.invoke("GetGroup", {"GroupName": group_name, "MaxItems": 1})
        except ProviderError as e:
            if is_not_found(e):
                return None
            raise
        return to_group(resp.get("Group"))

    # --- hard lookups for mutating paths ---

    def require_user(self, provider_user_id: str) -> User:
        user = self.user_by_id(provider_user_id)
        if user is None:
            raise PrincipalNotFoundError(PrincipalKind.USER.value, provider_user_id)
        return user

    def require_group(self, provider_group_id: str) -> Group:
        group = self.group_by_id(provider_group_id)
        if group is None:
            raise PrincipalNotFoundError(PrincipalKind.GROUP.value, provider_group_id)
        return group

    def resolve(self, kind: PrincipalKind, principal_id: str) -> User | Group | None:
        if kind is PrincipalKind.USER:
            return self.user_by_id(principal_id)
        return self.group_by_id(principal_id)

    def require(self, kind: PrincipalKind, principal_id: str) -> User | Group:
        if kind is PrincipalKind.USER:
            return self.require_user(principal_id)
        return self.require_group(principal_id)
