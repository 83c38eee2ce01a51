"""AWS IAM implementation of the identity blueprint."""

from __future__ import annotations

import time
from typing import Any, Mapping, NamedTuple, Sequence

from iamjack.aws.arn import PROVIDER_OWNER, build_policy_arn, classify, normalize_path, policy_type_for
from iamjack.aws.capabilities import MAX_POLICY_VERSIONS, IAMCapabilities
from iamjack.aws.pagination import drain
from iamjack.aws.policy_document import decode, encode_json
from iamjack.aws.resolver import EntityResolver, fields_of, to_group, to_user
from iamjack.aws.transport import AWSTransport, is_not_found
from iamjack.base.config import AWSConfig
from iamjack.base.exceptions import EntityNotFoundError, IdentityError, ProviderError
from iamjack.base.iam import IdentityBlueprint
from iamjack.base.logger import ij_logger
from iamjack.base.models import (
    AccessKey,
    Effect,
    Group,
    InlineScope,
    PermissionRule,
    Policy,
    PolicyFilterOptions,
    PolicyOptions,
    PolicyType,
    PolicyVersion,
    PrincipalKind,
    Scope,
    User,
)

ADMIN_GROUP_POLICY = "AdminGroup+ANY"

_NAME_PUNCTUATION = set("+=,.@_-")


class _InlineCalls(NamedTuple):
    """IAM operations for inline policies of one principal kind."""

    name_param: str
    get: str
    put: str
    delete: str
    list: str


_INLINE_CALLS: dict[PrincipalKind, _InlineCalls] = {
    PrincipalKind.USER: _InlineCalls(
        "UserName", "GetUserPolicy", "PutUserPolicy", "DeleteUserPolicy", "ListUserPolicies"
    ),
    PrincipalKind.GROUP: _InlineCalls(
        "GroupName", "GetGroupPolicy", "PutGroupPolicy", "DeleteGroupPolicy", "ListGroupPolicies"
    ),
}


def validate_name(name: str) -> str:
    """Coerce ``name`` into something IAM accepts for a user or group.

    Letters and digits are kept, spaces become ``-`` and anything outside
    ``+=,.@_-`` is dropped. A leading punctuation mark gets an ``a`` in
    front of it. If nothing survives, a millisecond timestamp is used.
    """
    out: list[str] = []
    for i, c in enumerate(name):
        if c.isalnum():
            out.append(c)
        elif c in _NAME_PUNCTUATION:
            if i == 0:
                out.append("a")
            out.append(c)
        elif c == " ":
            out.append("-")
    if not out:
        return str(int(time.time() * 1000))
    return "".join(out)


def _to_managed_policy(node: Mapping[str, Any] | None) -> Policy | None:
    f = fields_of(node)
    if "arn" not in f or "policyname" not in f:
        return None
    return Policy(
        id=f["arn"],
        name=f["policyname"],
        type=policy_type_for(f["arn"]),
        description=f.get("description"),
        default_version_id=f.get("defaultversionid"),
        path=f.get("path"),
        attachment_count=f.get("attachmentcount"),
    )


def _inline_policy(name: str, kind: PrincipalKind, principal: User | Group) -> Policy:
    return Policy(
        id=name,
        name=name,
        type=PolicyType.INLINE,
        description=f"Inline policy for {kind.value} {principal.name}",
        provider_user_id=principal.id if kind is PrincipalKind.USER else None,
        provider_group_id=principal.id if kind is PrincipalKind.GROUP else None,
    )


class IAM(IdentityBlueprint):
    """AWS IAM service.

    Attributes:
        transport: IAM transport executing API operations.
        resolver: Principal id/name resolver sharing that transport.
        account_id: Account the credentials belong to.
    """

    def __init__(self, config: AWSConfig) -> None:
        """Initialize the IAM transport.

        Args:
            config: AWS configuration object containing credentials and region.
                   Expected attributes:
                   - aws_access_key_id: AWS access key ID
                   - aws_secret_access_key: AWS secret access key
                   - region_name: AWS region name (e.g., 'us-east-1')
                   - account_id: optional; looked up through STS when unset
        """
        self.transport = AWSTransport("iam", config)
        self.resolver = EntityResolver(self.transport)
        self.partition = config.partition
        if config.account_id:
            self.account_id: str = config.account_id
        else:
            sts = AWSTransport("sts", config)
            self.account_id = sts.invoke("GetCallerIdentity")["Account"]

    def _log(self, message: str, operation: str) -> None:
        ij_logger.info(message, provider="aws", service="iam", operation=operation)

    def get_capabilities(self) -> IAMCapabilities:
        return IAMCapabilities(account_id=self.account_id)

    def _policy_arn(self, policy_id: str, **kwargs: Any) -> str:
        """Full ARN for ``policy_id``; bare names become account-owned ARNs.

        Pass ``managed=True`` for an AWS-managed policy name.
        """
        account = PROVIDER_OWNER if kwargs.get("managed") else self.account_id
        arn = build_policy_arn(policy_id, account, self.partition)
        classify(arn)
        return arn

    # --- Inline helpers ---

    def _get_inline_document(
        self, kind: PrincipalKind, principal: User | Group, policy_name: str
    ) -> dict[str, Any] | str | None:
        calls = _INLINE_CALLS[kind]
        try:
            resp = self.transport.invoke(
                calls.get, {calls.name_param: principal.name, "PolicyName": policy_name}
            )
        except ProviderError as e:
            if is_not_found(e):
                return None
            raise
        return fields_of(resp).get("policydocument")

    def _put_inline(
        self, kind: PrincipalKind, principal: User | Group, policy_name: str, document: str
    ) -> str:
        calls = _INLINE_CALLS[kind]
        self.transport.invoke(
            calls.put,
            {calls.name_param: principal.name, "PolicyName": policy_name, "PolicyDocument": document},
        )
        self._log(f"Put inline policy {policy_name} on {kind.value} {principal.name}", calls.put)
        return policy_name

    def _list_inline_policies(self, kind: PrincipalKind, principal_id: str) -> list[Policy]:
        principal = self.resolver.require(kind, principal_id)
        calls = _INLINE_CALLS[kind]
        names = drain(self.transport, calls.list, {calls.name_param: principal.name}, "PolicyNames")
        return [_inline_policy(name, kind, principal) for name in names if name]

    # --- Policy queries ---

    def get_policy(self, policy_id: str, scope: Scope | None = None) -> Policy | None:
        """Fetch policy metadata.

        Inline lookups return ``None`` when the owning principal or the
        policy is missing. Managed lookups return ``None`` when IAM reports
        the ARN as unknown.

        Raises:
            MalformedIdentifierError: If a managed ``policy_id`` is not an ARN.
            ProviderError: On any other provider failure.
        """
        if isinstance(scope, InlineScope):
            principal = self.resolver.resolve(scope.principal_kind, scope.principal_id)
            if principal is None:
                return None
            if self._get_inline_document(scope.principal_kind, principal, policy_id) is None:
                return None
            return _inline_policy(policy_id, scope.principal_kind, principal)

        classify(policy_id)
        try:
            resp = self.transport.invoke("GetPolicy", {"PolicyArn": policy_id})
        except ProviderError as e:
            if is_not_found(e):
                return None
            raise
        return _to_managed_policy(resp.get("Policy"))

    def get_policy_rules(self, policy_id: str, scope: Scope | None = None) -> list[PermissionRule]:
        """Decode the live document of a policy.

        Managed policies are read at their default version, which costs a
        ``GetPolicy`` call before ``GetPolicyVersion``.
        """
        if isinstance(scope, InlineScope):
            principal = self.resolver.resolve(scope.principal_kind, scope.principal_id)
            if principal is None:
                return []
            document = self._get_inline_document(scope.principal_kind, principal, policy_id)
            return decode(document) if document is not None else []

        policy = self.get_policy(policy_id)
        if policy is None or policy.default_version_id is None:
            return []
        try:
            resp = self.transport.invoke(
                "GetPolicyVersion",
                {"PolicyArn": policy.id, "VersionId": policy.default_version_id},
            )
        except ProviderError as e:
            if is_not_found(e):
                return []
            raise
        document = fields_of(resp.get("PolicyVersion")).get("document")
        return decode(document) if document is not None else []

    def _list_managed_policies(self, scope: str) -> list[Policy]:
        nodes = drain(self.transport, "ListPolicies", {"Scope": scope}, "Policies")
        return [p for p in map(_to_managed_policy, nodes) if p is not None]

    def list_policies(self, filter_options: PolicyFilterOptions | None = None) -> list[Policy]:
        """List managed and/or inline policies.

        Managed policies come first (``Scope`` is ``All``, ``AWS`` or
        ``Local`` depending on the requested types), then the named group's
        inline policies, then the named user's.

        Raises:
            PrincipalNotFoundError: If inline policies are requested for a
                user or group that does not exist.
        """
        opts = filter_options or PolicyFilterOptions()
        want_aws = PolicyType.PROVIDER_MANAGED in opts.policy_types
        want_local = PolicyType.ACCOUNT_MANAGED in opts.policy_types
        policies: list[Policy] = []
        if want_aws and want_local:
            policies.extend(self._list_managed_policies("All"))
        elif want_aws:
            policies.extend(self._list_managed_policies("AWS"))
        elif want_local:
            policies.extend(self._list_managed_policies("Local"))
        if PolicyType.INLINE in opts.policy_types:
            if opts.provider_group_id:
                policies.extend(self._list_inline_policies(PrincipalKind.GROUP, opts.provider_group_id))
            if opts.provider_user_id:
                policies.extend(self._list_inline_policies(PrincipalKind.USER, opts.provider_user_id))
        return policies

    def list_policy_versions(self, policy_id: str) -> list[PolicyVersion]:
        classify(policy_id)
        nodes = drain(self.transport, "ListPolicyVersions", {"PolicyArn": policy_id}, "Versions")
        versions = []
        for node in nodes:
            f = fields_of(node)
            if "versionid" not in f:
                continue
            versions.append(
                PolicyVersion(
                    version_id=f["versionid"],
                    is_default=bool(f.get("isdefaultversion", False)),
                    create_date=str(f["createdate"]) if "createdate" in f else None,
                )
            )
        return versions

    # --- Policy changes ---

    def create_policy(self, options: PolicyOptions) -> str:
        """Create an inline or managed policy.

        Returns:
            The policy name for inline scope, the generated ARN otherwise.

        Raises:
            PrincipalNotFoundError: If the inline owner does not exist.
            EntityAlreadyExistsError: If the name is taken.
        """
        document = encode_json(options.rules)
        scope = options.scope
        if isinstance(scope, InlineScope):
            principal = self.resolver.require(scope.principal_kind, scope.principal_id)
            return self._put_inline(scope.principal_kind, principal, options.name, document)

        params: dict[str, Any] = {"PolicyName": options.name, "PolicyDocument": document}
        if options.description:
            params["Description"] = options.description
        if options.path:
            params["Path"] = normalize_path(options.path)
        resp = self.transport.invoke("CreatePolicy", params)
        arn: str = resp["Policy"]["Arn"]
        self._log(f"Created managed policy {arn}", "CreatePolicy")
        return arn

    def _make_room_for_version(self, policy_arn: str) -> None:
        """Drop the oldest non-default version when the version limit is reached."""
        versions = self.list_policy_versions(policy_arn)
        if len(versions) < MAX_POLICY_VERSIONS:
            return
        stale = sorted((v for v in versions if not v.is_default), key=lambda v: v.create_date or "")
        if not stale:
            return
        oldest = stale[0]
        self.transport.invoke(
            "DeletePolicyVersion", {"PolicyArn": policy_arn, "VersionId": oldest.version_id}
        )
        self._log(f"Deleted policy version {oldest.version_id} of {policy_arn}", "DeletePolicyVersion")

    def modify_policy(self, policy_id: str, options: PolicyOptions) -> str:
        """Replace the rules of a policy.

        Inline policies are overwritten in place. Managed policies receive a
        new version that becomes the default; IAM keeps at most five
        versions, so the oldest non-default one is deleted first if needed.

        Returns:
            ``policy_id``.
        """
        document = encode_json(options.rules)
        scope = options.scope
        if isinstance(scope, InlineScope):
            principal = self.resolver.require(scope.principal_kind, scope.principal_id)
            return self._put_inline(scope.principal_kind, principal, policy_id, document)

        classify(policy_id)
        self._make_room_for_version(policy_id)
        self.transport.invoke(
            "CreatePolicyVersion",
            {"PolicyArn": policy_id, "PolicyDocument": document, "SetAsDefault": True},
        )
        self._log(f"Published new default version of {policy_id}", "CreatePolicyVersion")
        return policy_id

    def remove_policy(self, policy_id: str, scope: Scope | None = None) -> None:
        if isinstance(scope, InlineScope):
            principal = self.resolver.require(scope.principal_kind, scope.principal_id)
            calls = _INLINE_CALLS[scope.principal_kind]
            self.transport.invoke(
                calls.delete, {calls.name_param: principal.name, "PolicyName": policy_id}
            )
            self._log(f"Removed inline policy {policy_id} from {principal.name}", calls.delete)
            return
        classify(policy_id)
        self.transport.invoke("DeletePolicy", {"PolicyArn": policy_id})
        self._log(f"Removed managed policy {policy_id}", "DeletePolicy")

    # --- Attachment ---

    def attach_policy_to_user(self, policy_id: str, provider_user_id: str, **kwargs: Any) -> None:
        """Attach a managed policy to a user.

        Args:
            policy_id: Policy ARN or short name. Short names are expanded to
                an account-owned ARN, or an AWS-owned one with ``managed=True``.
            provider_user_id: Target user id.

        Raises:
            PrincipalNotFoundError: If the user does not exist.
        """
        user = self.resolver.require_user(provider_user_id)
        arn = self._policy_arn(policy_id, **kwargs)
        self.transport.invoke("AttachUserPolicy", {"UserName": user.name, "PolicyArn": arn})
        self._log(f"Attached {arn} to user {user.name}", "AttachUserPolicy")

    def detach_policy_from_user(self, policy_id: str, provider_user_id: str, **kwargs: Any) -> None:
        user = self.resolver.require_user(provider_user_id)
        arn = self._policy_arn(policy_id, **kwargs)
        self.transport.invoke("DetachUserPolicy", {"UserName": user.name, "PolicyArn": arn})
        self._log(f"Detached {arn} from user {user.name}", "DetachUserPolicy")

    def attach_policy_to_group(self, policy_id: str, provider_group_id: str, **kwargs: Any) -> None:
        group = self.resolver.require_group(provider_group_id)
        arn = self._policy_arn(policy_id, **kwargs)
        self.transport.invoke("AttachGroupPolicy", {"GroupName": group.name, "PolicyArn": arn})
        self._log(f"Attached {arn} to group {group.name}", "AttachGroupPolicy")

    def detach_policy_from_group(self, policy_id: str, provider_group_id: str, **kwargs: Any) -> None:
        group = self.resolver.require_group(provider_group_id)
        arn = self._policy_arn(policy_id, **kwargs)
        self.transport.invoke("DetachGroupPolicy", {"GroupName": group.name, "PolicyArn": arn})
        self._log(f"Detached {arn} from group {group.name}", "DetachGroupPolicy")

    def list_entities_for_policy(self, policy_id: str, want_users: bool) -> list[str]:
        classify(policy_id)
        if want_users:
            entity_filter, items_key, name_key = "User", "PolicyUsers", "username"
        else:
            entity_filter, items_key, name_key = "Group", "PolicyGroups", "groupname"
        nodes = drain(
            self.transport,
            "ListEntitiesForPolicy",
            {"PolicyArn": policy_id, "EntityFilter": entity_filter},
            items_key,
        )
        return [name for name in (fields_of(n).get(name_key) for n in nodes) if name]

    def list_users_for_policy(self, policy_id: str) -> list[User]:
        users = []
        for name in self.list_entities_for_policy(policy_id, want_users=True):
            try:
                user = self.resolver.user_by_name(name)
            except IdentityError as e:
                ij_logger.warning(f"Skipping user {name} attached to {policy_id}: {e}", provider="aws", service="iam")
                continue
            if user is not None:
                users.append(user)
        return users

    def list_groups_for_policy(self, policy_id: str) -> list[Group]:
        groups = []
        for name in self.list_entities_for_policy(policy_id, want_users=False):
            try:
                group = self.resolver.group_by_name(name)
            except IdentityError as e:
                ij_logger.warning(f"Skipping group {name} attached to {policy_id}: {e}", provider="aws", service="iam")
                continue
            if group is not None:
                groups.append(group)
        return groups

    # --- Principals ---

    def _join_groups(self, user: User, provider_group_ids: Sequence[str]) -> None:
        for group_id in provider_group_ids:
            group = self.resolver.require_group(group_id)
            self.transport.invoke("AddUserToGroup", {"GroupName": group.name, "UserName": user.name})
            self._log(f"Added {user.name} to {group.name}", "AddUserToGroup")

    def create_user(self, user_name: str, path: str | None = None, group_ids: Sequence[str] = ()) -> User:
        params: dict[str, Any] = {"UserName": user_name}
        if path is not None:
            params["Path"] = normalize_path(path)
        resp = self.transport.invoke("CreateUser", params)
        user = to_user(resp.get("User"))
        if user is None:
            raise IdentityError("No user was created as a result of the request")
        self._log(f"Created user {user.name}", "CreateUser")
        self._join_groups(user, group_ids)
        return user

    def create_group(self, group_name: str, path: str | None = None, as_admin_group: bool = False) -> Group:
        params: dict[str, Any] = {"GroupName": validate_name(group_name)}
        if path is not None:
            params["Path"] = normalize_path(path)
        resp = self.transport.invoke("CreateGroup", params)
        group = to_group(resp.get("Group"))
        if group is None:
            raise IdentityError("No group was created as a result of the request")
        self._log(f"Created group {group.name}", "CreateGroup")
        if as_admin_group:
            admin = encode_json([PermissionRule(effect=Effect.ALLOW)])
            self._put_inline(PrincipalKind.GROUP, group, ADMIN_GROUP_POLICY, admin)
        return group

    def get_user(self, provider_user_id: str) -> User | None:
        return self.resolver.user_by_id(provider_user_id)

    def get_group(self, provider_group_id: str) -> Group | None:
        return self.resolver.group_by_id(provider_group_id)

    def list_users(self, path_prefix: str | None = None) -> list[User]:
        return self.resolver.list_users(path_prefix)

    def list_groups(self, path_prefix: str | None = None) -> list[Group]:
        return self.resolver.list_groups(path_prefix)

    def list_groups_for_user(self, provider_user_id: str) -> list[Group]:
        user = self.resolver.require_user(provider_user_id)
        nodes = drain(self.transport, "ListGroupsForUser", {"UserName": user.name}, "Groups")
        return [g for g in map(to_group, nodes) if g is not None]

    def list_users_in_group(self, provider_group_id: str) -> list[User]:
        group = self.resolver.require_group(provider_group_id)
        nodes = drain(self.transport, "GetGroup", {"GroupName": group.name}, "Users")
        return [u for u in map(to_user, nodes) if u is not None]

    def add_user_to_groups(self, provider_user_id: str, *provider_group_ids: str) -> None:
        user = self.resolver.require_user(provider_user_id)
        self._join_groups(user, provider_group_ids)

    def remove_user_from_group(self, provider_user_id: str, provider_group_id: str) -> None:
        user = self.resolver.require_user(provider_user_id)
        group = self.resolver.require_group(provider_group_id)
        self.transport.invoke("RemoveUserFromGroup", {"UserName": user.name, "GroupName": group.name})
        self._log(f"Removed {user.name} from {group.name}", "RemoveUserFromGroup")

    def modify_user(self, provider_user_id: str, new_name: str | None = None, new_path: str | None = None) -> None:
        user = self.resolver.require_user(provider_user_id)
        params: dict[str, Any] = {"UserName": user.name}
        if new_name is not None:
            params["NewUserName"] = new_name
        if new_path is not None:
            params["NewPath"] = normalize_path(new_path)
        self.transport.invoke("UpdateUser", params)
        self._log(f"Updated user {user.name}", "UpdateUser")

    def modify_group(self, provider_group_id: str, new_name: str | None = None, new_path: str | None = None) -> None:
        group = self.resolver.require_group(provider_group_id)
        params: dict[str, Any] = {"GroupName": group.name}
        if new_name is not None:
            params["NewGroupName"] = validate_name(new_name)
        if new_path is not None:
            params["NewPath"] = normalize_path(new_path)
        self.transport.invoke("UpdateGroup", params)
        self._log(f"Updated group {group.name}", "UpdateGroup")

    def remove_user(self, provider_user_id: str) -> None:
        """Delete a user, dropping its console password first if it has one."""
        user = self.resolver.require_user(provider_user_id)
        try:
            self.transport.invoke("DeleteLoginProfile", {"UserName": user.name})
        except EntityNotFoundError:
            pass
        self.transport.invoke("DeleteUser", {"UserName": user.name})
        self._log(f"Removed user {user.name}", "DeleteUser")

    def remove_group(self, provider_group_id: str) -> None:
        group = self.resolver.require_group(provider_group_id)
        self.transport.invoke("DeleteGroup", {"GroupName": group.name})
        self._log(f"Removed group {group.name}", "DeleteGroup")

    # --- Access ---

    def enable_api_access(self, provider_user_id: str) -> AccessKey:
        user = self.resolver.require_user(provider_user_id)
        resp = self.transport.invoke("CreateAccessKey", {"UserName": user.name})
        f = fields_of(resp.get("AccessKey"))
        if f.get("status", "Active").lower() != "active" or "accesskeyid" not in f or "secretaccesskey" not in f:
            raise IdentityError("No access key was created as a result of the request")
        self._log(f"Created access key {f['accesskeyid']} for {user.name}", "CreateAccessKey")
        return AccessKey(
            shared_part=f["accesskeyid"],
            secret_part=f["secretaccesskey"],
            provider_user_id=user.id,
            status=f.get("status", "Active"),
        )

    def list_access_keys(self, provider_user_id: str) -> list[AccessKey]:
        user = self.resolver.require_user(provider_user_id)
        nodes = drain(self.transport, "ListAccessKeys", {"UserName": user.name}, "AccessKeyMetadata")
        keys = []
        for node in nodes:
            f = fields_of(node)
            if "accesskeyid" in f:
                keys.append(
                    AccessKey(shared_part=f["accesskeyid"], provider_user_id=user.id, status=f.get("status", "Active"))
                )
        return keys

    def remove_access_key(self, shared_part: str, provider_user_id: str) -> None:
        user = self.resolver.require_user(provider_user_id)
        self.transport.invoke("DeleteAccessKey", {"AccessKeyId": shared_part, "UserName": user.name})
        self._log(f"Removed access key {shared_part}", "DeleteAccessKey")

    def enable_console_access(self, provider_user_id: str, password: str) -> None:
        user = self.resolver.require_user(provider_user_id)
        resp = self.transport.invoke("CreateLoginProfile", {"UserName": user.name, "Password": password})
        if not resp.get("LoginProfile"):
            raise IdentityError("No console access was created as a result of the request")
        self._log(f"Enabled console access for {user.name}", "CreateLoginProfile")

    def remove_console_access(self, provider_user_id: str) -> None:
        user = self.resolver.require_user(provider_user_id)
        self.transport.invoke("DeleteLoginProfile", {"UserName": user.name})
        self._log(f"Removed console access for {user.name}", "DeleteLoginProfile")
