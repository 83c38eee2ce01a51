"""Provider-neutral identity and access model.

Everything here is an immutable pydantic model. Providers translate their
native responses into these objects and back; nothing in this module talks
to a provider.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

WILDCARD = "*"


class Effect(str, Enum):
    """Whether a rule grants or refuses access."""

    ALLOW = "Allow"
    DENY = "Deny"


class PolicyType(str, Enum):
    """Ownership/scope of a policy."""

    PROVIDER_MANAGED = "provider_managed"
    ACCOUNT_MANAGED = "account_managed"
    INLINE = "inline"


class PrincipalKind(str, Enum):
    USER = "user"
    GROUP = "group"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- Rules and policies ---


class PermissionRule(_Frozen):
    """One statement of access control.

    Empty ``actions`` means every action and empty ``resources`` means every
    resource. With ``actions_are_exclusion`` set, the effect applies to
    everything *except* the listed actions.
    """

    effect: Effect
    actions_are_exclusion: bool = False
    actions: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()

    @field_validator("actions", "resources")
    @classmethod
    def fold_wildcard(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """A lone ``"*"`` is stored as ``()`` so "everything" has one form."""
        if value == (WILDCARD,):
            return ()
        return value

    @property
    def all_actions(self) -> bool:
        return not self.actions

    @property
    def all_resources(self) -> bool:
        return not self.resources

    @staticmethod
    def service_of(action: str) -> tuple[str, str]:
        """Split a qualified action id into ``(service, action_name)``.

        ``"s3:GetObject"`` gives ``("s3", "GetObject")``; a bare service
        prefix such as ``"s3:"`` gives ``("s3", "*")``.
        """
        service, sep, name = action.partition(":")
        if not sep:
            return "", action
        return service, name or WILDCARD


class Policy(_Frozen):
    """A named bundle of permission rules at a given scope.

    For managed policies ``id`` is the ARN; for inline policies it is the
    policy name, and exactly one of the owner ids is set.
    """

    id: str
    name: str
    type: PolicyType
    description: str | None = None
    provider_user_id: str | None = None
    provider_group_id: str | None = None
    default_version_id: str | None = None
    path: str | None = None
    attachment_count: int | None = None

    @model_validator(mode="after")
    def check_owner(self) -> Policy:
        owners = [o for o in (self.provider_user_id, self.provider_group_id) if o]
        if self.type is PolicyType.INLINE and len(owners) != 1:
            raise ValueError("inline policies need exactly one owning user or group")
        if self.type is not PolicyType.INLINE and owners:
            raise ValueError("managed policies cannot have an owning principal")
        return self


class PolicyVersion(_Frozen):
    version_id: str
    is_default: bool = False
    create_date: str | None = None


# --- Principals ---


class Principal(_Frozen):
    id: str
    name: str
    path: str = "/"
    arn: str | None = None
    owner_account: str | None = None


class User(Principal):
    """An IAM user."""


class Group(Principal):
    """An IAM group."""


class AccessKey(_Frozen):
    """API credentials for a user. ``secret_part`` is only known at creation."""

    shared_part: str
    provider_user_id: str | None = None
    secret_part: str | None = Field(default=None, repr=False)
    status: str = "Active"


# --- Scope ---


class ManagedScope(_Frozen):
    """Managed policy path: the policy id is an ARN."""

    kind: Literal["managed"] = "managed"


class InlineScope(_Frozen):
    """Inline policy path: the policy lives on a single user or group."""

    kind: Literal["inline"] = "inline"
    principal_kind: PrincipalKind
    principal_id: str

    @classmethod
    def for_user(cls, provider_user_id: str) -> InlineScope:
        return cls(principal_kind=PrincipalKind.USER, principal_id=provider_user_id)

    @classmethod
    def for_group(cls, provider_group_id: str) -> InlineScope:
        return cls(principal_kind=PrincipalKind.GROUP, principal_id=provider_group_id)


Scope = Union[InlineScope, ManagedScope]


class PolicyFilterOptions(_Frozen):
    """Which policies :meth:`list_policies` should return."""

    policy_types: frozenset[PolicyType] = frozenset(
        {PolicyType.ACCOUNT_MANAGED, PolicyType.PROVIDER_MANAGED}
    )
    provider_user_id: str | None = None
    provider_group_id: str | None = None


class PolicyOptions(_Frozen):
    """Input for creating or replacing a policy."""

    name: str
    rules: tuple[PermissionRule, ...]
    description: str | None = None
    path: str | None = None
    scope: Scope = Field(default_factory=ManagedScope, discriminator="kind")

    @classmethod
    def for_user(cls, provider_user_id: str, name: str, rules: list[PermissionRule] | tuple[PermissionRule, ...], **kwargs) -> PolicyOptions:
        return cls(name=name, rules=tuple(rules), scope=InlineScope.for_user(provider_user_id), **kwargs)

    @classmethod
    def for_group(cls, provider_group_id: str, name: str, rules: list[PermissionRule] | tuple[PermissionRule, ...], **kwargs) -> PolicyOptions:
        return cls(name=name, rules=tuple(rules), scope=InlineScope.for_group(provider_group_id), **kwargs)


__all__ = [
    "WILDCARD",
    "Effect",
    "PolicyType",
    "PrincipalKind",
    "PermissionRule",
    "Policy",
    "PolicyVersion",
    "Principal",
    "User",
    "Group",
    "AccessKey",
    "ManagedScope",
    "InlineScope",
    "Scope",
    "PolicyFilterOptions",
    "PolicyOptions",
]
