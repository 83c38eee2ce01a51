"""iamjack — provider-neutral users, groups and policies on top of AWS IAM.

Entry point for the library. Import :func:`identity_factory` to create an
identity service with a single call::

    from iamjack import identity_factory, PolicyOptions, PermissionRule, Effect

    iam = identity_factory("aws", {"region_name": "us-east-1"})
    arn = iam.create_policy(PolicyOptions(
        name="ReadBuckets",
        rules=(PermissionRule(effect=Effect.ALLOW, actions=("s3:ListBucket",)),),
    ))
"""

from .base import (
    IdentityBlueprint,
    AccessKey,
    Effect,
    Group,
    InlineScope,
    ManagedScope,
    PermissionRule,
    Policy,
    PolicyFilterOptions,
    PolicyOptions,
    PolicyType,
    PolicyVersion,
    PrincipalKind,
    User,
)
from .factory import identity_factory

__all__ = [
    "IdentityBlueprint",
    "AccessKey",
    "Effect",
    "Group",
    "InlineScope",
    "ManagedScope",
    "PermissionRule",
    "Policy",
    "PolicyFilterOptions",
    "PolicyOptions",
    "PolicyType",
    "PolicyVersion",
    "PrincipalKind",
    "User",
    "identity_factory",
]
