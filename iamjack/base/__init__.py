"""Abstract identity blueprint, domain model and core utilities.

Import the blueprint to type-hint your own code or to add another provider.
"""

from .iam import IdentityBlueprint
from .models import (
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
from .supported_providers import existing_cloud_providers


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
    "existing_cloud_providers",
]
