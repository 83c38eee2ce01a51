"""ARN parsing and policy ownership classification."""

from __future__ import annotations

from typing import NamedTuple

from iamjack.base.exceptions import MalformedIdentifierError
from iamjack.base.models import PolicyType

# Owner segment AWS puts in the ARN of the policies it maintains.
PROVIDER_OWNER = "aws"

_OWNER_FIELD = 4


class ResourceOwnership(NamedTuple):
    owner_segment: str
    is_provider_owned: bool


def classify(identifier: str) -> ResourceOwnership:
    """Read the owning account out of an ARN.

    ``arn:aws:iam::aws:policy/ReadOnlyAccess`` is provider owned;
    ``arn:aws:iam::123456789012:policy/Mine`` belongs to the account.

    Raises:
        MalformedIdentifierError: If the identifier has fewer than five
            colon-delimited fields.
    """
    fields = identifier.split(":")
    if len(fields) <= _OWNER_FIELD:
        raise MalformedIdentifierError(f"Not an ARN: {identifier!r}")
    owner = fields[_OWNER_FIELD]
    return ResourceOwnership(owner, owner.lower() == PROVIDER_OWNER)


def policy_type_for(identifier: str) -> PolicyType:
    if classify(identifier).is_provider_owned:
        return PolicyType.PROVIDER_MANAGED
    return PolicyType.ACCOUNT_MANAGED


def normalize_path(path: str) -> str:
    """IAM paths start and end with a slash: ``team/ops`` becomes ``/team/ops/``."""
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path = path + "/"
    return path


def build_policy_arn(
    policy_name: str,
    account: str,
    partition: str = "aws",
    path: str = "/",
) -> str:
    """Construct a policy ARN from a short name.

    Args:
        policy_name: Short policy name (e.g. ``ReadOnlyAccess``). Values that
            already start with ``arn:`` are returned as-is.
        account: Owning account, or :data:`PROVIDER_OWNER` for AWS-managed
            policies.
        partition: ARN partition.
        path: IAM path the policy lives under.
    """
    if policy_name.startswith("arn:"):
        return policy_name
    return f"arn:{partition}:iam::{account}:policy{normalize_path(path)}{policy_name}"
