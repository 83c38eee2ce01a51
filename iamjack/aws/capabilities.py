"""Static description of what AWS IAM supports."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from iamjack.base.models import PolicyType

MAX_POLICY_VERSIONS = 5


class IAMCapabilities(BaseModel):
    """Provider limits and terminology for AWS IAM."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    supports_access_controls: bool = True
    supports_console_access: bool = True
    supports_api_access: bool = True
    supports_policies: bool = True
    supported_policy_types: tuple[PolicyType, ...] = (
        PolicyType.ACCOUNT_MANAGED,
        PolicyType.PROVIDER_MANAGED,
        PolicyType.INLINE,
    )
    max_policies_per_user: int = 10
    max_policies_per_group: int = 10
    max_groups_per_user: int = 100
    max_access_keys_per_user: int = 2
    max_users: int = 1000
    max_groups: int = 1000
    max_policy_versions: int = MAX_POLICY_VERSIONS
    term_for_user: str = "user"
    term_for_group: str = "group"
    term_for_policy: str = "policy"

    @property
    def console_url(self) -> str:
        return f"https://{self.account_id}.signin.aws.amazon.com/console"
