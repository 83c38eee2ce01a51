"""Identity and access service blueprint."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence

from iamjack.base.models import (
    AccessKey,
    Group,
    PermissionRule,
    Policy,
    PolicyFilterOptions,
    PolicyOptions,
    PolicyVersion,
    Scope,
    User,
)


class IdentityBlueprint(ABC):
    """Abstract interface for users, groups and policies.

    Principals are always addressed by their immutable provider id. Policies
    are addressed by ARN when managed and by name plus an
    :class:`~iamjack.base.models.InlineScope` when inline.
    """

    # --- Policy queries ---

    @abstractmethod
    def get_policy(self, policy_id: str, scope: Scope | None = None) -> Policy | None:
        """Fetch policy metadata.

        Args:
            policy_id: Policy ARN for managed policies; policy name for
                inline policies.
            scope: :class:`InlineScope` naming the owning user or group,
                or ``None`` / :class:`ManagedScope` for managed policies.

        Returns:
            The policy, or ``None`` if it (or its inline owner) does not exist.

        Raises:
            MalformedIdentifierError: If a managed ``policy_id`` is not an ARN.
            ProviderError: On any other provider failure.
        """

    @abstractmethod
    def get_policy_rules(self, policy_id: str, scope: Scope | None = None) -> list[PermissionRule]:
        """Fetch and decode the live document of a policy.

        For managed policies this is the default version's document.
        Returns an empty list when the policy does not exist.
        """

    @abstractmethod
    def list_policies(self, filter_options: PolicyFilterOptions | None = None) -> list[Policy]:
        """List policies of the requested types.

        Args:
            filter_options: Policy types to include. Inline policies are only
                listed for the user and/or group named in the options.
        """

    @abstractmethod
    def list_policy_versions(self, policy_id: str) -> list[PolicyVersion]:
        """List stored document versions of a managed policy."""

    # --- Policy changes ---

    @abstractmethod
    def create_policy(self, options: PolicyOptions) -> str:
        """Create a policy and return its identifier.

        Inline scope returns the policy name; managed scope returns the ARN
        generated by the provider.
        """

    @abstractmethod
    def modify_policy(self, policy_id: str, options: PolicyOptions) -> str:
        """Replace the rules of a policy.

        Inline policies are overwritten; managed policies get a new default
        version.
        """

    @abstractmethod
    def remove_policy(self, policy_id: str, scope: Scope | None = None) -> None:
        """Delete a policy."""

    # --- Attachment ---

    @abstractmethod
    def attach_policy_to_user(self, policy_id: str, provider_user_id: str, **kwargs: Any) -> None:
        """Attach a managed policy to a user."""

    @abstractmethod
    def detach_policy_from_user(self, policy_id: str, provider_user_id: str, **kwargs: Any) -> None:
        """Detach a managed policy from a user."""

    @abstractmethod
    def attach_policy_to_group(self, policy_id: str, provider_group_id: str, **kwargs: Any) -> None:
        """Attach a managed policy to a group."""

    @abstractmethod
    def detach_policy_from_group(self, policy_id: str, provider_group_id: str, **kwargs: Any) -> None:
        """Detach a managed policy from a group."""

    @abstractmethod
    def list_entities_for_policy(self, policy_id: str, want_users: bool) -> list[str]:
        """Names of the users (or groups) a managed policy is attached to."""

    @abstractmethod
    def list_users_for_policy(self, policy_id: str) -> list[User]:
        """Users a managed policy is attached to; unresolvable names are skipped."""

    @abstractmethod
    def list_groups_for_policy(self, policy_id: str) -> list[Group]:
        """Groups a managed policy is attached to; unresolvable names are skipped."""

    # --- Principals ---

    @abstractmethod
    def create_user(self, user_name: str, path: str | None = None, group_ids: Sequence[str] = ()) -> User:
        """Create a user, optionally adding it to existing groups."""

    @abstractmethod
    def create_group(self, group_name: str, path: str | None = None, as_admin_group: bool = False) -> Group:
        """Create a group.

        Args:
            group_name: Requested name; characters IAM rejects are dropped.
            path: IAM path, ``/`` appended if missing.
            as_admin_group: Also grant the group every action on every resource.
        """

    @abstractmethod
    def get_user(self, provider_user_id: str) -> User | None:
        """Look a user up by provider id."""

    @abstractmethod
    def get_group(self, provider_group_id: str) -> Group | None:
        """Look a group up by provider id."""

    @abstractmethod
    def list_users(self, path_prefix: str | None = None) -> list[User]:
        """List users, optionally under a path prefix."""

    @abstractmethod
    def list_groups(self, path_prefix: str | None = None) -> list[Group]:
        """List groups, optionally under a path prefix."""

    @abstractmethod
    def list_groups_for_user(self, provider_user_id: str) -> list[Group]:
        """Groups the user belongs to."""

    @abstractmethod
    def list_users_in_group(self, provider_group_id: str) -> list[User]:
        """Members of a group."""

    @abstractmethod
    def add_user_to_groups(self, provider_user_id: str, *provider_group_ids: str) -> None:
        """Add a user to each of the given groups."""

    @abstractmethod
    def remove_user_from_group(self, provider_user_id: str, provider_group_id: str) -> None:
        """Remove a user from a group."""

    @abstractmethod
    def modify_user(self, provider_user_id: str, new_name: str | None = None, new_path: str | None = None) -> None:
        """Rename or move a user."""

    @abstractmethod
    def modify_group(self, provider_group_id: str, new_name: str | None = None, new_path: str | None = None) -> None:
        """Rename or move a group."""

    @abstractmethod
    def remove_user(self, provider_user_id: str) -> None:
        """Delete a user."""

    @abstractmethod
    def remove_group(self, provider_group_id: str) -> None:
        """Delete a group."""

    # --- Access ---

    @abstractmethod
    def enable_api_access(self, provider_user_id: str) -> AccessKey:
        """Create an access key; the secret part is only returned here."""

    @abstractmethod
    def list_access_keys(self, provider_user_id: str) -> list[AccessKey]:
        """List a user's access keys (without secrets)."""

    @abstractmethod
    def remove_access_key(self, shared_part: str, provider_user_id: str) -> None:
        """Delete an access key."""

    @abstractmethod
    def enable_console_access(self, provider_user_id: str, password: str) -> None:
        """Give a user a console password."""

    @abstractmethod
    def remove_console_access(self, provider_user_id: str) -> None:
        """Remove a user's console password."""
