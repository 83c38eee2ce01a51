"""
iamjack exception hierarchy.

Identity errors split into three families: things that do not exist
(:class:`NotFoundError`), identifiers that cannot be parsed
(:class:`MalformedIdentifierError`) and failures reported by the provider
(:class:`ProviderError`). Provider errors keep the status and error code
of the underlying call so callers can tell a not-found from anything else.
"""

from __future__ import annotations


# ── Base ──────────────────────────────────────────────────────────────
class IamjackError(Exception):
    """Root exception for all iamjack errors."""


class IdentityError(IamjackError):
    """Base exception for identity and access operations."""


# ── Not found ─────────────────────────────────────────────────────────
class NotFoundError(IdentityError):
    """A principal, policy or rule does not exist."""


class PrincipalNotFoundError(NotFoundError):
    """A user or group could not be resolved from its identifier."""

    def __init__(self, kind: str, principal_id: str) -> None:
        super().__init__(f"No such {kind}: {principal_id}")
        self.kind = kind
        self.principal_id = principal_id


# ── Identifiers ───────────────────────────────────────────────────────
class MalformedIdentifierError(IdentityError, ValueError):
    """An opaque identifier failed structural parsing."""


# ── Provider ──────────────────────────────────────────────────────────
class ProviderError(IdentityError):
    """A provider-reported failure.

    Attributes:
        status_code: HTTP-like status of the failed call, if known.
        error_code: Provider error code string (e.g. ``NoSuchEntity``).
        operation: Provider operation that failed (e.g. ``GetUserPolicy``).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.operation = operation


class EntityNotFoundError(ProviderError, NotFoundError):
    """The provider reported that the addressed entity does not exist."""


class EntityAlreadyExistsError(ProviderError):
    """The provider reported a name collision."""


class LimitExceededError(ProviderError):
    """A provider quota (versions, policies, keys) was exceeded."""


class DeleteConflictError(ProviderError):
    """The entity still has dependants and cannot be deleted."""


class ThrottlingError(ProviderError):
    """The provider throttled the request."""
