"""Thin ``invoke(operation, parameters)`` layer over a boto3 client.

Everything above this module speaks IAM API operation names
(``ListPolicies``, ``PutUserPolicy``) and plain parameter dicts. This is the
one place where ``ClientError`` is translated into the iamjack hierarchy,
logged, and where throttled calls are retried.
"""

from __future__ import annotations

from typing import Any, NoReturn

import boto3
from botocore import xform_name
from botocore.exceptions import ClientError

from iamjack.base.config import AWSConfig
from iamjack.base.exceptions import (
    DeleteConflictError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    LimitExceededError,
    ProviderError,
    ThrottlingError,
)
from iamjack.base.logger import ij_logger
from iamjack.base.retry import retry

_ERROR_MAP: dict[str, type[ProviderError]] = {
    "NoSuchEntity": EntityNotFoundError,
    "NoSuchEntityException": EntityNotFoundError,
    "EntityAlreadyExists": EntityAlreadyExistsError,
    "LimitExceeded": LimitExceededError,
    "DeleteConflict": DeleteConflictError,
    "Throttling": ThrottlingError,
    "ThrottlingException": ThrottlingError,
    "RequestLimitExceeded": ThrottlingError,
}


def _handle(e: ClientError, service: str, operation: str) -> NoReturn:
    error = e.response.get("Error", {})
    code = error.get("Code")
    status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    exc = _ERROR_MAP.get(code or "")
    if exc is None and status == 404:
        exc = EntityNotFoundError
    message = f"{operation} failed: {error.get('Message') or code}"
    # Misses are often expected by the caller; throttling is logged by retry.
    log = ij_logger.debug if exc in (EntityNotFoundError, ThrottlingError) else ij_logger.error
    log(message, provider="aws", service=service, operation=operation, error_code=code)
    raise (exc or ProviderError)(
        message, status_code=status, error_code=code, operation=operation
    ) from e


def is_not_found(error: ProviderError) -> bool:
    """Whether a provider error means the addressed entity does not exist."""
    return isinstance(error, EntityNotFoundError) or error.status_code == 404


class AWSTransport:
    """Executes named API operations for a single AWS service.

    Attributes:
        service: boto3 service name (``iam``, ``sts``).
        client: boto3 client for that service.
    """

    def __init__(self, service: str, config: AWSConfig) -> None:
        self.service = service
        self.client = boto3.client(
            service,
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
            region_name=config.region_name,
        )

    @retry()
    def invoke(self, operation: str, parameters: dict[str, Any] | None = None) -> dict[str, Any]:
        """Call ``operation`` (API name, e.g. ``GetPolicy``) with ``parameters``.

        Raises:
            ProviderError: Or a subclass keyed on the provider error code.
        """
        method = getattr(self.client, xform_name(operation))
        # Keys only; values can carry passwords and policy documents.
        ij_logger.debug(
            f"parameters={sorted(parameters or {})}", provider="aws", service=self.service, operation=operation
        )
        try:
            return method(**(parameters or {}))  # type: ignore[no-any-return]
        except ClientError as e:
            _handle(e, self.service, operation)
