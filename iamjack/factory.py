"""Identity service factory.

Provides :func:`identity_factory`, the single entry-point for creating an
identity service client. The function validates the raw config against the
provider's config model and returns the provider's
:class:`~iamjack.base.IdentityBlueprint` implementation.
"""

from typing import Any

from iamjack.base import IdentityBlueprint, existing_cloud_providers
from iamjack.base.config import validate_config
from iamjack.aws.iam import IAM as AWSIdentity


# cloud_provider -> identity service class
_FACTORY_REGISTRY: dict[str, type[IdentityBlueprint]] = {
    "aws": AWSIdentity,
}


def identity_factory(
    cloud_provider: existing_cloud_providers,
    config: dict[str, Any],
) -> IdentityBlueprint:
    """
    Create the identity service for a cloud provider.
    Args:
        cloud_provider: The cloud provider (e.g., 'aws').
        config: Configuration dictionary to initialize the service instance.
    Returns:
        An instance of the provider's identity service.
    Raises:
        ValueError: If the cloud provider is not supported.
        pydantic.ValidationError: If the config is invalid.
    """
    if cloud_provider not in _FACTORY_REGISTRY:
        raise ValueError(f"Unsupported cloud provider: {cloud_provider}")

    service_class = _FACTORY_REGISTRY[cloud_provider]
    config_obj = validate_config(cloud_provider, config)
    return service_class(config_obj)
