"""AWS IAM provider: ARN classification, policy documents, pagination,
principal resolution and the :class:`IAM` service built on them."""

from .iam import IAM

__all__ = ["IAM"]
