"""Secrets Manager credential handling."""

from aurora_provisioner.credentials.reconciler import SecretReconciler
from aurora_provisioner.credentials.reconciler import merge_resource_secret

__all__ = ["SecretReconciler", "merge_resource_secret"]
