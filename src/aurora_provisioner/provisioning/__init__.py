"""Idempotent database, role and user provisioning."""

from aurora_provisioner.provisioning.schema import SchemaProvisioner
from aurora_provisioner.provisioning.user import UserProvisioner

__all__ = ["SchemaProvisioner", "UserProvisioner"]
