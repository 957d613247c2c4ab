"""
Provisioner Models Module

All Pydantic models used by the handlers:
- Lifecycle request/response contract
- Secrets Manager credential documents
"""

from aurora_provisioner.models.credentials import (
    PROXY_KEY,
    AdminCredential,
    ConnectionConfig,
    ResourceCredential,
    SecretsResult,
)
from aurora_provisioner.models.lifecycle import (
    NO_PHYSICAL_ID,
    IsCompleteResult,
    ProvisioningRequest,
    ProvisioningResponse,
)

__all__ = [
    "PROXY_KEY",
    "NO_PHYSICAL_ID",
    "AdminCredential",
    "ConnectionConfig",
    "ResourceCredential",
    "SecretsResult",
    "IsCompleteResult",
    "ProvisioningRequest",
    "ProvisioningResponse",
]
