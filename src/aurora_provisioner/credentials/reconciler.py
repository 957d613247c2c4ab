"""
Secret Reconciler

Reads the administrative and user secrets from Secrets Manager and conforms the
user secret so that clients reading it alone can connect:

- host and engine are copied from the administrative secret when missing or empty
- proxyHost is set to the configured proxy endpoint, or removed when there is none

The user secret is written back only when a field changed, and a failed
write-back fails the invocation.
"""

import json
from typing import Any
from typing import Dict
from typing import Optional
from typing import Tuple

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError
from loguru import logger
from pydantic import ValidationError

from aurora_provisioner.errors import SecretError
from aurora_provisioner.models import PROXY_KEY
from aurora_provisioner.models import AdminCredential
from aurora_provisioner.models import ConnectionConfig
from aurora_provisioner.models import ResourceCredential
from aurora_provisioner.models import SecretsResult

# Fields copied from the administrative secret when the user secret lacks them
INHERITED_FIELDS = ("host", "engine")


def merge_resource_secret(
    admin: AdminCredential, resource: Dict[str, Any], proxy_endpoint: Optional[str]
) -> Tuple[Dict[str, Any], bool]:
    """
    Compute the conformed user secret.

    Args:
        admin: Administrative credential (never mutated)
        resource: User secret document as stored
        proxy_endpoint: Proxy endpoint configured for this invocation, if any

    Returns:
        (merged document, whether any field changed)
    """
    merged = dict(resource)
    changed = False

    for field in INHERITED_FIELDS:
        inherited = getattr(admin, field)
        if not merged.get(field) and inherited:
            logger.info(f"Updating user secret with {field} from manager secret")
            merged[field] = inherited
            changed = True

    if not proxy_endpoint:
        if PROXY_KEY in merged:
            logger.info(f"Updating user secret to remove {PROXY_KEY} since no proxy is configured")
            del merged[PROXY_KEY]
            changed = True
    elif merged.get(PROXY_KEY) != proxy_endpoint:
        logger.info(
            f"Updating user secret, {PROXY_KEY} changed",
            previous=merged.get(PROXY_KEY),
            current=proxy_endpoint,
        )
        merged[PROXY_KEY] = proxy_endpoint
        changed = True

    return merged, changed


class SecretReconciler:
    """Secrets Manager access for the provisioning handlers."""

    def __init__(self, client: BaseClient):
        """
        Initialize reconciler.

        Args:
            client: boto3 Secrets Manager client
        """
        self.client = client

    def fetch_secret(self, secret_id: str) -> Dict[str, Any]:
        """Read and parse a JSON secret."""
        logger.info(f"Fetching secret {secret_id}")
        try:
            raw = self.client.get_secret_value(SecretId=secret_id)
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Failed to fetch secret {secret_id}: {err}")
            raise SecretError(f"Failed to fetch secret {secret_id}: {err}", secret_id=secret_id) from err

        secret_string = raw.get("SecretString")
        if not secret_string:
            raise SecretError(f"Secret {secret_id} has no SecretString", secret_id=secret_id)
        try:
            document = json.loads(secret_string)
        except json.JSONDecodeError as err:
            raise SecretError(f"Secret {secret_id} is not valid JSON: {err.msg}", secret_id=secret_id) from err
        if not isinstance(document, dict):
            raise SecretError(f"Secret {secret_id} is not a JSON object", secret_id=secret_id)
        return document

    def fetch_admin(self, secret_id: str) -> AdminCredential:
        """Read the administrative credential."""
        document = self.fetch_secret(secret_id)
        try:
            return AdminCredential.model_validate(document)
        except ValidationError as err:
            fields = ", ".join(str(e["loc"][0]) for e in err.errors())
            raise SecretError(
                f"Secret {secret_id} is missing or has invalid fields: {fields}", secret_id=secret_id
            ) from err

    def fetch_connection_config(self, admin_secret_id: str) -> ConnectionConfig:
        """Administrative connection parameters."""
        return ConnectionConfig.from_admin(self.fetch_admin(admin_secret_id))

    def put_secret(self, secret_id: str, document: Dict[str, Any]) -> None:
        """Persist a secret document. Failures propagate."""
        try:
            response = self.client.put_secret_value(SecretId=secret_id, SecretString=json.dumps(document))
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Failed to update secret {secret_id}: {err}")
            raise SecretError(f"Failed to update secret {secret_id}: {err}", secret_id=secret_id) from err
        logger.info(f"putSecretValue {secret_id} succeeded", version_id=response.get("VersionId"))

    def reconcile(
        self, admin_secret_id: str, resource_secret_id: str, proxy_endpoint: Optional[str] = None
    ) -> SecretsResult:
        """
        Conform the user secret and return what the user provisioning step needs.

        Args:
            admin_secret_id: Administrative secret ARN
            resource_secret_id: User secret ARN
            proxy_endpoint: Proxy endpoint to record in the user secret, if any

        Returns:
            Administrative connection config plus the user's username and password

        Raises:
            SecretError: Any fetch, parse or write-back failure, or no host or engine
                available from either secret
        """
        admin = self.fetch_admin(admin_secret_id)
        resource = self.fetch_secret(resource_secret_id)

        merged, changed = merge_resource_secret(admin, resource, proxy_endpoint)
        for field in INHERITED_FIELDS:
            if not merged.get(field):
                raise SecretError(
                    f"Secret {resource_secret_id} has no {field} and the manager secret does not provide one",
                    secret_id=resource_secret_id,
                )
        try:
            credential = ResourceCredential.model_validate(merged)
        except ValidationError as err:
            fields = ", ".join(str(e["loc"][0]) for e in err.errors())
            raise SecretError(
                f"Secret {resource_secret_id} is missing or has invalid fields: {fields}",
                secret_id=resource_secret_id,
            ) from err

        if changed:
            logger.info(f"Updating user secret for {credential.username}")
            self.put_secret(resource_secret_id, merged)
        else:
            logger.info(f"User {credential.username} secret already conformed. Nothing to update.")

        return SecretsResult(
            connection_config=ConnectionConfig.from_admin(admin),
            username=credential.username,
            password=credential.password,
            updated=changed,
        )
