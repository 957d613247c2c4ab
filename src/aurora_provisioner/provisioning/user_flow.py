"""
User Resource Provisioning

Create and Update run the same conform pass:

1. Conform the user secret (host, engine, proxyHost) if necessary
2. Create the user and its rotation clone (if necessary)
3. Set both passwords from the secret and grant the shared role

The PhysicalResourceId is the username, or "none" when the secret could not be read.
"""

from typing import Any

from loguru import logger

from aurora_provisioner.enums import SharedRole
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.errors import ProvisionerError
from aurora_provisioner.handlers.context import ProvisionerContext
from aurora_provisioner.handlers.responses import failure
from aurora_provisioner.handlers.responses import success
from aurora_provisioner.models import NO_PHYSICAL_ID
from aurora_provisioner.models import ProvisioningRequest
from aurora_provisioner.models import ProvisioningResponse
from aurora_provisioner.models import SecretsResult


def is_writer_from(value: Any) -> bool:
    """CloudFormation passes booleans as strings; only "true" selects the writer role."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


async def create_update(ctx: ProvisionerContext, request: ProvisioningRequest) -> ProvisioningResponse:
    """Conform the user secret, the user pair and its role membership."""
    user_secret_arn = request.prop("userSecretArn")
    is_writer = is_writer_from(request.prop("isWriter", "false"))
    proxy_host = request.prop("proxyHost") or None

    try:
        if not user_secret_arn:
            raise ConfigurationError("Resource property userSecretArn is required")
        manager_secret_arn = ctx.require_manager_secret_arn()
        logger.info("Fetching credentials from Secrets Manager")
        secrets: SecretsResult = ctx.reconciler.reconcile(manager_secret_arn, user_secret_arn, proxy_host)
    except ProvisionerError as err:
        logger.error(f"Conforming user secret failed: {err}")
        return failure(request, NO_PHYSICAL_ID, err, ctx.log_stream_name)

    role = SharedRole.for_user(is_writer).value
    try:
        async with ctx.admin_session(ctx.settings.admin_database, secrets.connection_config) as conn:
            await ctx.user_provisioner.provision(conn, secrets.username, secrets.password, role)
    except ProvisionerError as err:
        logger.error(f"Provisioning user {secrets.username} failed: {err}")
        return failure(request, secrets.username, err, ctx.log_stream_name)

    return success(request, secrets.username, ctx.log_stream_name)
