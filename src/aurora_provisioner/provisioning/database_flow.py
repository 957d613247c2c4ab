"""
Database Resource Provisioning

Create and Update run the same conform pass:

1. Read the administrative credential
2. On the admin database: create the database (if necessary) and the shared roles
3. On the new database: create the schemas and reapply the shared role grants

The PhysicalResourceId is always the database name.
"""

from typing import Any
from typing import List

from loguru import logger

from aurora_provisioner.db import sql
from aurora_provisioner.enums import SharedRole
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.errors import ProvisionerError
from aurora_provisioner.handlers.context import ProvisionerContext
from aurora_provisioner.handlers.responses import failure
from aurora_provisioner.handlers.responses import success
from aurora_provisioner.models import NO_PHYSICAL_ID
from aurora_provisioner.models import ProvisioningRequest
from aurora_provisioner.models import ProvisioningResponse

SHARED_ROLES = [role.value for role in SharedRole]


def schemas_from(value: Any, default: List[str]) -> List[str]:
    """Schema list from the resource property, falling back to the configured default."""
    if value is None or value == [] or value == "":
        return list(default)
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(s, str) and s for s in value):
        raise ConfigurationError(f"Resource property schemas must be a list of names (got: {value!r})")
    for schema in value:
        if len(schema.encode("utf-8")) > sql.MAX_IDENTIFIER_BYTES:
            raise ConfigurationError(f"Schema name {schema!r} exceeds {sql.MAX_IDENTIFIER_BYTES} bytes")
    return list(value)


async def create_update(ctx: ProvisionerContext, request: ProvisioningRequest) -> ProvisioningResponse:
    """Conform the database, its schemas and the shared roles."""
    database_name = request.prop("databaseName")
    if not database_name or not isinstance(database_name, str):
        err = ConfigurationError("Resource property databaseName is required")
        return failure(request, request.physical_resource_id or NO_PHYSICAL_ID, err, ctx.log_stream_name)
    if len(database_name.encode("utf-8")) > sql.MAX_IDENTIFIER_BYTES:
        err = ConfigurationError(f"Database name {database_name!r} exceeds {sql.MAX_IDENTIFIER_BYTES} bytes")
        return failure(request, request.physical_resource_id or NO_PHYSICAL_ID, err, ctx.log_stream_name)

    try:
        schemas = schemas_from(request.prop("schemas"), ctx.settings.default_schemas)
        await provision_database(ctx, database_name, schemas)
    except ProvisionerError as err:
        logger.error(f"Provisioning database {database_name} failed: {err}")
        return failure(request, database_name, err, ctx.log_stream_name)

    return success(request, database_name, ctx.log_stream_name)


async def provision_database(ctx: ProvisionerContext, database_name: str, schemas: List[str]) -> None:
    """
    Run the conform pass against the cluster.

    Raises:
        ProvisionerError: The first failing step (database and schema creation
            only raise under the strict failure policy)
    """
    config = ctx.reconciler.fetch_connection_config(ctx.require_manager_secret_arn())
    provisioner = ctx.schema_provisioner

    async with ctx.admin_session(ctx.settings.admin_database, config) as conn:
        await provisioner.ensure_database(conn, database_name)
        for role in SHARED_ROLES:
            await provisioner.ensure_role(conn, role)

    # Grants and default privileges apply to the connected database
    async with ctx.admin_session(database_name, ctx.admin_config) as conn:
        for schema in schemas:
            await provisioner.ensure_schema(conn, schema)
        for role in SHARED_ROLES:
            await provisioner.configure_role(conn, database_name, role, schemas)

    logger.info(f"Database {database_name} conformed", schemas=schemas, roles=SHARED_ROLES)
