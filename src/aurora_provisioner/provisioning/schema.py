"""
Schema Provisioner

Idempotent database, schema and shared role provisioning.

- Databases and roles are created only when the catalog says they are missing.
- Schemas use CREATE SCHEMA IF NOT EXISTS.
- Shared role attributes and grants are reasserted on every run so drift heals.

Every statement is awaited in order on the caller's connection.

Failure policy: database and schema creation follow the configured
FailurePolicy (best effort by default: log and continue). Role creation and
grants always propagate as SqlExecutionError.
"""

from typing import Iterable
from typing import List

import asyncpg
from loguru import logger

from aurora_provisioner.db import sql
from aurora_provisioner.enums import FailurePolicy
from aurora_provisioner.enums import SharedRole
from aurora_provisioner.errors import SqlExecutionError


async def run_statement(conn: asyncpg.Connection, statement: str, step: str, log_sql: bool = True) -> str:
    """Execute one statement, wrapping database errors as SqlExecutionError."""
    if log_sql:
        logger.info(f"Running: {statement}")
    try:
        return await conn.execute(statement)
    except (asyncpg.PostgresError, asyncpg.InterfaceError) as err:
        logger.error(f"{step} failed: {err}", sqlstate=getattr(err, "sqlstate", None))
        raise SqlExecutionError(str(err), step=step, statement=statement if log_sql else None) from err


async def exists(conn: asyncpg.Connection, query: str, name: str, step: str) -> bool:
    """Catalog existence check by name."""
    try:
        return await conn.fetchval(query, name) is not None
    except (asyncpg.PostgresError, asyncpg.InterfaceError) as err:
        raise SqlExecutionError(str(err), step=step) from err


class SchemaProvisioner:
    """Databases, schemas and the shared reader/writer roles."""

    def __init__(self, policy: FailurePolicy = FailurePolicy.BEST_EFFORT):
        self.policy = policy

    async def ensure_database(self, conn: asyncpg.Connection, name: str) -> bool:
        """
        Create the database if it doesn't already exist.

        Returns:
            True when a CREATE DATABASE was issued and succeeded
        """
        step = "Create database"
        try:
            if await exists(conn, sql.DATABASE_EXISTS, name, step):
                logger.info(f"Database {name} already exists.")
                return False
            await run_statement(conn, sql.create_database(name), step)
            return True
        except SqlExecutionError as err:
            self._handle_best_effort(err, f"Error creating database {name}")
            return False

    async def ensure_schema(self, conn: asyncpg.Connection, name: str) -> None:
        """Create the schema in the connected database if it doesn't already exist."""
        try:
            await run_statement(conn, sql.create_schema(name), "Create schema")
        except SqlExecutionError as err:
            self._handle_best_effort(err, f"Error creating schema {name}")

    async def ensure_role(self, conn: asyncpg.Connection, role: str) -> bool:
        """
        Create the shared role if missing, then normalize its attributes.

        The ALTER ROLE is issued on every call, whether or not the role was created.

        Returns:
            True when a CREATE ROLE was issued
        """
        step = "Create role"
        created = False
        if await exists(conn, sql.ROLE_EXISTS, role, step):
            logger.info(f"Role {role} already exists. Skipping creation.")
        else:
            await run_statement(conn, sql.create_role(role), step)
            created = True
        await run_statement(conn, sql.normalize_shared_role(role), step)
        return created

    async def configure_role(
        self, conn: asyncpg.Connection, database: str, role: str, schemas: Iterable[str]
    ) -> List[str]:
        """
        Reapply the shared role's grants in the connected database.

        Must run on a connection to `database`: default privileges apply to the
        current database.

        Returns:
            The statements executed, in order
        """
        is_writer = role == SharedRole.WRITER.value
        statements = sql.role_grants(database, role, schemas, is_writer=is_writer)
        for statement in statements:
            await run_statement(conn, statement, "Configure role")
        return statements

    def _handle_best_effort(self, err: SqlExecutionError, message: str) -> None:
        if self.policy is FailurePolicy.STRICT:
            raise err
        logger.warning(f"{message}: {err} (continuing, failure policy is {self.policy.value})")
