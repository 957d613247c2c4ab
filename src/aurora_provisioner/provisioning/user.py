"""
User Provisioner

Idempotent login user provisioning. Every operation is applied to the primary
user and its rotation clone (`<name>_clone`) in lockstep, because the
multi-user rotation strategy alternates which of the pair is live.
"""

from typing import List

import asyncpg
from loguru import logger

from aurora_provisioner.db import sql
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.provisioning.schema import exists
from aurora_provisioner.provisioning.schema import run_statement

CLONE_SUFFIX = "_clone"


def user_pair(username: str) -> List[str]:
    """
    Primary user followed by its rotation clone.

    Raises:
        ConfigurationError: The clone name would exceed the identifier limit
    """
    clone = f"{username}{CLONE_SUFFIX}"
    if len(clone.encode("utf-8")) > sql.MAX_IDENTIFIER_BYTES:
        raise ConfigurationError(
            f"Username {username!r} is too long: {clone!r} exceeds {sql.MAX_IDENTIFIER_BYTES} bytes"
        )
    return [username, clone]


class UserProvisioner:
    """Login users, their passwords and shared role membership."""

    async def create_user(self, conn: asyncpg.Connection, username: str) -> bool:
        """
        Create the user if missing (with no password), then normalize its attributes.

        Returns:
            True when a CREATE USER was issued
        """
        step = "Create user"
        created = False
        if await exists(conn, sql.ROLE_EXISTS, username, step):
            logger.info(f"User {username} already exists. Skipping creation.")
        else:
            result = await run_statement(conn, sql.create_user(username), step)
            logger.debug(f"Result of CREATE USER {username}: {result}")
            created = True
        await run_statement(conn, sql.normalize_login_user(username), step)
        return created

    async def conform_password(self, conn: asyncpg.Connection, username: str, password: str) -> None:
        """Set the user's password from the secret. Same input, same result."""
        logger.info(f"Updating password for {username} from secret")
        await run_statement(conn, sql.set_password(username, password), "Conform password", log_sql=False)

    async def grant_role(self, conn: asyncpg.Connection, username: str, role: str) -> None:
        """Grant membership in a shared role."""
        await run_statement(conn, sql.grant_role(role, username), "Grant role")

    async def provision(self, conn: asyncpg.Connection, username: str, password: str, role: str) -> List[str]:
        """
        Create / conform the user pair and grant the role.

        Each phase completes for both users before the next phase starts.

        Returns:
            The provisioned user names (primary, clone)
        """
        users = user_pair(username)
        logger.info(f'Creating users "{users[0]}" and "{users[1]}"')
        for user in users:
            await self.create_user(conn, user)
        logger.info("Conforming passwords")
        for user in users:
            await self.conform_password(conn, user, password)
        logger.info(f"Granting role {role}")
        for user in users:
            await self.grant_role(conn, user, role)
        return users
