"""
Invocation Context

Holds the clients and components one invocation uses. Entry points build it
from Settings; tests construct it directly with fakes.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import AsyncIterator
from typing import Optional

import asyncpg
import boto3
from botocore.client import BaseClient
from loguru import logger

from aurora_provisioner.credentials import SecretReconciler
from aurora_provisioner.db import ConnectionManager
from aurora_provisioner.db.connection import close_quietly
from aurora_provisioner.errors import AuthenticationError
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.models import ConnectionConfig
from aurora_provisioner.provisioning.schema import SchemaProvisioner
from aurora_provisioner.provisioning.user import UserProvisioner
from aurora_provisioner.settings import Settings


@dataclass
class ProvisionerContext:
    """Per-invocation dependencies."""

    settings: Settings
    secrets_client: BaseClient
    rds_client: BaseClient
    connections: ConnectionManager
    schema_provisioner: SchemaProvisioner = field(default_factory=SchemaProvisioner)
    user_provisioner: UserProvisioner = field(default_factory=UserProvisioner)
    lambda_context: Optional[Any] = None
    # Config of the last admin connection that authenticated
    admin_config: Optional[ConnectionConfig] = None

    @classmethod
    def from_settings(cls, settings: Settings, lambda_context: Optional[Any] = None) -> "ProvisionerContext":
        """Build the production context: real boto3 clients and asyncpg connections."""
        session = boto3.session.Session(region_name=settings.aws_region)
        return cls(
            settings=settings,
            secrets_client=session.client("secretsmanager"),
            rds_client=session.client("rds"),
            connections=ConnectionManager(
                max_retries=settings.max_retries,
                retry_delay=settings.retry_delay,
                connect_timeout=settings.connect_timeout,
            ),
            schema_provisioner=SchemaProvisioner(policy=settings.database_step_failure_policy),
            user_provisioner=UserProvisioner(),
            lambda_context=lambda_context,
        )

    @property
    def reconciler(self) -> SecretReconciler:
        return SecretReconciler(self.secrets_client)

    @property
    def log_stream_name(self) -> str:
        return getattr(self.lambda_context, "log_stream_name", None) or "unknown"

    @property
    def invoked_function_arn(self) -> str:
        return getattr(self.lambda_context, "invoked_function_arn", None) or ""

    def require_manager_secret_arn(self) -> str:
        """Administrative secret ARN, or ConfigurationError when unset."""
        arn = self.settings.manager_secret_arn
        if not arn:
            raise ConfigurationError("Failed to find MANAGER_SECRET_ARN in environment variables")
        return arn

    @asynccontextmanager
    async def admin_session(
        self, database: str, config: Optional[ConnectionConfig] = None
    ) -> AsyncIterator[asyncpg.Connection]:
        """
        Administrative connection to `database`, closed on exit.

        When the cluster rejects the credential and
        settings.refetch_credentials_on_auth_failure is set, the administrative
        secret is read again and the connection retried exactly once; a second
        rejection propagates. The config that authenticated is kept on
        admin_config for later sessions in the same invocation.

        Args:
            database: Database to connect to
            config: Connection config already in hand; fetched when omitted
        """
        if config is None:
            config = self.reconciler.fetch_connection_config(self.require_manager_secret_arn())
        try:
            conn = await self.connections.connect(config, database)
        except AuthenticationError:
            if not self.settings.refetch_credentials_on_auth_failure:
                raise
            logger.warning("Authentication failed; re-reading the manager secret and retrying once")
            config = self.reconciler.fetch_connection_config(self.require_manager_secret_arn())
            conn = await self.connections.connect(config, database)
        self.admin_config = config
        try:
            yield conn
        finally:
            await close_quietly(conn)
