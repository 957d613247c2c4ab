"""Unit tests for the database resource (provisioning/database_flow.py)."""

import asyncpg
import pytest

from aurora_provisioner.enums import FailurePolicy
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.handlers.entrypoints import DATABASE_DISPATCHER
from aurora_provisioner.provisioning import SchemaProvisioner
from aurora_provisioner.provisioning.database_flow import schemas_from
from tests.consts import LOG_STREAM_NAME
from tests.consts import MANAGER_SECRET_ARN


class TestSchemasFrom:
    """Tests for the schemas resource property."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ["public"]),
            ([], ["public"]),
            ("", ["public"]),
            ("billing", ["billing"]),
            (["public", "billing"], ["public", "billing"]),
        ],
        ids=["absent", "empty-list", "empty-string", "single-string", "list"],
    )
    def test_values(self, value, expected):
        """Absent or empty values fall back to the default schemas."""
        assert schemas_from(value, ["public"]) == expected

    @pytest.mark.parametrize("value", [{"a": 1}, ["public", ""], [1]], ids=["mapping", "empty-name", "non-string"])
    def test_invalid(self, value):
        """Anything but a list of names is a configuration error."""
        with pytest.raises(ConfigurationError):
            schemas_from(value, ["public"])

    @pytest.mark.parametrize("value", ["s" * 64, ["public", "s" * 64]], ids=["single-string", "list"])
    def test_rejects_long_names(self, value):
        with pytest.raises(ConfigurationError, match="exceeds 63 bytes"):
            schemas_from(value, ["public"])


class TestDatabaseCreate:
    """Tests for Create/Update of the database resource."""

    @pytest.mark.asyncio
    async def test_orders_on_clean_cluster(self, provisioner_context, fake_cluster, event_factory):
        """Create "orders" with public and billing schemas on a clean cluster."""
        event = event_factory("Create", {"databaseName": "orders", "schemas": ["public", "billing"]})

        response = await DATABASE_DISPATCHER.dispatch(event, provisioner_context)

        assert response["Status"] == "SUCCESS"
        assert response["PhysicalResourceId"] == "orders"
        assert response["Reason"] == f"Success see also {LOG_STREAM_NAME}"
        assert fake_cluster.executed("postgres") == [
            'CREATE DATABASE "orders"',
            'CREATE ROLE "r_reader"',
            'ALTER ROLE "r_reader" NOBYPASSRLS NOCREATEDB NOCREATEROLE NOLOGIN INHERIT',
            'CREATE ROLE "r_writer"',
            'ALTER ROLE "r_writer" NOBYPASSRLS NOCREATEDB NOCREATEROLE NOLOGIN INHERIT',
        ]
        assert fake_cluster.executed("orders") == [
            'CREATE SCHEMA IF NOT EXISTS "public"',
            'CREATE SCHEMA IF NOT EXISTS "billing"',
            'GRANT CONNECT ON DATABASE "orders" TO "r_reader"',
            'GRANT USAGE ON SCHEMA "public" TO "r_reader"',
            'GRANT USAGE ON SCHEMA "billing" TO "r_reader"',
            'ALTER DEFAULT PRIVILEGES GRANT USAGE ON SEQUENCES TO "r_reader"',
            'ALTER DEFAULT PRIVILEGES GRANT SELECT ON TABLES TO "r_reader"',
            'GRANT CONNECT ON DATABASE "orders" TO "r_writer"',
            'GRANT USAGE ON SCHEMA "public" TO "r_writer"',
            'GRANT USAGE ON SCHEMA "billing" TO "r_writer"',
            'ALTER DEFAULT PRIVILEGES GRANT USAGE ON SEQUENCES TO "r_writer"',
            'ALTER DEFAULT PRIVILEGES GRANT SELECT, INSERT, UPDATE, DELETE ON TABLES TO "r_writer"',
        ]

    @pytest.mark.asyncio
    async def test_second_create_issues_no_create(self, provisioner_context, fake_cluster, event_factory):
        """Re-running Create succeeds without CREATE DATABASE/ROLE statements."""
        event = event_factory("Create", {"databaseName": "orders", "schemas": ["public", "billing"]})
        await DATABASE_DISPATCHER.dispatch(event, provisioner_context)
        first_run = len(fake_cluster.executed())

        response = await DATABASE_DISPATCHER.dispatch(event, provisioner_context)

        second_run = fake_cluster.executed()[first_run:]
        assert response["Status"] == "SUCCESS"
        assert not any(stmt.startswith(("CREATE DATABASE", "CREATE ROLE")) for stmt in second_run)
        assert sum(1 for stmt in second_run if stmt.startswith("ALTER ROLE")) == 2

    @pytest.mark.asyncio
    async def test_update_uses_default_schema(self, provisioner_context, fake_cluster, event_factory):
        """Update without schemas provisions the default schema only."""
        event = event_factory("Update", {"databaseName": "orders"}, physical_resource_id="orders")

        response = await DATABASE_DISPATCHER.dispatch(event, provisioner_context)

        assert response["Status"] == "SUCCESS"
        assert 'CREATE SCHEMA IF NOT EXISTS "public"' in fake_cluster.executed("orders")
        assert not any("billing" in stmt for stmt in fake_cluster.executed())

    @pytest.mark.asyncio
    async def test_connections_are_closed(self, provisioner_context, fake_connector, event_factory):
        """Both admin sessions are closed once provisioning completes."""
        event = event_factory("Create", {"databaseName": "orders"})

        await DATABASE_DISPATCHER.dispatch(event, provisioner_context)

        assert [conn.database for conn in fake_connector.connections] == ["postgres", "orders"]
        assert all(conn.closed for conn in fake_connector.connections)

    @pytest.mark.asyncio
    async def test_rotated_credential_reused_for_second_session(
        self, provisioner_context, fake_connector, secrets_client, secret_store, event_factory
    ):
        """After a refetch the database session connects with the new password at the first attempt."""
        fake_connector.outcomes = [asyncpg.exceptions.InvalidPasswordError("password authentication failed")]
        secret_store[MANAGER_SECRET_ARN]["password"] = "rotated-pw"

        response = await DATABASE_DISPATCHER.dispatch(
            event_factory("Create", {"databaseName": "orders"}), provisioner_context
        )

        assert response["Status"] == "SUCCESS"
        assert [call["database"] for call in fake_connector.calls] == ["postgres", "postgres", "orders"]
        assert fake_connector.calls[2]["password"] == "rotated-pw"
        assert secrets_client.get_secret_value.call_count == 2

    @pytest.mark.asyncio
    async def test_missing_database_name(self, provisioner_context, event_factory):
        """Without databaseName the request fails before touching the cluster."""
        response = await DATABASE_DISPATCHER.dispatch(event_factory("Create", {}), provisioner_context)

        assert response["Status"] == "FAILED"
        assert response["PhysicalResourceId"] == "none"
        assert response["Reason"].startswith("Configuration issue: Resource property databaseName is required")

    @pytest.mark.asyncio
    async def test_database_name_too_long(self, provisioner_context, fake_connector, event_factory):
        """A name the server would truncate is rejected before connecting."""
        response = await DATABASE_DISPATCHER.dispatch(
            event_factory("Create", {"databaseName": "d" * 64}), provisioner_context
        )

        assert response["Status"] == "FAILED"
        assert response["Reason"].startswith("Configuration issue: Database name")
        assert fake_connector.calls == []

    @pytest.mark.asyncio
    async def test_missing_manager_secret_arn(self, provisioner_context, fake_connector, event_factory):
        """An unset MANAGER_SECRET_ARN is reported as a configuration failure."""
        provisioner_context.settings.manager_secret_arn = None

        response = await DATABASE_DISPATCHER.dispatch(
            event_factory("Create", {"databaseName": "orders"}), provisioner_context
        )

        assert response["Status"] == "FAILED"
        assert response["Reason"] == (
            "Configuration issue: Failed to find MANAGER_SECRET_ARN in environment variables "
            f"see also {LOG_STREAM_NAME}"
        )
        assert fake_connector.calls == []

    @pytest.mark.asyncio
    async def test_role_failure_fails_request(self, provisioner_context, fake_cluster, event_factory):
        """Role failures propagate into a Failed response naming the step."""
        fake_cluster.fail_on("CREATE ROLE", asyncpg.exceptions.InsufficientPrivilegeError("permission denied"))

        response = await DATABASE_DISPATCHER.dispatch(
            event_factory("Create", {"databaseName": "orders"}), provisioner_context
        )

        assert response["Status"] == "FAILED"
        assert response["PhysicalResourceId"] == "orders"
        assert response["Reason"].startswith("Create role issue: permission denied")

    @pytest.mark.asyncio
    async def test_best_effort_database_failure_continues(self, provisioner_context, fake_cluster, event_factory):
        """Under the default policy a failed CREATE DATABASE does not stop the roles."""
        fake_cluster.fail_on("CREATE DATABASE", asyncpg.exceptions.InsufficientPrivilegeError("permission denied"))

        response = await DATABASE_DISPATCHER.dispatch(
            event_factory("Create", {"databaseName": "orders"}), provisioner_context
        )

        assert response["Status"] == "SUCCESS"
        assert fake_cluster.count('CREATE ROLE "r_reader"') == 1

    @pytest.mark.asyncio
    async def test_strict_database_failure_fails(self, provisioner_context, fake_cluster, event_factory):
        """Under the strict policy a failed CREATE DATABASE fails the request."""
        provisioner_context.schema_provisioner = SchemaProvisioner(policy=FailurePolicy.STRICT)
        fake_cluster.fail_on("CREATE DATABASE", asyncpg.exceptions.InsufficientPrivilegeError("permission denied"))

        response = await DATABASE_DISPATCHER.dispatch(
            event_factory("Create", {"databaseName": "orders"}), provisioner_context
        )

        assert response["Status"] == "FAILED"
        assert response["Reason"].startswith("Create database issue")
        assert fake_cluster.count("CREATE ROLE") == 0

    @pytest.mark.asyncio
    async def test_connection_failure(self, provisioner_context, fake_connector, event_factory):
        """Exhausted connection retries surface as client.connect failed."""
        fake_connector.outcomes = [OSError("connection refused")] * 6

        response = await DATABASE_DISPATCHER.dispatch(
            event_factory("Create", {"databaseName": "orders"}), provisioner_context
        )

        assert response["Status"] == "FAILED"
        assert response["Reason"].startswith("client.connect failed")


class TestDatabaseDelete:
    """Tests for Delete of the database resource."""

    @pytest.mark.asyncio
    async def test_delete_is_noop(self, provisioner_context, fake_connector, event_factory):
        """Delete reports success and leaves the cluster untouched."""
        event = event_factory("Delete", {"databaseName": "orders"}, physical_resource_id="orders")

        response = await DATABASE_DISPATCHER.dispatch(event, provisioner_context)

        assert response["Status"] == "SUCCESS"
        assert response["PhysicalResourceId"] == "orders"
        assert fake_connector.calls == []
