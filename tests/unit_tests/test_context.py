"""Unit tests for handlers/context.py ProvisionerContext."""

from unittest.mock import patch

import asyncpg
import pytest

from aurora_provisioner.errors import AuthenticationError
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.handlers.context import ProvisionerContext
from aurora_provisioner.settings import Settings
from tests.consts import MANAGER_SECRET_ARN


def auth_failure():
    return asyncpg.exceptions.InvalidPasswordError("password authentication failed for user")


class TestAdminSession:
    """Tests for the administrative connection with credential refetch."""

    @pytest.mark.asyncio
    async def test_yields_and_closes(self, provisioner_context, fake_connector):
        """The connection is closed when the block exits."""
        async with provisioner_context.admin_session("postgres") as conn:
            assert conn.closed is False

        assert conn.closed is True
        assert fake_connector.calls[0]["user"] == "cluster_admin"

    @pytest.mark.asyncio
    async def test_closes_on_error(self, provisioner_context):
        """The connection is closed when the block raises."""
        with pytest.raises(RuntimeError):
            async with provisioner_context.admin_session("postgres") as conn:
                raise RuntimeError("boom")

        assert conn.closed is True

    @pytest.mark.asyncio
    async def test_refetches_once_after_auth_failure(
        self, provisioner_context, fake_connector, secrets_client, secret_store
    ):
        """A rejected credential triggers one re-read of the secret and one reconnect."""
        fake_connector.outcomes = [auth_failure()]
        secret_store[MANAGER_SECRET_ARN]["password"] = "rotated-pw"

        async with provisioner_context.admin_session("postgres"):
            pass

        assert len(fake_connector.calls) == 2
        assert fake_connector.calls[1]["password"] == "rotated-pw"
        assert secrets_client.get_secret_value.call_count == 2
        assert provisioner_context.admin_config.password == "rotated-pw"

    @pytest.mark.asyncio
    async def test_second_auth_failure_propagates(self, provisioner_context, fake_connector):
        """Only one refetch is attempted."""
        fake_connector.outcomes = [auth_failure(), auth_failure()]

        with pytest.raises(AuthenticationError):
            async with provisioner_context.admin_session("postgres"):
                pass

        assert len(fake_connector.calls) == 2

    @pytest.mark.asyncio
    async def test_refetch_disabled(self, provisioner_context, fake_connector, secrets_client):
        """With refetch disabled an auth failure propagates at once."""
        provisioner_context.settings.refetch_credentials_on_auth_failure = False
        fake_connector.outcomes = [auth_failure()]

        with pytest.raises(AuthenticationError):
            async with provisioner_context.admin_session("postgres"):
                pass

        assert len(fake_connector.calls) == 1
        assert secrets_client.get_secret_value.call_count == 1


class TestContextProperties:
    """Tests for the context helpers."""

    def test_require_manager_secret_arn(self, provisioner_context):
        """A missing administrative secret ARN is a configuration error."""
        provisioner_context.settings.manager_secret_arn = None

        with pytest.raises(ConfigurationError, match="MANAGER_SECRET_ARN"):
            provisioner_context.require_manager_secret_arn()

    def test_log_stream_outside_lambda(self, provisioner_context):
        """Without a Lambda context the diagnostic pointer is "unknown"."""
        provisioner_context.lambda_context = None

        assert provisioner_context.log_stream_name == "unknown"
        assert provisioner_context.invoked_function_arn == ""

    @patch("aurora_provisioner.handlers.context.boto3")
    def test_from_settings(self, mock_boto3, lambda_context):
        """Production wiring creates Secrets Manager and RDS clients in the configured region."""
        settings = Settings(_env_file=None, aws_region="eu-west-1", max_retries=2, retry_delay=1.5)

        ctx = ProvisionerContext.from_settings(settings, lambda_context=lambda_context)

        mock_boto3.session.Session.assert_called_once_with(region_name="eu-west-1")
        session = mock_boto3.session.Session.return_value
        assert [c.args[0] for c in session.client.call_args_list] == ["secretsmanager", "rds"]
        assert ctx.connections.max_retries == 2
        assert ctx.connections.retry_delay == 1.5
        assert ctx.lambda_context is lambda_context
