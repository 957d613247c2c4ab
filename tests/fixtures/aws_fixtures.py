"""Fixtures for boto3 Secrets Manager and RDS client mocks."""

import json
from typing import Any
from typing import Dict
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tests.consts import ADMIN_SECRET
from tests.consts import MANAGER_SECRET_ARN
from tests.consts import USER_SECRET
from tests.consts import USER_SECRET_ARN


def client_error(code: str, operation: str, message: str = "boom") -> ClientError:
    """botocore ClientError as raised by a failing API call."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def secret_store() -> Dict[str, Dict[str, Any]]:
    """Secret documents by ARN, seeded with the admin and user secrets."""
    return {
        MANAGER_SECRET_ARN: dict(ADMIN_SECRET),
        USER_SECRET_ARN: dict(USER_SECRET),
    }


@pytest.fixture
def secrets_client(secret_store):
    """Mock Secrets Manager client backed by secret_store."""
    client = MagicMock()

    def get_secret_value(SecretId):
        if SecretId not in secret_store:
            raise client_error("ResourceNotFoundException", "GetSecretValue", "Secrets Manager can't find it")
        return {"ARN": SecretId, "SecretString": json.dumps(secret_store[SecretId])}

    def put_secret_value(SecretId, SecretString):
        secret_store[SecretId] = json.loads(SecretString)
        return {"ARN": SecretId, "VersionId": "v2"}

    client.get_secret_value.side_effect = get_secret_value
    client.put_secret_value.side_effect = put_secret_value
    return client


@pytest.fixture
def rds_client():
    """Mock RDS client; tests script describe/start/stop responses."""
    return MagicMock()
