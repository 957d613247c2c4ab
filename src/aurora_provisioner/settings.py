"""Settings for the Aurora provisioning handlers."""

from typing import List
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from aurora_provisioner.enums import FailurePolicy


class Settings(BaseSettings):
    """
    Settings for the Aurora provisioning handlers.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) reads,
    validates and types configuration values from the Lambda environment.

    This class automatically reads from:
    1. Environment variables (production - set on the Lambda function by the deploying stack)
    2. .env file (local development)

    Environment variable names are treated case-insensitively, but the canonical
    names used in this project are upper case (MANAGER_SECRET_ARN, MAX_RETRIES, ...).
    """

    # Administrative credential
    manager_secret_arn: Optional[str] = None
    """ARN of the Secrets Manager secret holding the cluster's administrative credential.
    Optional at load time; handlers report a configuration failure when it is missing."""

    admin_database: str = "postgres"
    """Database used for cluster level statements (databases, roles, users)."""

    default_schemas: List[str] = ["public"]
    """Schemas provisioned when a database resource does not list any."""

    # Connection retry tuning
    max_retries: int = 5
    """Retries after the first failed connection attempt (transient failures only)."""

    retry_delay: float = 2.0
    """Fixed delay in seconds between connection attempts."""

    connect_timeout: float = 10.0
    """Per-attempt timeout in seconds for socket connect and authentication."""

    refetch_credentials_on_auth_failure: bool = True
    """Re-read the administrative secret and reconnect once after an authentication failure."""

    database_step_failure_policy: FailurePolicy = FailurePolicy.BEST_EFFORT
    """How failures while creating databases and schemas are treated (best_effort or strict)."""

    # Logging
    log_level: str = "INFO"
    """Minimum level written to stdout."""

    log_serialize: bool = False
    """Emit every log record as a JSON document instead of the text format."""

    # AWS
    aws_region: Optional[str] = None
    """Region for boto3 clients; the Lambda runtime's AWS_REGION is used when unset."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Lambda sets many AWS_* variables we don't model
        validate_default=True,
    )

    @field_validator("max_retries")
    @classmethod
    def _non_negative_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_retries must be >= 0")
        return value

    @field_validator("retry_delay", "connect_timeout")
    @classmethod
    def _non_negative_seconds(cls, value: float) -> float:
        if value < 0:
            raise ValueError("delays and timeouts must be >= 0")
        return value
