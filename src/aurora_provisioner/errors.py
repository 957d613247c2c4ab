"""Error taxonomy for the provisioning handlers and its mapping to response reasons."""

from typing import Optional

__all__ = [
    "ProvisionerError",
    "ConfigurationError",
    "SecretError",
    "DatabaseConnectionError",
    "AuthenticationError",
    "TransientConnectionError",
    "SqlExecutionError",
    "ClusterLookupError",
    "UnknownRequestTypeError",
    "build_reason",
    "failure_reason",
]


class ProvisionerError(Exception):
    """Base class for every failure a lifecycle handler reports."""

    reason_prefix = "Provisioning issue"


class ConfigurationError(ProvisionerError):
    """Required configuration is missing. Never retried."""

    reason_prefix = "Configuration issue"


class SecretError(ProvisionerError):
    """Fetching, parsing or writing back a secret failed."""

    reason_prefix = "Secrets issue"

    def __init__(self, message: str, secret_id: Optional[str] = None):
        super().__init__(message)
        self.secret_id = secret_id


class DatabaseConnectionError(ProvisionerError):
    """A connection to the cluster could not be established."""

    reason_prefix = "client.connect failed"

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message)
        self.attempts = attempts


class AuthenticationError(DatabaseConnectionError):
    """The cluster rejected the credential. Not retried by the connection layer."""


class TransientConnectionError(DatabaseConnectionError):
    """Network failure or failed liveness probe; retried up to a bound."""


class SqlExecutionError(ProvisionerError):
    """A provisioning statement failed."""

    def __init__(self, message: str, step: str, statement: Optional[str] = None):
        super().__init__(message)
        self.step = step
        self.statement = statement

    @property
    def reason_prefix(self) -> str:  # type: ignore[override]
        return f"{self.step} issue"


class ClusterLookupError(ProvisionerError):
    """The cluster could not be described."""

    reason_prefix = "Cluster lookup issue"


class UnknownRequestTypeError(ProvisionerError):
    """The event carries a RequestType outside Create/Update/Delete."""

    reason_prefix = "Unknown RequestType"


def build_reason(prefix: str, log_stream_name: str) -> str:
    """Reason string convention: '<cause> see also <diagnostic pointer>'."""
    return f"{prefix} see also {log_stream_name}"


def failure_reason(err: BaseException, log_stream_name: str) -> str:
    """Build the Reason of a Failed response from any exception."""
    if isinstance(err, ProvisionerError):
        prefix = f"{err.reason_prefix}: {err}"
    else:
        prefix = f"Unexpected error: {type(err).__name__}: {err}"
    return build_reason(prefix, log_stream_name)
