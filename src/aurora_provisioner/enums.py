"""
Provisioner Enums

All enum types shared by the lifecycle handlers.
Values must match exactly what CloudFormation and RDS send and expect.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Lifecycle Protocol Enums
# ════════════════════════════════════════════════════════════════════════════


class RequestType(str, Enum):
    """Lifecycle phase of a custom resource request."""

    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


class ResponseStatus(str, Enum):
    """Outcome reported back to the orchestrator."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


# ════════════════════════════════════════════════════════════════════════════
# Database Enums
# ════════════════════════════════════════════════════════════════════════════


class SharedRole(str, Enum):
    """Shared (NOLOGIN) roles that login users are granted."""

    READER = "r_reader"
    WRITER = "r_writer"

    @classmethod
    def for_user(cls, is_writer: bool) -> "SharedRole":
        """Role granted to a login user."""
        return cls.WRITER if is_writer else cls.READER


class FailurePolicy(str, Enum):
    """Treatment of failures while creating databases and schemas."""

    BEST_EFFORT = "best_effort"  # Log and continue
    STRICT = "strict"  # Propagate as SqlExecutionError


# ════════════════════════════════════════════════════════════════════════════
# Activity Stream Enums
# ════════════════════════════════════════════════════════════════════════════


class StreamState(str, Enum):
    """Terminal values of a cluster's ActivityStreamStatus."""

    STARTED = "started"
    STOPPED = "stopped"


class StreamMode(str, Enum):
    """Activity stream delivery mode."""

    ASYNC = "async"
    SYNC = "sync"
