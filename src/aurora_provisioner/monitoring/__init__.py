"""Logging configuration and invocation context."""

from aurora_provisioner.monitoring.logger import configure_logger
from aurora_provisioner.monitoring.request_context import invocation_context

__all__ = ["configure_logger", "invocation_context"]
