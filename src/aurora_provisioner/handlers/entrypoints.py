"""
Lambda entry points.

One function per custom resource handler configured on the deploying stack:

    aurora_provisioner.handlers.entrypoints.database_handler
    aurora_provisioner.handlers.entrypoints.user_handler
    aurora_provisioner.handlers.entrypoints.activity_stream_on_event
    aurora_provisioner.handlers.entrypoints.activity_stream_is_complete

Each invocation builds its own Settings and ProvisionerContext; no clients or
connections survive between invocations.
"""

import asyncio
from typing import Any
from typing import Dict
from typing import Mapping

from loguru import logger
from pydantic import ValidationError

from aurora_provisioner.enums import RequestType
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.handlers.context import ProvisionerContext
from aurora_provisioner.handlers.dispatcher import RequestDispatcher
from aurora_provisioner.handlers.dispatcher import noop_delete
from aurora_provisioner.handlers.dispatcher import reject_event
from aurora_provisioner.monitoring.logger import configure_logger
from aurora_provisioner.monitoring.logger import log_event_info
from aurora_provisioner.monitoring.request_context import invocation_context
from aurora_provisioner.monitoring.request_context import log_stream_name_of
from aurora_provisioner.provisioning import database_flow
from aurora_provisioner.provisioning import user_flow
from aurora_provisioner.settings import Settings
from aurora_provisioner.streaming import activity_stream

DATABASE_DISPATCHER = RequestDispatcher(
    "database",
    {
        RequestType.CREATE: database_flow.create_update,
        RequestType.UPDATE: database_flow.create_update,
        RequestType.DELETE: noop_delete,
    },
)

USER_DISPATCHER = RequestDispatcher(
    "user",
    {
        RequestType.CREATE: user_flow.create_update,
        RequestType.UPDATE: user_flow.create_update,
        RequestType.DELETE: noop_delete,
    },
)

ACTIVITY_STREAM_DISPATCHER = RequestDispatcher("activity stream", activity_stream.HANDLERS)


def load_settings() -> Settings:
    """Read Settings from the environment and configure logging from them."""
    try:
        settings = Settings()
    except ValidationError as err:
        configure_logger()
        raise ConfigurationError(f"Invalid environment configuration: {err.error_count()} error(s)") from err
    configure_logger(level=settings.log_level, serialize=settings.log_serialize)
    return settings


def run_dispatcher(dispatcher: RequestDispatcher, event: Mapping[str, Any], context: Any) -> Dict[str, Any]:
    """Run one lifecycle event through a dispatcher. Always returns a response."""
    with invocation_context(event, context):
        try:
            settings = load_settings()
            ctx = ProvisionerContext.from_settings(settings, lambda_context=context)
        except Exception as err:  # pylint: disable=broad-except
            logger.exception(f"Failed to set up the invocation: {err}")
            return reject_event(event, err, log_stream_name_of(context))
        return asyncio.run(dispatcher.dispatch(event, ctx))


def database_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Database, schemas and shared roles."""
    return run_dispatcher(DATABASE_DISPATCHER, event, context)


def user_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Login user, its rotation clone and role membership."""
    return run_dispatcher(USER_DISPATCHER, event, context)


def activity_stream_on_event(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Start / stop the cluster's database activity stream."""
    return run_dispatcher(ACTIVITY_STREAM_DISPATCHER, event, context)


def activity_stream_is_complete(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Completion probe for the activity stream.

    Raises on internal failure; the orchestrator's polling framework treats a
    raised probe as a failed operation.
    """
    with invocation_context(event, context):
        settings = load_settings()
        log_event_info(dict(event))
        ctx = ProvisionerContext.from_settings(settings, lambda_context=context)
        try:
            result = activity_stream.is_complete(ctx, event)
        except Exception as err:
            logger.exception(f"isComplete failed: {err}")
            raise
        logger.info("isComplete", is_complete=result.is_complete)
        return result.to_event_result()
