"""Invocation context for logging."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from typing import Iterator
from typing import Mapping

from loguru import logger

# Context variables to store invocation-specific data
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
logical_resource_id_ctx: ContextVar[str] = ContextVar("logical_resource_id", default="")
request_type_ctx: ContextVar[str] = ContextVar("request_type", default="")
log_stream_name_ctx: ContextVar[str] = ContextVar("log_stream_name", default="")


def log_stream_name_of(context: Any) -> str:
    """CloudWatch log stream of the running Lambda, or 'unknown' outside Lambda."""
    return getattr(context, "log_stream_name", None) or "unknown"


@contextmanager
def invocation_context(event: Mapping[str, Any], context: Any) -> Iterator[None]:
    """
    Bind the lifecycle event's identity to every log record emitted inside the block.

    Captures:
    - Request ID (CloudFormation RequestId)
    - Logical resource id and request type
    - Stack id
    - Lambda log stream name (the diagnostic pointer used in response reasons)
    """
    request_id = str(event.get("RequestId", ""))
    logical_resource_id = str(event.get("LogicalResourceId", ""))
    request_type = str(event.get("RequestType", ""))
    log_stream_name = log_stream_name_of(context)

    tokens = [
        request_id_ctx.set(request_id),
        logical_resource_id_ctx.set(logical_resource_id),
        request_type_ctx.set(request_type),
        log_stream_name_ctx.set(log_stream_name),
    ]
    try:
        with logger.contextualize(
            request_id=request_id,
            logical_resource_id=logical_resource_id,
            request_type=request_type,
            stack_id=event.get("StackId", ""),
            log_stream_name=log_stream_name,
            aws_request_id=getattr(context, "aws_request_id", ""),
        ):
            yield
    finally:
        for var, token in zip(
            (request_id_ctx, logical_resource_id_ctx, request_type_ctx, log_stream_name_ctx), tokens
        ):
            var.reset(token)
