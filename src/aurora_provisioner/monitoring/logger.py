import json
import logging
import sys
import traceback
from typing import Any
from typing import Dict

import loguru
from loguru import logger

# Keys whose values must never reach the log stream
REDACTED_KEYS = {"password", "SecretString"}

LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message} | {extra} {stacktrace}"
)


# Loggers configuration runs once per cold start -- see handlers/entrypoints.py
def configure_logger(level: str = "INFO", serialize: bool = False) -> None:
    """
    Configure loguru logger with a single stdout sink.

    Lambda forwards stdout to CloudWatch Logs, so no other sink is needed.

    Args:
        level: Minimum level written to stdout
        serialize: Emit each record as a JSON document instead of LOG_FORMAT
    """
    # Suppress verbose AWS SDK logging
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger.remove()  # remove the default logger

    if serialize:
        logger.add(sink=sys.stdout, level=level, diagnose=False, serialize=True)
        return

    logger.add(
        sink=sys.stdout,
        level=level,
        diagnose=False,
        colorize=False,
        format=LOG_FORMAT,
        filter=process_log_record,
    )


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before they are passed to the formatter.

    For instance,

    1. Serialize the "extra" field to JSON so that renders nicely in CloudWatch logs.
    2. For error logs, add a traceback with \r instead of \n so that CloudWatch does not
       split the traceback into multiple log events.
    """
    extra = record["extra"]

    # serialize "extra" field to JSON
    if extra:
        record["extra"] = json.dumps(redact(extra), default=str)

    # add stacktrace to log record
    record["stacktrace"] = ""
    if record["exception"]:
        err = record["exception"]
        stacktrace = get_formatted_stacktrace(err, replace_newline_character_with_carriage_return=True)
        record["stacktrace"] = stacktrace

    return record


def get_formatted_stacktrace(loguru_record_exception, replace_newline_character_with_carriage_return: bool) -> str:
    """Get the formatted stacktrace for the current exception."""
    exc_type, exc_value, exc_traceback = loguru_record_exception
    stacktrace_: list[str] = traceback.format_exception(exc_type, exc_value, exc_traceback)
    stacktrace: str = "".join(stacktrace_)
    if replace_newline_character_with_carriage_return:
        stacktrace = stacktrace.replace("\n", "\r")
    return stacktrace


def redact(payload: Any) -> Any:
    """Return a copy of payload with secret values masked, recursing into dicts and lists."""
    if isinstance(payload, dict):
        return {k: "****" if k in REDACTED_KEYS else redact(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [redact(item) for item in payload]
    return payload


def log_event_info(event: Dict[str, Any]) -> None:
    """Log an incoming lifecycle event."""
    event_info = {
        "request_type": event.get("RequestType"),
        "logical_resource_id": event.get("LogicalResourceId"),
        "physical_resource_id": event.get("PhysicalResourceId"),
        "resource_properties": redact(event.get("ResourceProperties", {})),
    }
    logger.info("Event received", lifecycle_event=event_info)


def log_response_info(response: Dict[str, Any]) -> None:
    """Log the response returned to the orchestrator."""
    logger.info(
        "Response returned",
        status=response.get("Status"),
        physical_resource_id=response.get("PhysicalResourceId"),
        reason=response.get("Reason"),
    )
