"""
Database Activity Stream

Two-phase asynchronous operation:
- on_event (Create/Delete) issues StartActivityStream / StopActivityStream and returns at once
- is_complete is polled by the orchestrator until the cluster reports the terminal status

Nothing is kept between invocations; the cluster identity and desired state are
rebuilt from the request every time.

NOTE: Delete always reports success so a missing cluster or failed stop call
never blocks stack teardown.
"""

from typing import Any
from typing import Dict
from typing import Mapping
from typing import Optional

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError
from loguru import logger
from pydantic import ValidationError

from aurora_provisioner.enums import RequestType
from aurora_provisioner.enums import StreamMode
from aurora_provisioner.enums import StreamState
from aurora_provisioner.errors import ClusterLookupError
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.handlers.context import ProvisionerContext
from aurora_provisioner.handlers.dispatcher import invalid_event_error
from aurora_provisioner.handlers.responses import failed
from aurora_provisioner.handlers.responses import failure
from aurora_provisioner.handlers.responses import success
from aurora_provisioner.models import NO_PHYSICAL_ID
from aurora_provisioner.models import IsCompleteResult
from aurora_provisioner.models import ProvisioningRequest
from aurora_provisioner.models import ProvisioningResponse
from aurora_provisioner.streaming.cluster_lookup import Found
from aurora_provisioner.streaming.cluster_lookup import lookup_cluster

# Terminal ActivityStreamStatus per phase
TERMINAL_STATUS = {
    RequestType.CREATE: StreamState.STARTED.value,
    RequestType.DELETE: StreamState.STOPPED.value,
}


def kinesis_stream_arn(stream_name: Optional[str], invoked_function_arn: str) -> str:
    """
    ARN of the stream's Kinesis stream, or "none" when RDS did not name one.

    Region and account come from the running function's own ARN
    (arn:aws:lambda:<region>:<account>:function:<name>).
    """
    splits = invoked_function_arn.split(":")
    if not stream_name or len(splits) < 5:
        return NO_PHYSICAL_ID
    region, account = splits[3], splits[4]
    return f"arn:aws:kinesis:{region}:{account}:stream/{stream_name}"


def _cluster_id(request: ProvisioningRequest) -> str:
    cluster_id = request.prop("clusterId")
    if not cluster_id:
        raise ConfigurationError("Resource property clusterId is required")
    return cluster_id


async def on_create(ctx: ProvisionerContext, request: ProvisioningRequest) -> ProvisioningResponse:
    """Start the activity stream. The stream becomes 'started' asynchronously."""
    try:
        lookup = lookup_cluster(ctx.rds_client, _cluster_id(request))
    except (ClusterLookupError, ConfigurationError) as err:
        return failure(request, NO_PHYSICAL_ID, err, ctx.log_stream_name)

    if not isinstance(lookup, Found):
        logger.error(lookup.describe())
        return failed(request, NO_PHYSICAL_ID, lookup.describe(), ctx.log_stream_name)
    logger.info(f"dbClusterArn: {lookup.arn}")

    result = ctx.rds_client.start_activity_stream(
        ResourceArn=lookup.arn,
        KmsKeyId=request.prop("kmsKeyId"),
        Mode=StreamMode.ASYNC.value,
        ApplyImmediately=True,
    )
    logger.info(
        "startActivityStream",
        status=result.get("Status"),
        kinesis_stream_name=result.get("KinesisStreamName"),
        mode=result.get("Mode"),
    )

    physical_resource_id = kinesis_stream_arn(result.get("KinesisStreamName"), ctx.invoked_function_arn)
    data = {"PhysicalResourceId": physical_resource_id}
    status = str(result.get("Status") or "")
    if not status.startswith("start"):
        response = failed(
            request, physical_resource_id, f"Unexpected activity stream status {status!r}", ctx.log_stream_name
        )
        return response.model_copy(update={"data": data})
    return success(request, physical_resource_id, ctx.log_stream_name, reason_prefix="Starting", data=data)


async def on_update(ctx: ProvisionerContext, request: ProvisioningRequest) -> ProvisioningResponse:
    """Nothing to do for updates."""
    return success(
        request, request.physical_resource_id or NO_PHYSICAL_ID, ctx.log_stream_name, reason_prefix="No-op"
    )


async def on_delete(ctx: ProvisionerContext, request: ProvisioningRequest) -> ProvisioningResponse:
    """Stop the activity stream. Always succeeds."""
    physical_resource_id = request.physical_resource_id or NO_PHYSICAL_ID
    try:
        lookup = lookup_cluster(ctx.rds_client, _cluster_id(request))
    except (ClusterLookupError, ConfigurationError) as err:
        logger.warning(f"Skipping stopActivityStream: {err}")
        return success(request, physical_resource_id, ctx.log_stream_name, reason_prefix=str(err))

    if not isinstance(lookup, Found):
        logger.warning(f"Skipping stopActivityStream: {lookup.describe()}")
        return success(request, physical_resource_id, ctx.log_stream_name, reason_prefix=lookup.describe())

    try:
        response = ctx.rds_client.stop_activity_stream(ResourceArn=lookup.arn, ApplyImmediately=True)
        # Log it but don't risk locking the stack by checking it
        logger.info("stopActivityStream", status=response.get("Status"))
    except (ClientError, BotoCoreError) as err:
        logger.error(f"stopActivityStream failed for {lookup.arn}: {err}")
        return success(request, physical_resource_id, ctx.log_stream_name, reason_prefix=f"Stop failed: {err}")

    return success(request, physical_resource_id, ctx.log_stream_name, reason_prefix="Stopping")


def is_complete(ctx: ProvisionerContext, event: Mapping[str, Any]) -> IsCompleteResult:
    """
    Completion probe, polled until it returns True.

    Update is always complete. Create completes when the stream is 'started',
    Delete when it is 'stopped'; a cluster that can no longer be found (or is
    ambiguous) counts as complete. Delete is also complete when the cluster
    cannot be described at all, matching on_delete.

    Raises:
        UnknownRequestTypeError: RequestType outside Create/Update/Delete
        ClusterLookupError: The cluster could not be described (Create only)
        ConfigurationError: clusterId is missing (Create only) or the event is malformed
    """
    try:
        request = ProvisioningRequest.model_validate(event)
    except ValidationError as err:
        raise invalid_event_error(event, err) from err

    if request.request_type is RequestType.UPDATE:
        return IsCompleteResult(is_complete=True)  # update is a no-op

    try:
        lookup = lookup_cluster(ctx.rds_client, _cluster_id(request))
    except (ClusterLookupError, ConfigurationError) as err:
        if request.request_type is not RequestType.DELETE:
            raise
        logger.warning(f"Treating Delete as complete: {err}")
        return IsCompleteResult(is_complete=True)

    if not isinstance(lookup, Found):
        logger.info(f"{lookup.describe()}; treating the operation as complete")
        return IsCompleteResult(is_complete=True)

    expected = TERMINAL_STATUS[request.request_type]
    done = lookup.activity_stream_status == expected
    logger.info(
        f"ActivityStreamStatus is {lookup.activity_stream_status!r} (terminal: {expected!r})",
        is_complete=done,
    )
    return IsCompleteResult(is_complete=done)


HANDLERS: Dict[RequestType, Any] = {
    RequestType.CREATE: on_create,
    RequestType.UPDATE: on_update,
    RequestType.DELETE: on_delete,
}
