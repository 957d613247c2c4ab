"""
Request Dispatcher

Maps a lifecycle event to its phase handler and guarantees exactly one
uniformly shaped response per request:

- every exception is converted into a Failed response with a descriptive reason
- Delete always reports Success, whatever happened, so teardown never deadlocks
"""

from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Dict
from typing import Mapping

from loguru import logger
from pydantic import ValidationError

from aurora_provisioner.enums import RequestType
from aurora_provisioner.enums import ResponseStatus
from aurora_provisioner.errors import ConfigurationError
from aurora_provisioner.errors import ProvisionerError
from aurora_provisioner.errors import UnknownRequestTypeError
from aurora_provisioner.errors import failure_reason
from aurora_provisioner.handlers.context import ProvisionerContext
from aurora_provisioner.handlers.responses import failure
from aurora_provisioner.handlers.responses import success
from aurora_provisioner.models import NO_PHYSICAL_ID
from aurora_provisioner.models import ProvisioningRequest
from aurora_provisioner.models import ProvisioningResponse
from aurora_provisioner.monitoring.logger import log_event_info
from aurora_provisioner.monitoring.logger import log_response_info

PhaseHandler = Callable[[ProvisionerContext, ProvisioningRequest], Awaitable[ProvisioningResponse]]


async def noop_delete(ctx: ProvisionerContext, request: ProvisioningRequest) -> ProvisioningResponse:
    """Delete leaves provisioned objects in place."""
    logger.info("Delete is a no-op; provisioned objects are left in place")
    return success(
        request,
        request.physical_resource_id or NO_PHYSICAL_ID,
        ctx.log_stream_name,
        reason_prefix="Nothing deleted",
    )


def reject_event(event: Mapping[str, Any], err: BaseException, log_stream_name: str) -> Dict[str, Any]:
    """
    Response for an event that could not be handled at all (unparseable event,
    invalid configuration). Delete still reports Success.
    """
    status = ResponseStatus.SUCCESS if event.get("RequestType") == RequestType.DELETE.value else ResponseStatus.FAILED
    response = ProvisioningResponse(
        status=status,
        physical_resource_id=str(event.get("PhysicalResourceId") or NO_PHYSICAL_ID),
        reason=failure_reason(err, log_stream_name),
        logical_resource_id=str(event.get("LogicalResourceId", "")),
        request_id=str(event.get("RequestId", "")),
        stack_id=str(event.get("StackId", "")),
    )
    return response.to_event_result()


def invalid_event_error(event: Mapping[str, Any], err: ValidationError) -> ProvisionerError:
    """
    Error for an event that failed validation.

    An unrecognised RequestType is reported as such; anything else wrong with
    the event (for example non-object ResourceProperties) is a configuration
    error naming the offending fields.
    """
    request_type = event.get("RequestType")
    if not isinstance(request_type, str) or request_type not in {t.value for t in RequestType}:
        return UnknownRequestTypeError(str(request_type))
    details = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in err.errors())
    return ConfigurationError(f"Invalid event: {details}")


class RequestDispatcher:
    """Phase handler selection for one custom resource type."""

    def __init__(self, resource_name: str, handlers: Mapping[RequestType, PhaseHandler]):
        """
        Initialize dispatcher.

        Args:
            resource_name: Name used in logs (e.g. "database", "user")
            handlers: Handler per RequestType; a missing phase is a failure
        """
        self.resource_name = resource_name
        self.handlers = dict(handlers)

    async def dispatch(self, event: Mapping[str, Any], ctx: ProvisionerContext) -> Dict[str, Any]:
        """Handle one lifecycle event and return the wire response."""
        log_event_info(dict(event))
        try:
            request = ProvisioningRequest.model_validate(event)
        except ValidationError as err:
            error = invalid_event_error(event, err)
            logger.error(f"Rejecting event: {error}", errors=err.errors(include_url=False, include_input=False))
            result = reject_event(event, error, ctx.log_stream_name)
            log_response_info(result)
            return result

        response = await self.handle(request, ctx)
        result = response.to_event_result()
        log_response_info(result)
        return result

    async def handle(self, request: ProvisioningRequest, ctx: ProvisionerContext) -> ProvisioningResponse:
        """Run the phase handler, converting every failure into a response."""
        logger.info(f"on{request.request_type.value} {self.resource_name}")
        handler = self.handlers.get(request.request_type)
        try:
            if handler is None:
                raise UnknownRequestTypeError(f"No {request.request_type.value} handler for {self.resource_name}")
            response = await handler(ctx, request)
        except Exception as err:  # pylint: disable=broad-except
            logger.exception(f"{self.resource_name} {request.request_type.value} failed: {err}")
            response = failure(
                request, request.physical_resource_id or NO_PHYSICAL_ID, err, ctx.log_stream_name
            )

        if request.request_type is RequestType.DELETE and response.status is not ResponseStatus.SUCCESS:
            logger.warning(f"Reporting SUCCESS for Delete despite failure: {response.reason}")
            response = response.model_copy(update={"status": ResponseStatus.SUCCESS})
        return response
