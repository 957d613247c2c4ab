"""Builders for uniformly shaped lifecycle responses."""

from typing import Any
from typing import Dict
from typing import Optional

from aurora_provisioner.enums import ResponseStatus
from aurora_provisioner.errors import build_reason
from aurora_provisioner.errors import failure_reason
from aurora_provisioner.models import ProvisioningRequest
from aurora_provisioner.models import ProvisioningResponse


def success(
    request: ProvisioningRequest,
    physical_resource_id: str,
    log_stream_name: str,
    reason_prefix: str = "Success",
    data: Optional[Dict[str, Any]] = None,
) -> ProvisioningResponse:
    return ProvisioningResponse.for_request(
        request,
        status=ResponseStatus.SUCCESS,
        physical_resource_id=physical_resource_id,
        reason=build_reason(reason_prefix, log_stream_name),
        data=data,
    )


def failed(
    request: ProvisioningRequest, physical_resource_id: str, reason_prefix: str, log_stream_name: str
) -> ProvisioningResponse:
    return ProvisioningResponse.for_request(
        request,
        status=ResponseStatus.FAILED,
        physical_resource_id=physical_resource_id,
        reason=build_reason(reason_prefix, log_stream_name),
    )


def failure(
    request: ProvisioningRequest, physical_resource_id: str, err: BaseException, log_stream_name: str
) -> ProvisioningResponse:
    """Failed response whose reason describes `err`."""
    return ProvisioningResponse.for_request(
        request,
        status=ResponseStatus.FAILED,
        physical_resource_id=physical_resource_id,
        reason=failure_reason(err, log_stream_name),
    )
