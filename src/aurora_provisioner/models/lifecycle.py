"""
Lifecycle Models

Pydantic models for the custom resource request/response contract.
Field aliases match the CloudFormation wire names.
"""

from typing import Any
from typing import Dict
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from aurora_provisioner.enums import RequestType
from aurora_provisioner.enums import ResponseStatus

# Physical id reported when no real identity could be determined
NO_PHYSICAL_ID = "none"


class ProvisioningRequest(BaseModel):
    """A lifecycle event delivered by the orchestrator. Consumed once per invocation."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    request_type: RequestType = Field(alias="RequestType")
    resource_properties: Dict[str, Any] = Field(default_factory=dict, alias="ResourceProperties")
    request_id: str = Field(default="", alias="RequestId")
    logical_resource_id: str = Field(default="", alias="LogicalResourceId")
    physical_resource_id: Optional[str] = Field(default=None, alias="PhysicalResourceId")
    stack_id: str = Field(default="", alias="StackId")

    def prop(self, name: str, default: Any = None) -> Any:
        """Resource property lookup."""
        return self.resource_properties.get(name, default)


class ProvisioningResponse(BaseModel):
    """Exactly one is produced per request, including on internal failure."""

    model_config = ConfigDict(populate_by_name=True)

    status: ResponseStatus = Field(alias="Status")
    physical_resource_id: str = Field(alias="PhysicalResourceId")
    reason: str = Field(alias="Reason")
    logical_resource_id: str = Field(default="", alias="LogicalResourceId")
    request_id: str = Field(default="", alias="RequestId")
    stack_id: str = Field(default="", alias="StackId")
    data: Optional[Dict[str, Any]] = Field(default=None, alias="Data")

    @classmethod
    def for_request(
        cls,
        request: ProvisioningRequest,
        status: ResponseStatus,
        physical_resource_id: str,
        reason: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> "ProvisioningResponse":
        """Response echoing the request's identity fields."""
        return cls(
            status=status,
            physical_resource_id=physical_resource_id,
            reason=reason,
            logical_resource_id=request.logical_resource_id,
            request_id=request.request_id,
            stack_id=request.stack_id,
            data=data,
        )

    def to_event_result(self) -> Dict[str, Any]:
        """Wire form returned from the Lambda handler."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class IsCompleteResult(BaseModel):
    """Answer of the completion probe."""

    model_config = ConfigDict(populate_by_name=True)

    is_complete: bool = Field(alias="IsComplete")

    def to_event_result(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
