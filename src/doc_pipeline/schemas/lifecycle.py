"""
Resource lifecycle event schemas.

Models the Create/Update/Delete events a provisioning system sends to the
bootstrap seeder, using CloudFormation custom resource field names on the
wire.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RequestType(str, Enum):
    """Lifecycle transition requested by the provisioning system."""

    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


class SeedProperties(BaseModel):
    """Resource properties understood by the seeder. Unknown keys are kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    seed_job_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SeedJobId", "seedJobId", "seed_job_id"),
        description="Stable seed identity; becomes the physical resource id",
    )


class LifecycleEvent(BaseModel):
    """A single lifecycle transition.

    Attributes:
        request_type: Create, Update or Delete
        logical_resource_id: Stable logical id of the resource in its template
        physical_resource_id: Id returned by an earlier Create (Update/Delete only)
        resource_properties: Properties of the resource
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    request_type: RequestType = Field(
        ...,
        validation_alias=AliasChoices("RequestType", "requestType", "request_type"),
    )
    logical_resource_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices(
            "LogicalResourceId", "logicalResourceId", "logical_resource_id"
        ),
    )
    physical_resource_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "PhysicalResourceId", "physicalResourceId", "physical_resource_id"
        ),
    )
    resource_properties: SeedProperties = Field(
        default_factory=SeedProperties,
        validation_alias=AliasChoices(
            "ResourceProperties", "resourceProperties", "resource_properties"
        ),
    )


class LifecycleResponse(BaseModel):
    """Successful seeder response."""

    physical_resource_id: str
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_cloudformation(self) -> Dict[str, Any]:
        """Return the custom resource provider response shape."""
        return {"PhysicalResourceId": self.physical_resource_id, "Data": self.data}
