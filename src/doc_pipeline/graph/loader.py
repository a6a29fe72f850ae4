"""
YAML resource tree loader.

Example file:

    id: student20-dev-CoreStack
    kind: Stack
    children:
      - id: DocumentBucket
        kind: AWS::S3::Bucket
      - id: ResultsTable
        kind: AWS::DynamoDB::Table
        pointInTimeRecoverySpecification:
          pointInTimeRecoveryEnabled: true

Capabilities come from the kind (see KIND_CAPABILITIES) unless listed
explicitly under `capabilities`.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.errors import ValidationError
from doc_pipeline.graph.nodes import Capability, ResourceNode

_TAGGABLE_TABLE = Capability.TAGGABLE | Capability.TABLE_LIKE

KIND_CAPABILITIES: Dict[str, Capability] = {
    "AWS::DynamoDB::Table": _TAGGABLE_TABLE,
    "AWS::DynamoDB::GlobalTable": _TAGGABLE_TABLE,
    "AWS::S3::Bucket": Capability.TAGGABLE,
    "AWS::SQS::Queue": Capability.TAGGABLE,
    "AWS::SNS::Topic": Capability.TAGGABLE,
    "AWS::Lambda::Function": Capability.TAGGABLE,
    "AWS::ECS::Cluster": Capability.TAGGABLE,
    "AWS::ECS::Service": Capability.TAGGABLE,
    "AWS::ECS::TaskDefinition": Capability.TAGGABLE,
    "AWS::CloudWatch::Alarm": Capability.TAGGABLE,
    "AWS::IAM::Role": Capability.TAGGABLE,
}

_CAPABILITY_NAMES = {
    "taggable": Capability.TAGGABLE,
    "table_like": Capability.TABLE_LIKE,
}


class NodeSpec(BaseModel):
    """Schema of one node in a resource tree file."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Node id, unique among siblings")
    kind: str = Field(default="Construct", description="Resource type")
    capabilities: Optional[List[str]] = Field(
        default=None,
        description="Explicit capabilities (taggable, table_like); overrides the kind",
    )
    tags: Dict[str, str] = Field(default_factory=dict)
    properties: Dict[str, Any] = Field(default_factory=dict)
    backup_specification: Optional[Dict[str, Any]] = Field(
        default=None,
        alias="pointInTimeRecoverySpecification",
    )
    children: List["NodeSpec"] = Field(default_factory=list)

    @field_validator("capabilities")
    @classmethod
    def validate_capabilities(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        unknown = [name for name in v if name not in _CAPABILITY_NAMES]
        if unknown:
            raise ValueError(f"Unknown capabilities: {', '.join(unknown)}")
        return v

    @field_validator("children")
    @classmethod
    def validate_unique_children(cls, v: List["NodeSpec"]) -> List["NodeSpec"]:
        ids = [child.id for child in v]
        duplicates = sorted({node_id for node_id in ids if ids.count(node_id) > 1})
        if duplicates:
            raise ValueError(f"Duplicate child ids: {', '.join(duplicates)}")
        return v

    def resolve_capabilities(self) -> Capability:
        if self.capabilities is None:
            return KIND_CAPABILITIES.get(self.kind, Capability.NONE)
        result = Capability.NONE
        for name in self.capabilities:
            result |= _CAPABILITY_NAMES[name]
        return result

    def to_node(self) -> ResourceNode:
        return ResourceNode(
            node_id=self.id,
            kind=self.kind,
            capabilities=self.resolve_capabilities(),
            properties=self.properties,
            tags=self.tags,
            backup_specification=self.backup_specification,
            children=[child.to_node() for child in self.children],
        )


NodeSpec.model_rebuild()


def build_graph(data: Dict[str, Any]) -> ResourceNode:
    """
    Build a resource tree from parsed data.

    Raises:
        ValidationError: If the data does not match the tree schema
    """
    try:
        spec = NodeSpec.model_validate(data)
    except ValueError as e:
        raise ValidationError("Invalid resource tree", cause=e) from e
    return spec.to_node()


def load_graph(path: Union[str, Path]) -> ResourceNode:
    """
    Load a resource tree from a YAML file.

    Raises:
        ValidationError: If the file is not valid YAML or fails validation
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(
                f"Invalid YAML in {path}", cause=e, context={"path": str(path)}
            ) from e

    if not isinstance(data, dict):
        raise ValidationError(
            f"Resource tree file {path} must contain a mapping",
            context={"path": str(path)},
        )
    return build_graph(data)
