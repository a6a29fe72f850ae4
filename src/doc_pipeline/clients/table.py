"""DynamoDB result table adapter."""

import json
from decimal import Decimal
from typing import Any, Dict, Optional

import boto3

from doc_pipeline.schemas.records import ResultRecord


def to_dynamo_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert floats to Decimal; the DynamoDB resource API rejects float."""
    return json.loads(json.dumps(item), parse_float=Decimal)


def from_dynamo_item(item: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(json.dumps(item, default=_decimal_default))


def _decimal_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class DynamoResultTable:
    """
    ResultTable backed by a DynamoDB table keyed on jobId.

    put_item replaces the whole item, so writing the same jobId twice
    leaves exactly one record.
    """

    def __init__(self, table_name: str, region: Optional[str] = None, resource: Any = None):
        self.table_name = table_name
        dynamodb = resource or boto3.resource("dynamodb", region_name=region)
        self._table = dynamodb.Table(table_name)

    def put(self, record: ResultRecord) -> None:
        self._table.put_item(Item=to_dynamo_item(record.to_item()))

    def get(self, job_id: str) -> Optional[ResultRecord]:
        response = self._table.get_item(Key={"jobId": job_id})
        item = response.get("Item")
        if item is None:
            return None
        return ResultRecord.from_item(from_dynamo_item(item))
