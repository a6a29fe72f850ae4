"""
Bootstrap seeder for the result table.

Handles resource lifecycle events from the provisioning system:
- Create/Update: upsert one SEED_DATA record keyed by the physical resource id
- Delete: no-op (seed records are left in place)

The physical resource id is stable across Create, Update and Delete, so a
repeated Create or an Update converges on the same single record. Any failure
during Create/Update raises SeedError, which fails the lifecycle transition.
"""

import logging
import os
from typing import Any, Dict, Union

from core.errors import ConfigurationError, SeedError
from core.logging import get_logger, log_exception, log_with_context
from doc_pipeline.clients.base import ResultTable
from doc_pipeline.metrics import record_seed_event
from doc_pipeline.schemas.lifecycle import LifecycleEvent, LifecycleResponse, RequestType
from doc_pipeline.schemas.records import ResultRecord, ResultStatus

logger = get_logger(__name__)

SEED_DETAILS = "This item was added by the CDK Custom Resource Seeder (SDK v3)."


def physical_resource_id_for(event: LifecycleEvent) -> str:
    """SeedJobId when given, else derived from the logical resource id."""
    seed_job_id = event.resource_properties.seed_job_id
    if seed_job_id:
        return seed_job_id
    return f"seed-item-{event.logical_resource_id}"


def handle_lifecycle_event(
    event: Union[LifecycleEvent, Dict[str, Any]],
    table: ResultTable,
) -> LifecycleResponse:
    """
    Apply one lifecycle event to the result table.

    Args:
        event: LifecycleEvent or its CloudFormation-shaped dict
        table: Result table to seed

    Returns:
        LifecycleResponse with the stable physical resource id and empty data

    Raises:
        SeedError: If the event is malformed or the write fails
    """
    try:
        if not isinstance(event, LifecycleEvent):
            event = LifecycleEvent.model_validate(event)
    except ValueError as e:
        raise SeedError(
            "Failed to seed result table: invalid lifecycle event",
            cause=e,
        ) from e

    physical_resource_id = physical_resource_id_for(event)
    request_type = event.request_type.value

    log_with_context(
        logger,
        logging.INFO,
        "Lifecycle event received",
        request_type=request_type,
        logical_resource_id=event.logical_resource_id,
        physical_resource_id=physical_resource_id,
    )

    if event.request_type is RequestType.DELETE:
        logger.info("Delete requested, leaving seed record in place")
        record_seed_event(request_type, success=True)
        return LifecycleResponse(physical_resource_id=physical_resource_id)

    record = ResultRecord(
        job_id=physical_resource_id,
        status=ResultStatus.SEED_DATA,
        details=SEED_DETAILS,
    )
    try:
        table.put(record)
    except Exception as e:
        record_seed_event(request_type, success=False)
        log_exception(
            logger,
            e,
            "Seeding failed",
            request_type=request_type,
            physical_resource_id=physical_resource_id,
        )
        raise SeedError(
            f"Failed to seed result table: {e}",
            cause=e,
            context={"physical_resource_id": physical_resource_id},
        ) from e

    record_seed_event(request_type, success=True)
    log_with_context(
        logger,
        logging.INFO,
        "Seed record written",
        job_id=record.job_id,
        status=record.status.value,
    )
    return LifecycleResponse(physical_resource_id=physical_resource_id)


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """
    Lambda entrypoint for the custom resource provider.

    Raises:
        ConfigurationError: If TABLE_NAME is not set
        SeedError: If seeding fails
    """
    table_name = os.environ.get("TABLE_NAME")
    if not table_name:
        raise ConfigurationError("TABLE_NAME environment variable not set")

    from doc_pipeline.clients.table import DynamoResultTable

    region = os.environ.get("REGION") or os.environ.get("AWS_REGION")
    table = DynamoResultTable(table_name, region=region)
    return handle_lifecycle_event(event, table).to_cloudformation()
