"""Tests for lifecycle event schemas."""

import pytest

from doc_pipeline.schemas.lifecycle import LifecycleEvent, LifecycleResponse, RequestType


class TestLifecycleEvent:
    def test_cloudformation_field_names(self):
        event = LifecycleEvent.model_validate(
            {
                "RequestType": "Create",
                "LogicalResourceId": "SeedResource",
                "ResourceProperties": {"ServiceToken": "arn:aws:lambda:x", "SeedJobId": "seed-1"},
                "StackId": "arn:aws:cloudformation:x",
            }
        )

        assert event.request_type is RequestType.CREATE
        assert event.logical_resource_id == "SeedResource"
        assert event.physical_resource_id is None
        assert event.resource_properties.seed_job_id == "seed-1"

    def test_snake_case_names(self):
        event = LifecycleEvent.model_validate(
            {
                "request_type": "Delete",
                "logical_resource_id": "SeedResource",
                "physical_resource_id": "seed-item-SeedResource",
            }
        )

        assert event.request_type is RequestType.DELETE
        assert event.physical_resource_id == "seed-item-SeedResource"
        assert event.resource_properties.seed_job_id is None

    def test_unknown_request_type_rejected(self):
        with pytest.raises(ValueError):
            LifecycleEvent.model_validate(
                {"RequestType": "Rollback", "LogicalResourceId": "SeedResource"}
            )


def test_response_shape():
    response = LifecycleResponse(physical_resource_id="seed-item-Seed")

    assert response.to_cloudformation() == {
        "PhysicalResourceId": "seed-item-Seed",
        "Data": {},
    }
