"""Tests for resource graph visitors."""

import logging

import pytest

from core.errors import ComplianceError
from doc_pipeline.graph import (
    COMPLIANCE_PRIORITY,
    Capability,
    ComplianceVisitor,
    ResourceNode,
    ResourceVisitor,
    TaggingVisitor,
    apply_visitors,
    standard_visitors,
    validate_graph,
)
from doc_pipeline.graph.visitors import PITR_FOUND_MESSAGE, PITR_MISSING_MESSAGE

TABLE = Capability.TAGGABLE | Capability.TABLE_LIKE


def make_tree(backup=True):
    return ResourceNode(
        "CoreStack",
        kind="Stack",
        children=[
            ResourceNode("DocumentBucket", kind="AWS::S3::Bucket", capabilities=Capability.TAGGABLE),
            ResourceNode(
                "ResultsTable",
                kind="AWS::DynamoDB::Table",
                capabilities=TABLE,
                backup_specification={"pointInTimeRecoveryEnabled": True} if backup else None,
            ),
            ResourceNode("Policy", kind="AWS::IAM::Policy"),
        ],
    )


class RecordingVisitor(ResourceVisitor):
    def __init__(self, name, calls):
        self.name = name
        self.calls = calls

    def visit(self, node):
        self.calls.append((node.node_id, self.name))


class TestTaggingVisitor:
    def test_tags_only_taggable_nodes(self):
        root = make_tree()

        apply_visitors(root, [TaggingVisitor("environment", "dev")])

        assert root.find("DocumentBucket").tags == {"environment": "dev"}
        assert root.find("ResultsTable").tags == {"environment": "dev"}
        assert root.find("Policy").tags == {}
        assert root.tags == {}

    def test_undefined_value_becomes_empty_string(self, caplog):
        with caplog.at_level(logging.WARNING):
            visitor = TaggingVisitor("prefix", None)

        assert visitor.value == ""
        assert any("prefix" in r.getMessage() for r in caplog.records)

        root = make_tree()
        apply_visitors(root, [visitor])
        assert root.find("DocumentBucket").tags["prefix"] == ""

    def test_existing_tag_overwritten(self):
        node = ResourceNode("Bucket", capabilities=Capability.TAGGABLE, tags={"project": "old"})

        apply_visitors(node, [TaggingVisitor("project", "new")])

        assert node.tags == {"project": "new"}


class TestComplianceVisitor:
    def test_table_with_backup_is_tagged(self):
        root = make_tree(backup=True)

        apply_visitors(root, [ComplianceVisitor()])

        table = root.find("ResultsTable")
        assert table.tags["PITR-Enabled"] == "true"
        assert [a.message for a in table.annotations] == [PITR_FOUND_MESSAGE]
        assert table.errors == []

    def test_table_without_backup_gets_error(self):
        root = make_tree(backup=False)

        apply_visitors(root, [ComplianceVisitor()])

        table = root.find("ResultsTable")
        assert table.errors == [PITR_MISSING_MESSAGE]
        assert "PITR-Enabled" not in table.tags

    def test_other_nodes_untouched(self):
        root = make_tree(backup=False)

        apply_visitors(root, [ComplianceVisitor()])

        assert root.find("DocumentBucket").annotations == []
        assert root.find("Policy").annotations == []

    def test_table_like_without_tagging(self):
        node = ResourceNode(
            "Replica",
            capabilities=Capability.TABLE_LIKE,
            backup_specification={"pointInTimeRecoveryEnabled": True},
        )

        apply_visitors(node, [ComplianceVisitor()])

        assert node.tags == {}
        assert node.errors == []

    def test_empty_backup_specification_counts_as_present(self):
        node = ResourceNode("ResultsTable", capabilities=TABLE, backup_specification={})

        apply_visitors(node, [ComplianceVisitor()])

        assert node.tags == {"PITR-Enabled": "true"}
        assert node.errors == []

class TestApplyVisitors:
    def test_each_node_visited_once_parents_first(self):
        calls = []
        root = make_tree()

        visited = apply_visitors(root, [RecordingVisitor("a", calls)])

        assert visited == 4
        assert [node_id for node_id, _ in calls] == [
            "CoreStack",
            "DocumentBucket",
            "ResultsTable",
            "Policy",
        ]

    def test_priority_order_per_node(self):
        calls = []
        node = ResourceNode("Only")

        apply_visitors(
            node,
            [
                RecordingVisitor("late", calls),
                (RecordingVisitor("early", calls), COMPLIANCE_PRIORITY),
                RecordingVisitor("late-2", calls),
            ],
        )

        assert [name for _, name in calls] == ["early", "late", "late-2"]

    def test_compliance_runs_before_tagging_on_each_node(self):
        calls = []

        class Marker(ComplianceVisitor):
            def visit(self, node):
                calls.append(("compliance", dict(node.tags)))
                super().visit(node)

        table = ResourceNode(
            "ResultsTable",
            capabilities=TABLE,
            backup_specification={"pointInTimeRecoveryEnabled": True},
        )
        apply_visitors(
            table,
            [TaggingVisitor("environment", "dev"), (Marker(), COMPLIANCE_PRIORITY)],
        )

        assert calls == [("compliance", {})]
        assert table.tags == {"PITR-Enabled": "true", "environment": "dev"}


class TestValidateGraph:
    def test_passes_when_compliant(self):
        root = make_tree(backup=True)

        assert validate_graph(root, standard_visitors("dev", "stu20-dev")) is root

        bucket = root.find("DocumentBucket")
        assert bucket.tags == {
            "environment": "dev",
            "project": "doc-pipeline-workshop",
            "prefix": "stu20-dev",
        }

    def test_blocks_missing_backup(self):
        root = make_tree(backup=False)

        with pytest.raises(ComplianceError) as exc_info:
            validate_graph(root)

        assert exc_info.value.violations == [
            f"CoreStack/ResultsTable: {PITR_MISSING_MESSAGE}"
        ]

    def test_lists_every_violation(self):
        root = make_tree(backup=False)
        root.add_child(ResourceNode("AuditTable", capabilities=TABLE))

        with pytest.raises(ComplianceError) as exc_info:
            validate_graph(root, standard_visitors("dev", None))

        assert len(exc_info.value.violations) == 2
        assert "2 compliance violation(s)" in str(exc_info.value)
