"""Tests for the YAML resource tree loader."""

import textwrap

import pytest

from core.errors import ValidationError
from doc_pipeline.graph import Capability, build_graph, load_graph

TREE_YAML = textwrap.dedent(
    """
    id: student20-dev-CoreStack
    kind: Stack
    children:
      - id: DocumentBucket
        kind: AWS::S3::Bucket
        tags:
          owner: platform
      - id: ResultsTable
        kind: AWS::DynamoDB::Table
        pointInTimeRecoverySpecification:
          pointInTimeRecoveryEnabled: true
      - id: Custom
        kind: Custom::Thing
        capabilities: [taggable, table_like]
    """
)


@pytest.fixture
def tree_file(tmp_path):
    path = tmp_path / "resources.yaml"
    path.write_text(TREE_YAML, encoding="utf-8")
    return path


class TestLoadGraph:
    def test_builds_tree(self, tree_file):
        root = load_graph(tree_file)

        assert root.node_id == "student20-dev-CoreStack"
        assert [c.node_id for c in root.children] == ["DocumentBucket", "ResultsTable", "Custom"]
        assert root.find("ResultsTable").path == "student20-dev-CoreStack/ResultsTable"

    def test_capabilities_from_kind(self, tree_file):
        root = load_graph(tree_file)

        assert root.capabilities == Capability.NONE
        assert root.find("DocumentBucket").is_taggable
        assert not root.find("DocumentBucket").is_table_like
        table = root.find("ResultsTable")
        assert table.is_taggable and table.is_table_like
        assert table.backup_specification == {"pointInTimeRecoveryEnabled": True}

    def test_explicit_capabilities(self, tree_file):
        custom = load_graph(tree_file).find("Custom")

        assert custom.is_taggable and custom.is_table_like
        assert custom.backup_specification is None

    def test_existing_tags_kept(self, tree_file):
        assert load_graph(tree_file).find("DocumentBucket").tags == {"owner": "platform"}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("id: [unclosed", encoding="utf-8")

        with pytest.raises(ValidationError, match="Invalid YAML"):
            load_graph(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- id: a\n", encoding="utf-8")

        with pytest.raises(ValidationError, match="must contain a mapping"):
            load_graph(path)


class TestBuildGraph:
    def test_duplicate_children_rejected(self):
        with pytest.raises(ValidationError):
            build_graph({"id": "root", "children": [{"id": "a"}, {"id": "a"}]})

    def test_unknown_capability_rejected(self):
        with pytest.raises(ValidationError):
            build_graph({"id": "root", "capabilities": ["deletable"]})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            build_graph({"id": "root", "color": "blue"})

    def test_same_id_under_different_parents(self):
        root = build_graph(
            {
                "id": "root",
                "children": [
                    {"id": "left", "children": [{"id": "Table"}]},
                    {"id": "right", "children": [{"id": "Table"}]},
                ],
            }
        )

        paths = [node.path for node in root.walk() if node.node_id == "Table"]
        assert paths == ["root/left/Table", "root/right/Table"]

    def test_empty_backup_specification_kept(self):
        root = build_graph(
            {
                "id": "root",
                "children": [
                    {"id": "Table", "kind": "AWS::DynamoDB::Table", "pointInTimeRecoverySpecification": {}},
                    {"id": "Other", "kind": "AWS::DynamoDB::Table"},
                ],
            }
        )

        assert root.find("Table").backup_specification == {}
        assert root.find("Other").backup_specification is None
