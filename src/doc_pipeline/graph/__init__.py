"""
Resource graph and compliance visitors.

Components:
    nodes.py    - ResourceNode, Capability, Annotation
    visitors.py - TaggingVisitor, ComplianceVisitor, apply_visitors, validate_graph
    loader.py   - load_graph (YAML resource trees)
"""

from doc_pipeline.graph.loader import KIND_CAPABILITIES, NodeSpec, build_graph, load_graph
from doc_pipeline.graph.nodes import Annotation, Capability, ResourceNode, Severity
from doc_pipeline.graph.visitors import (
    COMPLIANCE_PRIORITY,
    DEFAULT_PRIORITY,
    ComplianceVisitor,
    ResourceVisitor,
    TaggingVisitor,
    apply_visitors,
    collect_violations,
    standard_visitors,
    validate_graph,
)

__all__ = [
    "KIND_CAPABILITIES",
    "NodeSpec",
    "build_graph",
    "load_graph",
    "Annotation",
    "Capability",
    "ResourceNode",
    "Severity",
    "COMPLIANCE_PRIORITY",
    "DEFAULT_PRIORITY",
    "ComplianceVisitor",
    "ResourceVisitor",
    "TaggingVisitor",
    "apply_visitors",
    "collect_violations",
    "standard_visitors",
    "validate_graph",
]
