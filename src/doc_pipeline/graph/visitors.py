"""
Visitors over the resource graph.

Provides:
- TaggingVisitor: sets one tag on every taggable node
- ComplianceVisitor: requires a backup specification on table-like nodes
- apply_visitors: single pre-order traversal running visitors by priority
- validate_graph: raises ComplianceError listing every blocking violation
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from core.errors import ComplianceError
from core.logging import get_logger, log_with_context
from doc_pipeline.graph.nodes import ResourceNode
from doc_pipeline.metrics import compliance_violations_total

logger = get_logger(__name__)

# Lower runs first on each node
DEFAULT_PRIORITY = 500
COMPLIANCE_PRIORITY = 10

PROJECT_TAG_VALUE = "doc-pipeline-workshop"

PITR_TAG_KEY = "PITR-Enabled"
PITR_FOUND_MESSAGE = "PITR specification found; Tagged for compliance."
PITR_MISSING_MESSAGE = (
    "Compliance Error: DynamoDB Point-in-Time Recovery (PITR) must be enabled "
    "in the CDK code! (Set pointInTimeRecovery: true)"
)


class ResourceVisitor:
    """Base visitor. Subclasses override visit()."""

    def visit(self, node: ResourceNode) -> None:
        raise NotImplementedError


class TaggingVisitor(ResourceVisitor):
    """Set tags[key] = value on every taggable node."""

    def __init__(self, key: str, value: Optional[str]):
        self.key = key
        if value is None:
            log_with_context(
                logger,
                logging.WARNING,
                f"Value for tag key '{key}' was undefined, using empty string",
                tag_key=key,
            )
            value = ""
        self.value = value

    def visit(self, node: ResourceNode) -> None:
        if node.is_taggable:
            node.set_tag(self.key, self.value)

    def __repr__(self) -> str:
        return f"TaggingVisitor({self.key!r}, {self.value!r})"


class ComplianceVisitor(ResourceVisitor):
    """Table-like nodes must carry a point-in-time recovery specification."""

    def visit(self, node: ResourceNode) -> None:
        if not node.is_table_like:
            return

        if node.backup_specification is not None:
            if node.is_taggable:
                node.set_tag(PITR_TAG_KEY, "true")
            node.add_info(PITR_FOUND_MESSAGE)
        else:
            node.add_error(PITR_MISSING_MESSAGE)
            log_with_context(
                logger,
                logging.ERROR,
                "Table-like resource has no backup specification",
                node_path=node.path,
            )


VisitorEntry = Union[ResourceVisitor, Tuple[ResourceVisitor, int]]


def _ordered(visitors: Iterable[VisitorEntry]) -> List[ResourceVisitor]:
    entries = []
    for index, entry in enumerate(visitors):
        if isinstance(entry, tuple):
            visitor, priority = entry
        else:
            visitor, priority = entry, DEFAULT_PRIORITY
        entries.append((priority, index, visitor))
    # Registration order breaks priority ties
    entries.sort(key=lambda item: (item[0], item[1]))
    return [visitor for _, _, visitor in entries]


def apply_visitors(root: ResourceNode, visitors: Iterable[VisitorEntry]) -> int:
    """
    Visit every node exactly once, parents before children.

    On each node, visitors run in ascending priority. A bare visitor has
    DEFAULT_PRIORITY.

    Returns:
        Number of nodes visited
    """
    ordered = _ordered(visitors)
    visited = 0
    for node in root.walk():
        for visitor in ordered:
            visitor.visit(node)
        visited += 1
    return visited


def collect_violations(root: ResourceNode) -> List[str]:
    """Blocking error annotations, prefixed with the node path."""
    return [f"{node.path}: {message}" for node in root.walk() for message in node.errors]


def standard_visitors(
    environment: Optional[str],
    prefix: Optional[str],
    project: str = PROJECT_TAG_VALUE,
) -> List[VisitorEntry]:
    """Standard tags plus the compliance check at its fixed priority."""
    return [
        TaggingVisitor("environment", environment),
        TaggingVisitor("project", project),
        TaggingVisitor("prefix", prefix),
        (ComplianceVisitor(), COMPLIANCE_PRIORITY),
    ]


def validate_graph(
    root: ResourceNode,
    visitors: Optional[Sequence[VisitorEntry]] = None,
) -> ResourceNode:
    """
    Apply visitors, then fail if any node carries a blocking error.

    Args:
        root: Root of the resource tree
        visitors: Visitors to apply (default: compliance check only)

    Returns:
        The root, for chaining

    Raises:
        ComplianceError: Listing every violation found in the tree
    """
    if visitors is None:
        visitors = [(ComplianceVisitor(), COMPLIANCE_PRIORITY)]
    apply_visitors(root, visitors)

    violations = collect_violations(root)
    if violations:
        compliance_violations_total.inc(len(violations))
        raise ComplianceError(violations, context={"root": root.path})
    return root
