"""
Resource graph nodes.

A node's capabilities are fixed at construction. Visitors query them with
has() rather than inspecting the node's type.
"""

from dataclasses import dataclass
from enum import Enum, Flag, auto
from typing import Any, Dict, Iterator, List, Optional


class Capability(Flag):
    NONE = 0
    TAGGABLE = auto()
    TABLE_LIKE = auto()


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Annotation:
    severity: Severity
    message: str


class ResourceNode:
    """
    One resource in a static resource tree.

    Nodes are mutated in place by visitors (tags set, annotations added)
    and are never removed from the tree.
    """

    def __init__(
        self,
        node_id: str,
        kind: str = "Construct",
        capabilities: Capability = Capability.NONE,
        properties: Optional[Dict[str, Any]] = None,
        tags: Optional[Dict[str, str]] = None,
        backup_specification: Optional[Dict[str, Any]] = None,
        children: Optional[List["ResourceNode"]] = None,
    ):
        if not node_id:
            raise ValueError("node_id must not be empty")
        self.node_id = node_id
        self.kind = kind
        self._capabilities = capabilities
        self.properties: Dict[str, Any] = dict(properties or {})
        self.tags: Dict[str, str] = dict(tags or {})
        self.backup_specification = backup_specification
        self.annotations: List[Annotation] = []
        self.parent: Optional["ResourceNode"] = None
        self.children: List["ResourceNode"] = []
        for child in children or []:
            self.add_child(child)

    @property
    def capabilities(self) -> Capability:
        return self._capabilities

    def has(self, capability: Capability) -> bool:
        return capability in self._capabilities

    @property
    def is_taggable(self) -> bool:
        return self.has(Capability.TAGGABLE)

    @property
    def is_table_like(self) -> bool:
        return self.has(Capability.TABLE_LIKE)

    def add_child(self, child: "ResourceNode") -> "ResourceNode":
        child.parent = self
        self.children.append(child)
        return child

    @property
    def path(self) -> str:
        if self.parent is None:
            return self.node_id
        return f"{self.parent.path}/{self.node_id}"

    def set_tag(self, key: str, value: str) -> None:
        if not self.is_taggable:
            raise TypeError(f"Resource {self.path} is not taggable")
        self.tags[key] = value

    def add_info(self, message: str) -> None:
        self.annotations.append(Annotation(Severity.INFO, message))

    def add_warning(self, message: str) -> None:
        self.annotations.append(Annotation(Severity.WARNING, message))

    def add_error(self, message: str) -> None:
        self.annotations.append(Annotation(Severity.ERROR, message))

    @property
    def errors(self) -> List[str]:
        return [a.message for a in self.annotations if a.severity is Severity.ERROR]

    def walk(self) -> Iterator["ResourceNode"]:
        """Yield this node and its descendants, parents before children."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: str) -> Optional["ResourceNode"]:
        for node in self.walk():
            if node.node_id == node_id:
                return node
        return None

    def __repr__(self) -> str:
        return f"ResourceNode({self.path!r}, kind={self.kind!r})"
