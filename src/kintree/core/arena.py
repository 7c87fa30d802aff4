"""Arena tree: nodes owned by one container and addressed by integer ids.

Parent and child references are plain ``NodeId`` values looked up through
the arena, so nodes never hold references to each other and a node can
only be reached through the tree that created it.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, List, Optional, TypeVar

from ..errors import BorrowError, TreeStructureError

T = TypeVar("T")


@dataclass(frozen=True)
class NodeId:
    """Opaque handle of a node inside the ``ArenaTree`` that issued it."""
    index: int

    def __repr__(self) -> str:
        return f"NodeId({self.index})"


@dataclass
class Node(Generic[T]):
    """A tree node owning its payload.

    Attributes:
        id: Handle of this node.
        data: Payload, e.g. a ``Link``.
        parent: Parent handle, ``None`` for the root.
        children: Child handles in insertion order.
    """
    id: NodeId
    data: T
    parent: Optional[NodeId] = None
    children: List[NodeId] = field(default_factory=list)


class ArenaTree(Generic[T]):
    """Tree structure which owns an arena of ``Node[T]``."""

    def __init__(self):
        self._nodes: List[Node[T]] = []
        self._borrower: Optional[Any] = None

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node[T]]:
        return iter(self._nodes)

    def create_node(self, data: T) -> NodeId:
        """Append a detached node holding *data* and return its id."""
        node_id = NodeId(len(self._nodes))
        self._nodes.append(Node(node_id, data))
        return node_id

    def set_parent_child(self, parent_id: NodeId, child_id: NodeId) -> None:
        """Attach *child_id* as the last child of *parent_id*.

        The caller guarantees that this does not create a cycle and that the
        child is attached at most once.
        """
        child = self.get(child_id)
        parent = self.get(parent_id)
        child.parent = parent_id
        parent.children.append(child_id)

    def get(self, node_id: NodeId) -> Node[T]:
        if not 0 <= node_id.index < len(self._nodes):
            raise IndexError(f"{node_id} does not belong to this tree of {len(self._nodes)} nodes")
        return self._nodes[node_id.index]

    def get_mut(self, node_id: NodeId) -> Node[T]:
        """Same as ``get``; marks call sites that mutate the node."""
        return self.get(node_id)

    def iter(self) -> Iterator[Node[T]]:
        """All nodes in creation order."""
        return iter(self._nodes)

    def iter_mut(self) -> Iterator[Node[T]]:
        """All nodes in creation order, for mutation."""
        return iter(self._nodes)

    def iter_ancestors(self, node_id: NodeId) -> Iterator[Node[T]]:
        """Walk from *node_id* (included) up to the root (included)."""
        current: Optional[NodeId] = node_id
        while current is not None:
            node = self.get(current)
            yield node
            current = node.parent

    def iter_descendants(self, node_id: NodeId) -> Iterator[Node[T]]:
        """Depth-first pre-order walk of the subtree rooted at *node_id*.

        A node is always yielded before any of its descendants, and siblings
        come in insertion order. Uses an explicit stack so deep trees do not
        hit the recursion limit.
        """
        stack = [node_id]
        while stack:
            node = self.get(stack.pop())
            stack.extend(reversed(node.children))
            yield node

    def get_root_node_id(self) -> NodeId:
        """Id of the first node without a parent."""
        for node in self._nodes:
            if node.parent is None:
                return node.id
        raise TreeStructureError("could not find the root node")

    # Exclusive access
    @property
    def checked_out(self) -> bool:
        return self._borrower is not None

    def check_out(self, borrower: Any) -> None:
        """Grant *borrower* exclusive use of the tree until ``check_in``."""
        if self._borrower is not None:
            raise BorrowError(f"tree is already checked out by {self._borrower!r}")
        self._borrower = borrower

    def check_in(self, borrower: Any) -> None:
        if self._borrower is not borrower:
            raise BorrowError(f"{borrower!r} does not hold this tree")
        self._borrower = None
