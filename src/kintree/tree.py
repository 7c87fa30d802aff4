"""Whole-mechanism kinematic tree with cached forward kinematics."""

from logging import getLogger
from typing import Dict, Iterator, List, Optional, Sequence

import jax.numpy as jnp
from jax import Array

from .chain import KinematicChain
from .core import ArenaTree, Link, Node, NodeId, Range
from .errors import BorrowError, SizeMismatchError, TreeStructureError
from .transforms import se3

logger = getLogger(__name__)


class KinematicTree:
    """A named mechanism owning an ``ArenaTree`` of links.

    World poses computed by ``calc_link_transforms`` are cached on the links.
    The cache is only meaningful as a complete sweep: writing joint angles
    through the tree or a chain clears every link's entry, and
    ``forward_kinematics`` then recomputes the whole tree. Sweeps are refused
    while a chain holds the tree.

    Attributes:
        name: Mechanism name.
        tree: The arena holding one ``Link`` per node.
    """

    def __init__(self, name: str, tree: ArenaTree[Link]):
        self.name = name
        self.tree = tree
        self._root_transform = se3.identity()

    def __repr__(self) -> str:
        return f"KinematicTree({self.name!r}, links={len(self.tree)}, dof={self.dof()})"

    def _check_not_borrowed(self) -> None:
        if self.tree.checked_out:
            raise BorrowError(f"tree '{self.name}' is checked out by a chain")

    def _invalidate_cache(self) -> None:
        for node in self.tree.iter_mut():
            node.data.world_transform_cache = None

    def get_root_node_id(self) -> NodeId:
        return self.tree.get_root_node_id()

    @property
    def root_transform(self) -> Array:
        return self._root_transform

    def set_root_transform(self, transform: Array) -> None:
        """Place the whole mechanism in world space.

        The pose becomes the parent frame of the root link and the base
        transform of chains extracted afterwards.
        """
        self._check_not_borrowed()
        transform = jnp.asarray(transform, dtype=jnp.float64)
        if transform.shape != (4, 4):
            raise ValueError(f"root transform must have shape (4, 4), got {transform.shape}")
        self._root_transform = transform
        self._invalidate_cache()

    def iter(self) -> Iterator[Node[Link]]:
        """All link nodes in creation order."""
        return self.tree.iter()

    def iter_joints(self) -> Iterator[Node[Link]]:
        """Link nodes whose joint is not fixed, in creation order."""
        return (node for node in self.tree.iter() if node.data.has_joint_angle())

    def dof(self) -> int:
        """Degrees of freedom: the number of movable joints."""
        return sum(1 for _ in self.iter_joints())

    def find_link(self, name: str) -> Optional[NodeId]:
        for node in self.tree.iter():
            if node.data.name == name:
                return node.id
        return None

    # Joint container
    def get_joint_angles(self) -> Array:
        """Angles of all movable joints; the length equals ``dof()``."""
        return jnp.array([node.data.get_joint_angle() for node in self.iter_joints()],
                         dtype=jnp.float64)

    def set_joint_angles(self, angles: Sequence[float]) -> None:
        """Assign all movable joints in creation order.

        Raises:
            SizeMismatchError: ``len(angles) != self.dof()``.
            OutOfLimitError: a value lies outside its joint's range; no joint
                is modified in that case.
            BorrowError: a chain currently holds the tree.
        """
        self._check_not_borrowed()
        values = [float(a) for a in angles]
        links = [node.data for node in self.iter_joints()]
        if len(values) != len(links):
            raise SizeMismatchError(len(links), len(values))
        for link, value in zip(links, values):
            link.joint.check_angle(value)
        for link, value in zip(links, values):
            link.set_joint_angle(value)
        self._invalidate_cache()

    def get_joint_limits(self) -> List[Optional[Range]]:
        return [node.data.joint_limits for node in self.iter_joints()]

    def get_joint_names(self) -> List[str]:
        return [node.data.joint.name for node in self.iter_joints()]

    def get_link_names(self) -> List[str]:
        return [node.data.name for node in self.tree.iter()]

    # Forward kinematics
    def calc_link_transforms(self) -> List[Array]:
        """World poses of all links reachable from the root, in depth-first order.

        Each pose is written to the link's cache before its children are
        visited, so every child finds its parent's pose of the current sweep.

        Raises:
            BorrowError: a chain currently holds the tree.
        """
        self._check_not_borrowed()
        root_id = self.get_root_node_id()
        transforms = []
        for node in self.tree.iter_descendants(root_id):
            if node.parent is None:
                parent_transform = self._root_transform
            else:
                parent_transform = self.tree.get(node.parent).data.world_transform_cache
                if parent_transform is None:
                    raise TreeStructureError(
                        f"link '{node.data.name}' was reached before its parent"
                    )
            world = parent_transform @ node.data.calc_transform()
            node.data.world_transform_cache = world
            transforms.append(world)
        return transforms

    def _cache_is_complete(self) -> bool:
        return all(node.data.world_transform_cache is not None for node in self.tree.iter())

    def forward_kinematics(self) -> Dict[str, Array]:
        """Map link names to world poses, reusing the cache when it is complete."""
        self._check_not_borrowed()
        if not self._cache_is_complete():
            self.calc_link_transforms()
        root_id = self.get_root_node_id()
        return {
            node.data.name: node.data.world_transform_cache
            for node in self.tree.iter_descendants(root_id)
        }

    def link_world_transform(self, link_name: str) -> Array:
        node_id = self.find_link(link_name)
        if node_id is None:
            raise ValueError(f"Link '{link_name}' not found in tree '{self.name}'")
        self._check_not_borrowed()
        if not self._cache_is_complete():
            self.calc_link_transforms()
        return self.tree.get(node_id).data.world_transform_cache

    # Chains
    def chain_from_end_link_name(self, end_link_name: str) -> Optional[KinematicChain]:
        """Chain from the root to the first link named *end_link_name*.

        The chain holds the tree exclusively until it is released. Returns
        ``None`` when no link has that name.
        """
        end_id = self.find_link(end_link_name)
        if end_id is None:
            return None
        ids = [node.id for node in self.tree.iter_ancestors(end_id)]
        ids.reverse()
        logger.debug("chain '%s' of tree '%s': %d links", end_link_name, self.name, len(ids))
        return KinematicChain(end_link_name, self.tree, ids, transform=self._root_transform)
