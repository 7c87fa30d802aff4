"""Kinematic chains: forward kinematics and Jacobians along one path of links.

A ``KinematicChain`` is a view over an ordered list of node ids of an
``ArenaTree`` of links, from the mechanism root to an end link. The module
also provides the pure, JAX-traceable side of the same computation
(``end_transform`` and ``jacobian`` on a ``ChainGeometry``) and a numeric
Jacobian that only relies on the chain's public methods.
"""

import math
from typing import List, Optional, Sequence

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array

from .core import ArenaTree, ChainGeometry, Link, NodeId, Range
from .errors import BorrowError, SizeMismatchError
from .transforms import se3, so3


class KinematicChain:
    """Ordered links from the root of a tree to an end link.

    The chain takes exclusive use of *tree* until ``release()`` is called
    (or the ``with`` block exits). Only movable joints belong to the chain's
    joint space; fixed joints are skipped by every joint-indexed method.

    Attributes:
        name: Chain name.
        id_list: Node ids in root-to-end order.
        transform: Pose of the chain base in world frame.
        end_link_name: If set, transforms stop at the link with this name.
    """

    def __init__(self, name: str, tree: ArenaTree[Link], id_list: Sequence[NodeId],
                 transform: Optional[Array] = None, end_link_name: Optional[str] = None):
        self.name = name
        self.id_list = list(id_list)
        self.transform = se3.identity() if transform is None else jnp.asarray(transform)
        self.end_link_name = end_link_name
        self._joint_ids = [i for i in self.id_list if tree.get(i).data.has_joint_angle()]
        tree.check_out(self)
        self._tree: Optional[ArenaTree[Link]] = tree

    def __repr__(self) -> str:
        return f"KinematicChain({self.name!r}, {len(self.id_list)} links)"

    def __enter__(self) -> "KinematicChain":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    @property
    def tree(self) -> ArenaTree[Link]:
        if self._tree is None:
            raise BorrowError(f"chain '{self.name}' has been released")
        return self._tree

    def release(self) -> None:
        """Give the tree back. Releasing twice is a no-op."""
        if self._tree is not None:
            self._tree.check_in(self)
            self._tree = None

    def _link(self, node_id: NodeId) -> Link:
        return self.tree.get(node_id).data

    def dof(self) -> int:
        return len(self._joint_ids)

    # Forward kinematics
    def calc_end_transform(self) -> Array:
        """World pose of the end link for the current joint angles."""
        end_transform = self.transform
        for node_id in self.id_list:
            link = self._link(node_id)
            end_transform = end_transform @ link.calc_transform()
            if self.end_link_name is not None and link.name == self.end_link_name:
                break
        return end_transform

    def calc_link_transforms(self) -> List[Array]:
        """World pose of every link of the chain, in chain order."""
        transforms = []
        current = self.transform
        for node_id in self.id_list:
            current = current @ self._link(node_id).calc_transform()
            transforms.append(current)
        return transforms

    def get_link_names(self) -> List[str]:
        return [self._link(i).name for i in self.id_list]

    # Joint space
    def get_joint_angles(self) -> Array:
        return jnp.array([self._link(i).get_joint_angle() for i in self._joint_ids],
                         dtype=jnp.float64)

    def set_joint_angles(self, angles: Sequence[float]) -> None:
        """Assign one value per movable joint, in chain order.

        Every value is checked before any joint is touched, so a rejected call
        leaves all joint angles unchanged. A successful call clears the world
        pose cache of every link in the tree.

        Raises:
            SizeMismatchError: ``len(angles) != self.dof()``.
            OutOfLimitError: a value lies outside its joint's range.
        """
        values = [float(a) for a in angles]
        if len(values) != len(self._joint_ids):
            raise SizeMismatchError(len(self._joint_ids), len(values))
        links = [self._link(i) for i in self._joint_ids]
        for link, value in zip(links, values):
            link.joint.check_angle(value)
        for link, value in zip(links, values):
            link.set_joint_angle(value)
        for node in self.tree.iter_mut():
            node.data.world_transform_cache = None

    def get_joint_limits(self) -> List[Optional[Range]]:
        return [self._link(i).joint_limits for i in self._joint_ids]

    def get_joint_names(self) -> List[str]:
        return [self._link(i).joint.name for i in self._joint_ids]

    def geometry(self) -> ChainGeometry:
        """Freeze the chain structure for ``end_transform`` and ``jacobian``."""
        links = []
        joint_indices = []
        joint_position = {node_id: k for k, node_id in enumerate(self._joint_ids)}
        for node_id in self.id_list:
            link = self._link(node_id)
            links.append(link)
            joint_indices.append(joint_position.get(node_id, -1))
            if self.end_link_name is not None and link.name == self.end_link_name:
                break

        if links:
            origins = jnp.stack([link.origin for link in links])
            screw_axes = jnp.stack([link.joint.screw_axis for link in links])
        else:
            origins = jnp.zeros((0, 4, 4))
            screw_axes = jnp.zeros((0, 6))

        return ChainGeometry(
            link_names=tuple(link.name for link in links),
            joint_indices=tuple(joint_indices),
            num_joints=len(self._joint_ids),
            base_transform=self.transform,
            origins=origins,
            screw_axes=screw_axes,
        )


def end_transform(geometry: ChainGeometry, q: Array) -> Array:
    """Pure forward kinematics of a chain.

    Args:
        geometry: ChainGeometry of the chain
        q: Joint angles of shape (num_joints,)

    Returns:
        (4, 4) world pose of the end link
    """
    T = geometry.base_transform
    for i, k in enumerate(geometry.joint_indices):
        T = T @ geometry.origins[i]
        if k >= 0:
            T = T @ se3.screw_motion(geometry.screw_axes[i], q[k])
    return T


@jax.jit
def jacobian(geometry: ChainGeometry, q: Array) -> Array:
    """Geometric Jacobian of the chain's end link in world frame.

    Differentiates ``end_transform`` with forward-mode autodiff. Row layout
    matches ``se3.pose_error``: linear velocity first, then angular
    velocity, so ``pose_error(T(q), T(q + dq)) ~= J @ dq``.

    Args:
        geometry: ChainGeometry of the chain
        q: Joint angles of shape (num_joints,)

    Returns:
        6x(num_joints) Jacobian matrix
    """
    T = end_transform(geometry, q)
    dT = jax.jacfwd(lambda x: end_transform(geometry, x))(q)  # (4, 4, num_joints)

    linear = dT[:3, 3, :]
    # dR/dq_i @ R^T is the skew matrix of the angular velocity of joint i
    angular = so3.vee(jnp.einsum("ijn,kj->nik", dT[:3, :3, :], se3.get_rotation(T)))

    return jnp.concatenate([linear, angular.T], axis=0)


def _perturbation(angle: float, limits: Optional[Range], epsilon: float) -> Optional[float]:
    if limits is None or limits.contains(angle + epsilon):
        return epsilon
    if limits.contains(angle - epsilon):
        return -epsilon
    return None


def numeric_jacobian(chain, epsilon: float = 1e-6) -> Array:
    """Geometric Jacobian by finite differences of the end pose.

    Each joint is moved by *epsilon* in turn (by -epsilon if +epsilon would
    leave its range) and the resulting pose error is divided by the
    displacement. A joint whose range is too narrow for either direction
    gets a zero column. The chain's joint angles are restored afterwards.

    Works with any object offering ``calc_end_transform``,
    ``get_joint_angles``, ``set_joint_angles`` and ``get_joint_limits``.

    Returns:
        6x(dof) Jacobian matrix
    """
    angles = np.asarray(chain.get_joint_angles(), dtype=np.float64)
    limits = chain.get_joint_limits()
    base = chain.calc_end_transform()

    columns = []
    try:
        for i in range(len(angles)):
            delta = _perturbation(angles[i], limits[i], epsilon)
            if delta is None:
                columns.append(jnp.zeros(6, dtype=base.dtype))
                continue
            perturbed = angles.copy()
            perturbed[i] += delta
            chain.set_joint_angles(perturbed)
            columns.append(se3.pose_error(base, chain.calc_end_transform()) / delta)
    finally:
        chain.set_joint_angles(angles)

    if not columns:
        return jnp.zeros((6, 0))
    return jnp.stack(columns, axis=1)


def sample_joint_angles(limits: Sequence[Optional[Range]], key: Array) -> Array:
    """Draw uniform joint angles inside *limits*.

    Joints without limits are drawn from [-pi, pi].

    Args:
        limits: Output of ``get_joint_limits()``
        key: jax.random key

    Returns:
        Array of shape (len(limits),)
    """
    low = jnp.array([-math.pi if r is None else r.min for r in limits], dtype=jnp.float64)
    high = jnp.array([math.pi if r is None else r.max for r in limits], dtype=jnp.float64)
    u = jax.random.uniform(key, (len(limits),), dtype=jnp.float64)
    return low + (high - low) * u
