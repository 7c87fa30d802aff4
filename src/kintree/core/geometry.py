"""ChainGeometry PyTree: a pure snapshot of a chain's kinematic structure.

A ``KinematicChain`` keeps its joint state inside mutable links. For
JIT compilation and automatic differentiation the same structure is
frozen into arrays here, and joint angles are passed in explicitly.
"""

from typing import Tuple

from flax import struct
from jax import Array


@struct.dataclass
class ChainGeometry:
    """Immutable PyTree representation of a kinematic chain.

    Links are stored in chain order, root first, and end at the chain's
    end link.

    Attributes:
        link_names: Names of the links. Static field for JIT compilation.
        joint_indices: For each link, the index of its joint in the chain's
                       joint angle vector, or -1 for fixed joints. Static.
        num_joints: Length of the chain's joint angle vector. Static.
        base_transform: Array of shape (4, 4), pose of the chain base.
        origins: Array of shape (num_links, 4, 4) with each link's offset
                 from its parent link.
        screw_axes: Array of shape (num_links, 6) with each joint's screw
                    axis [vx, vy, vz, wx, wy, wz].
    """
    link_names: Tuple[str, ...] = struct.field(pytree_node=False)
    joint_indices: Tuple[int, ...] = struct.field(pytree_node=False)
    num_joints: int = struct.field(pytree_node=False)
    base_transform: Array
    origins: Array
    screw_axes: Array
