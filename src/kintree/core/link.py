"""Links and joints: the payload stored in each node of a kinematic tree.

A link is an immutable geometric offset from its parent link frame
followed by the motion of its joint. Joint behaviour comes from a closed
set of variants (``Fixed``, ``Rotational``, ``Linear``), each of which
describes its motion as a 6D screw axis.
"""

import math
from dataclasses import dataclass
from typing import ClassVar, NamedTuple, Optional, Sequence, Tuple, Union

import jax
import jax.numpy as jnp

from ..errors import FixedJointError, OutOfLimitError
from ..transforms import se3, so3

Array = jax.Array


class Range(NamedTuple):
    """Closed interval of allowed joint values."""
    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def clamp(self, value: float) -> float:
        return min(max(value, self.min), self.max)


def _unit_axis(axis: Sequence[float]) -> Tuple[float, float, float]:
    if len(axis) != 3:
        raise ValueError(f"joint axis must have 3 components, got {len(axis)}")
    x, y, z = (float(a) for a in axis)
    norm = math.sqrt(x * x + y * y + z * z)
    if norm == 0.0:
        raise ValueError("joint axis must not be zero")
    return (x / norm, y / norm, z / norm)


@dataclass(frozen=True)
class Fixed:
    """Rigid connection, no joint state."""
    movable: ClassVar[bool] = False

    def screw_axis(self) -> Array:
        return jnp.zeros(6)


@dataclass(frozen=True)
class Rotational:
    """Revolute joint about ``axis`` through the link frame origin."""
    axis: Tuple[float, float, float]
    movable: ClassVar[bool] = True

    def __post_init__(self):
        object.__setattr__(self, "axis", _unit_axis(self.axis))

    def screw_axis(self) -> Array:
        return jnp.array((0.0, 0.0, 0.0) + self.axis)


@dataclass(frozen=True)
class Linear:
    """Prismatic joint sliding along ``axis``."""
    axis: Tuple[float, float, float]
    movable: ClassVar[bool] = True

    def __post_init__(self):
        object.__setattr__(self, "axis", _unit_axis(self.axis))

    def screw_axis(self) -> Array:
        return jnp.array(self.axis + (0.0, 0.0, 0.0))


JointType = Union[Fixed, Rotational, Linear]


class Joint:
    """Named joint with an optional range and, unless fixed, a scalar state.

    The state is called the joint angle even for ``Linear`` joints, where it
    is a position along the axis.
    """

    def __init__(self, name: str, joint_type: JointType = Fixed(),
                 limits: Optional[Range] = None):
        if limits is not None:
            if not joint_type.movable:
                raise ValueError(f"fixed joint '{name}' cannot have limits")
            limits = Range(float(limits[0]), float(limits[1]))
            if limits.min > limits.max:
                raise ValueError(f"joint '{name}' has min {limits.min} > max {limits.max}")
        self.name = name
        self.joint_type = joint_type
        self.limits = limits
        self._angle = 0.0 if limits is None else limits.clamp(0.0)
        self._screw_axis = joint_type.screw_axis()

    def __repr__(self) -> str:
        return f"Joint({self.name!r}, {self.joint_type!r}, limits={self.limits})"

    @property
    def movable(self) -> bool:
        return self.joint_type.movable

    @property
    def screw_axis(self) -> Array:
        return self._screw_axis

    @property
    def angle(self) -> Optional[float]:
        """Current state, ``None`` for fixed joints."""
        return self._angle if self.movable else None

    def check_angle(self, angle: float) -> None:
        """Raise if *angle* could not be assigned, without assigning it."""
        if not self.movable:
            raise FixedJointError(self.name)
        if self.limits is not None and not self.limits.contains(angle):
            raise OutOfLimitError(self.name, angle, self.limits)

    def set_angle(self, angle: float) -> None:
        angle = float(angle)
        self.check_angle(angle)
        self._angle = angle


@jax.jit
def _local_transform(origin: Array, screw_axis: Array, angle: Array) -> Array:
    return origin @ se3.screw_motion(screw_axis, angle)


class Link:
    """Node payload: fixed offset from the parent link plus a joint.

    Attributes:
        name: Link name, used to look links up and to end chains.
        joint: The joint connecting this link to its parent.
        world_transform_cache: World pose written by the last whole-tree
            forward kinematics sweep, or ``None`` once any joint state
            changed.
    """

    def __init__(self, name: str, joint: Optional[Joint] = None,
                 origin: Optional[Array] = None):
        self.name = name
        self.joint = joint if joint is not None else Joint(f"{name}_fixed")
        self._origin = se3.identity() if origin is None else jnp.asarray(origin, dtype=jnp.float64)
        if self._origin.shape != (4, 4):
            raise ValueError(f"link origin must have shape (4, 4), got {self._origin.shape}")
        self.world_transform_cache: Optional[Array] = None

    def __repr__(self) -> str:
        return f"Link({self.name!r}, {self.joint!r})"

    @classmethod
    def from_config(cls, config: "LinkConfig") -> "Link":
        joint = Joint(config.joint_name or f"{config.name}_joint", config.joint_type, config.limits)
        return cls(config.name, joint, config.origin())

    @property
    def origin(self) -> Array:
        """Offset from the parent link frame to the joint frame."""
        return self._origin

    def calc_transform(self) -> Array:
        """Local pose relative to the parent link for the current joint state."""
        if not self.joint.movable:
            return self._origin
        return _local_transform(self._origin, self.joint.screw_axis, self.joint.angle)

    def has_joint_angle(self) -> bool:
        return self.joint.movable

    def get_joint_angle(self) -> Optional[float]:
        return self.joint.angle

    def set_joint_angle(self, angle: float) -> None:
        self.joint.set_angle(angle)
        self.world_transform_cache = None

    @property
    def joint_limits(self) -> Optional[Range]:
        return self.joint.limits


@dataclass(frozen=True)
class LinkConfig:
    """Everything needed to build a ``Link``.

    Attributes:
        name: Link name.
        joint_type: ``Fixed()``, ``Rotational(axis)`` or ``Linear(axis)``.
        joint_name: Defaults to ``"<name>_joint"``.
        limits: Optional ``(min, max)``; only allowed for movable joints.
        translation: Offset from the parent link frame.
        rotation: Orientation relative to the parent link frame as a
            quaternion (w, x, y, z).
    """
    name: str
    joint_type: JointType = Fixed()
    joint_name: Optional[str] = None
    limits: Optional[Range] = None
    translation: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: Tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)

    def __post_init__(self):
        if not self.name:
            raise ValueError("link name must not be empty")
        if len(self.translation) != 3:
            raise ValueError(f"translation must have 3 components, got {len(self.translation)}")
        if len(self.rotation) != 4:
            raise ValueError(f"rotation must be a (w, x, y, z) quaternion, got {len(self.rotation)} values")
        if not any(self.rotation):
            raise ValueError("rotation quaternion must not be zero")
        if self.limits is not None:
            if not self.joint_type.movable:
                raise ValueError(f"fixed joint of link '{self.name}' cannot have limits")
            if self.limits[0] > self.limits[1]:
                raise ValueError(f"link '{self.name}' has limits min > max: {self.limits}")
            object.__setattr__(self, "limits", Range(*self.limits))

    def origin(self) -> Array:
        R = so3.from_quaternion(jnp.asarray(self.rotation, dtype=jnp.float64))
        return se3.from_position_and_rotation(jnp.asarray(self.translation, dtype=jnp.float64), R)

    def build(self) -> Link:
        return Link.from_config(self)
