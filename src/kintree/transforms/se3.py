"""SE(3) rigid-body transforms as 4x4 homogeneous matrices in JAX.

A pose is a (..., 4, 4) array. Joint motions are described by 6D screw
axes ordered [vx, vy, vz, wx, wy, wz], linear part first.
"""

import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def identity() -> Array:
    """The identity pose."""
    return jnp.eye(4)


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Stack a translation and a rotation into homogeneous form.

    Leading dimensions of *p* and *R* broadcast against each other.

    Args:
        p: (..., 3) translation
        R: (..., 3, 3) rotation

    Returns:
        (..., 4, 4) pose [[R, p], [0, 1]]
    """
    p = jnp.asarray(p)
    R = jnp.asarray(R)
    batch = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    upper = jnp.concatenate(
        [jnp.broadcast_to(R, batch + (3, 3)), jnp.broadcast_to(p, batch + (3,))[..., None]],
        axis=-1,
    )
    last_row = jnp.broadcast_to(jnp.array([0.0, 0.0, 0.0, 1.0], dtype=upper.dtype), batch + (1, 4))
    return jnp.concatenate([upper, last_row], axis=-2)


def from_translation(p: Array) -> Array:
    """Pure translation pose."""
    p = jnp.asarray(p, dtype=jnp.float64)
    return from_position_and_rotation(p, jnp.eye(3, dtype=p.dtype))


def screw_motion(screw_axis: Array, theta: Array) -> Array:
    """
    Motion of a single joint: exp(screw_axis * theta).

    Exact for the two screw shapes a joint can have: a pure rotation about
    a unit axis through the frame origin ([0, w] with |w| = 1) and a pure
    translation along an axis ([v, 0]). The zero screw gives the identity.
    Unlike a general SE(3) exponential there is no norm of the twist
    involved, so the result is differentiable at theta == 0.

    Args:
        screw_axis: (..., 6) screw axis [v, w]
        theta: (...) joint angle or position

    Returns:
        (..., 4, 4) transformation matrix
    """
    v, w = screw_axis[..., :3], screw_axis[..., 3:]
    theta = jnp.asarray(theta, dtype=screw_axis.dtype)
    R = so3.from_axis_angle(w, theta)
    t = v * theta[..., None]
    return from_position_and_rotation(t, R)


def multiply(T1: Array, T2: Array) -> Array:
    """Compose poses: T1 @ T2, i.e. T2 expressed in the frame of T1."""
    return jnp.matmul(T1, T2)


def inverse(T: Array) -> Array:
    """Rigid inverse [[R^T, -R^T p], [0, 1]], without a general matrix inverse."""
    R_t = so3.inverse(get_rotation(T))
    return from_position_and_rotation(-so3.apply(R_t, get_position(T)), R_t)


def apply(T: Array, points: Array) -> Array:
    """
    Map points through a pose.

    Args:
        T: (4, 4) pose
        points: (3,) point or (N, 3) points

    Returns:
        Points of the same shape, R @ x + p for each x
    """
    return so3.apply(get_rotation(T), points) + get_position(T)


def get_position(T: Array) -> Array:
    """(..., 3) translation part of T."""
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    """(..., 3, 3) rotation part of T."""
    return T[..., :3, :3]


def pose_error(current: Array, target: Array) -> Array:
    """
    6D error that moves *current* onto *target*, expressed in world frame.

    The first three components are the translation difference, the last
    three the rotation vector of R_target @ R_current^T. This matches the
    layout of the geometric Jacobian [linear; angular].

    Args:
        current: (..., 4, 4) current pose
        target: (..., 4, 4) desired pose

    Returns:
        (..., 6) error [dx, dy, dz, rx, ry, rz]
    """
    dp = get_position(target) - get_position(current)
    R_err = jnp.matmul(get_rotation(target), jnp.swapaxes(get_rotation(current), -1, -2))
    return jnp.concatenate([dp, so3.log(R_err)], axis=-1)
