"""SO(3) and so(3) helpers in JAX.

Rotations are 3x3 matrices, tangent vectors are 3D rotation vectors
(axis * angle). Every function accepts leading batch dimensions.
"""

import jax
import jax.numpy as jnp
import numpy as np

Array = jax.Array

# eps[i, j, k] = +1 for even permutations of (0, 1, 2), -1 for odd ones
_LEVI_CIVITA = np.zeros((3, 3, 3))
_LEVI_CIVITA[[0, 1, 2], [1, 2, 0], [2, 0, 1]] = 1.0
_LEVI_CIVITA[[0, 1, 2], [2, 0, 1], [1, 2, 0]] = -1.0


def skew_symmetric(v: Array) -> Array:
    """
    Cross product matrix of v.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) matrix K with K @ u == cross(v, u)
    """
    return jnp.einsum("ijk,...j->...ik", jnp.asarray(_LEVI_CIVITA, dtype=v.dtype), v)


def vee(K: Array) -> Array:
    """
    Vector of the antisymmetric part of K; inverts ``skew_symmetric``.

    For a near-identity rotation matrix this is its first-order rotation
    vector, and for dR @ R^T it is the angular velocity.
    """
    return 0.5 * jnp.einsum("ijk,...ik->...j", jnp.asarray(_LEVI_CIVITA, dtype=K.dtype), K)


def from_axis_angle(axis: Array, angle: Array) -> Array:
    """
    Rotation about a unit (or zero) axis by angle, via Rodrigues' formula.

    Smooth in angle everywhere, which makes it safe to differentiate for
    joint motion. A zero axis yields the identity for any angle.

    Args:
        axis: (..., 3) unit axis
        angle: (...) rotation angle in radians

    Returns:
        (..., 3, 3) rotation matrix
    """
    angle = jnp.asarray(angle, dtype=axis.dtype)[..., None, None]
    K = skew_symmetric(axis)
    I = jnp.broadcast_to(jnp.eye(3, dtype=axis.dtype), K.shape)
    return I + jnp.sin(angle) * K + (1.0 - jnp.cos(angle)) * jnp.matmul(K, K)


def exp(log_r: Array) -> Array:
    """
    SO(3) exponential map: rotation vector to rotation matrix.

    Args:
        log_r: (..., 3) rotation vectors

    Returns:
        (..., 3, 3) rotation matrices
    """
    angle = jnp.linalg.norm(log_r, axis=-1)
    small = angle < 1e-8
    safe_angle = jnp.where(small, 1.0, angle)
    axis = jnp.where(small[..., None], jnp.zeros_like(log_r), log_r / safe_angle[..., None])
    return from_axis_angle(axis, angle)


def log(R: Array) -> Array:
    """
    SO(3) logarithm map: rotation matrix to rotation vector.

    Args:
        R: (..., 3, 3) rotation matrices

    Returns:
        (..., 3) rotation vectors with norm in [0, pi]
    """
    cos_angle = jnp.clip((jnp.trace(R, axis1=-2, axis2=-1) - 1.0) / 2.0, -1.0, 1.0)
    angle = jnp.arccos(cos_angle)
    # vee(R) = sin(angle) * axis
    sin_axis = vee(R)

    small = angle < 1e-8
    near_pi = (jnp.pi - angle) < 1e-6
    regular = ~(small | near_pi)

    scale = jnp.where(regular, angle / jnp.where(regular, jnp.sin(angle), 1.0), 1.0)
    log_r = scale[..., None] * sin_axis

    # sin(angle) vanishes at pi; there (R + I) / 2 = a a^T and its largest
    # diagonal entry picks a well-conditioned row
    outer = 0.5 * (R + jnp.eye(3, dtype=R.dtype))
    row = jnp.argmax(jnp.diagonal(outer, axis1=-2, axis2=-1), axis=-1)
    axis_pi = jnp.take_along_axis(outer, row[..., None, None], axis=-2)[..., 0, :]
    axis_pi = axis_pi / jnp.linalg.norm(axis_pi, axis=-1, keepdims=True)

    return jnp.where(near_pi[..., None], angle[..., None] * axis_pi, log_r)


def multiply(R1: Array, R2: Array) -> Array:
    """Compose rotations: R1 @ R2."""
    return jnp.matmul(R1, R2)


def inverse(R: Array) -> Array:
    """Inverse of a rotation matrix (its transpose)."""
    return jnp.swapaxes(R, -1, -2)


def apply(R: Array, v: Array) -> Array:
    """Rotate vector(s) of shape (..., 3)."""
    return jnp.einsum('...ij,...j->...i', R, v)


def from_rpy(rpy: Array) -> Array:
    """
    Rotation matrix from fixed-axis roll, pitch, yaw (URDF convention).

    Args:
        rpy: (..., 3) array of [roll, pitch, yaw] in radians

    Returns:
        (..., 3, 3) rotation matrix R = Rz(yaw) @ Ry(pitch) @ Rx(roll)
    """
    rpy = jnp.asarray(rpy)
    ex = jnp.array([1.0, 0.0, 0.0], dtype=rpy.dtype)
    ey = jnp.array([0.0, 1.0, 0.0], dtype=rpy.dtype)
    ez = jnp.array([0.0, 0.0, 1.0], dtype=rpy.dtype)
    R_x = from_axis_angle(ex, rpy[..., 0])
    R_y = from_axis_angle(ey, rpy[..., 1])
    R_z = from_axis_angle(ez, rpy[..., 2])
    return R_z @ R_y @ R_x


def from_quaternion(quaternions: Array) -> Array:
    """
    Rotation matrices from quaternions in (w, x, y, z) order.

    Quaternions are normalised first, so any non-zero scale is accepted.
    Uses R = (w^2 - |q|^2) I + 2 q q^T + 2 w [q]x with q = (x, y, z).
    """
    quaternions = quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)
    w = quaternions[..., 0, None, None]
    q = quaternions[..., 1:]
    eye = jnp.eye(3, dtype=quaternions.dtype)
    return ((w ** 2 - jnp.sum(q * q, axis=-1)[..., None, None]) * eye
            + 2.0 * q[..., :, None] * q[..., None, :]
            + 2.0 * w * skew_symmetric(q))
