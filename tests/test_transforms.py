"""Tests for the transforms module."""

import hypothesis
import jax
import jax.numpy as jnp
import numpy as np
from hypothesis import given, settings
from hypothesis import strategies as st

import kintree  # noqa: F401  enables float64
from kintree.transforms import se3, so3

# Use hypothesis profile for CI
hypothesis.settings.register_profile("ci", max_examples=10, deadline=None)


# SO(3) tests
def test_so3_exp_identity():
    """SO(3) exp of the zero vector is the identity."""
    R = so3.exp(jnp.zeros(3))
    np.testing.assert_allclose(R, jnp.eye(3), rtol=1e-12, atol=1e-12)


def test_so3_log_identity():
    """SO(3) log of the identity is the zero vector."""
    np.testing.assert_allclose(so3.log(jnp.eye(3)), jnp.zeros(3), rtol=1e-12, atol=1e-12)


def test_so3_exp_log_roundtrip():
    """exp(log(R)) == R for a rotation about z."""
    axis_angle = jnp.array([0.0, 0.0, jnp.pi / 4])

    R = so3.exp(axis_angle)
    log_r = so3.log(R)

    np.testing.assert_allclose(so3.exp(log_r), R, rtol=1e-9, atol=1e-9)
    np.testing.assert_allclose(log_r, axis_angle, rtol=1e-9, atol=1e-9)


def test_so3_log_near_pi():
    """log recovers rotations of exactly pi, where the skew part vanishes."""
    axis = jnp.array([0.0, 1.0, 0.0])
    R = so3.from_axis_angle(axis, jnp.pi)
    log_r = so3.log(R)

    np.testing.assert_allclose(jnp.linalg.norm(log_r), jnp.pi, rtol=1e-6, atol=1e-6)
    np.testing.assert_allclose(so3.exp(log_r), R, rtol=1e-6, atol=1e-6)


def test_so3_multiply_and_inverse():
    """Two quarter turns make a half turn, and R @ R^-1 is the identity."""
    R1 = so3.exp(jnp.array([0.0, 0.0, jnp.pi / 2]))
    R_combined = so3.multiply(R1, R1)
    np.testing.assert_allclose(R_combined, so3.exp(jnp.array([0.0, 0.0, jnp.pi])), rtol=1e-9, atol=1e-9)

    R = so3.exp(jnp.array([0.1, 0.2, 0.3]))
    np.testing.assert_allclose(so3.multiply(R, so3.inverse(R)), jnp.eye(3), rtol=1e-9, atol=1e-9)


def test_so3_apply():
    """A quarter turn about z maps x onto y."""
    R = so3.exp(jnp.array([0.0, 0.0, jnp.pi / 2]))
    v_rotated = so3.apply(R, jnp.array([1.0, 0.0, 0.0]))
    np.testing.assert_allclose(v_rotated, jnp.array([0.0, 1.0, 0.0]), rtol=1e-9, atol=1e-9)


def test_so3_skew_symmetric_and_vee():
    """skew_symmetric builds the cross product matrix and vee inverts it."""
    v = jnp.array([1.0, 2.0, 3.0])
    K = so3.skew_symmetric(v)

    expected = jnp.array([[0.0, -3.0, 2.0], [3.0, 0.0, -1.0], [-2.0, 1.0, 0.0]])
    np.testing.assert_allclose(K, expected)
    np.testing.assert_allclose(K @ jnp.array([0.5, -1.0, 2.0]), jnp.cross(v, jnp.array([0.5, -1.0, 2.0])))
    np.testing.assert_allclose(so3.vee(K), v)


def test_so3_from_rpy():
    """Roll, pitch and yaw compose as Rz @ Ry @ Rx."""
    np.testing.assert_allclose(so3.from_rpy(jnp.array([0.0, 0.0, jnp.pi / 2])),
                               so3.exp(jnp.array([0.0, 0.0, jnp.pi / 2])), atol=1e-12)

    rpy = jnp.array([0.1, -0.4, 0.7])
    expected = (so3.exp(jnp.array([0.0, 0.0, 0.7]))
                @ so3.exp(jnp.array([0.0, -0.4, 0.0]))
                @ so3.exp(jnp.array([0.1, 0.0, 0.0])))
    np.testing.assert_allclose(so3.from_rpy(rpy), expected, rtol=1e-9, atol=1e-9)


def test_so3_from_quaternion():
    """Quaternion (w, x, y, z) of a quarter turn about y."""
    matrix = so3.from_quaternion(jnp.array([0.7071068, 0.0, 0.7071068, 0.0]))
    expected = jnp.array([[0.0, 0.0, 1.0], [0.0, 1.0, 0.0], [-1.0, 0.0, 0.0]])
    np.testing.assert_allclose(matrix, expected, rtol=1e-6, atol=1e-6)


def test_so3_batch_operations():
    """exp and log accept leading batch dimensions."""
    batch_size = 5
    axis_angles = jax.random.uniform(jax.random.PRNGKey(42), (batch_size, 3), minval=-1.0, maxval=1.0)

    R_batch = so3.exp(axis_angles)
    log_r_batch = so3.log(R_batch)

    assert R_batch.shape == (batch_size, 3, 3)
    assert log_r_batch.shape == (batch_size, 3)
    np.testing.assert_allclose(log_r_batch, axis_angles, rtol=1e-8, atol=1e-8)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None, max_examples=20)
def test_so3_log_roundtrip_property(seed):
    """exp(log(R)) == R for random rotations away from pi."""
    key1, key2 = jax.random.split(jax.random.PRNGKey(seed))
    axis = jax.random.normal(key1, (3,))
    axis = axis / jnp.linalg.norm(axis)
    angle = jax.random.uniform(key2, (), minval=0.0, maxval=3.0)

    R = so3.from_axis_angle(axis, angle)
    np.testing.assert_allclose(so3.exp(so3.log(R)), R, rtol=1e-8, atol=1e-8)


# SE(3) tests
def test_se3_from_position_and_rotation():
    p = jnp.array([1.0, 2.0, 3.0])
    T = se3.from_position_and_rotation(p, jnp.eye(3))

    expected = jnp.array([[1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 2.0], [0.0, 0.0, 1.0, 3.0], [0.0, 0.0, 0.0, 1.0]])
    np.testing.assert_allclose(T, expected)
    np.testing.assert_allclose(se3.from_translation(p), expected)


def test_se3_get_position_rotation():
    p = jnp.array([1.0, 2.0, 3.0])
    R = so3.exp(jnp.array([0.1, 0.2, 0.3]))
    T = se3.from_position_and_rotation(p, R)

    np.testing.assert_allclose(se3.get_position(T), p)
    np.testing.assert_allclose(se3.get_rotation(T), R)


def test_se3_inverse():
    """T @ T^-1 is the identity."""
    T = se3.from_position_and_rotation(jnp.array([0.1, 0.2, 0.3]), so3.exp(jnp.array([0.05, 0.1, 0.15])))
    np.testing.assert_allclose(se3.multiply(T, se3.inverse(T)), jnp.eye(4), rtol=1e-9, atol=1e-9)


def test_se3_compose_and_apply():
    """Translate by x, then rotate a quarter turn about z and translate by y."""
    t1 = se3.from_translation(jnp.array([1.0, 0.0, 0.0]))
    t2 = se3.from_position_and_rotation(jnp.array([0.0, 1.0, 0.0]), so3.exp(jnp.array([0.0, 0.0, jnp.pi / 2])))

    transformed = se3.apply(se3.multiply(t1, t2), jnp.array([1.0, 0.0, 0.0]))
    np.testing.assert_allclose(transformed, jnp.array([1.0, 2.0, 0.0]), rtol=1e-9, atol=1e-9)

    points = jnp.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    np.testing.assert_allclose(se3.apply(t1, points), points + jnp.array([1.0, 0.0, 0.0]))


def test_se3_screw_motion_rotational():
    """A unit angular screw rotates about the axis without translating."""
    screw = jnp.array([0.0, 0.0, 0.0, 0.0, 1.0, 0.0])
    T = se3.screw_motion(screw, 0.3)

    np.testing.assert_allclose(se3.get_position(T), jnp.zeros(3), atol=1e-12)
    np.testing.assert_allclose(se3.get_rotation(T), so3.exp(jnp.array([0.0, 0.3, 0.0])), atol=1e-12)


def test_se3_screw_motion_linear_and_zero():
    """A linear screw translates along its axis; the zero screw does nothing."""
    T = se3.screw_motion(jnp.array([0.0, 0.0, 1.0, 0.0, 0.0, 0.0]), 0.25)
    np.testing.assert_allclose(T, se3.from_translation(jnp.array([0.0, 0.0, 0.25])), atol=1e-12)

    np.testing.assert_allclose(se3.screw_motion(jnp.zeros(6), 1.7), jnp.eye(4), atol=1e-12)


def test_se3_screw_motion_differentiable_at_zero():
    """The joint motion has a finite derivative at theta == 0."""
    screw = jnp.array([0.0, 0.0, 0.0, 0.0, 0.0, 1.0])
    dT = jax.jacfwd(lambda theta: se3.screw_motion(screw, theta))(0.0)

    assert jnp.isfinite(dT).all()
    np.testing.assert_allclose(dT[:3, :3], so3.skew_symmetric(jnp.array([0.0, 0.0, 1.0])), atol=1e-12)


def test_se3_pose_error():
    """Error is zero for equal poses and splits into translation and rotation."""
    T = se3.from_position_and_rotation(jnp.array([0.3, -0.2, 0.5]), so3.exp(jnp.array([0.2, 0.1, -0.3])))
    np.testing.assert_allclose(se3.pose_error(T, T), jnp.zeros(6), atol=1e-12)

    delta = so3.exp(jnp.array([0.0, 0.0, 0.2]))
    target = se3.from_position_and_rotation(
        se3.get_position(T) + jnp.array([0.1, 0.0, 0.0]),
        delta @ se3.get_rotation(T),
    )
    np.testing.assert_allclose(se3.pose_error(T, target), jnp.array([0.1, 0.0, 0.0, 0.0, 0.0, 0.2]),
                               rtol=1e-9, atol=1e-9)


def test_se3_jit_compatibility():
    """screw_motion and pose_error compile under jit."""
    jitted_motion = jax.jit(se3.screw_motion)
    jitted_error = jax.jit(se3.pose_error)

    screw = jnp.array([0.0, 0.0, 0.0, 1.0, 0.0, 0.0])
    T = jitted_motion(screw, 0.5)
    error = jitted_error(jnp.eye(4), T)

    np.testing.assert_allclose(error, jnp.array([0.0, 0.0, 0.0, 0.5, 0.0, 0.0]), atol=1e-9)
