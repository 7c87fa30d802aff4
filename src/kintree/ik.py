"""Jacobian-based inverse kinematics.

The solver repeatedly linearises the chain around its current joint
angles and takes a damped least-squares step toward the target pose:

    dq = gain * J^T (J J^T + damping * I)^-1 e

where e is the 6D pose error [translation; rotation vector] and J the
geometric Jacobian in the same layout.
"""

from dataclasses import dataclass, replace
from logging import getLogger
from typing import NamedTuple, Optional, Sequence

import jax.numpy as jnp
import numpy as np
from jax import Array

from .chain import jacobian, numeric_jacobian
from .core import Range
from .errors import NotConvergedError
from .transforms import se3

logger = getLogger(__name__)

JACOBIAN_METHODS = ("numeric", "autodiff")


@dataclass(frozen=True)
class SolverConfig:
    """Settings of ``JacobianIKSolver``.

    Attributes:
        position_tolerance: Allowed distance to the target position.
        orientation_tolerance: Allowed rotation angle to the target orientation.
        min_step: A step whose largest joint change is below this value and
            that does not reduce the error counts as stagnation.
        max_iterations: Number of steps before giving up.
        step_gain: Scale of each damped least-squares step.
        damping: Damping added to J J^T; 0 uses the Moore-Penrose
            pseudo-inverse of J instead.
        jacobian: "numeric" perturbs the chain's joints one at a time,
            "autodiff" differentiates the chain's ``geometry()``.
        perturbation: Joint displacement of the numeric Jacobian.
    """
    position_tolerance: float = 0.001
    orientation_tolerance: float = 0.005
    min_step: float = 1e-6
    max_iterations: int = 1000
    step_gain: float = 1.0
    damping: float = 1e-4
    jacobian: str = "numeric"
    perturbation: float = 1e-6

    def __post_init__(self):
        for field_name in ("position_tolerance", "orientation_tolerance", "min_step",
                           "step_gain", "perturbation"):
            value = getattr(self, field_name)
            if not value > 0:
                raise ValueError(f"{field_name} must be positive, got {value}")
        if self.damping < 0:
            raise ValueError(f"damping must not be negative, got {self.damping}")
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 1:
            raise ValueError(f"max_iterations must be a positive integer, got {self.max_iterations}")
        if self.jacobian not in JACOBIAN_METHODS:
            raise ValueError(f"jacobian must be one of {JACOBIAN_METHODS}, got {self.jacobian!r}")


class SolveResult(NamedTuple):
    """Outcome of a successful ``solve``."""
    iterations: int
    position_error: float
    orientation_error: float


def damped_least_squares(J: Array, error: Array, damping: float) -> Array:
    """Joint step solving J @ dq ~= error, robust near singularities.

    With zero damping this is the minimum-norm least-squares step
    ``pinv(J) @ error``, which stays finite when J J^T is singular.
    """
    if damping == 0:
        return jnp.linalg.pinv(J) @ error
    JJT = J @ J.T + damping * jnp.eye(J.shape[0], dtype=J.dtype)
    return J.T @ jnp.linalg.solve(JJT, error)


def clamp_to_limits(angles: np.ndarray, limits: Sequence[Optional[Range]]) -> np.ndarray:
    """Clip each angle into its joint's range; unlimited joints pass through."""
    low = np.array([-np.inf if r is None else r.min for r in limits], dtype=np.float64)
    high = np.array([np.inf if r is None else r.max for r in limits], dtype=np.float64)
    return np.clip(angles, low, high)


def _error_norms(error: Array):
    return float(jnp.linalg.norm(error[:3])), float(jnp.linalg.norm(error[3:]))


class JacobianIKSolver:
    """Damped least-squares IK for a single chain.

    Works with any chain object offering ``calc_end_transform``,
    ``get_joint_angles``, ``set_joint_angles`` and ``get_joint_limits``;
    the "autodiff" Jacobian additionally needs ``geometry()``.

    The solver is deterministic: the same chain state and target always
    produce the same sequence of joint angles.
    """

    def __init__(self, config: Optional[SolverConfig] = None, **overrides):
        if config is None:
            config = SolverConfig(**overrides)
        elif overrides:
            config = replace(config, **overrides)
        self.config = config

    def __repr__(self) -> str:
        return f"JacobianIKSolver({self.config})"

    def _within_tolerance(self, position_error: float, orientation_error: float) -> bool:
        return (position_error <= self.config.position_tolerance
                and orientation_error <= self.config.orientation_tolerance)

    def _jacobian(self, chain, geometry) -> Array:
        if geometry is not None:
            return jacobian(geometry, chain.get_joint_angles())
        return numeric_jacobian(chain, self.config.perturbation)

    def solve(self, chain, target: Array) -> SolveResult:
        """Move the chain's joints until its end pose matches *target*.

        Joint limits are respected by clamping every step into range.

        Args:
            chain: Kinematic chain to modify in place
            target: (4, 4) desired end pose in world frame

        Returns:
            SolveResult with the number of steps taken and the final errors

        Raises:
            NotConvergedError: the target was not reached within
                ``max_iterations`` steps, the steps stagnated or a step was
                not finite. The chain keeps the joint angles of the last
                attempted step.
        """
        config = self.config
        target = jnp.asarray(target, dtype=jnp.float64)
        geometry = None
        if config.jacobian == "autodiff":
            if not hasattr(chain, "geometry"):
                raise TypeError(f"autodiff Jacobian needs a chain with geometry(), got {type(chain).__name__}")
            geometry = chain.geometry()
        limits = chain.get_joint_limits()

        error = se3.pose_error(chain.calc_end_transform(), target)
        position_error, orientation_error = _error_norms(error)
        iteration = 0
        while not self._within_tolerance(position_error, orientation_error):
            if iteration >= config.max_iterations:
                raise NotConvergedError("IK did not converge", iteration,
                                        position_error, orientation_error)
            J = self._jacobian(chain, geometry)
            dq = config.step_gain * damped_least_squares(J, error, config.damping)
            if not jnp.isfinite(dq).all():
                raise NotConvergedError("IK step is not finite", iteration,
                                        position_error, orientation_error)

            angles = np.asarray(chain.get_joint_angles(), dtype=np.float64)
            new_angles = clamp_to_limits(angles + np.asarray(dq), limits)
            chain.set_joint_angles(new_angles)
            iteration += 1

            new_error = se3.pose_error(chain.calc_end_transform(), target)
            step = float(np.max(np.abs(new_angles - angles))) if len(angles) else 0.0
            if step < config.min_step and jnp.linalg.norm(new_error) >= jnp.linalg.norm(error):
                position_error, orientation_error = _error_norms(new_error)
                raise NotConvergedError("IK stagnated", iteration,
                                        position_error, orientation_error)

            error = new_error
            position_error, orientation_error = _error_norms(error)
            logger.debug("iteration %d: position error %.3g, orientation error %.3g",
                         iteration, position_error, orientation_error)

        logger.debug("IK converged in %d iterations", iteration)
        return SolveResult(iteration, position_error, orientation_error)
