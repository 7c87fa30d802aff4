"""
kintree: forward and inverse kinematics for articulated mechanisms.

Mechanisms are trees of links stored in an arena and addressed by ids.
Poses are 4x4 homogeneous matrices computed with JAX; inverse kinematics
uses a damped least-squares Jacobian solver.
"""

import jax
jax.config.update("jax_enable_x64", True)

from . import transforms
from . import core
from .chain import KinematicChain, end_transform, jacobian, numeric_jacobian, sample_joint_angles
from .core import ArenaTree, Fixed, Joint, Linear, Link, LinkConfig, NodeId, Range, Rotational
from .errors import (
    BorrowError,
    FixedJointError,
    JointError,
    KinematicsError,
    NotConvergedError,
    OutOfLimitError,
    SizeMismatchError,
    TreeStructureError,
)
from .ik import JacobianIKSolver, SolveResult, SolverConfig
from .tree import KinematicTree
from . import io

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "core",
    "io",
    "ArenaTree",
    "BorrowError",
    "Fixed",
    "FixedJointError",
    "JacobianIKSolver",
    "Joint",
    "JointError",
    "KinematicChain",
    "KinematicTree",
    "KinematicsError",
    "Linear",
    "Link",
    "LinkConfig",
    "NodeId",
    "NotConvergedError",
    "OutOfLimitError",
    "Range",
    "Rotational",
    "SizeMismatchError",
    "SolveResult",
    "SolverConfig",
    "TreeStructureError",
    "end_transform",
    "jacobian",
    "numeric_jacobian",
    "sample_joint_angles",
]
