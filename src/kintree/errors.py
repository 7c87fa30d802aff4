"""Exceptions raised by kintree."""


class KinematicsError(Exception):
    """Base class for all kintree errors."""


class TreeStructureError(KinematicsError, RuntimeError):
    """The link tree is malformed, e.g. it has no root node."""


class BorrowError(KinematicsError, RuntimeError):
    """A tree is used while a chain holds it exclusively, or a released chain is used."""


class JointError(KinematicsError, ValueError):
    """A joint rejected an assignment."""


class SizeMismatchError(JointError):
    """Number of joint values does not match the degrees of freedom."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"expected {expected} joint values, got {actual}")
        self.expected = expected
        self.actual = actual


class OutOfLimitError(JointError):
    """Joint value outside the joint's configured range."""

    def __init__(self, joint_name: str, value: float, limits):
        super().__init__(
            f"joint '{joint_name}' value {value} is outside [{limits.min}, {limits.max}]"
        )
        self.joint_name = joint_name
        self.value = value
        self.limits = limits


class FixedJointError(JointError):
    """A fixed joint has no angle to set."""

    def __init__(self, joint_name: str):
        super().__init__(f"joint '{joint_name}' is fixed and has no angle")
        self.joint_name = joint_name


class NotConvergedError(KinematicsError):
    """The IK solver did not reach the target within its iteration budget.

    The chain keeps the joint angles of the last attempted step.
    """

    def __init__(self, message: str, iterations: int, position_error: float,
                 orientation_error: float):
        super().__init__(
            f"{message} after {iterations} iterations "
            f"(position error {position_error:.3g}, orientation error {orientation_error:.3g})"
        )
        self.iterations = iterations
        self.position_error = position_error
        self.orientation_error = orientation_error
