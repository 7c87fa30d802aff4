"""Tests for URDF parser functionality."""

import logging

import jax.numpy as jnp
import numpy as np
import pytest

from kintree import KinematicTree, Linear, Range, Rotational
from kintree.io import load_urdf, parse_urdf
from kintree.transforms import se3, so3


def test_load_sample_urdf(sample_urdf_path):
    """Links are created breadth first, joints come from the child link."""
    robot = load_urdf(sample_urdf_path)

    assert isinstance(robot, KinematicTree)
    assert robot.name == "sample_arm"
    assert robot.get_link_names() == [
        "base_link", "shoulder_link", "rail_link", "upper_arm",
        "camera_link", "forearm", "wrist", "tool",
    ]
    assert robot.dof() == 5
    assert robot.get_joint_names() == [
        "shoulder_yaw", "slider", "shoulder_pitch", "elbow_pitch", "wrist_roll",
    ]
    assert robot.get_joint_limits() == [
        Range(-3.14, 3.14), Range(0.0, 0.2), Range(-1.8, 1.8), Range(-2.5, 2.5), None,
    ]

    root = robot.tree.get(robot.get_root_node_id()).data
    assert root.name == "base_link"
    assert not root.has_joint_angle()


def test_joint_types(sample_urdf_path):
    robot = load_urdf(sample_urdf_path)
    joints = {node.data.joint.name: node.data.joint for node in robot.iter()}

    assert joints["shoulder_pitch"].joint_type == Rotational((0.0, 1.0, 0.0))
    assert joints["wrist_roll"].joint_type == Rotational((1.0, 0.0, 0.0))
    assert joints["slider"].joint_type == Linear((0.0, 0.0, 1.0))
    assert not joints["tool_fixed"].movable
    assert joints["wrist_roll"].limits is None


def test_forward_kinematics(sample_urdf_path):
    robot = load_urdf(sample_urdf_path)

    poses = robot.forward_kinematics()
    assert list(poses) == [
        "base_link", "shoulder_link", "upper_arm", "forearm",
        "wrist", "tool", "rail_link", "camera_link",
    ]
    np.testing.assert_allclose(se3.get_position(poses["tool"]), [0.3, 0.0, 0.6], atol=1e-12)

    robot.set_joint_angles([0.0, 0.1, jnp.pi / 2, 0.0, 0.0])
    poses = robot.forward_kinematics()
    np.testing.assert_allclose(se3.get_position(poses["tool"]), [0.3, 0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(se3.get_position(poses["rail_link"]), [0.0, 0.1, 0.1], atol=1e-12)
    np.testing.assert_allclose(se3.get_position(poses["camera_link"]), [0.0, 0.1, 0.15], atol=1e-12)
    np.testing.assert_allclose(se3.get_rotation(poses["camera_link"]),
                               so3.exp(jnp.array([0.0, 0.0, jnp.pi / 2])), atol=1e-12)


def test_chain_from_urdf(sample_urdf_path):
    robot = load_urdf(sample_urdf_path)
    tool_pose = robot.link_world_transform("tool")

    with robot.chain_from_end_link_name("tool") as chain:
        assert chain.get_link_names() == [
            "base_link", "shoulder_link", "upper_arm", "forearm", "wrist", "tool",
        ]
        assert chain.dof() == 4
        assert chain.get_joint_names() == ["shoulder_yaw", "shoulder_pitch", "elbow_pitch", "wrist_roll"]
        np.testing.assert_allclose(chain.calc_end_transform(), tool_pose, atol=1e-12)


TWO_LINKS = """<?xml version="1.0"?>
<robot name="{name}">
  <link name="a"/>
  <link name="b"/>
  {extra}
  <joint name="j" type="{joint_type}">
    <parent link="a"/>
    <child link="b"/>
    <origin xyz="1 0 0"/>
  </joint>
</robot>
"""


def test_parse_urdf_string():
    robot = parse_urdf(TWO_LINKS.format(name="tiny", extra="", joint_type="revolute"))

    assert robot.name == "tiny"
    assert robot.get_link_names() == ["a", "b"]
    # axis defaults to x, no limit element means no limits
    joint = robot.tree.get(robot.find_link("b")).data.joint
    assert joint.joint_type == Rotational((1.0, 0.0, 0.0))
    assert joint.limits is None

    renamed = parse_urdf(TWO_LINKS.format(name="tiny", extra="", joint_type="fixed").encode(), name="other")
    assert renamed.name == "other"
    assert renamed.dof() == 0


def test_unsupported_joint_type_loads_as_fixed(caplog):
    with caplog.at_level(logging.WARNING, logger="kintree.io.urdf_parser"):
        robot = parse_urdf(TWO_LINKS.format(name="tiny", extra="", joint_type="floating"))

    assert robot.dof() == 0
    assert "floating" in caplog.text


def test_multiple_roots_rejected():
    xml = TWO_LINKS.format(name="tiny", extra='<link name="c"/>', joint_type="revolute")
    with pytest.raises(ValueError, match="root link"):
        parse_urdf(xml)


def test_revolute_limit_without_bounds_is_zero_range():
    xml = TWO_LINKS.format(name="tiny", extra="", joint_type="revolute").replace(
        '<origin xyz="1 0 0"/>', '<origin xyz="1 0 0"/><limit effort="1" velocity="1"/>')
    robot = parse_urdf(xml)
    assert robot.get_joint_limits() == [Range(0.0, 0.0)]
