"""Shared fixtures: small serial arms built from LinkConfig."""

from pathlib import Path

import pytest

from kintree import ArenaTree, KinematicChain, LinkConfig, Rotational

X_AXIS = (1.0, 0.0, 0.0)
Y_AXIS = (0.0, 1.0, 0.0)
Z_AXIS = (0.0, 0.0, 1.0)

ARM_CONFIGS = [
    LinkConfig("shoulder_link1", Rotational(Y_AXIS), joint_name="shoulder_pitch"),
    LinkConfig("shoulder_link2", Rotational(X_AXIS), joint_name="shoulder_roll",
               translation=(0.0, 0.1, 0.0)),
    LinkConfig("shoulder_link3", Rotational(Z_AXIS), joint_name="shoulder_yaw",
               translation=(0.0, 0.0, -0.30)),
    LinkConfig("elbow_link1", Rotational(Y_AXIS), joint_name="elbow_pitch",
               translation=(0.0, 0.0, -0.15)),
    LinkConfig("wrist_link1", Rotational(Z_AXIS), joint_name="wrist_yaw",
               translation=(0.0, 0.0, -0.15)),
    LinkConfig("wrist_link2", Rotational(Y_AXIS), joint_name="wrist_pitch",
               translation=(0.0, 0.0, -0.15)),
    LinkConfig("wrist_link3", Rotational(X_AXIS), joint_name="wrist_roll",
               translation=(0.0, 0.0, -0.10)),
]


def build_serial_chain(configs, name="arm"):
    """Create one node per config, in order, and a chain over all of them."""
    tree = ArenaTree()
    ids = [tree.create_node(config.build()) for config in configs]
    for parent, child in zip(ids, ids[1:]):
        tree.set_parent_child(parent, child)
    return KinematicChain(name, tree, ids)


@pytest.fixture
def arm6():
    chain = build_serial_chain(ARM_CONFIGS[:6], "arm6")
    yield chain
    chain.release()


@pytest.fixture
def arm7():
    chain = build_serial_chain(ARM_CONFIGS, "arm7")
    yield chain
    chain.release()


@pytest.fixture
def sample_urdf_path():
    return Path(__file__).parent / "fixtures" / "sample_arm.urdf"
