"""URDF parser building a KinematicTree.

Links become tree nodes in breadth-first order from the root link. Each
non-root link carries the URDF joint whose child it is: the joint origin
is the link's fixed offset and the joint axis and limits describe its
motion.
"""

from collections import deque
from logging import getLogger
from pathlib import Path
from typing import Dict, List, Optional, Union

import jax.numpy as jnp
import numpy as np
from lxml import etree

from kintree.core import ArenaTree, Fixed, Joint, Linear, Link, Range, Rotational
from kintree.transforms import se3, so3
from kintree.tree import KinematicTree

logger = getLogger(__name__)

ROOT_JOINT_NAME = "root"


def load_urdf(urdf_path: Union[str, Path], name: Optional[str] = None) -> KinematicTree:
    """Load a URDF file into a KinematicTree.

    Args:
        urdf_path: Path to the URDF file to load.
        name: Tree name; defaults to the robot name in the file.

    Returns:
        KinematicTree: the populated mechanism, all joints at rest.
    """
    logger.debug("loading URDF from %s", urdf_path)
    tree = etree.parse(str(urdf_path))
    return _build_tree(tree.getroot(), name)


def parse_urdf(xml: Union[str, bytes], name: Optional[str] = None) -> KinematicTree:
    """Build a KinematicTree from URDF text."""
    if isinstance(xml, str):
        xml = xml.encode()
    return _build_tree(etree.fromstring(xml), name)


def _floats(text: Optional[str], default: str) -> np.ndarray:
    return np.array([float(x) for x in (text or default).split()])


def _origin(joint_elem) -> jnp.ndarray:
    origin_elem = joint_elem.find('origin')
    if origin_elem is None:
        return se3.identity()
    xyz = _floats(origin_elem.get('xyz'), '0 0 0')
    rpy = _floats(origin_elem.get('rpy'), '0 0 0')
    return se3.from_position_and_rotation(jnp.array(xyz), so3.from_rpy(jnp.array(rpy)))


def _joint(joint_elem) -> Joint:
    joint_name = joint_elem.get('name')
    joint_type = joint_elem.get('type')

    if joint_type == 'fixed':
        return Joint(joint_name, Fixed())
    if joint_type not in ('revolute', 'continuous', 'prismatic'):
        logger.warning("joint '%s' has unsupported type '%s', loading it as fixed",
                       joint_name, joint_type)
        return Joint(joint_name, Fixed())

    axis_elem = joint_elem.find('axis')
    axis = tuple(_floats(axis_elem.get('xyz') if axis_elem is not None else None, '1 0 0'))

    limits = None
    limit_elem = joint_elem.find('limit')
    if joint_type != 'continuous' and limit_elem is not None:
        limits = Range(float(limit_elem.get('lower', 0.0)), float(limit_elem.get('upper', 0.0)))

    if joint_type == 'prismatic':
        return Joint(joint_name, Linear(axis), limits)
    return Joint(joint_name, Rotational(axis), limits)


def _build_tree(robot_elem, name: Optional[str]) -> KinematicTree:
    link_names = [link.get('name') for link in robot_elem.findall('link')]

    # Parent link -> joints in file order
    child_joints: Dict[str, List] = {}
    joint_by_child = {}
    for joint_elem in robot_elem.findall('joint'):
        parent_elem = joint_elem.find('parent')
        child_elem = joint_elem.find('child')
        if parent_elem is None or child_elem is None:
            continue
        child_name = child_elem.get('link')
        child_joints.setdefault(parent_elem.get('link'), []).append(joint_elem)
        joint_by_child[child_name] = joint_elem

    root_links = [link for link in link_names if link not in joint_by_child]
    if len(root_links) != 1:
        raise ValueError(f"Expected exactly one root link, found: {root_links}")
    root_link = root_links[0]

    arena: ArenaTree[Link] = ArenaTree()
    queue = deque([(root_link, None)])
    visited = set()
    while queue:
        link_name, parent_id = queue.popleft()
        if link_name in visited:
            continue
        visited.add(link_name)

        if parent_id is None:
            link = Link(link_name, Joint(ROOT_JOINT_NAME, Fixed()))
        else:
            joint_elem = joint_by_child[link_name]
            link = Link(link_name, _joint(joint_elem), _origin(joint_elem))

        node_id = arena.create_node(link)
        if parent_id is not None:
            arena.set_parent_child(parent_id, node_id)

        for joint_elem in child_joints.get(link_name, []):
            queue.append((joint_elem.find('child').get('link'), node_id))

    tree = KinematicTree(name or robot_elem.get('name', 'robot'), arena)
    logger.debug("loaded tree '%s' with %d links and %d dof", tree.name, len(arena), tree.dof())
    return tree
