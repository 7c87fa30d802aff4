"""Core data structures: the arena tree and the link/joint payloads."""

from .arena import ArenaTree, Node, NodeId
from .geometry import ChainGeometry
from .link import Fixed, Joint, JointType, Linear, Link, LinkConfig, Range, Rotational

__all__ = [
    "ArenaTree",
    "ChainGeometry",
    "Fixed",
    "Joint",
    "JointType",
    "Linear",
    "Link",
    "LinkConfig",
    "Node",
    "NodeId",
    "Range",
    "Rotational",
]
