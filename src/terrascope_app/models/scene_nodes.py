"""Scene tree produced by the model loader.

Nodes form a closed set of variants; traversals match on all of them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple, Union, assert_never

import numpy as np


def _identity() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


@dataclass(slots=True)
class MeshNode:
    """Geometry node with a resolved local-to-world transform."""

    name: str
    positions: np.ndarray  # (N, item_size)
    world_matrix: np.ndarray = field(default_factory=_identity)
    index: Optional[np.ndarray] = None

    @property
    def item_size(self) -> int:
        return int(self.positions.shape[1]) if self.positions.ndim == 2 else 1

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])


@dataclass(slots=True)
class GroupNode:
    """Transform-only node holding children."""

    name: str
    children: Tuple["SceneNode", ...] = ()


@dataclass(slots=True)
class OtherNode:
    """Any loaded node that carries no triangle geometry (lines, points, lights)."""

    name: str
    kind: str


SceneNode = Union[MeshNode, GroupNode, OtherNode]


def iter_nodes(root: SceneNode) -> Iterator[SceneNode]:
    """Depth-first traversal, parents before children."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        match node:
            case GroupNode(children=children):
                stack.extend(reversed(children))
            case MeshNode() | OtherNode():
                pass
            case _:
                assert_never(node)


def iter_meshes(root: SceneNode) -> Iterator[MeshNode]:
    """Yield every mesh in the tree in depth-first order."""
    for node in iter_nodes(root):
        match node:
            case MeshNode():
                yield node
            case GroupNode() | OtherNode():
                continue
            case _:
                assert_never(node)
