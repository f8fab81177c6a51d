"""
Mesh and triangulation records.

Plain data records shared between the fragment buffers, the slicer and
the triangulators.
"""

from dataclasses import dataclass, field

import numpy as np


def _vec(values, size: int) -> np.ndarray:
    if values is None:
        return np.zeros(size, dtype=np.float64)
    return np.asarray(values, dtype=np.float64).reshape(size)


class MeshVertex:
    """
    Position/normal/UV data for a single vertex.

    Two vertices are equal when their positions are exactly equal; normal
    and UV are ignored. This is the equality used for welding.
    """

    __slots__ = ('position', 'normal', 'uv')

    def __init__(self, position, normal=None, uv=None):
        self.position = _vec(position, 3)
        self.normal = _vec(normal, 3)
        self.uv = _vec(uv, 2)

    def copy(self) -> 'MeshVertex':
        return MeshVertex(self.position.copy(), self.normal.copy(), self.uv.copy())

    def position_key(self) -> tuple:
        """Hashable key that is equal exactly when positions are equal."""
        return (float(self.position[0]), float(self.position[1]), float(self.position[2]))

    def __eq__(self, other) -> bool:
        if not isinstance(other, MeshVertex):
            return NotImplemented
        return self.position_key() == other.position_key()

    def __hash__(self) -> int:
        return hash(self.position_key())

    def __repr__(self) -> str:
        return f"MeshVertex(position={self.position.tolist()}, normal={self.normal.tolist()}, uv={self.uv.tolist()})"


@dataclass(frozen=True, eq=False)
class EdgeConstraint:
    """
    Edge between two vertices that must appear in the triangulation.

    While enforcing constraints the same record type describes edges of
    the triangulation: `t1` is the triangle before crossing the edge
    (v1->v2), `t2` the triangle after it and `t1_edge` the edge column of
    `t1` (E12, E23 or E31). Records are immutable; when triangles move a
    new record is created.

    Equality is symmetric: (v1, v2) == (v2, v1).
    """
    v1: int
    v2: int
    t1: int = -1
    t2: int = -1
    t1_edge: int = -1

    def __eq__(self, other) -> bool:
        if not isinstance(other, EdgeConstraint):
            return NotImplemented
        return ((self.v1 == other.v1 and self.v2 == other.v2) or
                (self.v1 == other.v2 and self.v2 == other.v1))

    def __hash__(self) -> int:
        return hash(frozenset((self.v1, self.v2)))

    def __str__(self) -> str:
        return f"Edge: T{self.t1}->T{self.t2} (V{self.v1}->V{self.v2})"


@dataclass
class TriangulationPoint:
    """A point projected onto the triangulation plane."""
    # Index of the point in the original input list
    index: int
    # 2D coordinates on the triangulation plane
    coords: np.ndarray
    # Grid bin used for sorting
    bin: int = 0

    def __str__(self) -> str:
        return f"{self.coords.tolist()} -> {self.bin}"


@dataclass(frozen=True)
class Quad:
    r"""
    Two triangles sharing an edge, plus their outer neighbours.

                   q3
          *---------*---------*
           \       / \       /
            \ t2L /   \ t2R /
             \   /     \   /
              \ /   t2  \ /
            q1 *---------* q2
              / \   t1  / \
             /   \     /   \
            / t1L \   / t1R \
           /       \ /       \
          *---------*---------*
                   q4
    """
    q1: int
    q2: int
    q3: int
    q4: int
    t1: int
    t2: int
    t1L: int
    t1R: int
    t2L: int
    t2R: int

    def __str__(self) -> str:
        return f"T{self.t1}/T{self.t2} (V{self.q1},V{self.q2},V{self.q3},V{self.q4})"


@dataclass
class Bounds:
    """Axis-aligned bounding box."""
    center: np.ndarray = field(default_factory=lambda: np.zeros(3))
    size: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @property
    def min(self) -> np.ndarray:
        return self.center - self.size / 2

    @property
    def max(self) -> np.ndarray:
        return self.center + self.size / 2
