"""
Fragment Mesh Data

Data structures used while fragmenting:
- FragmentData: growable vertex/index buffers filled by one slice operation
- MeshData: finished, renderable mesh (interleavable position/normal/UV
  arrays and one 32-bit index buffer per submesh)

MeshData is the boundary to the outside world and converts to and from
trimesh meshes.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional
import logging

import numpy as np
import trimesh

from meshfracture.mesh_vertex import Bounds, EdgeConstraint, MeshVertex

logger = logging.getLogger(__name__)


class SlicedMeshSubmesh(IntEnum):
    """Submesh indices of a fragment."""
    DEFAULT = 0     # Faces inherited from the source surface
    CUT_FACE = 1    # Faces generated to cap a cut


SUBMESH_COUNT = 2


# ============================================================================
# RENDERABLE MESH
# ============================================================================

@dataclass
class MeshData:
    """
    Renderable mesh with per-vertex position/normal/UV and per-submesh indices.
    """
    positions: np.ndarray   # (V, 3) float
    normals: np.ndarray     # (V, 3) float
    uvs: np.ndarray         # (V, 2) float
    submeshes: List[np.ndarray] = field(default_factory=list)  # (K,) uint32 each

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return sum(len(indices) for indices in self.submeshes) // 3

    @property
    def faces(self) -> np.ndarray:
        """All triangles across submeshes as an (F, 3) array."""
        if not self.submeshes:
            return np.zeros((0, 3), dtype=np.int64)
        return np.concatenate(self.submeshes).astype(np.int64).reshape(-1, 3)

    def submesh_faces(self, submesh: int) -> np.ndarray:
        """Triangles of one submesh as an (F, 3) array."""
        if submesh >= len(self.submeshes):
            return np.zeros((0, 3), dtype=np.int64)
        return self.submeshes[submesh].astype(np.int64).reshape(-1, 3)

    @property
    def bounds(self) -> Bounds:
        if len(self.positions) == 0:
            return Bounds()
        lo = self.positions.min(axis=0)
        hi = self.positions.max(axis=0)
        return Bounds(center=(lo + hi) / 2, size=hi - lo)

    def to_trimesh(self) -> trimesh.Trimesh:
        """
        Convert to a trimesh mesh without merging or reordering anything.

        The submesh of each face is kept in face_attributes['submesh'] and
        UVs in vertex_attributes['uv'].
        """
        faces = self.faces
        submesh_ids = np.concatenate([
            np.full(len(indices) // 3, i, dtype=np.int64)
            for i, indices in enumerate(self.submeshes)
        ]) if self.submeshes else np.zeros(0, dtype=np.int64)

        return trimesh.Trimesh(
            vertices=self.positions,
            faces=faces,
            vertex_normals=self.normals,
            face_attributes={'submesh': submesh_ids},
            vertex_attributes={'uv': self.uvs},
            process=False,
        )

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh) -> 'MeshData':
        """
        Create mesh data from a trimesh mesh.

        Faces are assigned to submeshes using face_attributes['submesh']
        when present, otherwise everything goes into submesh 0. UVs come from
        the texture visuals or vertex_attributes['uv'], zero if neither exists.
        """
        positions = np.asarray(mesh.vertices, dtype=np.float64)
        normals = np.asarray(mesh.vertex_normals, dtype=np.float64)

        uvs = getattr(mesh.visual, 'uv', None)
        if uvs is None:
            uvs = mesh.vertex_attributes.get('uv')
        if uvs is None or len(uvs) != len(positions):
            uvs = np.zeros((len(positions), 2), dtype=np.float64)
        uvs = np.asarray(uvs, dtype=np.float64)

        faces = np.asarray(mesh.faces, dtype=np.int64)
        submesh_ids = mesh.face_attributes.get('submesh')
        if submesh_ids is None or len(submesh_ids) != len(faces):
            submesh_ids = np.zeros(len(faces), dtype=np.int64)
        submesh_ids = np.asarray(submesh_ids, dtype=np.int64)

        count = max(SUBMESH_COUNT, int(submesh_ids.max()) + 1 if len(submesh_ids) else 0)
        submeshes = [
            faces[submesh_ids == i].reshape(-1).astype(np.uint32)
            for i in range(count)
        ]

        return cls(positions=positions, normals=normals, uvs=uvs, submeshes=submeshes)


# ============================================================================
# FRAGMENT BUFFER
# ============================================================================

class FragmentData:
    """
    Mesh data for one fragment while it is being sliced.

    Vertices are split into the surface vertex buffer (`vertices`) and the
    cut face vertex buffer (`cut_vertices`). Cut face vertices are added to
    both: the surface copy is used by the split surface triangles, the cut
    face copy gets its normal/UV assigned when the cut face is triangulated.
    In the final mesh the cut face vertices follow the surface vertices.
    """

    def __init__(self, vertex_count: int = 0):
        """
        Initialize an empty fragment.

        Args:
            vertex_count: Number of vertices in the source mesh; sizes the
                source -> fragment index map.
        """
        self.vertices: List[MeshVertex] = []
        self.cut_vertices: List[MeshVertex] = []
        self.triangles: List[List[int]] = [[] for _ in range(SUBMESH_COUNT)]
        self.constraints: List[EdgeConstraint] = []
        self.index_map = np.full(vertex_count, -1, dtype=np.int64)
        self.bounds = Bounds()

    @classmethod
    def from_mesh(cls, mesh: MeshData) -> 'FragmentData':
        """Create fragment data from a finished mesh (e.g. the source mesh)."""
        fragment = cls(mesh.vertex_count)
        fragment.vertices = [
            MeshVertex(mesh.positions[i], mesh.normals[i], mesh.uvs[i])
            for i in range(mesh.vertex_count)
        ]

        for i in range(min(SUBMESH_COUNT, len(mesh.submeshes))):
            fragment.triangles[i] = [int(v) for v in mesh.submeshes[i]]

        # Only two submeshes are supported
        dropped = sum(len(indices) for indices in mesh.submeshes[SUBMESH_COUNT:]) // 3
        if dropped:
            logger.warning(f"Ignoring {len(mesh.submeshes) - SUBMESH_COUNT} extra submeshes "
                           f"({dropped:,} triangles dropped)")

        fragment.calculate_bounds()
        return fragment

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh) -> 'FragmentData':
        return cls.from_mesh(MeshData.from_trimesh(mesh))

    @property
    def vertex_count(self) -> int:
        """Total number of vertices (surface + cut face)."""
        return len(self.vertices) + len(self.cut_vertices)

    @property
    def index_count(self) -> int:
        return sum(len(indices) for indices in self.triangles)

    @property
    def triangle_count(self) -> int:
        """Total number of triangles across all submeshes."""
        return self.index_count // 3

    def source_vertex(self, index: int) -> MeshVertex:
        """Look up a vertex using whole-mesh indexing (surface then cut face)."""
        if index < len(self.vertices):
            return self.vertices[index]
        return self.cut_vertices[index - len(self.vertices)]

    def positions(self) -> np.ndarray:
        """All vertex positions (surface then cut face) as a (V, 3) array."""
        all_vertices = self.vertices + self.cut_vertices
        if not all_vertices:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array([v.position for v in all_vertices], dtype=np.float64)

    def add_cut_face_vertex(self, position, normal, uv) -> None:
        """
        Add a vertex lying on the cut plane.

        The vertex goes into both the surface and the cut face buffers.
        """
        vertex = MeshVertex(position, normal, uv)
        self.vertices.append(vertex)
        self.cut_vertices.append(vertex.copy())

    def add_mapped_vertex(self, vertex: MeshVertex, source_index: int) -> None:
        """Add a surface vertex and remember which source vertex it came from."""
        self.vertices.append(vertex)
        self.index_map[source_index] = len(self.vertices) - 1

    def add_triangle(self, v1: int, v2: int, v3: int, submesh: SlicedMeshSubmesh) -> None:
        """Add a triangle using indices local to this fragment."""
        self.triangles[submesh].extend((v1, v2, v3))

    def add_mapped_triangle(self, v1: int, v2: int, v3: int, submesh: SlicedMeshSubmesh) -> None:
        """Add a triangle using source mesh indices, mapped through index_map."""
        index_map = self.index_map
        self.triangles[submesh].extend((
            int(index_map[v1]), int(index_map[v2]), int(index_map[v3])
        ))

    def weld_cut_face_vertices(self) -> None:
        """
        Merge cut face vertices with exactly equal positions.

        The first occurrence of each position is kept. Constraint indices
        are remapped onto the welded vertices.
        """
        welded: List[MeshVertex] = []
        first_index: Dict[tuple, int] = {}
        index_map = [0] * len(self.cut_vertices)

        for i, vertex in enumerate(self.cut_vertices):
            key = vertex.position_key()
            j = first_index.get(key)
            if j is None:
                j = len(welded)
                first_index[key] = j
                welded.append(vertex)
            index_map[i] = j

        self.constraints = [
            EdgeConstraint(index_map[edge.v1], index_map[edge.v2])
            for edge in self.constraints
        ]
        self.cut_vertices = welded

    def get_triangles(self, submesh: int) -> np.ndarray:
        return np.array(self.triangles[submesh], dtype=np.int64)

    def calculate_bounds(self) -> Bounds:
        """
        Recompute the bounds of the surface vertices.

        Cut face vertices are also surface vertices, so they don't change
        the extents.
        """
        if not self.vertices:
            self.bounds = Bounds()
            return self.bounds

        positions = np.array([v.position for v in self.vertices], dtype=np.float64)
        lo = positions.min(axis=0)
        hi = positions.max(axis=0)
        self.bounds = Bounds(center=(hi + lo) / 2, size=hi - lo)
        return self.bounds

    def to_mesh(self) -> MeshData:
        """
        Convert to a renderable mesh.

        The vertex buffer holds the surface vertices followed by the cut face
        vertices; submesh 0 has the inherited faces, submesh 1 the cut faces.
        """
        all_vertices = self.vertices + self.cut_vertices
        count = len(all_vertices)

        positions = np.zeros((count, 3), dtype=np.float64)
        normals = np.zeros((count, 3), dtype=np.float64)
        uvs = np.zeros((count, 2), dtype=np.float64)
        for i, vertex in enumerate(all_vertices):
            positions[i] = vertex.position
            normals[i] = vertex.normal
            uvs[i] = vertex.uv

        submeshes = [np.array(indices, dtype=np.uint32) for indices in self.triangles]
        return MeshData(positions=positions, normals=normals, uvs=uvs, submeshes=submeshes)

    def to_trimesh(self) -> trimesh.Trimesh:
        return self.to_mesh().to_trimesh()

    def __repr__(self) -> str:
        return (f"FragmentData(vertices={len(self.vertices)}, cut_vertices={len(self.cut_vertices)}, "
                f"triangles={[len(t) // 3 for t in self.triangles]}, constraints={len(self.constraints)})")
