"""
Mesh Utilities

- Island detection: split a mesh into its disconnected pieces ("islands")
- Volume and area statistics for finished meshes
"""

from collections import deque
from typing import List
import logging

import numpy as np

from meshfracture.fragment_data import MeshData

logger = logging.getLogger(__name__)


def find_islands(mesh: MeshData) -> List[MeshData]:
    """
    Split a mesh into its disconnected pieces.

    Two triangles are connected when they share a vertex or use vertices
    at exactly the same position (cut faces have their own vertices, so
    they only connect to the surface through coincident positions).

    Algorithm:
    1. Group coincident vertices and map each vertex to its triangles
    2. Breadth-first search from an unvisited vertex, collecting every
       triangle reached through shared or coincident vertices
    3. Build one mesh per search, keeping each triangle in its submesh

    Args:
        mesh: Mesh to split

    Returns:
        One mesh per island, in order of their first vertex. Vertices
        without triangles do not form islands.
    """
    vertex_count = mesh.vertex_count
    submesh_count = len(mesh.submeshes)

    faces = mesh.faces.tolist()
    face_submesh = []
    for i, indices in enumerate(mesh.submeshes):
        face_submesh.extend([i] * (len(indices) // 3))

    # Coincident vertices share a group
    if vertex_count:
        _, groups = np.unique(mesh.positions, axis=0, return_inverse=True)
        groups = groups.reshape(-1).tolist()
    else:
        groups = []
    coincident = {}
    for v, g in enumerate(groups):
        coincident.setdefault(g, []).append(v)

    vertex_triangles: List[List[int]] = [[] for _ in range(vertex_count)]
    for t, (v1, v2, v3) in enumerate(faces):
        vertex_triangles[v1].append(t)
        vertex_triangles[v2].append(t)
        vertex_triangles[v3].append(t)

    visited_vertices = [False] * vertex_count
    visited_triangles = [False] * len(faces)
    islands = []

    for i in range(vertex_count):
        if visited_vertices[i]:
            continue

        vertex_map = {}
        island_vertices = []
        island_triangles: List[List[int]] = [[] for _ in range(submesh_count)]

        frontier = deque([i])
        while frontier:
            k = frontier.popleft()
            if visited_vertices[k]:
                continue
            visited_vertices[k] = True

            vertex_map[k] = len(island_vertices)
            island_vertices.append(k)

            for t in vertex_triangles[k]:
                if visited_triangles[t]:
                    continue
                visited_triangles[t] = True

                for v in faces[t]:
                    island_triangles[face_submesh[t]].append(v)
                    frontier.append(v)
                    frontier.extend(coincident[groups[v]])

        if not any(island_triangles):
            continue

        island_vertices = np.array(island_vertices, dtype=np.int64)
        islands.append(MeshData(
            positions=mesh.positions[island_vertices],
            normals=mesh.normals[island_vertices],
            uvs=mesh.uvs[island_vertices],
            submeshes=[
                np.array([vertex_map[v] for v in indices], dtype=np.uint32)
                for indices in island_triangles
            ],
        ))

    logger.debug(f"Found {len(islands)} islands in mesh with {mesh.triangle_count} triangles")
    return islands


def mesh_volume(mesh: MeshData) -> float:
    """
    Signed volume enclosed by a closed mesh (positive for outward-facing triangles).
    """
    faces = mesh.faces
    if len(faces) == 0:
        return 0.0

    v0 = mesh.positions[faces[:, 0]]
    v1 = mesh.positions[faces[:, 1]]
    v2 = mesh.positions[faces[:, 2]]
    return float(np.einsum('ij,ij->i', v0, np.cross(v1, v2)).sum() / 6.0)


def submesh_area(mesh: MeshData, submesh: int) -> float:
    """Total surface area of one submesh."""
    faces = mesh.submesh_faces(submesh)
    if len(faces) == 0:
        return 0.0

    v0 = mesh.positions[faces[:, 0]]
    v1 = mesh.positions[faces[:, 1]]
    v2 = mesh.positions[faces[:, 2]]
    return float(0.5 * np.linalg.norm(np.cross(v1 - v0, v2 - v0), axis=1).sum())
