"""
Mesh Slicer

Splits a closed mesh into two closed meshes along a plane.

Algorithm:
1. Classify every vertex as above or below the plane and route it to the
   top or bottom fragment
2. Copy triangles entirely on one side; split triangles that straddle the
   plane into one triangle on one side and two on the other, recording the
   new boundary edge of each fragment as a constraint
3. Weld coincident cut points and triangulate the cut face once with the
   constrained triangulator
4. Add the cut face to both fragments with opposite winding and normals
"""

from typing import Tuple
import logging

import numpy as np

from meshfracture.constrained_triangulator import ConstrainedTriangulator
from meshfracture.fragment_data import FragmentData, SlicedMeshSubmesh
from meshfracture.math_utils import is_above_plane, line_plane_intersection, normalized
from meshfracture.mesh_vertex import EdgeConstraint, MeshVertex

logger = logging.getLogger(__name__)


def slice_mesh(mesh_data: FragmentData,
               slice_normal,
               slice_origin,
               texture_scale=(1.0, 1.0),
               texture_offset=(0.0, 0.0)) -> Tuple[FragmentData, FragmentData]:
    """
    Slice a fragment in two along a plane.

    Args:
        mesh_data: Fragment to slice
        slice_normal: Plane normal, pointing towards the top fragment
        slice_origin: Any point on the plane
        texture_scale: Scale applied to the cut face UVs
        texture_offset: Offset applied to the cut face UVs

    Returns:
        (top, bottom) fragments. One of them is empty if the plane misses
        the mesh.
    """
    slice_normal = np.asarray(slice_normal, dtype=np.float64)
    slice_origin = np.asarray(slice_origin, dtype=np.float64)

    top = FragmentData(mesh_data.vertex_count)
    bottom = FragmentData(mesh_data.vertex_count)

    # Surface vertices come first, cut face vertices after them
    side = np.atleast_1d(is_above_plane(mesh_data.positions(), slice_normal, slice_origin)).tolist()
    for i, vertex in enumerate(mesh_data.vertices + mesh_data.cut_vertices):
        fragment = top if side[i] else bottom
        fragment.add_mapped_vertex(vertex, i)

    dropped = 0
    for submesh in SlicedMeshSubmesh:
        dropped += split_triangles(mesh_data, top, bottom, slice_normal, slice_origin, side, submesh)

    if dropped:
        logger.warning(f"Slice dropped {dropped} triangles with no valid plane intersection")

    # The slice normal points to the top fragment, so its cut face faces
    # the opposite way
    fill_cut_faces(top, bottom, -slice_normal, texture_scale, texture_offset)

    logger.debug(f"Sliced {mesh_data.triangle_count} triangles into "
                 f"{top.triangle_count} (top) / {bottom.triangle_count} (bottom)")

    return top, bottom


def fill_cut_faces(top: FragmentData,
                   bottom: FragmentData,
                   slice_normal: np.ndarray,
                   texture_scale,
                   texture_offset):
    """
    Triangulate the cut face and add it to both fragments.

    The face is computed once from the top fragment; the bottom fragment
    gets the same triangles with reversed winding and normals.

    Args:
        top: Fragment above the plane
        bottom: Fragment below the plane
        slice_normal: Cut face normal of the top fragment
        texture_scale: Scale applied to the cut face UVs
        texture_offset: Offset applied to the cut face UVs
    """
    # Both fragments received the same cut points in the same order, so they
    # weld identically
    top.weld_cut_face_vertices()
    bottom.weld_cut_face_vertices()

    if len(top.cut_vertices) < 3:
        if top.cut_vertices:
            logger.debug(f"Only {len(top.cut_vertices)} cut vertices, skipping cut face")
        return

    triangulator = ConstrainedTriangulator(top.cut_vertices, top.constraints, slice_normal)
    triangles = triangulator.triangulate()

    texture_scale = np.asarray(texture_scale, dtype=np.float64)
    texture_offset = np.asarray(texture_offset, dtype=np.float64)
    scale_factor = triangulator.normalization_scale_factor

    # UVs are the triangulation plane coordinates, scaled back from [0, 1]
    for i, vertex in enumerate(top.cut_vertices):
        coords = triangulator.points[i].coords
        uv = (scale_factor * coords) * texture_scale + texture_offset

        top.cut_vertices[i] = MeshVertex(vertex.position, slice_normal, uv)
        bottom.cut_vertices[i] = MeshVertex(vertex.position, -slice_normal, uv)

    offset_top = len(top.vertices)
    offset_bottom = len(bottom.vertices)
    for i in range(0, len(triangles), 3):
        top.add_triangle(
            offset_top + triangles[i],
            offset_top + triangles[i + 1],
            offset_top + triangles[i + 2],
            SlicedMeshSubmesh.CUT_FACE)

        # Reversed winding
        bottom.add_triangle(
            offset_bottom + triangles[i],
            offset_bottom + triangles[i + 2],
            offset_bottom + triangles[i + 1],
            SlicedMeshSubmesh.CUT_FACE)


def split_triangles(mesh_data: FragmentData,
                    top: FragmentData,
                    bottom: FragmentData,
                    slice_normal: np.ndarray,
                    slice_origin: np.ndarray,
                    side: list,
                    submesh: SlicedMeshSubmesh) -> int:
    """
    Distribute the triangles of one submesh, splitting those that straddle the plane.

    Returns:
        Number of straddling triangles that could not be split
    """
    triangles = mesh_data.triangles[submesh]
    dropped = 0

    for i in range(0, len(triangles), 3):
        a, b, c = triangles[i], triangles[i + 1], triangles[i + 2]
        above_a, above_b, above_c = side[a], side[b], side[c]

        if above_a and above_b and above_c:
            top.add_mapped_triangle(a, b, c, submesh)
            continue
        if not above_a and not above_b and not above_c:
            bottom.add_mapped_triangle(a, b, c, submesh)
            continue

        # Two vertices above, one below
        if above_b and above_c and not above_a:
            ok = split_triangle(b, c, a, slice_normal, slice_origin, mesh_data, top, bottom, submesh, True)
        elif above_c and above_a and not above_b:
            ok = split_triangle(c, a, b, slice_normal, slice_origin, mesh_data, top, bottom, submesh, True)
        elif above_a and above_b and not above_c:
            ok = split_triangle(a, b, c, slice_normal, slice_origin, mesh_data, top, bottom, submesh, True)
        # Two vertices below, one above
        elif not above_b and not above_c and above_a:
            ok = split_triangle(b, c, a, slice_normal, slice_origin, mesh_data, top, bottom, submesh, False)
        elif not above_c and not above_a and above_b:
            ok = split_triangle(c, a, b, slice_normal, slice_origin, mesh_data, top, bottom, submesh, False)
        else:
            ok = split_triangle(a, b, c, slice_normal, slice_origin, mesh_data, top, bottom, submesh, False)

        if not ok:
            dropped += 1

    return dropped


def split_triangle(v1_idx: int,
                   v2_idx: int,
                   v3_idx: int,
                   slice_normal: np.ndarray,
                   slice_origin: np.ndarray,
                   mesh_data: FragmentData,
                   top: FragmentData,
                   bottom: FragmentData,
                   submesh: SlicedMeshSubmesh,
                   v3_below_cut_plane: bool) -> bool:
    r"""
    Split the triangle (v1, v2, v3) where v1 and v2 are on one side of the
    plane and v3 is on the other.

        v3_below_cut_plane = True

            v1 *_____________* v2        ^ slice normal
                \           /            |
             ----*---------*-----------------
             v13  \       /  v23
                   \     /
                    \   /
                     \ /
                      * v3

        v3_below_cut_plane = False

                      * v3               ^ slice normal
                     / \                 |
                    /   \
             v23   /     \   v13
             -----*-------*------------------
                 /         \
                /           \
            v2 *_____________* v1

    Args:
        v1_idx, v2_idx, v3_idx: Source vertex indices
        slice_normal: Plane normal
        slice_origin: Point on the plane
        mesh_data: Source fragment
        top: Fragment above the plane
        bottom: Fragment below the plane
        submesh: Submesh the triangle belongs to
        v3_below_cut_plane: True if v3 is below the plane

    Returns:
        False if the edges don't intersect the plane (numerically
        degenerate triangle); nothing is added in that case.
    """
    v1 = mesh_data.source_vertex(v1_idx)
    v2 = mesh_data.source_vertex(v2_idx)
    v3 = mesh_data.source_vertex(v3_idx)

    hit13 = _edge_plane_intersection(v1, v3, slice_normal, slice_origin, v3_below_cut_plane)
    hit23 = _edge_plane_intersection(v2, v3, slice_normal, slice_origin, v3_below_cut_plane)
    if hit13 is None or hit23 is None:
        return False

    v13, s13 = hit13
    v23, s23 = hit23

    # Interpolate normals and UVs at the cut points
    norm13 = normalized(v1.normal + s13 * (v3.normal - v1.normal))
    norm23 = normalized(v2.normal + s23 * (v3.normal - v2.normal))
    uv13 = v1.uv + s13 * (v3.uv - v1.uv)
    uv23 = v2.uv + s23 * (v3.uv - v2.uv)

    for fragment in (top, bottom):
        fragment.add_cut_face_vertex(v13, norm13, uv13)
        fragment.add_cut_face_vertex(v23, norm23, uv23)

    index13_top = len(top.vertices) - 2
    index23_top = len(top.vertices) - 1
    index13_bottom = len(bottom.vertices) - 2
    index23_bottom = len(bottom.vertices) - 1

    cut13_top = len(top.cut_vertices) - 2
    cut23_top = len(top.cut_vertices) - 1
    cut13_bottom = len(bottom.cut_vertices) - 2
    cut23_bottom = len(bottom.cut_vertices) - 1

    top_map = top.index_map
    bottom_map = bottom.index_map

    if v3_below_cut_plane:
        # Part above the plane is a quad
        top.add_triangle(index23_top, index13_top, int(top_map[v2_idx]), submesh)
        top.add_triangle(index13_top, int(top_map[v1_idx]), int(top_map[v2_idx]), submesh)

        bottom.add_triangle(int(bottom_map[v3_idx]), index13_bottom, index23_bottom, submesh)

        # Seen from outside each fragment, the cut boundary winds counter-clockwise
        top.constraints.append(EdgeConstraint(cut13_top, cut23_top))
        bottom.constraints.append(EdgeConstraint(cut23_bottom, cut13_bottom))
    else:
        top.add_triangle(index13_top, index23_top, int(top_map[v3_idx]), submesh)

        # Part below the plane is a quad
        bottom.add_triangle(int(bottom_map[v1_idx]), int(bottom_map[v2_idx]), index13_bottom, submesh)
        bottom.add_triangle(int(bottom_map[v2_idx]), index23_bottom, index13_bottom, submesh)

        top.constraints.append(EdgeConstraint(cut23_top, cut13_top))
        bottom.constraints.append(EdgeConstraint(cut13_bottom, cut23_bottom))

    return True


def _edge_plane_intersection(v_near: MeshVertex,
                             v_far: MeshVertex,
                             slice_normal: np.ndarray,
                             slice_origin: np.ndarray,
                             far_below: bool):
    """
    Intersect the edge v_near -> v_far with the plane.

    The point is always computed from the vertex above the plane towards
    the vertex below it, so two triangles sharing an edge get bit-identical
    cut points. The returned parameter is relative to v_near.
    """
    if far_below:
        return line_plane_intersection(v_near.position, v_far.position, slice_normal, slice_origin)

    hit = line_plane_intersection(v_far.position, v_near.position, slice_normal, slice_origin)
    if hit is None:
        return None
    x, s = hit
    return x, 1.0 - s
