# Mesh slicing and fracturing
from meshfracture.math_utils import (
    normalized,
    is_above_plane,
    line_plane_intersection,
    is_point_on_right_side_of_line,
    lines_intersect,
    is_quad_convex,
)
from meshfracture.mesh_vertex import (
    MeshVertex,
    EdgeConstraint,
    TriangulationPoint,
    Quad,
    Bounds,
)
from meshfracture.fragment_data import FragmentData, MeshData, SlicedMeshSubmesh
from meshfracture.triangulator import Triangulator
from meshfracture.constrained_triangulator import ConstrainedTriangulator, StartingEdge
from meshfracture.mesh_slicer import slice_mesh
from meshfracture.fragmenter import (
    slice_once,
    iter_fracture,
    fracture,
    fracture_mesh,
    slice_mesh_data,
    FractureResult,
)
from meshfracture.mesh_utils import find_islands, mesh_volume, submesh_area
from meshfracture.options import FractureOptions, SliceOptions, MAX_FRAGMENT_COUNT
from meshfracture.mesh_io import MeshLoader, LoadResult, load_mesh_file, export_fragments

__version__ = "0.1.0"

__all__ = [
    'normalized',
    'is_above_plane',
    'line_plane_intersection',
    'is_point_on_right_side_of_line',
    'lines_intersect',
    'is_quad_convex',
    'MeshVertex',
    'EdgeConstraint',
    'TriangulationPoint',
    'Quad',
    'Bounds',
    'FragmentData',
    'MeshData',
    'SlicedMeshSubmesh',
    'Triangulator',
    'ConstrainedTriangulator',
    'StartingEdge',
    'slice_mesh',
    'slice_once',
    'iter_fracture',
    'fracture',
    'fracture_mesh',
    'slice_mesh_data',
    'FractureResult',
    'find_islands',
    'mesh_volume',
    'submesh_area',
    'FractureOptions',
    'SliceOptions',
    'MAX_FRAGMENT_COUNT',
    'MeshLoader',
    'LoadResult',
    'load_mesh_file',
    'export_fragments',
]
