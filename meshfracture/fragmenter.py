"""
Fragmenter

Fractures a mesh into fragments by repeated random plane slices.

Algorithm:
1. Start with a FIFO queue holding the source mesh
2. Dequeue a fragment, slice it through its bounding box center with a
   random plane, enqueue both halves
3. Repeat until the queue holds the requested number of fragments
4. Convert the fragments to meshes, dropping empty ones and optionally
   splitting each into its disconnected pieces
"""

from collections import deque
from dataclasses import dataclass
from typing import Generator, List, Optional, Sequence, Tuple, Union
import logging
import time

import numpy as np
import trimesh

from meshfracture.fragment_data import FragmentData, MeshData
from meshfracture.mesh_slicer import slice_mesh
from meshfracture.mesh_utils import find_islands
from meshfracture.options import FractureOptions, SliceOptions

logger = logging.getLogger(__name__)


MeshSource = Union[FragmentData, MeshData, trimesh.Trimesh]


@dataclass
class FractureResult:
    """Result of a fracture or slice operation."""
    meshes: List[MeshData]
    fragments: List[FragmentData]
    source_triangle_count: int
    empty_fragment_count: int
    elapsed_time: float

    @property
    def mesh_count(self) -> int:
        return len(self.meshes)


# ============================================================================
# SLICING
# ============================================================================

def slice_once(fragment: FragmentData,
               normal,
               origin,
               texture_scale=(1.0, 1.0),
               texture_offset=(0.0, 0.0)) -> Tuple[FragmentData, FragmentData]:
    """Slice a fragment along one plane; returns (top, bottom)."""
    return slice_mesh(fragment, normal, origin, texture_scale, texture_offset)


def random_slice_normal(rng: np.random.Generator, axes: Sequence[bool] = (True, True, True)) -> np.ndarray:
    """
    Draw a random (unnormalized) plane normal.

    Each enabled axis component is uniform in [-1, 1]; disabled axes are 0.
    """
    values = rng.uniform(-1.0, 1.0, size=3)
    return np.where(np.asarray(axes, dtype=bool), values, 0.0)


def iter_fracture(fragment: FragmentData,
                  fragment_count: int,
                  axes: Sequence[bool] = (True, True, True),
                  texture_scale=(1.0, 1.0),
                  texture_offset=(0.0, 0.0),
                  rng: Optional[np.random.Generator] = None
                  ) -> Generator[int, None, List[FragmentData]]:
    """
    Fracture a fragment step by step.

    Yields the number of queued fragments after every completed slice, so a
    caller can spread the work over time or stop early by closing the
    generator. The final fragment list is the generator's return value
    (use `yield from` or `fracture()`).

    Args:
        fragment: Fragment to fracture
        fragment_count: Number of fragments to produce
        axes: Enabled (x, y, z) components of the slice normals
        texture_scale: Scale applied to cut face UVs
        texture_offset: Offset applied to cut face UVs
        rng: Random generator for the slice planes

    Returns:
        The fragments, in queue order
    """
    if rng is None:
        rng = np.random.default_rng()

    fragments = deque([fragment])

    while len(fragments) < fragment_count:
        mesh_data = fragments.popleft()
        bounds = mesh_data.calculate_bounds()

        normal = random_slice_normal(rng, axes)
        top, bottom = slice_mesh(mesh_data, normal, bounds.center, texture_scale, texture_offset)

        fragments.append(top)
        fragments.append(bottom)

        logger.debug(f"Slice {len(fragments) - 1}: normal={np.round(normal, 3).tolist()}, "
                     f"top={top.triangle_count}, bottom={bottom.triangle_count} triangles")
        yield len(fragments)

    return list(fragments)


def fracture(fragment: FragmentData,
             fragment_count: int,
             axes: Sequence[bool] = (True, True, True),
             texture_scale=(1.0, 1.0),
             texture_offset=(0.0, 0.0),
             rng: Optional[np.random.Generator] = None) -> List[FragmentData]:
    """
    Fracture a fragment into `fragment_count` fragments.

    See iter_fracture for the arguments.
    """
    steps = iter_fracture(fragment, fragment_count, axes, texture_scale, texture_offset, rng)
    try:
        while True:
            next(steps)
    except StopIteration as done:
        return done.value


# ============================================================================
# HIGH LEVEL API
# ============================================================================

def fracture_mesh(mesh: MeshSource, options: Optional[FractureOptions] = None) -> FractureResult:
    """
    Fracture a mesh using the given options.

    Args:
        mesh: Source mesh (trimesh, MeshData or FragmentData)
        options: Fracture options (defaults if None)

    Returns:
        FractureResult with one mesh per non-empty fragment (or per island
        if floating fragment detection is enabled)

    Raises:
        ValueError: If the options are invalid
    """
    options = options or FractureOptions()
    errors = options.validate()
    if errors:
        raise ValueError(f"Invalid fracture options: {'; '.join(errors)}")

    source = _to_fragment(mesh)
    source_triangles = source.triangle_count
    logger.info(f"Fracturing mesh with {source_triangles:,} triangles into {options.fragment_count} fragments")

    start = time.perf_counter()
    rng = np.random.default_rng(options.seed)
    fragments = fracture(source, options.fragment_count, options.axes,
                         options.texture_scale, options.texture_offset, rng)

    meshes, empty = _build_meshes(fragments, options.detect_floating_fragments)
    elapsed = time.perf_counter() - start

    logger.info(f"Fracture complete: {len(meshes)} meshes ({empty} empty fragments dropped) in {elapsed:.2f}s")

    return FractureResult(
        meshes=meshes,
        fragments=fragments,
        source_triangle_count=source_triangles,
        empty_fragment_count=empty,
        elapsed_time=elapsed,
    )


def slice_mesh_data(mesh: MeshSource,
                    normal,
                    origin,
                    options: Optional[SliceOptions] = None) -> FractureResult:
    """
    Slice a mesh once along the given plane.

    Args:
        mesh: Source mesh (trimesh, MeshData or FragmentData)
        normal: Plane normal (points towards the first result)
        origin: Point on the plane
        options: Slice options (defaults if None)

    Returns:
        FractureResult with the meshes above and below the plane (empty
        halves dropped)

    Raises:
        ValueError: If the options are invalid
    """
    options = options or SliceOptions()
    errors = options.validate()
    if errors:
        raise ValueError(f"Invalid slice options: {'; '.join(errors)}")

    source = _to_fragment(mesh)

    start = time.perf_counter()
    top, bottom = slice_mesh(source, normal, origin, options.texture_scale, options.texture_offset)
    meshes, empty = _build_meshes([top, bottom], options.detect_floating_fragments)
    elapsed = time.perf_counter() - start

    logger.info(f"Slice complete: {len(meshes)} meshes in {elapsed:.2f}s")

    return FractureResult(
        meshes=meshes,
        fragments=[top, bottom],
        source_triangle_count=source.triangle_count,
        empty_fragment_count=empty,
        elapsed_time=elapsed,
    )


def _to_fragment(mesh: MeshSource) -> FragmentData:
    if isinstance(mesh, FragmentData):
        return mesh
    if isinstance(mesh, MeshData):
        return FragmentData.from_mesh(mesh)
    if isinstance(mesh, trimesh.Trimesh):
        return FragmentData.from_trimesh(mesh)
    raise TypeError(f"Unsupported mesh type: {type(mesh).__name__}")


def _build_meshes(fragments: Sequence[FragmentData], detect_floating_fragments: bool) -> Tuple[List[MeshData], int]:
    """Convert fragments to meshes. Returns (meshes, number of empty fragments)."""
    meshes = []
    empty = 0
    for fragment in fragments:
        if fragment.triangle_count == 0:
            empty += 1
            continue

        mesh = fragment.to_mesh()
        if detect_floating_fragments:
            meshes.extend(find_islands(mesh))
        else:
            meshes.append(mesh)

    return meshes, empty
