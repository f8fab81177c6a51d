"""Pytest fixtures for meshfracture tests."""

import numpy as np
import pytest
import trimesh

from meshfracture.fragment_data import FragmentData, MeshData


@pytest.fixture
def unit_cube() -> trimesh.Trimesh:
    """Return a 1x1x1 box centered on the origin."""
    return trimesh.creation.box(extents=(1.0, 1.0, 1.0))


@pytest.fixture
def cube_mesh(unit_cube) -> MeshData:
    """Return the unit cube as mesh data."""
    return MeshData.from_trimesh(unit_cube)


@pytest.fixture
def cube_fragment(unit_cube) -> FragmentData:
    """Return the unit cube as fragment data ready for slicing."""
    return FragmentData.from_trimesh(unit_cube)


@pytest.fixture
def ring() -> trimesh.Trimesh:
    """Return a flat ring (inner radius 1, outer radius 2) around the Z axis."""
    # Rotated so no vertex lies on the YZ plane
    transform = trimesh.transformations.rotation_matrix(0.1, [0.0, 0.0, 1.0])
    return trimesh.creation.annulus(r_min=1.0, r_max=2.0, height=1.0, sections=32, transform=transform)


@pytest.fixture
def rng() -> np.random.Generator:
    """Return a seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def cube_stl_path(tmp_path, unit_cube):
    """Write the unit cube to an STL file and return its path."""
    path = tmp_path / "cube.stl"
    unit_cube.export(str(path))
    return path
