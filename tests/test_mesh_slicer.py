"""Unit tests for mesh_slicer module."""

import numpy as np
import pytest

from meshfracture.fragment_data import FragmentData, SlicedMeshSubmesh
from meshfracture.mesh_slicer import slice_mesh
from meshfracture.mesh_utils import mesh_volume, submesh_area


UP = np.array([0.0, 1.0, 0.0])


def cap_normal(fragment):
    """Area weighted normal of a fragment's cut face."""
    mesh = fragment.to_mesh()
    faces = mesh.submesh_faces(SlicedMeshSubmesh.CUT_FACE)
    v0 = mesh.positions[faces[:, 0]]
    v1 = mesh.positions[faces[:, 1]]
    v2 = mesh.positions[faces[:, 2]]
    return 0.5 * np.cross(v1 - v0, v2 - v0).sum(axis=0)


class TestSliceCube:
    """Tests for slicing the unit cube with a horizontal plane."""

    def test_surface_triangle_counts(self, cube_fragment):
        """Eight side triangles are split, the top and bottom faces are not."""
        top, bottom = slice_mesh(cube_fragment, UP, (0, 0, 0))

        surface = len(top.triangles[SlicedMeshSubmesh.DEFAULT]) + len(bottom.triangles[SlicedMeshSubmesh.DEFAULT])
        assert surface // 3 == 12 + 2 * 8

    def test_cut_vertices_welded(self, cube_fragment):
        """Each cut point appears once in the cut face buffer."""
        top, bottom = slice_mesh(cube_fragment, UP, (0, 0, 0))

        assert len(top.cut_vertices) == 8
        assert len(bottom.cut_vertices) == 8
        assert [v.position_key() for v in top.cut_vertices] == [v.position_key() for v in bottom.cut_vertices]
        for vertex in top.cut_vertices:
            assert vertex.position[1] == pytest.approx(0.0)

    def test_cut_face_area(self, cube_fragment):
        """Both cut faces cover the cross section."""
        top, bottom = slice_mesh(cube_fragment, UP, (0, 0, 0))

        assert submesh_area(top.to_mesh(), SlicedMeshSubmesh.CUT_FACE) == pytest.approx(1.0)
        assert submesh_area(bottom.to_mesh(), SlicedMeshSubmesh.CUT_FACE) == pytest.approx(1.0)
        assert len(top.triangles[SlicedMeshSubmesh.CUT_FACE]) == len(bottom.triangles[SlicedMeshSubmesh.CUT_FACE])

    def test_cut_face_orientation(self, cube_fragment):
        """Cut faces point out of their fragment."""
        top, bottom = slice_mesh(cube_fragment, UP, (0, 0, 0))

        assert np.allclose(cap_normal(top), -UP)
        assert np.allclose(cap_normal(bottom), UP)
        for vertex in top.cut_vertices:
            assert np.allclose(vertex.normal, -UP)
        for vertex in bottom.cut_vertices:
            assert np.allclose(vertex.normal, UP)

    def test_offset_plane_volumes(self, cube_fragment):
        """Fragments are closed: their volumes add up to the cube."""
        top, bottom = slice_mesh(cube_fragment, UP, (0, 0.25, 0))

        assert mesh_volume(top.to_mesh()) == pytest.approx(0.25)
        assert mesh_volume(bottom.to_mesh()) == pytest.approx(0.75)

    def test_oblique_plane_volumes(self, cube_fragment):
        """Volumes are preserved for a plane that isn't axis aligned."""
        normal = np.array([0.3, 1.0, -0.4])
        top, bottom = slice_mesh(cube_fragment, normal, (0.05, 0.1, -0.02))

        top_volume = mesh_volume(top.to_mesh())
        bottom_volume = mesh_volume(bottom.to_mesh())
        assert top_volume > 0
        assert bottom_volume > 0
        assert top_volume + bottom_volume == pytest.approx(1.0)

    def test_surface_positions_preserved(self, cube_fragment):
        """Together the two halves keep every source vertex position."""
        top, bottom = slice_mesh(cube_fragment, (0.3, 1.0, -0.4), (0.05, 0.1, -0.02))

        kept = set()
        for fragment in (top, bottom):
            mesh = fragment.to_mesh()
            faces = mesh.submesh_faces(SlicedMeshSubmesh.DEFAULT)
            kept.update(map(tuple, mesh.positions[faces.reshape(-1)].tolist()))

        source = set(map(tuple, cube_fragment.positions().tolist()))
        assert source <= kept

    def test_no_triangle_crosses_plane(self, cube_fragment):
        """Every triangle lies entirely on its fragment's side."""
        normal = np.array([1.0, 0.5, 0.25])
        origin = np.array([0.1, 0.0, 0.0])
        top, bottom = slice_mesh(cube_fragment, normal, origin)

        top_mesh = top.to_mesh()
        bottom_mesh = bottom.to_mesh()
        top_d = (top_mesh.positions[top_mesh.faces.reshape(-1)] - origin) @ normal
        bottom_d = (bottom_mesh.positions[bottom_mesh.faces.reshape(-1)] - origin) @ normal

        assert (top_d >= -1e-12).all()
        assert (bottom_d <= 1e-12).all()

    def test_plane_misses_mesh(self, cube_fragment):
        """A plane outside the mesh leaves one fragment empty."""
        top, bottom = slice_mesh(cube_fragment, UP, (0, 2, 0))

        assert top.triangle_count == 0
        assert bottom.triangle_count == 12
        assert bottom.cut_vertices == []
        assert bottom.triangles[SlicedMeshSubmesh.CUT_FACE] == []

    def test_source_not_modified(self, cube_fragment):
        """Slicing leaves the input fragment intact."""
        before = cube_fragment.positions().copy()
        slice_mesh(cube_fragment, UP, (0, 0, 0))

        assert np.array_equal(cube_fragment.positions(), before)
        assert cube_fragment.triangle_count == 12

    def test_texture_scale_and_offset(self, cube_fragment):
        """Cut face UVs are plane coordinates scaled and offset."""
        top, _ = slice_mesh(cube_fragment, UP, (0, 0, 0))
        scaled, _ = slice_mesh(cube_fragment, UP, (0, 0, 0), texture_scale=(2.0, 3.0), texture_offset=(0.5, -1.0))

        base = np.array([v.uv for v in top.cut_vertices])
        uvs = np.array([v.uv for v in scaled.cut_vertices])
        assert np.allclose(uvs, base * [2.0, 3.0] + [0.5, -1.0])

    def test_cut_uvs_span_cross_section(self, cube_fragment):
        """Unscaled cut UVs are in plane units."""
        top, _ = slice_mesh(cube_fragment, UP, (0, 0, 0))
        uvs = np.array([v.uv for v in top.cut_vertices])

        assert np.ptp(uvs[:, 0]) == pytest.approx(1.0)
        assert np.ptp(uvs[:, 1]) == pytest.approx(1.0)


class TestSliceTwice:
    """Tests for slicing fragments that already have cut faces."""

    def test_second_slice_keeps_volume(self, cube_fragment):
        """Slicing a fragment again splits its cut face too."""
        top, bottom = slice_mesh(cube_fragment, UP, (0, 0, 0))
        left, right = slice_mesh(top, (1.0, 0.0, 0.3), (0.13, 0.25, 0.0))

        assert left.triangles[SlicedMeshSubmesh.CUT_FACE]
        assert right.triangles[SlicedMeshSubmesh.CUT_FACE]
        total = mesh_volume(left.to_mesh()) + mesh_volume(right.to_mesh())
        assert total == pytest.approx(0.5)
        assert mesh_volume(bottom.to_mesh()) == pytest.approx(0.5)


class TestSliceRing:
    """Tests for cut faces with a hole."""

    def test_annulus_cut_face(self, ring):
        """A horizontal cut through a ring leaves an annulus on both halves."""
        source = FragmentData.from_trimesh(ring)
        top, bottom = slice_mesh(source, (0, 0, 1), (0, 0, 0.013))

        expected = 0.5 * 32 * np.sin(2 * np.pi / 32) * (2.0 ** 2 - 1.0 ** 2)
        assert submesh_area(top.to_mesh(), SlicedMeshSubmesh.CUT_FACE) == pytest.approx(expected)
        assert submesh_area(bottom.to_mesh(), SlicedMeshSubmesh.CUT_FACE) == pytest.approx(expected)
        assert len(top.triangles[SlicedMeshSubmesh.CUT_FACE]) == len(bottom.triangles[SlicedMeshSubmesh.CUT_FACE])

    def test_annulus_volumes(self, ring):
        """Both halves of the ring are closed."""
        source = FragmentData.from_trimesh(ring)
        top, bottom = slice_mesh(source, (0, 0, 1), (0, 0, 0.013))

        top_volume = mesh_volume(top.to_mesh())
        bottom_volume = mesh_volume(bottom.to_mesh())
        assert top_volume > 0
        assert bottom_volume > 0
        assert top_volume + bottom_volume == pytest.approx(ring.volume)
