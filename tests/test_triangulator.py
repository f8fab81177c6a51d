"""Unit tests for triangulator module."""

import math

import numpy as np
import pytest

from meshfracture.mesh_vertex import MeshVertex
from meshfracture.triangulator import Triangulator, swap_test


FORWARD = (0.0, 0.0, 1.0)


def polygon_with_center(n):
    """Regular n-gon on the unit circle with an extra point at its center (index 0)."""
    points = [MeshVertex((0.0, 0.0, 0.0))]
    for i in range(n):
        angle = (i / n) * 2.0 * math.pi
        points.append(MeshVertex((math.cos(angle), math.sin(angle), 0.0)))
    return points


def adjacent_vertex(i, n):
    """Next polygon vertex after i, skipping the center point."""
    if i + 1 < n:
        return i + 1
    return ((i + 1) % n) + 1


def triangle_areas(points, triangles):
    """Signed areas (around +Z) of a flat list of triangles."""
    positions = np.array([p.position for p in points])
    faces = np.array(triangles).reshape(-1, 3)
    a = positions[faces[:, 0]]
    b = positions[faces[:, 1]]
    c = positions[faces[:, 2]]
    return 0.5 * np.cross(b - a, c - a)[:, 2]


class TestTriangulatorInput:
    """Tests for degenerate input."""

    def test_none_input(self):
        """None input gives no triangles."""
        assert Triangulator(None, FORWARD).triangulate() == []

    def test_empty_input(self):
        """Empty input gives no triangles."""
        assert Triangulator([], FORWARD).triangulate() == []

    def test_less_than_three_points(self):
        """Two points give no triangles."""
        points = [MeshVertex((0, 0, 0)), MeshVertex((1, 1, 1))]
        assert Triangulator(points, FORWARD).triangulate() == []

    def test_coincident_points(self):
        """Points without extent give no triangles."""
        points = [MeshVertex((1, 1, 0)) for _ in range(4)]
        assert Triangulator(points, FORWARD).triangulate() == []


class TestTriangulator:
    """Tests for the unconstrained triangulation."""

    def test_single_triangle(self):
        """Three points give one triangle."""
        points = [MeshVertex((0, 0, 0)), MeshVertex((1, 0, 0)), MeshVertex((0, 1, 0))]
        triangles = Triangulator(points, FORWARD).triangulate()
        assert sorted(triangles) == [0, 1, 2]

    def test_square(self):
        """A square gives two triangles covering it."""
        points = [MeshVertex(p) for p in [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)]]
        triangles = Triangulator(points, FORWARD).triangulate()

        assert len(triangles) == 6
        assert set(triangles) == {0, 1, 2, 3}
        assert triangle_areas(points, triangles).sum() == pytest.approx(1.0)

    def test_triangles_wind_around_normal(self):
        """Triangles are wound counter-clockwise around the normal."""
        rng = np.random.default_rng(7)
        points = [MeshVertex((x, y, 0.0)) for x, y in rng.uniform(-1, 1, size=(30, 2))]
        triangles = Triangulator(points, FORWARD).triangulate()

        assert len(triangles) > 0
        assert (triangle_areas(points, triangles) > 0).all()

    def test_unconstrained_convex_polygons(self):
        """Regular polygons with a center point triangulate as a fan around the center."""
        for n in range(3, 21):
            points = polygon_with_center(n)
            triangles = Triangulator(points, FORWARD).triangulate()

            assert len(triangles) == 3 * n

            for i in range(0, len(triangles), 3):
                t = triangles[i:i + 3]
                assert 0 in t

                if t[0] == 0:
                    assert t[2] == adjacent_vertex(t[1], len(points))
                elif t[1] == 0:
                    assert t[0] == adjacent_vertex(t[2], len(points))
                else:
                    assert t[1] == adjacent_vertex(t[0], len(points))

    def test_random_points_cover_convex_hull(self):
        """Random points inside a square triangulate the whole square."""
        rng = np.random.default_rng(3)
        xy = [(0, 0), (1, 0), (1, 1), (0, 1)] + rng.uniform(0.05, 0.95, size=(50, 2)).tolist()
        points = [MeshVertex((x, y, 0.0)) for x, y in xy]
        triangles = Triangulator(points, FORWARD).triangulate()

        # 2N - 2 - H triangles for N points with H on the hull
        assert len(triangles) == 3 * (2 * len(points) - 2 - 4)
        assert triangle_areas(points, triangles).sum() == pytest.approx(1.0)

    def test_normalization(self):
        """Coordinates are scaled uniformly into [0, 1]."""
        points = [MeshVertex(p) for p in [(0, 0, 0), (2, 0, 0), (2, 1, 0), (0, 1, 0)]]
        triangulator = Triangulator(points, FORWARD)
        triangulator.triangulate()

        assert triangulator.normalization_scale_factor == pytest.approx(2.0)
        coords = np.array([p.coords for p in triangulator.points[:4]])
        assert coords.min() == pytest.approx(0.0)
        assert coords.max() == pytest.approx(1.0)
        assert triangulator.skipped_points == 0

    def test_tilted_plane(self):
        """Points on a tilted plane triangulate using that plane's normal."""
        normal = np.array([1.0, 1.0, 1.0]) / math.sqrt(3.0)
        u = np.array([1.0, -1.0, 0.0]) / math.sqrt(2.0)
        v = np.cross(normal, u)
        points = [MeshVertex(x * u + y * v + normal) for x, y in [(0, 0), (1, 0), (1, 1), (0, 1), (0.5, 0.4)]]

        triangles = Triangulator(points, normal).triangulate()
        assert len(triangles) == 12


class TestSwapTest:
    """Tests for swap_test()."""

    def test_point_inside_circumcircle(self):
        """Point inside the circumcircle requires a swap."""
        assert swap_test((1, 0), (0, 1), (-1, 0), (0.6, 0.6))

    def test_point_outside_circumcircle(self):
        """Point outside the circumcircle does not."""
        assert not swap_test((1, 0), (0, 1), (-1, 0), (1, 1))

    def test_point_far_outside(self):
        """Point far away does not."""
        assert not swap_test((1, 0), (0, 1), (-1, 0), (5, 5))
