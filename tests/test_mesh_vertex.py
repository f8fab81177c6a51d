"""Unit tests for mesh_vertex module."""

import dataclasses

import numpy as np
import pytest

from meshfracture.mesh_vertex import Bounds, EdgeConstraint, MeshVertex, Quad


class TestMeshVertex:
    """Tests for MeshVertex class."""

    def test_create(self):
        """Test creating a vertex."""
        v = MeshVertex((1, 2, 3), (0, 1, 0), (0.5, 0.25))
        assert v.position.tolist() == [1.0, 2.0, 3.0]
        assert v.normal.tolist() == [0.0, 1.0, 0.0]
        assert v.uv.tolist() == [0.5, 0.25]

    def test_defaults(self):
        """Normal and UV default to zero."""
        v = MeshVertex((1, 2, 3))
        assert not v.normal.any()
        assert v.uv.shape == (2,)

    def test_equal_positions_equal(self):
        """Vertices with the same position are equal."""
        a = MeshVertex((1, 2, 3), (0, 1, 0), (0, 0))
        b = MeshVertex((1, 2, 3), (1, 0, 0), (1, 1))
        assert a == b
        assert hash(a) == hash(b)

    def test_different_positions_not_equal(self):
        """Vertices with different positions are not equal."""
        a = MeshVertex((1, 2, 3))
        b = MeshVertex((1, 2, 3.0000001))
        assert a != b

    def test_copy_is_independent(self):
        """Copies don't share arrays."""
        a = MeshVertex((1, 2, 3), (0, 1, 0), (0, 0))
        b = a.copy()
        b.position[0] = 10.0
        assert a.position[0] == 1.0


class TestEdgeConstraint:
    """Tests for EdgeConstraint class."""

    def test_identical_edges_equal(self):
        """Same vertices in the same order are equal."""
        assert EdgeConstraint(1, 2) == EdgeConstraint(1, 2)

    def test_different_v1_not_equal(self):
        """Different first vertex."""
        assert EdgeConstraint(1, 2) != EdgeConstraint(3, 2)

    def test_different_v2_not_equal(self):
        """Different second vertex."""
        assert EdgeConstraint(1, 2) != EdgeConstraint(1, 3)

    def test_opposite_directions_equal(self):
        """Equality ignores direction."""
        assert EdgeConstraint(1, 2) == EdgeConstraint(2, 1)

    def test_hash(self):
        """Equal edges hash equally in both directions."""
        assert hash(EdgeConstraint(1, 2)) == hash(EdgeConstraint(1, 2))
        assert hash(EdgeConstraint(1, 2)) == hash(EdgeConstraint(2, 1))
        assert hash(EdgeConstraint(1, 2)) != hash(EdgeConstraint(1, 3))

    def test_triangle_fields_ignored_by_equality(self):
        """Triangle bookkeeping does not affect equality."""
        assert EdgeConstraint(1, 2, 5, 6, 3) == EdgeConstraint(2, 1)

    def test_defaults(self):
        """Triangle fields default to -1."""
        edge = EdgeConstraint(1, 2)
        assert (edge.t1, edge.t2, edge.t1_edge) == (-1, -1, -1)

    def test_frozen(self):
        """Records are immutable."""
        edge = EdgeConstraint(1, 2)
        with pytest.raises(dataclasses.FrozenInstanceError):
            edge.v1 = 5


class TestQuad:
    """Tests for Quad class."""

    def test_create(self):
        """Test creating a quad."""
        quad = Quad(0, 1, 2, 3, 4, 5, 6, 7, 8, 9)
        assert (quad.q1, quad.q2, quad.q3, quad.q4) == (0, 1, 2, 3)
        assert (quad.t1, quad.t2) == (4, 5)
        assert (quad.t1L, quad.t1R, quad.t2L, quad.t2R) == (6, 7, 8, 9)


class TestBounds:
    """Tests for Bounds class."""

    def test_min_max(self):
        """Test min/max from center and size."""
        bounds = Bounds(center=np.array([1.0, 0.0, 0.0]), size=np.array([2.0, 4.0, 6.0]))
        assert bounds.min.tolist() == [0.0, -2.0, -3.0]
        assert bounds.max.tolist() == [2.0, 2.0, 3.0]

    def test_default_empty(self):
        """Default bounds are empty at the origin."""
        bounds = Bounds()
        assert not bounds.center.any()
        assert not bounds.size.any()
