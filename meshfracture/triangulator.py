"""
Incremental Delaunay Triangulator

Triangulates a set of 3D points lying on a single plane.

Algorithm:
1. Project the points onto an orthonormal basis of the plane
2. Add a super-triangle that encloses every point
3. Normalize the 2D coordinates uniformly into [0, 1]
4. Bin sort the points so consecutive insertions are spatially close
5. Insert each point: walk the adjacency graph to the containing triangle,
   split it into three, then restore the Delaunay property with edge flips
6. Discard every triangle that uses a super-triangle vertex

Triangles are kept in an arena (one row per triangle) holding the three
vertex indices and the three neighbouring triangle indices. Triangles are
wound clockwise in the 2D frame.
"""

from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from meshfracture import bin_sort
from meshfracture.math_utils import is_point_on_right_side_of_line, normalized
from meshfracture.mesh_vertex import MeshVertex, TriangulationPoint

logger = logging.getLogger(__name__)


# Arena columns
V1 = 0      # Vertex 1
V2 = 1      # Vertex 2
V3 = 2      # Vertex 3
E12 = 3     # Triangle adjacent to edge V1 -> V2
E23 = 4     # Triangle adjacent to edge V2 -> V3
E31 = 5     # Triangle adjacent to edge V3 -> V1

# Row of the super-triangle
SUPERTRIANGLE = 0

# Neighbour value for boundary edges
OUT_OF_BOUNDS = -1

# Corners of the super-triangle in normalized coordinates
SUPER_TRIANGLE_COORDS = ((-100.0, -100.0), (0.0, 100.0), (100.0, -100.0))


class Triangulator:
    """
    Delaunay triangulation of coplanar points.

    Usage:
        triangulator = Triangulator(vertices, normal)
        triangles = triangulator.triangulate()

    After triangulation `points[i].coords` holds the normalized 2D
    coordinates of input point i; multiplying by
    `normalization_scale_factor` gives back the projected plane coordinates.
    """

    def __init__(self, input_points: Sequence[MeshVertex], normal):
        """
        Project the input points onto the triangulation plane.

        Args:
            input_points: Vertices to triangulate (need at least 3)
            normal: Normal of the plane the points lie on
        """
        self.N = 0
        self.triangle_count = 0
        self.triangulation = np.zeros((0, 6), dtype=np.int64)
        self.skip_triangle = np.zeros(0, dtype=bool)
        self.points: List[TriangulationPoint] = []
        self.normal = normalized(normal)
        self.normalization_scale_factor = 1.0

        # Index of the last triangle written to the arena
        self.last_triangle = 0
        self.skipped_points = 0

        if input_points is None or len(input_points) < 3:
            return

        self.N = len(input_points)
        self.triangle_count = 2 * self.N + 1
        self.triangulation = np.zeros((self.triangle_count, 6), dtype=np.int64)
        self.skip_triangle = np.zeros(self.triangle_count, dtype=bool)

        # First basis vector from the first two points, second one from the normal
        e1 = normalized(input_points[0].position - input_points[1].position)
        e3 = normalized(np.cross(e1, self.normal))

        positions = np.array([p.position for p in input_points], dtype=np.float64)
        coords = np.column_stack((positions @ e1, positions @ e3))
        self.points = [TriangulationPoint(i, coords[i]) for i in range(self.N)]

    def triangulate(self) -> List[int]:
        """
        Compute the triangulation.

        Returns:
            Flat list of point indices, three per triangle. Empty if fewer
            than three points were given or the points are degenerate.
        """
        if not self.build():
            return []

        self.discard_triangles_with_super_triangle_vertices()
        return self.collect_triangles()

    def build(self) -> bool:
        """
        Run the unconstrained triangulation (steps 2-5).

        Returns:
            False if there is nothing to triangulate
        """
        if self.N < 3:
            return False

        self.add_super_triangle()
        if not self.normalize_coordinates():
            logger.warning(f"Cannot triangulate {self.N} points: all points project to the same location")
            return False

        self.compute_triangulation()
        return True

    def collect_triangles(self) -> List[int]:
        """Vertex indices of all non-skipped triangles in the used part of the arena."""
        used = self.last_triangle + 1
        keep = ~self.skip_triangle[:used]
        return self.triangulation[:used][keep, V1:V3 + 1].reshape(-1).tolist()

    # ========================================================================
    # SETUP
    # ========================================================================

    def add_super_triangle(self):
        """Append the super-triangle points and store the super-triangle in row 0."""
        n = self.N
        for k, coords in enumerate(SUPER_TRIANGLE_COORDS):
            self.points.append(TriangulationPoint(n + k, np.array(coords, dtype=np.float64)))

        self.triangulation[SUPERTRIANGLE] = (n, n + 1, n + 2, OUT_OF_BOUNDS, OUT_OF_BOUNDS, OUT_OF_BOUNDS)

    def normalize_coordinates(self) -> bool:
        """
        Scale the input point coordinates uniformly into [0, 1].

        The same factor is used for both axes so relative positions are
        unchanged.

        Returns:
            False if the points have no extent
        """
        coords = np.array([p.coords for p in self.points[:self.N]])
        lo = coords.min(axis=0)
        hi = coords.max(axis=0)

        scale = float(max(hi[0] - lo[0], hi[1] - lo[1]))
        if not scale > 0.0:
            return False

        self.normalization_scale_factor = scale
        for point in self.points[:self.N]:
            point.coords = (point.coords - lo) / scale

        return True

    def sort_points_into_bins(self) -> Sequence[TriangulationPoint]:
        """Sort the input points into an n x n grid of bins (n = N^(1/4))."""
        n = round(self.N ** 0.25)
        bin_count = n * n

        for point in self.points[:self.N]:
            i = int(0.99 * n * point.coords[1])
            j = int(0.99 * n * point.coords[0])
            point.bin = bin_sort.get_bin_number(i, j, n)

        return bin_sort.sort(self.points, self.N, bin_count)

    # ========================================================================
    # INSERTION
    # ========================================================================

    def compute_triangulation(self):
        """Insert every point into the triangulation in bin order."""
        t_search = 0
        t_last = 0
        skipped = 0

        sorted_points = self.sort_points_into_bins()

        for k in range(self.N):
            point = sorted_points[k]

            # Walk towards the point; give up after visiting as many
            # triangles as exist
            counter = 0
            inserted = False
            while not inserted:
                if counter > t_last or t_search == OUT_OF_BOUNDS:
                    break
                counter += 1

                tri = self.triangulation[t_search]
                v1 = self.points[tri[V1]].coords
                v2 = self.points[tri[V2]].coords
                v3 = self.points[tri[V3]].coords

                if not is_point_on_right_side_of_line(v1, v2, point.coords):
                    t_search = int(tri[E12])
                elif not is_point_on_right_side_of_line(v2, v3, point.coords):
                    t_search = int(tri[E23])
                elif not is_point_on_right_side_of_line(v3, v1, point.coords):
                    t_search = int(tri[E31])
                else:
                    self.insert_point_into_triangle(point, t_search, t_last)
                    t_last += 2
                    t_search = t_last
                    inserted = True

            if not inserted:
                skipped += 1
                logger.debug(f"Point {point.index} could not be located, skipping")

        self.last_triangle = t_last
        self.skipped_points = skipped
        if skipped:
            logger.warning(f"Triangulation skipped {skipped} of {self.N} points")

    def insert_point_into_triangle(self, p: TriangulationPoint, t: int, triangle_count: int):
        r"""
        Replace triangle `t` with three triangles meeting at `p`.

                             V1
                             *
                            /|\
                           /3|2\
                          /  |  \
                         /   |   \
                        /  t1|t3  \
                       /     *     \
                      /   __/1\__   \
                     / __/   t2  \__ \
                    /_/3           2\_\
                   *-------------------*
                 V3                     V2

        The new point is always V1 of the new triangles, which lets the
        Delaunay restoration find the opposite edge (E23) directly.

        Args:
            p: Point being inserted
            t: Triangle containing the point
            triangle_count: Index of the last triangle in the arena
        """
        a = self.triangulation
        t1 = t
        t2 = triangle_count + 1
        t3 = triangle_count + 2

        v1, v2, v3, e12, e23, e31 = (int(x) for x in a[t])

        a[t2] = (p.index, v2, v3, t3, e23, t1)
        a[t3] = (p.index, v1, v2, t1, e12, t2)

        self.update_adjacency(e12, t, t3)
        self.update_adjacency(e23, t, t2)

        a[t1] = (p.index, v3, v1, t2, e31, t3)

        self.restore_delaunay_triangulation(p, t1, t2, t3)

    def restore_delaunay_triangulation(self, p: TriangulationPoint, t1: int, t2: int, t3: int):
        """
        Flip diagonals around a newly inserted point until the
        triangulation is Delaunay again.

        Each stack entry is a triangle with `p` at V1 and the triangle on
        the other side of its E23 edge.
        """
        a = self.triangulation
        stack: List[Tuple[int, int]] = [
            (t1, int(a[t1, E23])),
            (t2, int(a[t2, E23])),
            (t3, int(a[t3, E23])),
        ]

        while stack:
            t1, t2 = stack.pop()
            if t2 == OUT_OF_BOUNDS:
                continue

            swapped = self.swap_quad_diagonal_if_needed(p.index, t1, t2)
            if swapped is not None:
                t3, t4 = swapped
                stack.append((t1, t3))
                stack.append((t2, t4))

    def swap_quad_diagonal_if_needed(self, p: int, t1: int, t2: int) -> Optional[Tuple[int, int]]:
        r"""
        Swap the diagonal of the quad formed by `t1` and `t2` if `p` lies in
        the circumcircle of `t2`.

                  BEFORE                          AFTER
                    q3                              q3
           *---------*---------*           *---------*---------*
            \       / \       /             \       /|\       /
             \ t3  /   \ t4  /               \ t3  / | \ t4  /
              \   /  t2 \   /                 \   /  |  \   /
               \ /       \ /                   \ /   |   \ /
             q1 *---------* q2               q1 * t1 | t2 * q2
                 \       /                       \   |   /
                  \ t1  /                         \  |  /
                   \   /                           \ | /
                    \ /                             \|/
                     * q4 == p                       * q4 == p

        Args:
            p: Index of the inserted point (V1 of t1)
            t1: Triangle containing p
            t2: Triangle across the E23 edge of t1

        Returns:
            (t3, t4), the triangles now opposite p in t1 and t2, if the
            swap was performed; otherwise None.
        """
        a = self.triangulation
        q4 = p

        # t2 may be oriented any way; find the edge shared with t1
        row = a[t2]
        if row[E12] == t1:
            q1, q2, q3 = int(row[V2]), int(row[V1]), int(row[V3])
            t3, t4 = int(row[E23]), int(row[E31])
        elif row[E23] == t1:
            q1, q2, q3 = int(row[V3]), int(row[V2]), int(row[V1])
            t3, t4 = int(row[E31]), int(row[E12])
        else:
            q1, q2, q3 = int(row[V1]), int(row[V3]), int(row[V2])
            t3, t4 = int(row[E12]), int(row[E23])

        points = self.points
        if not swap_test(points[q1].coords, points[q2].coords, points[q3].coords, points[q4].coords):
            return None

        t1_e31 = int(a[t1, E31])
        self.update_adjacency(t3, t2, t1)
        self.update_adjacency(t1_e31, t1, t2)

        a[t1, V1:V3 + 1] = (q4, q1, q3)
        a[t2, V1:V3 + 1] = (q4, q3, q2)

        # E12 of t1 stays t2
        a[t2, E12] = t1
        a[t2, E23] = t4
        a[t2, E31] = t1_e31

        a[t1, E23] = t3
        a[t1, E31] = t2

        return t3, t4

    # ========================================================================
    # CLEANUP
    # ========================================================================

    def discard_triangles_with_super_triangle_vertices(self):
        """Mark every triangle that uses a super-triangle vertex as skipped."""
        used = self.last_triangle + 1
        touches_super = (self.triangulation[:used, V1:V3 + 1] >= self.N).any(axis=1)
        self.skip_triangle[:used] |= touches_super

    # ========================================================================
    # ARENA HELPERS
    # ========================================================================

    def triangle_contains_vertex(self, t: int, v: int) -> bool:
        row = self.triangulation[t]
        return row[V1] == v or row[V2] == v or row[V3] == v

    def update_adjacency(self, t: int, t_old: int, t_new: int):
        """Replace the neighbour `t_old` of triangle `t` with `t_new`."""
        edge = self.find_shared_edge(t, t_old)
        if edge is not None:
            self.triangulation[t, edge] = t_new

    def find_shared_edge(self, t_origin: int, t_adjacent: int) -> Optional[int]:
        """
        Find the edge column of `t_origin` whose neighbour is `t_adjacent`.

        Returns:
            E12, E23 or E31, or None if the triangles are not adjacent or
            `t_origin` is OUT_OF_BOUNDS.
        """
        if t_origin == OUT_OF_BOUNDS:
            return None

        row = self.triangulation[t_origin]
        if row[E12] == t_adjacent:
            return E12
        if row[E23] == t_adjacent:
            return E23
        if row[E31] == t_adjacent:
            return E31
        return None


def swap_test(v1, v2, v3, v4) -> bool:
    """
    Incircle test: True if the triangle v1->v2->v3 circumscribes v4.

    Uses the angle formulation (cosines of the angles at v3 and v4) which is
    more robust than the determinant form for nearly degenerate quads.
    """
    x13 = v1[0] - v3[0]
    x23 = v2[0] - v3[0]
    y13 = v1[1] - v3[1]
    y23 = v2[1] - v3[1]
    x14 = v1[0] - v4[0]
    x24 = v2[0] - v4[0]
    y14 = v1[1] - v4[1]
    y24 = v2[1] - v4[1]

    cos_a = x13 * x23 + y13 * y23
    cos_b = x24 * x14 + y24 * y14

    if cos_a >= 0 and cos_b >= 0:
        return False
    if cos_a < 0 and cos_b < 0:
        return True

    sin_a = x13 * y23 - x23 * y13
    sin_b = x24 * y14 - x14 * y24
    sin_ab = sin_a * cos_b + sin_b * cos_a
    return sin_ab < 0
