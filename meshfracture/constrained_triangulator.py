"""
Constrained Delaunay Triangulator

Triangulates coplanar points so that a given set of edges (constraints)
appear in the result. Used for cut faces: the constraints are the
boundary loops of the cut polygon, so non-convex polygons and polygons
with holes are supported.

Algorithm (after the unconstrained triangulation):
1. For each constraint, find the triangulation edges it crosses by walking
   from its first vertex towards its second
2. Flip the diagonal of every convex quad formed around a crossing edge
   until no edge crosses the constraint
3. Restore the Delaunay property of the edges created by the flips,
   never flipping the constraint itself
4. Keep only triangles reachable from a boundary edge without crossing
   another boundary edge
5. Discard triangles using super-triangle vertices
"""

from collections import deque
from dataclasses import replace
from enum import Enum
from typing import Deque, Iterable, List, Optional, Sequence, Tuple
import logging

import numpy as np

from meshfracture.math_utils import lines_intersect
from meshfracture.mesh_vertex import EdgeConstraint, MeshVertex, Quad, TriangulationPoint
from meshfracture.triangulator import (
    E12, E23, E31, OUT_OF_BOUNDS, V1, V2, V3, Triangulator, swap_test,
)

logger = logging.getLogger(__name__)


# Lookup tables indexed by edge column (E12, E23, E31)
EDGE_VERTEX_1 = (0, 0, 0, V1, V2, V3)       # First vertex of the edge
EDGE_VERTEX_2 = (0, 0, 0, V2, V3, V1)       # Second vertex of the edge
OPPOSITE_POINT = (0, 0, 0, V3, V1, V2)      # Vertex opposite the edge
NEXT_EDGE = (0, 0, 0, E23, E31, E12)        # Next edge, clockwise
PREVIOUS_EDGE = (0, 0, 0, E31, E12, E23)    # Previous edge, clockwise


class StartingEdge(Enum):
    """Outcome of the search for the first edge crossed by a constraint."""
    FOUND = "found"
    ALREADY_PRESENT = "already_present"     # Constraint is already an edge
    NOT_FOUND = "not_found"


class ConstrainedTriangulator:
    """
    Triangulation of coplanar points with edge constraints.

    Runs the incremental Triangulator, then enforces the constraints on
    its triangle arena.

    Attributes:
        engine: The underlying Triangulator
        constraints: Edges that must be present in the result
        abandoned_constraints: Constraints that could not be enforced
    """

    def __init__(self, input_points: Sequence[MeshVertex],
                 constraints: Sequence[EdgeConstraint], normal):
        """
        Args:
            input_points: Vertices to triangulate
            constraints: Edges (indices into input_points) that must appear
                in the triangulation. Boundary loops must wind so the
                polygon interior is on the right (clockwise in the
                triangulation frame).
            normal: Normal of the plane the points lie on
        """
        self.engine = Triangulator(input_points, normal)
        self.constraints: List[EdgeConstraint] = list(constraints or [])
        self.abandoned_constraints: List[EdgeConstraint] = []

        # A triangle containing each vertex; speeds up the starting edge search
        self.vertex_triangles = np.zeros(0, dtype=np.int64)
        self.visited = np.zeros(0, dtype=bool)

    @property
    def points(self) -> List[TriangulationPoint]:
        return self.engine.points

    @property
    def normalization_scale_factor(self) -> float:
        return self.engine.normalization_scale_factor

    @property
    def skipped_points(self) -> int:
        return self.engine.skipped_points

    def triangulate(self) -> List[int]:
        """
        Compute the constrained triangulation.

        Returns:
            Flat list of point indices, three per triangle
        """
        if not self.engine.build():
            return []

        if self.constraints:
            self.apply_constraints()
            self.discard_triangles_violating_constraints()

        self.engine.discard_triangles_with_super_triangle_vertices()
        return self.engine.collect_triangles()

    # ========================================================================
    # CONSTRAINT ENFORCEMENT
    # ========================================================================

    def apply_constraints(self):
        """Make every constraint an edge of the triangulation."""
        engine = self.engine
        a = engine.triangulation
        used = engine.last_triangle + 1

        self.visited = np.zeros(engine.triangle_count, dtype=bool)
        self.vertex_triangles = np.zeros(engine.N + 3, dtype=np.int64)
        for t in range(used):
            for v in a[t, V1:V3 + 1]:
                self.vertex_triangles[v] = t

        for constraint in self.constraints:
            if constraint.v1 == constraint.v2:
                continue

            intersecting_edges = self.find_intersecting_edges(constraint)
            if intersecting_edges is None:
                continue

            self.remove_intersecting_edges(constraint, intersecting_edges)

        if self.abandoned_constraints:
            logger.warning(f"{len(self.abandoned_constraints)} of {len(self.constraints)} "
                           f"constraints could not be enforced")

    def find_intersecting_edges(self, constraint: EdgeConstraint) -> Optional[Deque[EdgeConstraint]]:
        """
        Find all triangulation edges crossed by the constraint.

        Walks from the first crossed edge at v1 across triangles until a
        triangle containing v2 is reached.

        Returns:
            Queue of crossed edges (empty if the constraint is already an
            edge), or None if the constraint was abandoned.
        """
        status, start_edge = self.find_starting_edge(constraint)
        if status is StartingEdge.ALREADY_PRESENT:
            return deque()
        if status is StartingEdge.NOT_FOUND:
            self._abandon(constraint, "no starting edge around the first vertex")
            return None

        a = self.engine.triangulation
        points = self.points
        v_i = points[constraint.v1].coords
        v_j = points[constraint.v2].coords

        intersecting_edges: Deque[EdgeConstraint] = deque([start_edge])
        t = start_edge.t1
        edge_index = start_edge.t1_edge

        for _ in range(self.engine.last_triangle + 1):
            # Cross the last intersecting edge and inspect the next triangle
            last_triangle = t
            t = int(a[t, edge_index])
            if t == OUT_OF_BOUNDS:
                self._abandon(constraint, "walk left the triangulation")
                return None

            if self.engine.triangle_contains_vertex(t, constraint.v2):
                return intersecting_edges

            tv1, tv2, tv3, t12, t23, t31 = a[t].tolist()
            p1 = points[tv1].coords
            p2 = points[tv2].coords
            p3 = points[tv3].coords

            # Crosses exactly one edge other than the one we came through
            if t12 != last_triangle and lines_intersect(v_i, v_j, p1, p2):
                edge_index = E12
                intersecting_edges.append(EdgeConstraint(tv1, tv2, t, t12, E12))
            elif t23 != last_triangle and lines_intersect(v_i, v_j, p2, p3):
                edge_index = E23
                intersecting_edges.append(EdgeConstraint(tv2, tv3, t, t23, E23))
            elif t31 != last_triangle and lines_intersect(v_i, v_j, p3, p1):
                edge_index = E31
                intersecting_edges.append(EdgeConstraint(tv3, tv1, t, t31, E31))
            else:
                self._abandon(constraint, "failed to find the final triangle")
                return None

        self._abandon(constraint, "search budget exhausted")
        return None

    def find_starting_edge(self, constraint: EdgeConstraint) -> Tuple[StartingEdge, Optional[EdgeConstraint]]:
        """
        Circle the triangles around v1 looking for an edge the constraint crosses.

        Returns:
            (status, edge). `edge` is the crossed edge when status is FOUND,
            otherwise None.
        """
        engine = self.engine
        a = engine.triangulation
        v_i = constraint.v1

        t_search = int(self.vertex_triangles[v_i])
        self.visited[:] = False

        while True:
            self.visited[t_search] = True

            if self.triangle_contains_constraint(t_search, constraint):
                return StartingEdge.ALREADY_PRESENT, None

            edge = self.edge_constraint_intersects_triangle(t_search, constraint)
            if edge is not None:
                row = a[t_search]
                start_edge = EdgeConstraint(int(row[EDGE_VERTEX_1[edge]]),
                                            int(row[EDGE_VERTEX_2[edge]]),
                                            t_search, int(row[edge]), edge)
                return StartingEdge.FOUND, start_edge

            # Move to an unvisited neighbour that also contains v_i
            next_triangle = None
            for column in (E12, E23, E31):
                t_next = int(a[t_search, column])
                if (t_next != OUT_OF_BOUNDS and not self.visited[t_next]
                        and engine.triangle_contains_vertex(t_next, v_i)):
                    next_triangle = t_next
                    break

            if next_triangle is None:
                return StartingEdge.NOT_FOUND, None
            t_search = next_triangle

    def remove_intersecting_edges(self, constraint: EdgeConstraint,
                                  intersecting_edges: Deque[EdgeConstraint]):
        """
        Flip diagonals until no edge crosses the constraint.

        Non-convex quads are requeued. The loop stops once every queued
        edge has been visited without producing a new edge.
        """
        points = self.points
        c1 = points[constraint.v1].coords
        c2 = points[constraint.v2].coords

        new_edges: List[EdgeConstraint] = []
        counter = 0

        while intersecting_edges and counter <= len(intersecting_edges):
            edge = intersecting_edges.popleft()

            quad = self.find_quad_from_shared_edge(edge.t1, edge.t1_edge)
            if quad is None:
                logger.debug(f"No quad for {edge}, dropping it")
            elif lines_intersect(points[quad.q4].coords, points[quad.q3].coords,
                                 points[quad.q1].coords, points[quad.q2].coords):
                self.swap_quad_diagonal(quad)
                intersecting_edges = deque(self.update_edges_after_swap(intersecting_edges, quad))
                new_edges = self.update_edges_after_swap(new_edges, quad)

                # The new diagonal runs q3 -> q4
                new_edge = EdgeConstraint(quad.q3, quad.q4, quad.t1, quad.t2, E31)
                if lines_intersect(c1, c2, points[quad.q3].coords, points[quad.q4].coords):
                    intersecting_edges.append(new_edge)
                else:
                    counter = 0
                    new_edges.append(new_edge)
            else:
                intersecting_edges.append(edge)

            counter += 1

        if intersecting_edges:
            self._abandon(constraint, f"{len(intersecting_edges)} crossing edges could not be flipped")

        if new_edges:
            self.restore_constrained_delaunay_triangulation(constraint, new_edges)

    def restore_constrained_delaunay_triangulation(self, constraint: EdgeConstraint,
                                                   new_edges: List[EdgeConstraint]):
        """Flip non-constraint new edges until they are all Delaunay."""
        points = self.points
        max_passes = self.engine.last_triangle + 1

        passes = 0
        swap_occurred = True
        while swap_occurred:
            passes += 1
            if passes > max_passes:
                logger.warning(f"Delaunay restoration around {constraint} did not converge")
                break

            swap_occurred = False
            for i in range(len(new_edges)):
                edge = new_edges[i]
                if edge == constraint:
                    continue

                quad = self.find_quad_from_shared_edge(edge.t1, edge.t1_edge)
                if quad is None:
                    continue

                if swap_test(points[quad.q1].coords, points[quad.q2].coords,
                             points[quad.q3].coords, points[quad.q4].coords):
                    self.swap_quad_diagonal(quad)
                    new_edges = self.update_edges_after_swap(new_edges, quad)
                    new_edges[i] = EdgeConstraint(quad.q3, quad.q4, quad.t1, quad.t2, E31)
                    swap_occurred = True

    def discard_triangles_violating_constraints(self):
        """
        Keep only the triangles inside the constrained boundary.

        Triangles with a boundary edge (directed as in the constraint) seed
        a flood fill that never crosses a boundary edge; everything not
        reached is skipped.
        """
        engine = self.engine
        a = engine.triangulation
        used = engine.last_triangle + 1
        skip = engine.skip_triangle

        skip[:] = True
        boundaries = {(c.v1, c.v2) for c in self.constraints if c.v1 != c.v2}
        self.visited[:] = False

        frontier: Deque[int] = deque()
        for i in range(used):
            if self.visited[i]:
                continue

            v1, v2, v3, t12, t23, t31 = a[i].tolist()
            boundary_e12 = (v1, v2) in boundaries
            boundary_e23 = (v2, v3) in boundaries
            boundary_e31 = (v3, v1) in boundaries

            if not (boundary_e12 or boundary_e23 or boundary_e31):
                continue

            skip[i] = False

            frontier.clear()
            if not boundary_e12:
                frontier.append(t12)
            if not boundary_e23:
                frontier.append(t23)
            if not boundary_e31:
                frontier.append(t31)

            while frontier:
                k = frontier.popleft()
                if k == OUT_OF_BOUNDS or self.visited[k]:
                    continue

                skip[k] = False
                self.visited[k] = True

                k1, k2, k3, k12, k23, k31 = a[k].tolist()
                if (k1, k2) not in boundaries:
                    frontier.append(k12)
                if (k2, k3) not in boundaries:
                    frontier.append(k23)
                if (k3, k1) not in boundaries:
                    frontier.append(k31)

    # ========================================================================
    # QUADS AND SWAPS
    # ========================================================================

    def triangle_contains_constraint(self, t: int, constraint: EdgeConstraint) -> bool:
        """True if triangle `t` has both endpoints of the constraint."""
        return (self.engine.triangle_contains_vertex(t, constraint.v1) and
                self.engine.triangle_contains_vertex(t, constraint.v2))

    def edge_constraint_intersects_triangle(self, t: int, constraint: EdgeConstraint) -> Optional[int]:
        """
        Find the edge of triangle `t` crossed by the constraint.

        Returns:
            E12, E23 or E31, or None if no edge is crossed
        """
        points = self.points
        v_i = points[constraint.v1].coords
        v_j = points[constraint.v2].coords
        tv1, tv2, tv3 = self.engine.triangulation[t, V1:V3 + 1].tolist()
        p1 = points[tv1].coords
        p2 = points[tv2].coords
        p3 = points[tv3].coords

        if lines_intersect(v_i, v_j, p1, p2):
            return E12
        if lines_intersect(v_i, v_j, p2, p3):
            return E23
        if lines_intersect(v_i, v_j, p3, p1):
            return E31
        return None

    def find_quad_from_shared_edge(self, t1: int, t1_shared_edge: int) -> Optional[Quad]:
        """
        Build the quad formed by `t1` and its neighbour across `t1_shared_edge`.

        See Quad for the vertex and triangle layout.

        Returns:
            The quad, or None if the neighbour does not link back to t1
        """
        a = self.engine.triangulation
        t2 = int(a[t1, t1_shared_edge])
        t2_shared_edge = self.engine.find_shared_edge(t2, t1)
        if t2_shared_edge is None:
            return None

        row2 = a[t2]
        if t2_shared_edge == E12:
            q2, q1, q3 = int(row2[V1]), int(row2[V2]), int(row2[V3])
        elif t2_shared_edge == E23:
            q2, q1, q3 = int(row2[V2]), int(row2[V3]), int(row2[V1])
        else:
            q2, q1, q3 = int(row2[V3]), int(row2[V1]), int(row2[V2])

        q4 = int(a[t1, OPPOSITE_POINT[t1_shared_edge]])

        t1L = int(a[t1, PREVIOUS_EDGE[t1_shared_edge]])
        t1R = int(a[t1, NEXT_EDGE[t1_shared_edge]])
        t2L = int(a[t2, NEXT_EDGE[t2_shared_edge]])
        t2R = int(a[t2, PREVIOUS_EDGE[t2_shared_edge]])

        return Quad(q1, q2, q3, q4, t1, t2, t1L, t1R, t2L, t2R)

    def swap_quad_diagonal(self, quad: Quad):
        r"""
        Replace the q1-q2 diagonal of the quad with q3-q4.

                  BEFORE                      AFTER
                    q3                          q3
           *---------*---------*       *---------*---------*
            \       / \       /         \       /|\       /
             \ t2L /   \ t2R /           \ t2L / | \ t2R /
              \   /     \   /             \   /  |  \   /
               \ /   t2  \ /               \ /   |   \ /
             q1 *---------* q2           q1 * t1 | t2 * q2
               / \   t1  / \               / \   |   / \
              /   \     /   \             /   \  |  /   \
             / t1L \   / t1R \           / t1L \ | / t1R \
            /       \ /       \         /       \|/       \
           *---------*---------*       *---------*---------*
                    q4                          q4
        """
        engine = self.engine
        a = engine.triangulation
        t1, t2 = quad.t1, quad.t2

        a[t1] = (quad.q4, quad.q1, quad.q3, quad.t1L, quad.t2L, t2)
        a[t2] = (quad.q4, quad.q3, quad.q2, t1, quad.t2R, quad.t1R)

        engine.update_adjacency(quad.t2L, t2, t1)
        engine.update_adjacency(quad.t1R, t1, t2)

        # q1 is no longer in t2 and q2 no longer in t1
        self.vertex_triangles[quad.q1] = t1
        self.vertex_triangles[quad.q2] = t2

    @staticmethod
    def update_edges_after_swap(edges: Iterable[EdgeConstraint], quad: Quad) -> List[EdgeConstraint]:
        """
        Return the edge records updated for a swap of `quad`'s diagonal.

        Edges between the swapped triangles and their outer neighbours may
        now belong to the other triangle or sit on another edge column.
        """
        t1, t2 = quad.t1, quad.t2
        t1L, t1R, t2L, t2R = quad.t1L, quad.t1R, quad.t2L, quad.t2R

        updated = []
        for edge in edges:
            if edge.t1 == t1 and edge.t2 == t1R:
                edge = replace(edge, t1=t2, t2=t1R, t1_edge=E31)
            elif edge.t1 == t1 and edge.t2 == t1L:
                edge = replace(edge, t1_edge=E12)
            elif edge.t1 == t1R and edge.t2 == t1:
                edge = replace(edge, t2=t2)
            elif edge.t1 == t1L and edge.t2 == t1:
                pass
            elif edge.t1 == t2 and edge.t2 == t2R:
                edge = replace(edge, t1_edge=E23)
            elif edge.t1 == t2 and edge.t2 == t2L:
                edge = replace(edge, t1=t1, t2=t2L, t1_edge=E23)
            elif edge.t1 == t2R and edge.t2 == t2:
                pass
            elif edge.t1 == t2L and edge.t2 == t2:
                edge = replace(edge, t2=t1)
            updated.append(edge)

        return updated

    def _abandon(self, constraint: EdgeConstraint, reason: str):
        self.abandoned_constraints.append(constraint)
        logger.warning(f"Abandoning constraint V{constraint.v1}->V{constraint.v2}: {reason}")
