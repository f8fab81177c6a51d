"""
Geometry Primitives

Small vector tests shared by the slicer and the triangulators:
- Plane side classification
- Line segment / plane intersection
- 2D side-of-line, segment intersection and quad convexity tests

Points are numpy arrays (or any indexable of floats). 2D tests only read
the first two components so they work with both arrays and tuples.
"""

from typing import Optional, Tuple

import numpy as np


def normalized(v: np.ndarray) -> np.ndarray:
    """Return the unit vector of `v`, or a zero vector if `v` has no length."""
    v = np.asarray(v, dtype=np.float64)
    length = float(np.linalg.norm(v))
    if length == 0.0:
        return np.zeros_like(v)
    return v / length


def is_above_plane(p, n, o):
    """
    Check which side of a plane a point (or an array of points) lies on.

    "Above" is the side the normal points to. Points exactly on the plane
    count as above.

    Args:
        p: Point of shape (3,) or array of points of shape (N, 3)
        n: Plane normal
        o: Plane origin

    Returns:
        bool for a single point, boolean array of shape (N,) for many points
    """
    p = np.asarray(p, dtype=np.float64)
    d = (p - np.asarray(o, dtype=np.float64)) @ np.asarray(n, dtype=np.float64)
    if np.ndim(d) == 0:
        return bool(d >= 0)
    return d >= 0


def line_plane_intersection(a, b, n, p0) -> Optional[Tuple[np.ndarray, float]]:
    """
    Intersect the segment a->b with the plane through `p0` with normal `n`.

    Args:
        a: Start point of the segment
        b: End point of the segment
        n: Plane normal
        p0: Plane origin

    Returns:
        (x, s) where x = a + (b - a) * s and 0 <= s <= 1, or None if the
        segment is degenerate, the normal is zero, or the segment does not
        reach the plane.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    n = np.asarray(n, dtype=np.float64)
    p0 = np.asarray(p0, dtype=np.float64)

    if np.array_equal(a, b):
        return None
    if not np.any(n):
        return None

    denom = float(np.dot(b - a, n))
    if denom == 0.0:
        # Segment parallel to the plane
        return None

    s = float(np.dot(p0 - a, n)) / denom
    if 0.0 <= s <= 1.0:
        return a + (b - a) * s, s

    return None


def is_point_on_right_side_of_line(a, b, p) -> bool:
    """
    Returns True if `p` is on the right side of the directed line a->b.

    Triangles are wound clockwise, so a point on the right side of every
    edge is inside the triangle. Points on the line count as right side;
    the point location walk depends on this to terminate.
    """
    return ((b[0] - a[0]) * (p[1] - a[1]) - (b[1] - a[1]) * (p[0] - a[0])) <= 0


def _segments_intersect(a1, a2, b1, b2, include_shared_endpoints: bool) -> bool:
    # Shared endpoint: the quad collapses into a triangle
    if (_same_point(a1, b1) or _same_point(a1, b2) or
            _same_point(a2, b1) or _same_point(a2, b2)):
        return include_shared_endpoints

    a12x = a2[0] - a1[0]
    a12y = a2[1] - a1[1]
    b12x = b2[0] - b1[0]
    b12y = b2[1] - b1[1]

    # Z component of the cross product gives the side of the other segment
    a1xb = (a1[0] - b1[0]) * b12y - (a1[1] - b1[1]) * b12x
    a2xb = (a2[0] - b1[0]) * b12y - (a2[1] - b1[1]) * b12x
    b1xa = (b1[0] - a1[0]) * a12y - (b1[1] - a1[1]) * a12x
    b2xa = (b2[0] - a1[0]) * a12y - (b2[1] - a1[1]) * a12x

    # Touching counts as intersecting (hence >= rather than >)
    return (((a1xb >= 0 and a2xb <= 0) or (a1xb <= 0 and a2xb >= 0)) and
            ((b1xa >= 0 and b2xa <= 0) or (b1xa <= 0 and b2xa >= 0)))


def _same_point(p, q) -> bool:
    return p[0] == q[0] and p[1] == q[1]


def lines_intersect(a1, a2, b1, b2) -> bool:
    """
    Returns True if segments a1->a2 and b1->b2 intersect.

    Segments sharing an endpoint are not considered intersecting.
    """
    return _segments_intersect(a1, a2, b1, b2, False)


def is_quad_convex(a1, a2, b1, b2) -> bool:
    """
    Returns True if the quad with diagonals a1->a2 and b1->b2 is convex.

    A quad is convex when its diagonals intersect. A shared endpoint turns
    the quad into a triangle, which is convex.
    """
    return _segments_intersect(a1, a2, b1, b2, True)
