"""
natural_neighbor.py

Sibson natural-neighbour interpolation over a TIN.

Inserting the query point p into the Delaunay triangulation removes the
"cavity": every triangle whose circumcircle contains p. The Voronoi cell
that p would own is carved out of the cells of the cavity vertices, and
the area taken from each vertex is its weight. For a cavity vertex v that
area is the convex polygon spanned by
- the circumcentres of the old cavity triangles that use v, and
- the circumcentres of the two new triangles (p, v, w) on the cavity rim.

Points outside the convex hull are undefined (NaN).
"""
import threading
import logging

import numpy as np
from shapely.geometry import MultiPoint

logger = logging.getLogger(__name__)


def circumcenters(ax, ay, bx, by, cx, cy):
    """Vectorized circumcentre of triangles (a, b, c). Degenerate triangles give inf/nan."""
    d = 2.0 * (ax * (by - cy) + bx * (cy - ay) + cx * (ay - by))
    a2 = ax * ax + ay * ay
    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy
    with np.errstate(divide='ignore', invalid='ignore'):
        ux = (a2 * (by - cy) + b2 * (cy - ay) + c2 * (ay - by)) / d
        uy = (a2 * (cx - bx) + b2 * (ax - cx) + c2 * (bx - ax)) / d
    return ux, uy


class NaturalNeighborInterpolator:
    """Sibson interpolation against the vertices of ``tin``."""

    def __init__(self, tin):
        self.tin = tin
        tri = tin.triangulation
        self._simplices = tri.simplices
        self._neighbors = tri.neighbors
        # work relative to the centroid of the samples for conditioning
        self._ox = float(np.mean(tin.x))
        self._oy = float(np.mean(tin.y))
        self._x = tin.x - self._ox
        self._y = tin.y - self._oy
        s = self._simplices
        ux, uy = circumcenters(self._x[s[:, 0]], self._y[s[:, 0]],
                               self._x[s[:, 1]], self._y[s[:, 1]],
                               self._x[s[:, 2]], self._y[s[:, 2]])
        self._cc = np.column_stack([ux, uy])
        self._r2 = (ux - self._x[s[:, 0]]) ** 2 + (uy - self._y[s[:, 0]]) ** 2
        self._snap = 1.0e-9 * max(tin.nominal_spacing, 1.0e-12)
        self._local = threading.local()

    def was_target_exterior(self):
        return getattr(self._local, 'exterior', False)

    def _cavity(self, start, px, py):
        cavity = {start}
        stack = [start]
        while stack:
            t = stack.pop()
            for nb in self._neighbors[t]:
                if nb < 0 or nb in cavity:
                    continue
                dx = px - self._cc[nb, 0]
                dy = py - self._cc[nb, 1]
                if dx * dx + dy * dy < self._r2[nb]:
                    cavity.add(int(nb))
                    stack.append(int(nb))
        return cavity

    def _barycentric(self, simplex, x, y):
        T = self.tin.triangulation.transform[simplex]
        b = T[:2].dot(np.array([x, y]) - T[2])
        bary = np.append(b, 1.0 - b.sum())
        return float(np.dot(bary, self.tin.z[self._simplices[simplex]]))

    def interpolate(self, x, y):
        """Return the Sibson estimate at (x, y), or NaN outside the hull."""
        simplex = int(self.tin.triangulation.find_simplex(np.array([[x, y]]))[0])
        if simplex < 0:
            self._local.exterior = True
            return float('nan')
        self._local.exterior = False

        i_near, d_near = self.tin.nearest_vertex(x, y)
        if d_near <= self._snap:
            return float(self.tin.z[i_near])

        px = x - self._ox
        py = y - self._oy
        cavity = self._cavity(simplex, px, py)

        # rim edges in cavity order and the cavity triangles touching each vertex
        rim = []
        touching = {}
        for t in cavity:
            tri = self._simplices[t]
            for k in range(3):
                v = int(tri[k])
                touching.setdefault(v, []).append(t)
                nb = self._neighbors[t][k]
                if nb < 0 or nb not in cavity:
                    rim.append((int(tri[(k + 1) % 3]), int(tri[(k + 2) % 3])))

        a = np.array([e[0] for e in rim])
        b = np.array([e[1] for e in rim])
        nx, ny = circumcenters(np.full(a.shape, px), np.full(a.shape, py),
                               self._x[a], self._y[a], self._x[b], self._y[b])
        if not (np.all(np.isfinite(nx)) and np.all(np.isfinite(ny))):
            # p sits on a hull edge, where the new cell is unbounded
            return self._barycentric(simplex, x, y)

        new_cc = {}
        for k, (va, vb) in enumerate(rim):
            new_cc.setdefault(va, []).append((nx[k], ny[k]))
            new_cc.setdefault(vb, []).append((nx[k], ny[k]))

        total = 0.0
        acc = 0.0
        for v, pts in new_cc.items():
            poly = list(pts) + [tuple(self._cc[t]) for t in touching.get(v, [])]
            area = MultiPoint(poly).convex_hull.area
            total += area
            acc += area * self.tin.z[v]

        if not total > 0:
            return self._barycentric(simplex, x, y)
        return float(acc / total)
