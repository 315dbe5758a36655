"""
tin.py

Triangulated irregular network (TIN) built on `scipy.spatial.Delaunay`.

The renderers and interpolators consume three capabilities from a TIN:
- `edges()` : every undirected edge once, plus one "ghost" edge per hull
  vertex whose B endpoint is absent (renderers must skip those)
- `point_locate(x, y)` : nearest vertex, an enclosing or nearby edge, the
  distance to the vertex and whether the point is inside the hull
- `is_interior(x, y)` : hull membership test

Vertices with a negative index are perimeter/auxiliary samples; they are
rendered but never tracked by index.
"""
from dataclasses import dataclass
from typing import Iterator, Optional
import logging

import numpy as np
from scipy.spatial import Delaunay
from scipy.spatial import QhullError

from tinshade.utils import safe_build_kdtree

logger = logging.getLogger(__name__)

UNINDEXED = -1


@dataclass(frozen=True)
class Vertex:
    """A sample point of the surface. Immutable once part of a TIN."""
    x: float
    y: float
    z: float
    index: int = UNINDEXED


@dataclass(frozen=True)
class Edge:
    """Ordered pair of vertices. Either endpoint may be None (ghost edge)."""
    a: Optional[Vertex]
    b: Optional[Vertex]

    @property
    def is_ghost(self) -> bool:
        return self.a is None or self.b is None


@dataclass(frozen=True)
class NeighborEdgeVertex:
    """Result of a point location query."""
    nearest_vertex: Vertex
    edge: Edge
    distance: float
    is_interior: bool


def _segment_distance(px, py, ax, ay, bx, by):
    vx = bx - ax
    vy = by - ay
    denom = vx * vx + vy * vy
    if denom == 0:
        return float(np.hypot(px - ax, py - ay))
    t = ((px - ax) * vx + (py - ay) * vy) / denom
    t = min(1.0, max(0.0, t))
    return float(np.hypot(px - (ax + t * vx), py - (ay + t * vy)))


class Tin:
    """Delaunay triangulation of scattered (x, y, z) samples.

    Parameters
    - x, y, z: 1-D arrays of equal length
    - index: optional integer array of vertex indices; defaults to 0..N-1.
      Use a negative value for unindexed (perimeter) vertices.
    """

    def __init__(self, x, y, z, index=None):
        self.x = np.asarray(x, dtype=float).ravel()
        self.y = np.asarray(y, dtype=float).ravel()
        self.z = np.asarray(z, dtype=float).ravel()
        if not (self.x.shape == self.y.shape == self.z.shape):
            raise ValueError('x, y and z must have the same length')
        if index is None:
            self.index = np.arange(self.x.size, dtype=np.int32)
        else:
            self.index = np.asarray(index, dtype=np.int32).ravel()
            if self.index.shape != self.x.shape:
                raise ValueError('index must have the same length as x')
        if self.x.size < 3:
            raise ValueError('a TIN needs at least three vertices')

        pts = np.column_stack([self.x, self.y])
        try:
            self.triangulation = Delaunay(pts)
        except QhullError as exc:
            raise ValueError(f'vertices cannot be triangulated: {exc}') from exc

        self.vertices = [Vertex(float(a), float(b), float(c), int(i))
                         for a, b, c, i in zip(self.x, self.y, self.z, self.index)]
        self.kdtree = safe_build_kdtree(pts, name='tin_vertex_tree')
        self._edge_pairs = self._build_edge_pairs()
        self._hull_pairs = np.sort(self.triangulation.convex_hull, axis=1)
        self.nominal_spacing = self._estimate_spacing()
        logger.debug('TIN built: %d vertices, %d triangles, %d edges',
                     self.x.size, len(self.triangulation.simplices), len(self._edge_pairs))

    @classmethod
    def from_vertices(cls, vertices):
        """Build a TIN from an iterable of `Vertex` objects."""
        vs = list(vertices)
        return cls([v.x for v in vs], [v.y for v in vs], [v.z for v in vs],
                   index=[v.index for v in vs])

    def _build_edge_pairs(self):
        s = self.triangulation.simplices
        pairs = np.vstack([s[:, [0, 1]], s[:, [1, 2]], s[:, [2, 0]]])
        pairs = np.sort(pairs, axis=1)
        return np.unique(pairs, axis=0)

    def _estimate_spacing(self):
        if self.kdtree is None:
            return 1.0
        dists, _ = self.kdtree.query(np.column_stack([self.x, self.y]), k=2)
        nn = dists[:, 1]
        nn = nn[nn > 0]
        if nn.size == 0:
            return 1.0
        return float(np.median(nn))

    @property
    def vertex_count(self) -> int:
        return int(self.x.size)

    @property
    def simplices(self) -> np.ndarray:
        return self.triangulation.simplices

    def edges(self) -> Iterator[Edge]:
        """Yield each interior/hull edge once, then one ghost edge per hull vertex."""
        verts = self.vertices
        for i, j in self._edge_pairs:
            yield Edge(verts[i], verts[j])
        for i in np.unique(self._hull_pairs):
            yield Edge(verts[i], None)

    def get_edges(self):
        return list(self.edges())

    def is_interior(self, x: float, y: float) -> bool:
        return bool(self.triangulation.find_simplex(np.array([[x, y]]))[0] >= 0)

    def nearest_vertex(self, x: float, y: float):
        """Return (vertex_position, distance) of the closest sample."""
        d, i = self.kdtree.query([x, y], k=1)
        return int(i), float(d)

    def point_locate(self, x: float, y: float) -> NeighborEdgeVertex:
        """Find the nearest vertex and the closest edge of the enclosing triangle.

        For points outside the hull the closest hull edge is reported.
        """
        i_near, d_near = self.nearest_vertex(x, y)
        simplex = int(self.triangulation.find_simplex(np.array([[x, y]]))[0])
        interior = simplex >= 0
        if interior:
            tri = self.triangulation.simplices[simplex]
            candidates = [(tri[0], tri[1]), (tri[1], tri[2]), (tri[2], tri[0])]
        else:
            candidates = [tuple(p) for p in self._hull_pairs]

        best = None
        best_d = np.inf
        for ia, ib in candidates:
            d = _segment_distance(x, y, self.x[ia], self.y[ia], self.x[ib], self.y[ib])
            if d < best_d:
                best_d = d
                best = (ia, ib)
        edge = Edge(self.vertices[best[0]], self.vertices[best[1]])
        return NeighborEdgeVertex(self.vertices[i_near], edge, d_near, interior)
