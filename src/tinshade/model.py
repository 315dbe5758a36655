"""
model.py

In-memory surface model: the scattered samples behind a rendering, their
metadata (bounds, value range, area, spacing) and the TINs built from them.

Reduced TINs are built from an even spatial sample of the full point set so
a coarse preview covers the whole extent. The reduction factor of a TIN is
the ratio of the full vertex count to the vertex count actually used.
"""
import time
import logging

import numpy as np
from shapely.geometry import MultiPoint

from tinshade.tin import Tin
from tinshade.utils import safe_build_kdtree

logger = logging.getLogger(__name__)


def sample_evenly(pts, max_nodes=5000, grid_dim=100):
    """Sample points evenly across the spatial extent using a grid-based selection.

    - pts: Nx2 array of coordinates
    - max_nodes: maximum number of points to return
    - grid_dim: number of grid cells per axis to use for stratified sampling

    Returns: indices of the selected points (sorted)
    """
    pts = np.asarray(pts, dtype=float)
    if len(pts) <= max_nodes:
        return np.arange(len(pts))

    minx, miny = np.min(pts, axis=0)
    maxx, maxy = np.max(pts, axis=0)
    xs = np.linspace(minx, maxx, grid_dim + 1)
    ys = np.linspace(miny, maxy, grid_dim + 1)

    ix = np.clip(np.searchsorted(xs, pts[:, 0], side='right') - 1, 0, grid_dim - 1)
    iy = np.clip(np.searchsorted(ys, pts[:, 1], side='right') - 1, 0, grid_dim - 1)

    buckets = [[] for _ in range(grid_dim * grid_dim)]
    for i, (xi, yi) in enumerate(zip(ix, iy)):
        buckets[xi * grid_dim + yi].append(i)

    rng = np.random.default_rng(0)
    selected = []
    per_bucket = max(1, int(np.ceil(max_nodes / (grid_dim * grid_dim))))
    for b in buckets:
        if len(b) == 0:
            continue
        if len(b) <= per_bucket:
            selected.extend(b)
        else:
            selected.extend(rng.choice(b, size=per_bucket, replace=False).tolist())

    if len(selected) > max_nodes:
        rng = np.random.default_rng(1)
        selected = rng.choice(selected, size=max_nodes, replace=False).tolist()

    return np.sort(np.asarray(selected, dtype=int))


class SurfaceModel:
    """Scattered samples and their metadata.

    Parameters
    - name: display name
    - x, y, z: 1-D sample arrays
    - description: free text shown in reports
    """

    def __init__(self, name, x, y, z, description='Scattered samples'):
        t0 = time.perf_counter()
        self.name = name
        self.description = description
        self.x = np.asarray(x, dtype=float).ravel()
        self.y = np.asarray(y, dtype=float).ravel()
        self.z = np.asarray(z, dtype=float).ravel()
        if not (self.x.shape == self.y.shape == self.z.shape):
            raise ValueError('x, y and z must have the same length')
        if self.x.size < 3:
            raise ValueError('a surface model needs at least three samples')

        self.min_x, self.max_x = float(self.x.min()), float(self.x.max())
        self.min_y, self.max_y = float(self.y.min()), float(self.y.max())
        self.min_z, self.max_z = float(np.nanmin(self.z)), float(np.nanmax(self.z))

        hull = MultiPoint(list(zip(self.x, self.y))).convex_hull
        self.area = float(hull.area)
        self.nominal_point_spacing = self._estimate_spacing()

        self._reference_tin = None
        self.reference_reduction_factor = float('inf')
        self.time_to_load_ms = (time.perf_counter() - t0) * 1000.0

    def _estimate_spacing(self):
        tree = safe_build_kdtree(np.column_stack([self.x, self.y]), name='model_spacing_tree')
        if tree is None:
            return float('nan')
        sample_n = min(2000, self.x.size)
        idx = np.linspace(0, self.x.size - 1, sample_n).astype(int)
        dists, _ = tree.query(np.column_stack([self.x[idx], self.y[idx]]), k=2)
        return float(np.median(dists[:, 1]))

    @property
    def vertex_count(self):
        return int(self.x.size)

    def is_loaded(self):
        return self._reference_tin is not None

    def load(self, max_nodes=None):
        """Build the reference TIN; ``max_nodes`` caps its vertex count."""
        factor = 1.0
        if max_nodes is not None and self.vertex_count > max_nodes:
            factor = self.vertex_count / float(max_nodes)
        self._reference_tin = self.build_reduced_tin(factor)
        self.reference_reduction_factor = factor
        logger.info('Model %s loaded: %d samples, reference reduction %.1f',
                    self.name, self.vertex_count, factor)
        return self

    def get_reference_tin(self):
        return self._reference_tin

    def build_reduced_tin(self, reduction_factor):
        """Build a TIN over roughly ``n / reduction_factor`` evenly spread samples."""
        if reduction_factor < 1.0:
            raise ValueError('reduction factor must be >= 1.0')
        n_keep = max(3, int(round(self.vertex_count / float(reduction_factor))))
        pts = np.column_stack([self.x, self.y])
        idx = sample_evenly(pts, max_nodes=n_keep)
        return Tin(self.x[idx], self.y[idx], self.z[idx], index=idx)

    def get_formatted_x(self, x):
        return f"{x:11.2f}"

    def get_formatted_y(self, y):
        return f"{y:11.2f}"

    def get_formatted_coordinates(self, x, y):
        return f"{x:.2f}, {y:.2f}"
