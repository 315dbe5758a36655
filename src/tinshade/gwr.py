"""
gwr.py

Geographically weighted regression over the vertices of a TIN.

For a query point the k nearest vertices are fitted with a polynomial
surface using Gaussian kernel weights. The fit is made in coordinates
centred on the query point, so the coefficients read directly as the
value and the partial derivatives at that point:

    z(dx, dy) = b0 + b1*dx + b2*dy + b3*dx^2 + b4*dy^2 + b5*dx*dy

    b0 = z, b1 = dz/dx, b2 = dz/dy, b3 = zxx/2, b4 = zyy/2, b5 = zxy

Coefficients not used by a simpler surface type are reported as zero.

The state of the most recent fit (exterior flag, coefficients, residual
statistics) is kept per thread, so one interpolator may be shared by the
grid workers and the point query.
"""
from dataclasses import dataclass
from enum import Enum
import math
import threading
import logging

import numpy as np
from scipy import stats

from tinshade.config import GWR_SETTINGS

logger = logging.getLogger(__name__)


class SurfaceType(Enum):
    PLANAR = 3
    QUADRATIC = 5
    QUADRATIC_WITH_CROSS_TERMS = 6

    @property
    def n_terms(self):
        return self.value


class BandwidthMethod(Enum):
    FIXED_PROPORTIONAL = 1   # parameter x mean neighbour distance over the whole TIN
    ADAPTIVE = 2             # parameter x mean distance of this query's neighbours


@dataclass
class SurfaceFit:
    """Result of one local regression."""
    coefficients: np.ndarray
    sample_count: int
    residual_variance: float
    leverage: float
    dof: int

    def prediction_half_range(self, alpha=0.05):
        """Half width of the (1 - alpha) prediction interval at the query point."""
        if self.dof <= 0 or not np.isfinite(self.residual_variance):
            return float('nan')
        t = stats.t.ppf(1.0 - alpha / 2.0, self.dof)
        return float(t * math.sqrt(self.residual_variance * (1.0 + self.leverage)))

    @property
    def slope(self):
        return float(math.hypot(self.coefficients[1], self.coefficients[2]))


def _design_matrix(u, v, n_terms):
    cols = [np.ones_like(u), u, v, u * u, v * v, u * v]
    return np.column_stack(cols[:n_terms])


class GwrTinInterpolator:
    """Local polynomial regression against the vertices of ``tin``."""

    def __init__(self, tin, n_neighbors=None, min_samples=None):
        self.tin = tin
        self.n_neighbors = int(n_neighbors or GWR_SETTINGS['n_neighbors'])
        self.min_samples = int(min_samples or GWR_SETTINGS['min_samples'])
        self._xy = np.column_stack([tin.x, tin.y])
        self._k = min(self.n_neighbors, tin.vertex_count)
        self._tree = tin.kdtree
        dists, _ = self._tree.query(self._xy, k=self._k)
        self._fixed_base = float(np.mean(dists[:, 1:])) if self._k > 1 else tin.nominal_spacing
        self._local = threading.local()

    def _set_state(self, exterior, surface):
        self._local.exterior = exterior
        self._local.surface = surface

    def was_target_exterior(self):
        return getattr(self._local, 'exterior', False)

    def current_surface(self):
        """The `SurfaceFit` of the latest successful query on this thread, or None."""
        return getattr(self._local, 'surface', None)

    def get_current_surface_gwr(self):
        return self.current_surface()

    def get_slope(self):
        s = self.current_surface()
        return float('nan') if s is None else s.slope

    def get_sample_count(self):
        s = self.current_surface()
        return 0 if s is None else s.sample_count

    def interpolate(self, surface_type, bandwidth_method, bandwidth_param, x, y):
        """Fit a local surface at (x, y) and return its value.

        Returns NaN when the point lies outside the TIN hull (see
        `was_target_exterior`) or when the fit is undefined.
        """
        if not self.tin.is_interior(x, y):
            self._set_state(True, None)
            return float('nan')

        dists, idx = self._tree.query([x, y], k=self._k)
        dists = np.atleast_1d(dists)
        idx = np.atleast_1d(idx)
        n_terms = surface_type.n_terms
        if idx.size < max(self.min_samples, n_terms + 1):
            self._set_state(False, None)
            return float('nan')

        if bandwidth_method is BandwidthMethod.ADAPTIVE:
            h = bandwidth_param * float(np.mean(dists))
        else:
            h = bandwidth_param * self._fixed_base
        if not h > 0:
            self._set_state(False, None)
            return float('nan')

        u = (self.tin.x[idx] - x) / h
        v = (self.tin.y[idx] - y) / h
        z = self.tin.z[idx]
        w = np.exp(-0.5 * (dists / h) ** 2)

        X = _design_matrix(u, v, n_terms)
        sw = np.sqrt(w)
        A = X * sw[:, None]
        b = z * sw
        beta, _, rank, _ = np.linalg.lstsq(A, b, rcond=None)
        if rank < n_terms:
            logger.debug('rank-deficient fit at (%.3f, %.3f): rank %d < %d', x, y, rank, n_terms)
            self._set_state(False, None)
            return float('nan')

        resid = z - X @ beta
        dof = idx.size - n_terms
        sigma2 = float(np.sum(w * resid * resid) / dof)
        leverage = float(np.linalg.pinv(A.T @ A)[0, 0])

        # back to model units
        scale = np.array([1.0, h, h, h * h, h * h, h * h])[:n_terms]
        coef = np.zeros(6)
        coef[:n_terms] = beta / scale
        self._set_state(False, SurfaceFit(coef, int(idx.size), sigma2, leverage, int(dof)))
        return float(coef[0])
