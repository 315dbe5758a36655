"""
geometry.py

Conversions between model coordinates and viewport pixel coordinates
using affine transforms, and clipping against the visible window.

Public names:
- `map_model_to_viewport(m2c, xs, ys)` -> (px, py)
- `map_viewport_to_model(c2m, px, py)` -> (xs, ys)
- `fit_transform_to_bounds(bounds, width, height)` -> (m2c, c2m)
- `Viewport` : fixed pixel size, transform pair and visible window

Only axis-aligned transforms (scale and translation, optionally with a
flipped y axis) are accepted. The visible window is derived from two
opposite viewport corners and each grid row is sampled along one model y,
both of which are wrong for a rotated or sheared transform.
"""
from typing import Tuple

import numpy as np
from affine import Affine

OUT_LEFT = 0b0010
OUT_RIGHT = 0b0001
OUT_BOTTOM = 0b0100
OUT_TOP = 0b1000


def is_axis_aligned(transform) -> bool:
    """True when ``transform`` has no rotation or shear component."""
    return transform.b == 0.0 and transform.d == 0.0


def map_model_to_viewport(m2c, xs, ys) -> Tuple[np.ndarray, np.ndarray]:
    """Apply the model-to-viewport transform to scalars or arrays."""
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    px = m2c.a * xs + m2c.b * ys + m2c.c
    py = m2c.d * xs + m2c.e * ys + m2c.f
    return px, py


def map_viewport_to_model(c2m, px, py) -> Tuple[np.ndarray, np.ndarray]:
    """Apply the viewport-to-model transform to scalars or arrays."""
    return map_model_to_viewport(c2m, px, py)


def fit_transform_to_bounds(bounds, width, height, margin=0.0):
    """Compute a transform pair that shows ``bounds`` inside a viewport.

    - bounds: (minx, miny, maxx, maxy) in model units
    - width, height: viewport size in pixels
    - margin: fraction of the extent added on each side

    Uses a single square scale so the model is not distorted, centres the
    model in the viewport and flips y so north is up.

    Returns: (m2c, c2m) `affine.Affine` instances.
    """
    minx, miny, maxx, maxy = [float(v) for v in bounds]
    span_x = max(maxx - minx, 1e-12)
    span_y = max(maxy - miny, 1e-12)
    minx -= margin * span_x
    maxx += margin * span_x
    miny -= margin * span_y
    maxy += margin * span_y
    span_x = maxx - minx
    span_y = maxy - miny

    scale = min(width / span_x, height / span_y)
    cx = 0.5 * (minx + maxx)
    cy = 0.5 * (miny + maxy)
    m2c = Affine(scale, 0.0, 0.5 * width - scale * cx,
                 0.0, -scale, 0.5 * height + scale * cy)
    return m2c, ~m2c


class Viewport:
    """Pixel viewport bound to a model through an affine transform pair.

    The visible window (vx0, vy0)-(vx1, vy1) is computed once, at
    construction, by mapping the lower-left (0, height) and upper-right
    (width, 0) viewport corners into model space. It never changes for the
    life of the instance.
    """

    def __init__(self, width, height, m2c, c2m=None):
        if int(width) <= 0 or int(height) <= 0:
            raise ValueError('viewport width and height must be positive')
        if m2c is None:
            raise ValueError('a model-to-viewport transform is required')
        if not is_axis_aligned(m2c):
            raise ValueError('rotated or sheared transforms are not supported')
        self.width = int(width)
        self.height = int(height)
        self.m2c = m2c
        self.c2m = ~m2c if c2m is None else c2m

        (x0, x1), (y0, y1) = map_viewport_to_model(
            self.c2m, np.array([0.0, self.width]), np.array([self.height, 0.0]))
        # a flipped x or y axis still yields a proper min/max window
        self.vx0, self.vx1 = float(min(x0, x1)), float(max(x0, x1))
        self.vy0, self.vy1 = float(min(y0, y1)), float(max(y0, y1))

    def visible_window(self):
        return self.vx0, self.vy0, self.vx1, self.vy1

    def model_to_viewport(self, xs, ys):
        return map_model_to_viewport(self.m2c, xs, ys)

    def viewport_to_model(self, px, py):
        return map_viewport_to_model(self.c2m, px, py)

    def contains_model_point(self, x, y) -> bool:
        """Inclusive test of a model point against the visible window."""
        return self.vx0 <= x <= self.vx1 and self.vy0 <= y <= self.vy1

    #       1010     1000    1001
    #       0010     0000    0001
    #       0110     0100    0101
    def outcode(self, x, y) -> int:
        """Cohen-Sutherland code of a model point. Boundary points are inside."""
        mask = 0
        if x < self.vx0:
            mask |= OUT_LEFT
        elif x > self.vx1:
            mask |= OUT_RIGHT
        if y < self.vy0:
            mask |= OUT_BOTTOM
        elif y > self.vy1:
            mask |= OUT_TOP
        return mask

    def outcodes(self, xs, ys) -> np.ndarray:
        """Vectorized `outcode` for arrays of model coordinates."""
        xs = np.asarray(xs, dtype=float)
        ys = np.asarray(ys, dtype=float)
        codes = np.zeros(xs.shape, dtype=np.int8)
        codes[xs < self.vx0] |= OUT_LEFT
        codes[xs > self.vx1] |= OUT_RIGHT
        codes[ys < self.vy0] |= OUT_BOTTOM
        codes[ys > self.vy1] |= OUT_TOP
        return codes

    def row_endpoints(self, i_row):
        """Model coordinates of the left and right ends of a pixel row centre line.

        Returns (x0, x1, y); for an axis-aligned transform both ends share y.
        """
        (x0, x1), (y0, y1) = self.viewport_to_model(
            np.array([0.0, float(self.width)]), np.array([i_row + 0.5, i_row + 0.5]))
        return float(x0), float(x1), 0.5 * float(y0 + y1)
