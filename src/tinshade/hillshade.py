"""
hillshade.py

Turns a finished interpolation grid into RGBA pixels.

Plain mode palette-maps the value channel, with unset cells painted in
the opaque "no data" colour. Hillshade mode lights the surface with a
single directional source: the normal at each cell is built from the
stored partial derivatives, and the intensity is

    ambient                              if cos(normal, light) < 0
    ambient + (1 - ambient) * cosine     otherwise

which either scales the palette colour or becomes a gray level. Unset
cells are fully transparent in hillshade mode.
"""
import math
import logging

import numpy as np
from numba import njit, prange

from tinshade.palette import get_palette_by_name, NO_DATA_RGBA, TRANSPARENT_RGBA

logger = logging.getLogger(__name__)


def light_vector(azimuth, elevation):
    """Unit vector pointing at the light source.

    ``azimuth`` is a compass bearing in degrees (0 = north, clockwise) and
    ``elevation`` the angle above the horizon in degrees.
    """
    theta = math.radians(90.0 - azimuth)
    phi = math.radians(elevation)
    return np.array([math.cos(theta) * math.cos(phi),
                     math.sin(theta) * math.cos(phi),
                     math.sin(phi)])


@njit(parallel=True, cache=True)
def _shade_kernel(grid, lx, ly, lz, ambient):
    n_rows = grid.shape[0]
    n_cols = grid.shape[1]
    direct = 1.0 - ambient
    out = np.empty((n_rows, n_cols), dtype=np.float64)
    for i in prange(n_rows):
        for j in range(n_cols):
            z = grid[i, j, 0]
            if np.isnan(z):
                out[i, j] = np.nan
                continue
            fx = -grid[i, j, 1]
            fy = -grid[i, j, 2]
            # cells without derivatives are treated as level
            if np.isnan(fx) or np.isnan(fy):
                fx = 0.0
                fy = 0.0
            s = math.sqrt(fx * fx + fy * fy + 1.0)
            cosine = (fx * lx + fy * ly + lz) / s
            if cosine < 0.0:
                out[i, j] = ambient
            else:
                out[i, j] = ambient + direct * cosine
    return out


def shade_intensity(grid, light, ambient):
    """Per-cell light intensity in [ambient, 1]; NaN where the value channel is NaN.

    ``grid`` may also be a single (value, dzdx, dzdy) triple, in which case a
    float is returned.
    """
    grid = np.asarray(grid, dtype=np.float64)
    single = grid.ndim == 1
    if single:
        grid = grid.reshape(1, 1, 3)
    lx, ly, lz = (float(c) for c in light)
    out = _shade_kernel(np.ascontiguousarray(grid), lx, ly, lz, float(ambient))
    return float(out[0, 0]) if single else out


def grid_to_rgba(grid, view, zmin, zmax):
    """Composite ``grid`` into a (height, width, 4) uint8 array using ``view``."""
    palette = get_palette_by_name(view.palette)
    values = grid[:, :, 0]
    no_data = np.isnan(values)

    if not view.hillshade:
        rgba = palette.rgba_array(values, zmin, zmax)
        rgba[no_data] = NO_DATA_RGBA
        return rgba

    light = light_vector(view.azimuth, view.elevation)
    intensity = shade_intensity(grid, light, view.ambient_fraction)
    intensity = np.nan_to_num(intensity, nan=0.0)
    rgba = np.empty(values.shape + (4,), dtype=np.uint8)
    if view.raster:
        rgb = palette.rgba_array(values, zmin, zmax)[:, :, :3].astype(np.float64)
        rgba[:, :, :3] = (rgb * intensity[:, :, None]).astype(np.uint8)
    else:
        gray = (intensity * 255.0).astype(np.uint8)
        rgba[:, :, 0] = gray
        rgba[:, :, 1] = gray
        rgba[:, :, 2] = gray
    rgba[:, :, 3] = 255
    rgba[no_data] = TRANSPARENT_RGBA
    logger.debug('hillshade composited: az=%.1f el=%.1f ambient=%.2f',
                 view.azimuth, view.elevation, view.ambient_fraction)
    return rgba
