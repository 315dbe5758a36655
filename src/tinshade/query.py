"""
query.py

Point queries against a composite: a local regression at one viewport
location, reported as plain text.

The regression uses the quadratic-with-cross-terms surface and an
adaptive bandwidth. From its coefficients (constant, zx, zy, zxx/2,
zyy/2, zxy) the report derives slope, profile and streamline curvature,
the steepest-descent direction and a prediction interval. Any derivation
that is undefined (a level surface has no descent direction and no
curvature along it) shows up as "nan" in the text; it never raises.
"""
from dataclasses import dataclass
from typing import Tuple
import math
import logging

import numpy as np

from tinshade.config import GWR_SETTINGS
from tinshade.gwr import SurfaceType, BandwidthMethod

logger = logging.getLogger(__name__)

DATA_NOT_AVAILABLE = 'Data not available. Model not loaded'


@dataclass
class QueryResult:
    composite_point: Tuple[float, float]
    model_point: Tuple[float, float]
    text: str


def surface_derivatives(beta):
    """Derive descent direction and curvature from regression coefficients.

    Returns a dict with zx, zy, slope, azimuth (degrees, counter-clockwise
    from the x axis), bearing (compass degrees), profile and streamline
    curvature. Undefined quantities are NaN.
    """
    zx = float(beta[1])
    zy = float(beta[2])
    zxx = 2.0 * float(beta[3])
    zyy = 2.0 * float(beta[4])
    zxy = float(beta[5])
    g2 = zx * zx + zy * zy
    with np.errstate(divide='ignore', invalid='ignore'):
        kp = np.float64(zxx * zx * zx + 2.0 * zxy * zx * zy + zyy * zy * zy) \
            / (np.float64(g2) * np.power(g2 + 1.0, 1.5))
        ks = np.float64(zx * zy * (zxx - zyy) + (zy * zy - zx * zx) * zxy) \
            / np.power(np.float64(g2), 1.5)
    if g2 > 0:
        azimuth = math.degrees(math.atan2(-zy, -zx))
        bearing = 90.0 - azimuth
        if bearing < 0:
            bearing += 360.0
    else:
        azimuth = bearing = float('nan')
    return {
        'zx': zx, 'zy': zy,
        'slope': math.hypot(zx, zy),
        'azimuth': azimuth,
        'bearing': bearing,
        'profile': float(kp),
        'streamline': float(ks),
    }


def _degrees(value, width, zero_pad=False):
    if not math.isfinite(value):
        return 'N/A'.rjust(width)
    return f"{int(value):0{width}d}" if zero_pad else f"{int(value):{width}d}"


def perform_query(composite, x, y):
    """Run a regression query at viewport point (x, y)."""
    mx, my = composite.viewport.viewport_to_model(x, y)
    mx = float(mx)
    my = float(my)
    composite_point = (float(x), float(y))
    model_point = (mx, my)

    source = composite.selector.current()
    if source is None:
        logger.warning('query at (%.1f, %.1f): no interpolating TIN available', x, y)
        return QueryResult(composite_point, model_point, DATA_NOT_AVAILABLE)

    model = composite.model
    nev = source.locator.point_locate(mx, my)
    gwr = source.interpolator
    z = gwr.interpolate(SurfaceType.QUADRATIC_WITH_CROSS_TERMS,
                        BandwidthMethod.ADAPTIVE, GWR_SETTINGS['query_bandwidth'],
                        mx, my)

    lines = ['Query/Regression Results',
             f"X:     {model.get_formatted_x(mx)}",
             f"Y:     {model.get_formatted_y(my)}"]
    if not nev.is_interior:
        lines.append('Query point is outside of TIN')
    elif math.isnan(z):
        lines.append('Z:     Not available')
    else:
        surface = gwr.current_surface()
        d = surface_derivatives(surface.coefficients)
        h = surface.prediction_half_range(GWR_SETTINGS['alpha'])
        v = nev.nearest_vertex
        lines += [
            f"Z:     {z:11.2f} +/- {h:4.2f}",
            f"Slope: {d['slope'] * 100:11.2f} %",
            'Curvature',
            f"  Profile:    {d['profile']:8.5f} (radian/unit)",
            f"  Streamline: {d['streamline']:8.5f} (radian/unit)",
            'Steepest Descent',
            f"  Azimuth:    {_degrees(d['azimuth'], 4)} deg",
            f"  Compass Brg: {_degrees(d['bearing'], 3, zero_pad=True)} deg",
            'Nearest Point',
            f"  Dist:  {nev.distance:11.2f} units",
            f"  X:     {model.get_formatted_x(v.x)}",
            f"  Y:     {model.get_formatted_y(v.y)}",
            f"  Z:     {v.z:11.2f}",
            f"  ID:    {v.index:8d}",
            '',
            f"Regression used {surface.sample_count} samples",
        ]
    return QueryResult(composite_point, model_point, '\n'.join(lines) + '\n')


def model_data_string(composite, x, y):
    """Short readout for viewport point (x, y): model coordinates and, when
    available, the interpolated value.
    """
    mx, my = composite.viewport.viewport_to_model(x, y)
    mx = float(mx)
    my = float(my)
    s = composite.model.get_formatted_coordinates(mx, my)
    if not composite.viewport.contains_model_point(mx, my):
        return s
    source = composite.selector.current()
    if source is None:
        return s
    z = source.interpolator.interpolate(
        SurfaceType.QUADRATIC_WITH_CROSS_TERMS,
        BandwidthMethod.FIXED_PROPORTIONAL, GWR_SETTINGS['grid_bandwidth'],
        mx, my)
    if math.isnan(z):
        return s + ' : N/A'
    return s + f" : {z:4.2f}"
