"""
interpolators.py

The two grid sampling backends behind one interface.

Each sampler exposes `sample(x, y) -> (z, dzdx, dzdy)` and
`was_target_exterior()`. Values that cannot be computed are NaN; the
natural-neighbour backend never produces derivatives.
"""
import math

from tinshade.config import GWR_SETTINGS
from tinshade.gwr import GwrTinInterpolator, SurfaceType, BandwidthMethod
from tinshade.natural_neighbor import NaturalNeighborInterpolator

NAN = float('nan')


class RegressionSampler:
    """Quadratic-with-cross-terms regression, fixed proportional bandwidth."""
    computes_derivatives = True

    def __init__(self, tin, bandwidth=None, interpolator=None):
        # an interpolator bound to the same TIN may be shared; fit state is per thread
        self.interpolator = interpolator if interpolator is not None else GwrTinInterpolator(tin)
        self.bandwidth = GWR_SETTINGS['grid_bandwidth'] if bandwidth is None else bandwidth

    def was_target_exterior(self):
        return self.interpolator.was_target_exterior()

    def sample(self, x, y):
        z = self.interpolator.interpolate(
            SurfaceType.QUADRATIC_WITH_CROSS_TERMS,
            BandwidthMethod.FIXED_PROPORTIONAL, self.bandwidth, x, y)
        if self.interpolator.was_target_exterior() or math.isnan(z):
            return NAN, NAN, NAN
        beta = self.interpolator.current_surface().coefficients
        return z, float(beta[1]), float(beta[2])


class NaturalNeighborSampler:
    """Sibson natural-neighbour interpolation; value channel only."""
    computes_derivatives = False

    def __init__(self, tin):
        self.interpolator = NaturalNeighborInterpolator(tin)

    def was_target_exterior(self):
        return self.interpolator.was_target_exterior()

    def sample(self, x, y):
        return self.interpolator.interpolate(x, y), NAN, NAN


def select_sampler(tin, derivatives, interpolator=None):
    """Pick the backend: regression when derivatives are needed (hillshade)."""
    if derivatives:
        return RegressionSampler(tin, interpolator=interpolator)
    return NaturalNeighborSampler(tin)
