"""
selector.py

Tracks the best TIN available for interpolation.

Refinement TINs arrive over time, each tagged with a reduction factor
(1.0 = full resolution, larger = coarser). A candidate replaces the
current TIN only when its reduction factor is strictly lower. The TIN,
its reduction factor and the interpolator/locator bound to it are held
as one immutable snapshot, swapped under a lock, so readers never see an
old TIN paired with a new interpolator.
"""
from dataclasses import dataclass
import math
import threading
import logging

from tinshade.gwr import GwrTinInterpolator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterpolationSource:
    """Consistent snapshot of the active TIN and its bindings."""
    tin: object
    reduction_factor: float
    interpolator: GwrTinInterpolator
    locator: object


class InterpolationSourceSelector:

    def __init__(self, source=None):
        self._lock = threading.Lock()
        self._source = source

    @property
    def reduction_factor(self):
        with self._lock:
            return math.inf if self._source is None else self._source.reduction_factor

    def current(self):
        """Return the active `InterpolationSource`, or None when none is selected."""
        with self._lock:
            return self._source

    def submit_candidate(self, tin, reduction_factor):
        """Offer ``tin``; it is selected only if ``reduction_factor`` is lower than the current one.

        Returns True when the candidate was selected.
        """
        reduction_factor = float(reduction_factor)
        with self._lock:
            current = math.inf if self._source is None else self._source.reduction_factor
            if not reduction_factor < current:
                return False
            # the TIN is its own point locator
            self._source = InterpolationSource(
                tin, reduction_factor, GwrTinInterpolator(tin), tin)
        logger.debug('interpolating TIN replaced: reduction %.2f -> %.2f', current, reduction_factor)
        return True
