"""
grid.py

Row-parallel sampling of the interpolation grid.

The grid is a float32 array of shape (height, width, 3) holding, for each
pixel centre, the interpolated value and the partial derivatives dz/dx and
dz/dy. Every cell starts as NaN ("not computed"). Work is split into
disjoint row ranges, so the builders never write the same cell and need
no locking once the buffer exists.

Rows are sampled along the model-space line through the pixel-row centre.
Cells whose model coordinates fall outside the model bounds, cells outside
the TIN hull and rows never reached because of cancellation all stay NaN.
"""
from concurrent.futures import ThreadPoolExecutor, wait
import threading
import logging

import numpy as np

from tinshade.config import GRID_BUILD
from tinshade.utils import safe_log_exception

logger = logging.getLogger(__name__)


def allocate_grid(width, height):
    """Return a NaN-filled (height, width, 3) float32 grid."""
    return np.full((int(height), int(width), 3), np.nan, dtype=np.float32)


def partition_rows(height, rows_per_task=None):
    """Split ``height`` rows into disjoint (row0, n_rows) ranges."""
    step = max(1, int(rows_per_task or GRID_BUILD['rows_per_task']))
    return [(r, min(step, height - r)) for r in range(0, int(height), step)]


def build_grid_rows(grid, viewport, bounds, sampler, row0, n_rows, is_cancelled=None):
    """Fill rows [row0, row0 + n_rows) of ``grid``.

    Parameters
    - grid: array from `allocate_grid`, written in place
    - viewport: `Viewport` used to map pixel rows into model space
    - bounds: model (min_x, min_y, max_x, max_y)
    - sampler: object with `sample(x, y) -> (z, dzdx, dzdy)`
    - is_cancelled: optional callable polled after every row

    Returns (rows_processed, zmin, zmax) where zmin/zmax span the finite
    values written (inf/-inf when none).
    """
    min_x, min_y, max_x, max_y = bounds
    width = viewport.width
    row_limit = min(row0 + n_rows, viewport.height)
    zmin = np.inf
    zmax = -np.inf
    rows_done = 0

    for i_row in range(row0, row_limit):
        x0, x1, y = viewport.row_endpoints(i_row)
        rows_done += 1
        if min_y <= y <= max_y:
            dx = (x1 - x0) / width
            xs = (np.arange(width) + 0.5) * dx + x0
            cols = np.nonzero((xs >= min_x) & (xs <= max_x))[0]
            row = grid[i_row]
            for i_col in cols:
                z, zx, zy = sampler.sample(float(xs[i_col]), y)
                row[i_col, 0] = z
                row[i_col, 1] = zx
                row[i_col, 2] = zy
                if z < zmin:
                    zmin = z
                if z > zmax:
                    zmax = z
        if is_cancelled is not None and is_cancelled():
            logger.debug('grid rows cancelled after row %d', i_row)
            break

    return rows_done, float(zmin), float(zmax)


class GridBuildTask:
    """Builds a composite's grid with a fixed pool of worker threads.

    Each worker fills one disjoint row range; the task waits for all of
    them before the grid is finalized and composited. `cancel()` may be
    called from any thread; workers stop at their next row boundary and a
    cancelled build is never marked complete.
    """

    def __init__(self, composite, hillshade=None, n_workers=None, rows_per_task=None):
        self.composite = composite
        self.hillshade = composite.view.hillshade if hillshade is None else bool(hillshade)
        self.n_workers = int(n_workers or GRID_BUILD['n_workers'])
        self.rows_per_task = rows_per_task
        self._cancel = threading.Event()

    def cancel(self):
        self._cancel.set()

    def is_cancelled(self):
        return self._cancel.is_set()

    def run(self):
        """Build, finalize and composite the grid.

        Returns the raster image, or None when the build was cancelled or no
        interpolation source is available.
        """
        c = self.composite
        sampler = c.make_grid_sampler(self.hillshade)
        if sampler is None:
            logger.warning('grid build skipped: no interpolating TIN available')
            return None

        c.start_grid_build_timer()
        ranges = partition_rows(c.height, self.rows_per_task)
        logger.debug('grid build: %d row ranges, %d workers, hillshade=%s',
                     len(ranges), self.n_workers, self.hillshade)
        with ThreadPoolExecutor(max_workers=self.n_workers, thread_name_prefix='grid') as pool:
            futures = [pool.submit(c.build_grid, row0, n_rows, self.hillshade, self, sampler)
                       for row0, n_rows in ranges]
            done, _ = wait(futures)
        for f in done:
            exc = f.exception()
            if exc is not None:
                safe_log_exception('grid row worker failed', exc, task=c.task_index)
                raise exc

        if self.is_cancelled():
            logger.info('grid build cancelled (task %d)', c.task_index)
            return None
        c.stop_grid_build_timer()
        return c.transfer_grid_to_raster_image()
