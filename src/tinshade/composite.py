"""
composite.py

The composite ties one render task together: a surface model, a fixed
viewport and transform pair, the TINs used for the wireframe and the
raster, the interpolation source, the interpolation grid and the images
produced from them.

A composite is created per render task and discarded when superseded.
`Composite.from_previous` builds the successor, carrying forward the
transform, the TIN selection, the range of visible samples and, when it
was finished, the grid, so a change of rendering options does not require
resampling. Rendering options are always supplied fresh.

Shared state touched by the grid workers (the visible-sample range and
the grid-complete flag) is guarded by the composite's lock; the TIN
selection is guarded by its `InterpolationSourceSelector`.
"""
import math
import threading
import time
import logging

import numpy as np
from affine import Affine
from PIL import Image

from tinshade import wireframe
from tinshade.geometry import Viewport, fit_transform_to_bounds
from tinshade.grid import allocate_grid, build_grid_rows
from tinshade.hillshade import grid_to_rgba
from tinshade.interpolators import select_sampler
from tinshade.legend import render_legend
from tinshade.query import perform_query, model_data_string
from tinshade.report import model_and_rendering_report
from tinshade.selector import InterpolationSourceSelector

logger = logging.getLogger(__name__)


class Composite:
    """Rendering state for one viewport over one surface model.

    Parameters
    - model: `SurfaceModel`
    - view: `ViewOptions`
    - width, height: viewport size in pixels
    - m2c, c2m: model-to-viewport transform and its inverse; when omitted
      the transform is fitted to the model bounds
    - task_index: identifier of the render task that created the composite
    """

    def __init__(self, model, view, width, height, m2c=None, c2m=None, task_index=0):
        if model is None:
            raise ValueError('Null model not allowed')
        if view is None:
            raise ValueError('Null view not allowed')
        if m2c is None:
            m2c, c2m = fit_transform_to_bounds(
                (model.min_x, model.min_y, model.max_x, model.max_y), width, height)

        self.model = model
        self.view = view
        self.task_index = int(task_index)
        self.viewport = Viewport(width, height, m2c, c2m)
        self.width = self.viewport.width
        self.height = self.viewport.height

        self._lock = threading.RLock()
        self.selector = InterpolationSourceSelector()
        self.wireframe_tin = None
        self.raster_tin = None
        self.reduction_for_wireframe = 0
        self.reduction_for_raster = 0

        self._z_vis_min = math.inf
        self._z_vis_max = -math.inf

        self._grid = None
        self._grid_complete = False
        self.grid_includes_hillshade = False
        self._raster_t0 = None
        self.raster_ms = None
        self.raster_image = None

        self.wireframe_ms = None
        self.n_vertices_in_wireframe = 0
        self.wireframe_image = None

        if model.is_loaded():
            self.selector.submit_candidate(
                model.get_reference_tin(), model.reference_reduction_factor)
        self._report = ''
        self.update_report()

    @classmethod
    def from_previous(cls, prev, view, task_index):
        """Build a successor of ``prev`` that reuses its data products."""
        c = cls(prev.model, view, prev.width, prev.height,
                prev.viewport.m2c, prev.viewport.c2m, task_index)
        c.wireframe_tin = prev.wireframe_tin
        c.raster_tin = prev.raster_tin
        c.reduction_for_wireframe = prev.reduction_for_wireframe
        c.reduction_for_raster = prev.reduction_for_raster
        with prev._lock:
            source = prev.selector.current()
            z_min, z_max = prev._z_vis_min, prev._z_vis_max
            if prev._grid_complete:
                c._grid = prev._grid
                c._grid_complete = True
                c.grid_includes_hillshade = prev.grid_includes_hillshade
                c.raster_ms = prev.raster_ms
            report = prev._report
        if source is not None and source.reduction_factor < c.selector.reduction_factor:
            c.selector = InterpolationSourceSelector(source)
        c._z_vis_min, c._z_vis_max = z_min, z_max
        c._report = report
        return c

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------
    def visible_window(self):
        return self.viewport.visible_window()

    def get_model_to_composite_transform(self):
        return Affine(*self.viewport.m2c[:6])

    def get_composite_to_model_transform(self):
        return Affine(*self.viewport.c2m[:6])

    def is_ready(self):
        return self.model.is_loaded() and self.selector.current() is not None

    def set_wireframe_tin(self, tin, reduction=0):
        self.wireframe_tin = tin
        self.reduction_for_wireframe = int(round(reduction))

    def set_raster_tin(self, tin, reduction=0):
        self.raster_tin = tin
        self.reduction_for_raster = int(round(reduction))

    def submit_candidate_tin_for_interpolation(self, tin, reduction_factor):
        return self.selector.submit_candidate(tin, reduction_factor)

    # ------------------------------------------------------------------
    # visible sample range
    # ------------------------------------------------------------------
    def record_range_of_visible_samples(self, z_min, z_max):
        """Widen the accumulated range of visible values; it never shrinks."""
        with self._lock:
            if z_min < self._z_vis_min:
                self._z_vis_min = z_min
            if z_max > self._z_vis_max:
                self._z_vis_max = z_max

    def get_range_of_visible_samples(self):
        """Return (min, max) of the values seen so far, or None."""
        with self._lock:
            if self._z_vis_min == math.inf:
                return None
            return self._z_vis_min, self._z_vis_max

    # ------------------------------------------------------------------
    # grid
    # ------------------------------------------------------------------
    def get_grid(self):
        """Return the grid, allocating it on first use."""
        with self._lock:
            if self._grid is None:
                self._grid = allocate_grid(self.width, self.height)
            return self._grid

    def is_grid_complete(self):
        with self._lock:
            return self._grid_complete

    def make_grid_sampler(self, hillshade):
        """Sampler bound to the current interpolation source, or None.

        The grid is always sampled from the selected source, so its reduction
        factor becomes the one reported for the raster.
        """
        source = self.selector.current()
        if source is None:
            return None
        with self._lock:
            self.reduction_for_raster = int(round(source.reduction_factor))
        return select_sampler(source.tin, hillshade, interpolator=source.interpolator)

    def start_grid_build_timer(self):
        self._raster_t0 = time.perf_counter()

    def build_grid(self, row0, n_rows, hillshade, task=None, sampler=None):
        """Fill rows [row0, row0 + n_rows) of the grid.

        Returns False when no interpolation source is available.
        """
        grid = self.get_grid()
        self.grid_includes_hillshade = bool(hillshade)
        if sampler is None:
            sampler = self.make_grid_sampler(hillshade)
        if sampler is None:
            logger.warning('grid rows %d..%d not built: no interpolating TIN',
                           row0, row0 + n_rows)
            return False

        m = self.model
        is_cancelled = task.is_cancelled if task is not None else None
        _, z_min, z_max = build_grid_rows(
            grid, self.viewport, (m.min_x, m.min_y, m.max_x, m.max_y),
            sampler, row0, n_rows, is_cancelled)
        if z_min <= z_max:
            self.record_range_of_visible_samples(z_min, z_max)
        return True

    def stop_grid_build_timer(self):
        """Mark the grid complete and fold its realized value range into the
        visible-sample range. Call only after all row builders have finished.
        """
        with self._lock:
            t1 = time.perf_counter()
            if self._raster_t0 is not None:
                self.raster_ms = (t1 - self._raster_t0) * 1000.0
            self._grid_complete = True
            values = self.get_grid()[:, :, 0]
            finite = values[np.isfinite(values)]
            if finite.size:
                self.record_range_of_visible_samples(float(finite.min()), float(finite.max()))
            self.update_report()
        logger.debug('grid complete (task %d): %.1f ms', self.task_index, self.raster_ms or 0.0)

    def palette_range(self):
        """Value range used to colour rasters: the view override or the model Z range."""
        rng = self.view.range_for_palette()
        if rng is not None:
            return rng
        return self.model.min_z, self.model.max_z

    def transfer_grid_to_raster_image(self):
        """Composite the grid into an RGBA image using the view options."""
        z_min, z_max = self.palette_range()
        rgba = grid_to_rgba(self.get_grid(), self.view, z_min, z_max)
        image = Image.fromarray(rgba, 'RGBA')
        with self._lock:
            self.raster_image = image
            self.update_report()
        return image

    # ------------------------------------------------------------------
    # wireframe
    # ------------------------------------------------------------------
    def _wireframe_source_tin(self):
        if self.wireframe_tin is not None:
            return self.wireframe_tin
        source = self.selector.current()
        return None if source is None else source.tin

    def render_wireframe(self):
        """Render edges and/or vertices of the wireframe TIN.

        Returns a Pillow image, or None when nothing is selected for drawing
        or no TIN is available.
        """
        with self._lock:
            self.wireframe_ms = None
            self.n_vertices_in_wireframe = 0
        tin = self._wireframe_source_tin()
        if tin is None:
            logger.warning('wireframe not rendered: no TIN available')
            return None
        result = wireframe.render_wireframe(
            self.viewport, tin.get_edges(), self.view, self.model.min_z, self.model.max_z)
        if result is None:
            return None
        with self._lock:
            self.wireframe_ms = result.elapsed_ms
            self.n_vertices_in_wireframe = result.n_vertices
            self.wireframe_image = result.image
            self.update_report()
        return result.image

    def render_wireframe_points_only(self, vertices):
        """Render sample points without a TIN."""
        result = wireframe.render_points_only(
            self.viewport, vertices, self.view, self.model.min_z, self.model.max_z)
        with self._lock:
            self.wireframe_ms = result.elapsed_ms
            self.n_vertices_in_wireframe = result.n_vertices
            self.wireframe_image = result.image
            self.update_report()
        return result.image

    # ------------------------------------------------------------------
    # queries, legend and report
    # ------------------------------------------------------------------
    def perform_query(self, x, y):
        return perform_query(self, x, y)

    def get_model_data_string_at_coordinates(self, x, y):
        return model_data_string(self, x, y)

    def render_legend(self, width=50, height=100, margin=5, frame=True):
        return render_legend(self.view, self.model, width, height, margin, frame)

    def update_report(self):
        with self._lock:
            stats = {
                'wireframe_ms': self.wireframe_ms,
                'wireframe_vertices': self.n_vertices_in_wireframe,
                'wireframe_reduction': self.reduction_for_wireframe,
                'raster_ms': self.raster_ms,
                'raster_reduction': self.reduction_for_raster,
            }
            self._report = model_and_rendering_report(
                self.model, stats, self.get_range_of_visible_samples())

    def get_model_and_rendering_report(self):
        with self._lock:
            return self._report
