"""
wireframe.py

Clipped wireframe rendering of a TIN into a viewport-sized RGBA image.

Edges are fetched once from the TIN and used for everything: drawing the
line segments and finding the vertices to mark. A bitmap keyed by vertex
index records which vertices are inside the drawing area; clearing a
vertex's entry as it is drawn means a vertex shared by many edges is
marked exactly once. Vertices with a negative index (perimeter samples)
cannot live in the bitmap; they are tracked by identity and never
labelled.
"""
from dataclasses import dataclass
import time
import logging

import numpy as np

from tinshade.canvas import Canvas
from tinshade.palette import get_palette_by_name

logger = logging.getLogger(__name__)

MARKER_OFFSET = 2
MARKER_SIZE = 5


@dataclass
class WireframeResult:
    image: object
    n_vertices: int
    n_markers: int
    elapsed_ms: float


def _palette_for(view):
    if view.palette_for_wireframe:
        return get_palette_by_name(view.palette)
    return None


def _label(vertex, index_labeling):
    if index_labeling:
        return str(vertex.index)
    return f"{vertex.z:5.3f}"


def _draw_marker(canvas, viewport, vertex, palette, zmin, zmax, labeling, index_labeling):
    px, py = viewport.model_to_viewport(vertex.x, vertex.y)
    px = float(px)
    py = float(py)
    if palette is not None:
        canvas.set_color(palette.color_for(vertex.z, zmin, zmax))
    canvas.fill_ellipse(px - MARKER_OFFSET, py - MARKER_OFFSET, MARKER_SIZE, MARKER_SIZE)
    if labeling and vertex.index >= 0:
        canvas.text(px + 3, py - 13, _label(vertex, index_labeling))


def max_vertex_index(edges):
    """Largest vertex index referenced by ``edges``; absent endpoints are ignored."""
    max_index = 0
    for e in edges:
        for v in (e.a, e.b):
            if v is not None and v.index > max_index:
                max_index = v.index
    return max_index


def render_wireframe(viewport, edges, view, zmin, zmax):
    """Render the edges and/or vertices of a TIN.

    Parameters
    - viewport: `Viewport` giving the transform and visible window
    - edges: sequence of `Edge` (ghost edges are skipped)
    - view: `ViewOptions`
    - zmin, zmax: value range for palette colouring

    Returns a `WireframeResult`, or None when neither edges nor vertices
    are selected for drawing.
    """
    if not (view.edges or view.vertices):
        return None

    t0 = time.perf_counter()
    edges = list(edges)
    canvas = Canvas(viewport.width, viewport.height)
    canvas.set_color(view.foreground)
    palette = _palette_for(view)

    bitmap = np.zeros(max_vertex_index(edges) + 1, dtype=bool)
    unindexed = set()
    n_included = 0

    if view.edges:
        for e in edges:
            a, b = e.a, e.b
            if a is None or b is None:
                continue
            a_mask = viewport.outcode(a.x, a.y)
            b_mask = viewport.outcode(b.x, b.y)
            if a_mask & b_mask:
                # unambiguously off the display
                continue
            for v, mask in ((a, a_mask), (b, b_mask)):
                if mask == 0:
                    n_included += 1
                    if v.index >= 0:
                        bitmap[v.index] = True
                    else:
                        unindexed.add(v)
            if palette is not None:
                canvas.set_color(palette.color_for(0.5 * (a.z + b.z), zmin, zmax))
            (x0, x1), (y0, y1) = viewport.model_to_viewport(
                np.array([a.x, b.x]), np.array([a.y, b.y]))
            canvas.line(x0, y0, x1, y1)
    else:
        for e in edges:
            for v in (e.a, e.b):
                if v is None or not viewport.contains_model_point(v.x, v.y):
                    continue
                n_included += 1
                if v.index >= 0:
                    bitmap[v.index] = True
                else:
                    unindexed.add(v)

    n_markers = 0
    if view.vertices:
        canvas.set_color(view.foreground)
        for e in edges:
            for v in (e.a, e.b):
                if v is None:
                    continue
                if v.index >= 0:
                    if not bitmap[v.index]:
                        continue
                    bitmap[v.index] = False
                else:
                    if v not in unindexed:
                        continue
                    unindexed.discard(v)
                _draw_marker(canvas, viewport, v, palette, zmin, zmax,
                             view.labels, view.is_index_labeling)
                n_markers += 1

    elapsed = (time.perf_counter() - t0) * 1000.0
    logger.debug('wireframe rendered: %d vertices included, %d markers, %.1f ms',
                 n_included, n_markers, elapsed)
    return WireframeResult(canvas.image, n_included, n_markers, elapsed)


def render_points_only(viewport, vertices, view, zmin, zmax):
    """Render sample points without a TIN.

    Each vertex is mapped to the viewport and drawn when it falls within
    [0, width] x [0, height].
    """
    t0 = time.perf_counter()
    canvas = Canvas(viewport.width, viewport.height)
    canvas.set_color(view.foreground)
    palette = _palette_for(view)

    n_markers = 0
    for v in vertices:
        px, py = viewport.model_to_viewport(v.x, v.y)
        if 0 <= px <= viewport.width and 0 <= py <= viewport.height:
            _draw_marker(canvas, viewport, v, palette, zmin, zmax,
                         view.labels, view.is_index_labeling)
            n_markers += 1

    elapsed = (time.perf_counter() - t0) * 1000.0
    return WireframeResult(canvas.image, n_markers, n_markers, elapsed)
