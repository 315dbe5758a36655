import numpy as np
import pytest
from affine import Affine

from tinshade.config import ViewOptions
from tinshade.geometry import Viewport
from tinshade.tin import Vertex, Edge
from tinshade.wireframe import render_wireframe, render_points_only, max_vertex_index


def _viewport():
    # model window [0, 20] x [0, 20]
    return Viewport(40, 40, Affine(2.0, 0.0, 0.0, 0.0, -2.0, 40.0))


def _star(n):
    hub = Vertex(10.0, 10.0, 1.0, 0)
    spokes = []
    for k in range(n):
        ang = 2.0 * np.pi * k / n
        spokes.append(Vertex(10.0 + 5.0 * np.cos(ang), 10.0 + 5.0 * np.sin(ang), 2.0, k + 1))
    return hub, [Edge(hub, s) for s in spokes]


@pytest.mark.parametrize('n', [1, 3, 8])
def test_shared_vertex_drawn_once(n):
    _, edges = _star(n)
    res = render_wireframe(_viewport(), edges, ViewOptions(vertices=True), 0.0, 3.0)
    assert res.n_markers == n + 1
    # every endpoint inside the window is counted, once per edge
    assert res.n_vertices == 2 * n


def test_vertices_without_edges_use_window_test():
    hub, edges = _star(4)
    outside = Vertex(30.0, 10.0, 0.0, 9)
    edges.append(Edge(hub, outside))
    view = ViewOptions(edges=False, vertices=True)
    res = render_wireframe(_viewport(), edges, view, 0.0, 3.0)
    assert res.n_markers == 5
    img = np.asarray(res.image)
    # no lines drawn: the midpoint of a spoke stays transparent
    assert img[20, 25, 3] == 0
    assert img[20, 20, 3] > 0


def test_ghost_edges_skipped():
    v = Vertex(10.0, 10.0, 1.0, 0)
    res = render_wireframe(_viewport(), [Edge(v, None), Edge(None, v)],
                           ViewOptions(vertices=True), 0.0, 1.0)
    assert res.n_markers == 0
    assert res.n_vertices == 0
    assert np.asarray(res.image)[:, :, 3].max() == 0


def test_nothing_selected_short_circuits():
    _, edges = _star(3)
    assert render_wireframe(_viewport(), edges, ViewOptions(edges=False), 0.0, 1.0) is None


def test_offscreen_edge_rejected():
    a = Vertex(-10.0, 5.0, 0.0, 0)
    b = Vertex(-2.0, 15.0, 0.0, 1)
    res = render_wireframe(_viewport(), [Edge(a, b)], ViewOptions(vertices=True), 0.0, 1.0)
    assert res.n_markers == 0
    assert np.asarray(res.image)[:, :, 3].max() == 0


def test_crossing_edge_drawn_without_markers():
    a = Vertex(-10.0, 10.0, 0.0, 0)
    b = Vertex(30.0, 10.0, 0.0, 1)
    res = render_wireframe(_viewport(), [Edge(a, b)], ViewOptions(vertices=True), 0.0, 1.0)
    assert res.n_markers == 0
    assert np.asarray(res.image)[20, :, 3].max() > 0


def test_negative_index_vertex_drawn_once():
    perim = Vertex(5.0, 5.0, 0.0, -1)
    others = [Vertex(8.0, 5.0, 0.0, 0), Vertex(5.0, 8.0, 0.0, 1), Vertex(2.0, 5.0, 0.0, 2)]
    edges = [Edge(perim, o) for o in others]
    res = render_wireframe(_viewport(), edges, ViewOptions(vertices=True, labels=True), 0.0, 1.0)
    assert res.n_markers == 4


def test_max_vertex_index_ignores_absent():
    v = Vertex(0.0, 0.0, 0.0, 12)
    assert max_vertex_index([Edge(v, None), Edge(None, None)]) == 12
    assert max_vertex_index([]) == 0


def test_points_only_uses_viewport_bounds():
    pts = [Vertex(10.0, 10.0, 1.0, 0), Vertex(20.0, 20.0, 1.0, 1), Vertex(25.0, 10.0, 1.0, 2)]
    res = render_points_only(_viewport(), pts, ViewOptions(), 0.0, 1.0)
    assert res.n_markers == 2


def test_palette_coloured_markers():
    _, edges = _star(3)
    view = ViewOptions(edges=False, vertices=True, palette_for_wireframe=True, palette='gray')
    res = render_wireframe(_viewport(), edges, view, 0.0, 2.0)
    img = np.asarray(res.image)
    # z = 2.0 is the top of the gray ramp
    assert tuple(img[20, 30, :3]) == (255, 255, 255)
