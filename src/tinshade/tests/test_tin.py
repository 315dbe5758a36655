import numpy as np
import pytest

from tinshade.tin import Tin, Vertex
from tinshade.tests.fixtures.surface_fixture import make_grid_points


def _square_tin():
    xs, ys = make_grid_points(nx=3, ny=3, extent=(0.0, 0.0, 2.0, 2.0))
    return Tin(xs, ys, xs + ys)


def test_edges_unique_plus_ghosts():
    tin = _square_tin()
    edges = tin.get_edges()
    real = [e for e in edges if not e.is_ghost]
    ghosts = [e for e in edges if e.is_ghost]
    keys = {tuple(sorted((e.a.index, e.b.index))) for e in real}
    assert len(keys) == len(real)
    # 3x3 lattice: 4 squares, each with a diagonal -> 16 edges
    assert len(real) == 16
    # 8 perimeter vertices (qhull may report collinear hull points differently)
    assert 4 <= len(ghosts) <= 8


def test_point_locate_interior_and_exterior():
    tin = _square_tin()
    nev = tin.point_locate(0.9, 1.1)
    assert nev.is_interior
    assert (nev.nearest_vertex.x, nev.nearest_vertex.y) == (1.0, 1.0)
    assert nev.distance == pytest.approx(np.hypot(0.1, 0.1))
    assert nev.edge.a is not None and nev.edge.b is not None

    out = tin.point_locate(3.0, 1.0)
    assert not out.is_interior
    assert out.nearest_vertex.x == 2.0


def test_is_interior():
    tin = _square_tin()
    assert tin.is_interior(1.5, 0.5)
    assert not tin.is_interior(-0.1, 0.5)


def test_from_vertices_keeps_indices():
    vs = [Vertex(0.0, 0.0, 1.0, 7), Vertex(1.0, 0.0, 2.0, 3), Vertex(0.0, 1.0, 3.0, -1)]
    tin = Tin.from_vertices(vs)
    assert sorted(v.index for v in tin.vertices) == [-1, 3, 7]


def test_degenerate_input_rejected():
    with pytest.raises(ValueError):
        Tin([0.0, 1.0], [0.0, 1.0], [0.0, 0.0])
    with pytest.raises(ValueError):
        Tin([0.0, 1.0, 2.0], [0.0, 1.0, 2.0], [0.0, 0.0, 0.0])
