import numpy as np
import pytest

from tinshade.model import SurfaceModel, sample_evenly
from tinshade.tests.fixtures.surface_fixture import make_grid_points, tilted_model


def test_sample_evenly_small():
    pts = np.arange(20).reshape((10, 2)).astype(float)
    out = sample_evenly(pts, 5)
    assert out.shape[0] == 5
    assert np.all(np.diff(out) > 0)


def test_model_metadata():
    m = tilted_model(a=1.0, b=0.0, c=0.0)
    assert m.vertex_count == 121
    assert (m.min_x, m.max_x, m.min_y, m.max_y) == (0.0, 10.0, 0.0, 10.0)
    assert (m.min_z, m.max_z) == (0.0, 10.0)
    assert m.area == pytest.approx(100.0)
    assert m.nominal_point_spacing == pytest.approx(1.0)
    assert m.get_formatted_x(3.14159) == '       3.14'
    assert not m.is_loaded()


def test_load_with_cap_sets_reduction_factor():
    m = tilted_model()
    m.load(max_nodes=40)
    assert m.is_loaded()
    assert m.reference_reduction_factor == pytest.approx(121 / 40.0)
    assert m.get_reference_tin().vertex_count <= 40


def test_reduced_tin_keeps_indices():
    m = tilted_model()
    tin = m.build_reduced_tin(3.0)
    assert tin.vertex_count == 40
    idx = np.array([v.index for v in tin.vertices])
    assert np.allclose(m.x[idx], tin.x)
    with pytest.raises(ValueError):
        m.build_reduced_tin(0.5)


def test_mismatched_arrays_rejected():
    xs, ys = make_grid_points(nx=3, ny=3)
    with pytest.raises(ValueError):
        SurfaceModel('bad', xs, ys, np.zeros(4))
