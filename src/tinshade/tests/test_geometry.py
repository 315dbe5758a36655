import numpy as np
import pytest
from affine import Affine

from tinshade import geometry
from tinshade.geometry import Viewport, fit_transform_to_bounds


def test_model_viewport_roundtrip():
    m2c, c2m = fit_transform_to_bounds((100.0, 200.0, 150.0, 260.0), 320, 240)
    xs = np.array([100.0, 125.3, 149.9])
    ys = np.array([200.0, 231.7, 259.2])
    px, py = geometry.map_model_to_viewport(m2c, xs, ys)
    x2, y2 = geometry.map_viewport_to_model(c2m, px, py)
    assert np.allclose(x2, xs)
    assert np.allclose(y2, ys)


def test_fit_transform_flips_y():
    m2c, _ = fit_transform_to_bounds((0.0, 0.0, 10.0, 10.0), 100, 100)
    _, py_low = geometry.map_model_to_viewport(m2c, 5.0, 0.0)
    _, py_high = geometry.map_model_to_viewport(m2c, 5.0, 10.0)
    assert py_low > py_high


def test_visible_window_from_corners():
    m2c = Affine(2.0, 0.0, 0.0, 0.0, -2.0, 40.0)
    vp = Viewport(40, 40, m2c)
    assert vp.visible_window() == pytest.approx((0.0, 0.0, 20.0, 20.0))


def test_outcode_boundary_is_inside():
    vp = Viewport(40, 40, Affine(2.0, 0.0, 0.0, 0.0, -2.0, 40.0))
    assert vp.outcode(0.0, 0.0) == 0
    assert vp.outcode(20.0, 20.0) == 0
    assert vp.outcode(0.0, 20.0) == 0
    assert vp.outcode(-0.001, 10.0) == geometry.OUT_LEFT
    assert vp.outcode(20.001, 10.0) == geometry.OUT_RIGHT
    assert vp.outcode(10.0, -1.0) == geometry.OUT_BOTTOM
    assert vp.outcode(30.0, 30.0) == geometry.OUT_RIGHT | geometry.OUT_TOP


def test_trivial_reject_when_same_side():
    vp = Viewport(40, 40, Affine(2.0, 0.0, 0.0, 0.0, -2.0, 40.0))
    a = vp.outcode(-5.0, 1.0)
    b = vp.outcode(-1.0, 30.0)
    assert a & b
    # an edge crossing the window is not rejected
    assert not (vp.outcode(-5.0, 10.0) & vp.outcode(25.0, 10.0))


def test_outcodes_matches_scalar():
    vp = Viewport(40, 40, Affine(2.0, 0.0, 0.0, 0.0, -2.0, 40.0))
    xs = np.array([-1.0, 0.0, 10.0, 21.0, 25.0])
    ys = np.array([5.0, 20.0, -3.0, 10.0, 30.0])
    codes = vp.outcodes(xs, ys)
    assert list(codes) == [vp.outcode(x, y) for x, y in zip(xs, ys)]


def test_row_endpoints_share_y():
    vp = Viewport(40, 20, Affine(0.5, 0.0, 10.0, 0.0, -0.5, 30.0))
    x0, x1, y = vp.row_endpoints(3)
    assert x0 == pytest.approx(-20.0)
    assert x1 == pytest.approx(60.0)
    assert y == pytest.approx((30.0 - 3.5) / 0.5)


def test_rotated_transform_rejected():
    with pytest.raises(ValueError):
        Viewport(40, 40, Affine.rotation(30.0) * Affine.scale(2.0))


def test_non_positive_size_rejected():
    with pytest.raises(ValueError):
        Viewport(0, 40, Affine.scale(2.0))
    with pytest.raises(ValueError):
        Viewport(40, 40, None)
