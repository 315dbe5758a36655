import math

import numpy as np
import pytest

from tinshade.natural_neighbor import NaturalNeighborInterpolator, circumcenters
from tinshade.tests.fixtures.surface_fixture import paraboloid_model, tilted_model


def test_circumcenter_of_right_triangle():
    ux, uy = circumcenters(0.0, 0.0, 2.0, 0.0, 0.0, 2.0)
    assert (ux, uy) == pytest.approx((1.0, 1.0))


def test_linear_surface_reproduced():
    model = tilted_model(a=0.5, b=-0.25, c=3.0, jitter=0.3, seed=4)
    nni = NaturalNeighborInterpolator(model.load().get_reference_tin())
    rng = np.random.default_rng(11)
    for x, y in rng.uniform(0.5, 9.5, size=(25, 2)):
        z = nni.interpolate(x, y)
        assert z == pytest.approx(0.5 * x - 0.25 * y + 3.0, abs=1e-8)
        assert not nni.was_target_exterior()


def test_vertex_hit_returns_sample():
    model = paraboloid_model(jitter=0.3)
    tin = model.load().get_reference_tin()
    nni = NaturalNeighborInterpolator(tin)
    v = tin.vertices[60]
    assert nni.interpolate(v.x, v.y) == v.z


def test_exterior_is_nan():
    nni = NaturalNeighborInterpolator(tilted_model().load().get_reference_tin())
    assert math.isnan(nni.interpolate(10.5, 3.0))
    assert nni.was_target_exterior()


def test_estimate_is_bounded_by_samples():
    model = paraboloid_model()
    nni = NaturalNeighborInterpolator(model.load().get_reference_tin())
    z = nni.interpolate(5.3, 4.6)
    # neighbours of (5.3, 4.6) on the unit lattice have z in [0, 2]
    assert 0.0 <= z <= 2.0
