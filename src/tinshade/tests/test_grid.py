import numpy as np
import pytest
from affine import Affine

from tinshade.geometry import Viewport
from tinshade.grid import allocate_grid, build_grid_rows, partition_rows, GridBuildTask
from tinshade.interpolators import NaturalNeighborSampler, RegressionSampler
from tinshade.tests.fixtures.surface_fixture import plane_model, tilted_model, make_composite


class ConstantSampler:
    def __init__(self, value=1.0):
        self.value = value
        self.calls = 0

    def sample(self, x, y):
        self.calls += 1
        return self.value, 0.0, 0.0


def test_allocate_grid_is_nan():
    g = allocate_grid(7, 5)
    assert g.shape == (5, 7, 3)
    assert g.dtype == np.float32
    assert np.isnan(g).all()


def test_partition_rows_disjoint_and_complete():
    parts = partition_rows(37, 8)
    rows = [r for r0, n in parts for r in range(r0, r0 + n)]
    assert rows == list(range(37))


def test_cells_outside_model_bounds_stay_nan():
    # window [0, 20] x [0, 20]; model bounds only cover [5, 15] x [5, 15]
    vp = Viewport(20, 20, Affine(1.0, 0.0, 0.0, 0.0, -1.0, 20.0))
    g = allocate_grid(20, 20)
    build_grid_rows(g, vp, (5.0, 5.0, 15.0, 15.0), ConstantSampler(), 0, 20)
    values = g[:, :, 0]
    # pixel (row, col) maps to x = col + 0.5, y = 19.5 - row
    assert np.isnan(values[:5, :]).all()
    assert np.isnan(values[15:, :]).all()
    assert np.isnan(values[:, :5]).all()
    assert np.isnan(values[:, 15:]).all()
    assert (values[5:15, 5:15] == 1.0).all()


def test_cancellation_after_row_five():
    vp = Viewport(8, 20, Affine(1.0, 0.0, 0.0, 0.0, -1.0, 20.0))
    g = allocate_grid(8, 20)
    polled = []

    def is_cancelled():
        polled.append(True)
        return len(polled) >= 5

    rows, _, _ = build_grid_rows(g, vp, (0.0, 0.0, 8.0, 20.0), ConstantSampler(), 0, 20, is_cancelled)
    assert rows == 5
    assert np.isfinite(g[:5, :, 0]).all()
    assert np.isnan(g[5:]).all()


def test_build_grid_rows_reports_range():
    vp = Viewport(4, 4, Affine(1.0, 0.0, 0.0, 0.0, -1.0, 4.0))
    g = allocate_grid(4, 4)
    _, zmin, zmax = build_grid_rows(g, vp, (0.0, 0.0, 4.0, 4.0), ConstantSampler(3.0), 0, 4)
    assert (zmin, zmax) == (3.0, 3.0)


@pytest.mark.parametrize('sampler_cls', [RegressionSampler, NaturalNeighborSampler])
def test_flat_plane_in_both_modes(sampler_cls):
    model = plane_model(10.0, jitter=0.3)
    tin = model.load().get_reference_tin()
    sampler = sampler_cls(tin)
    for x, y in [(2.2, 3.7), (5.0, 5.0), (8.9, 1.4)]:
        z, zx, zy = sampler.sample(x, y)
        assert z == pytest.approx(10.0, abs=1e-6)
        if sampler.computes_derivatives:
            assert zx == pytest.approx(0.0, abs=1e-6)
            assert zy == pytest.approx(0.0, abs=1e-6)
        else:
            assert np.isnan(zx) and np.isnan(zy)


def test_exterior_samples_are_nan():
    tin = plane_model(10.0).load().get_reference_tin()
    for sampler in (RegressionSampler(tin), NaturalNeighborSampler(tin)):
        z, zx, zy = sampler.sample(-1.0, 5.0)
        assert np.isnan(z) and np.isnan(zx) and np.isnan(zy)
        assert sampler.was_target_exterior()


def test_grid_task_builds_and_finalizes():
    c = make_composite(tilted_model(), width=24, height=24, hillshade=True)
    task = GridBuildTask(c, n_workers=3, rows_per_task=5)
    image = task.run()
    assert image is not None
    assert image.size == (24, 24)
    assert c.is_grid_complete()
    g = c.get_grid()
    assert np.isfinite(g[:, :, 0]).all()
    # z = 0.5 x - 0.25 y + 3
    assert np.allclose(g[:, :, 1], 0.5, atol=1e-4)
    assert np.allclose(g[:, :, 2], -0.25, atol=1e-4)
    lo, hi = c.get_range_of_visible_samples()
    assert lo >= 0.5 - 1e-6 and hi <= 8.0 + 1e-6


def test_cancelled_task_is_not_finalized():
    c = make_composite(plane_model(), width=16, height=16)
    task = GridBuildTask(c, n_workers=2, rows_per_task=4)
    task.cancel()
    assert task.is_cancelled()
    assert task.run() is None
    assert not c.is_grid_complete()
    # each range stops after its first row
    g = c.get_grid()
    assert np.isnan(g[1:4]).all()
