"""Tests for projection and additive splatting."""

import math
import threading

import numpy as np
import pytest

from attractorscope.core.camera import CameraState
from attractorscope.render.rasterizer import (
    FrameAccumulator,
    ProjectionView,
    project,
    rasterize,
)

W, H = 64, 48


def _view(theta=0.0, cx=0.0, cy=0.0, scale=4.0, peak=10.0) -> ProjectionView:
    return ProjectionView(math.cos(theta), math.sin(theta), cx, cy, scale, peak)


class TestFrameAccumulator:
    def test_duplicate_indices_all_counted(self):
        acc = FrameAccumulator(W, H)
        rows = np.array([3, 3, 3, 5])
        cols = np.array([2, 2, 2, 9])
        rgb = np.ones((4, 3), dtype=np.float32)
        acc.add(rows, cols, rgb)
        np.testing.assert_allclose(acc.buffer[3, 2], [3.0, 3.0, 3.0])
        np.testing.assert_allclose(acc.buffer[5, 9], [1.0, 1.0, 1.0])

    def test_concurrent_writers_lose_nothing(self):
        acc = FrameAccumulator(W, H)
        rows = np.zeros(1000, dtype=np.intp)
        cols = np.zeros(1000, dtype=np.intp)
        rgb = np.ones((1000, 3), dtype=np.float32)

        threads = [
            threading.Thread(target=acc.add, args=(rows, cols, rgb)) for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        np.testing.assert_array_equal(acc.buffer[0, 0], [8000.0, 8000.0, 8000.0])

    def test_reset(self):
        acc = FrameAccumulator(W, H)
        acc.add(np.array([1]), np.array([1]), np.ones((1, 3), dtype=np.float32))
        acc.reset()
        assert acc.total().sum() == 0.0


class TestProjection:
    def test_center_maps_to_middle(self):
        pos = np.array([[2.0, -1.0, 0.0]], dtype=np.float32)
        fx, fy, rz = project(pos, _view(cx=2.0, cy=-1.0), W, H)
        assert fx[0] == pytest.approx(W // 2)
        assert fy[0] == pytest.approx(H // 2)
        assert rz[0] == pytest.approx(0.0)

    def test_yaw_rotates_depth_into_x(self):
        pos = np.array([[0.0, 0.0, 1.0]], dtype=np.float32)
        fx, _, rz = project(pos, _view(theta=math.pi / 2), W, H)
        # rx = -z, rz = x at a quarter turn
        assert fx[0] == pytest.approx(W // 2 - 4.0, abs=1e-5)
        assert rz[0] == pytest.approx(0.0, abs=1e-6)

    def test_from_camera(self):
        cam = CameraState(scale=120.0, center_x=1.5, center_y=-2.0, smoothed_peak_speed=7.0)
        view = ProjectionView.from_camera(cam, 0.0)
        assert view.cos_t == 1.0
        assert view.sin_t == 0.0
        assert view.scale == 120.0
        assert view.peak_speed == 7.0


@pytest.mark.parametrize("backend", ["numpy", "numba"])
class TestRasterize:
    def test_center_pixel(self, backend):
        acc = FrameAccumulator(W, H)
        pos = np.zeros((1, 3), dtype=np.float32)
        vel = np.zeros((1, 3), dtype=np.float32)
        drawn = rasterize(pos, vel, _view(), acc, backend=backend)
        assert drawn == 1
        # Zero speed is pure blue, zero depth is unfaded
        np.testing.assert_allclose(acc.buffer[H // 2, W // 2], [0.0, 0.0, 1.0])
        np.testing.assert_allclose(acc.total(), [0.0, 0.0, 1.0])

    def test_depth_fade(self, backend):
        acc = FrameAccumulator(W, H)
        pos = np.array([[0.0, 0.0, 100.0]], dtype=np.float32)
        vel = np.zeros((1, 3), dtype=np.float32)
        rasterize(pos, vel, _view(), acc, backend=backend)
        np.testing.assert_allclose(acc.buffer[H // 2, W // 2, 2], 0.5, rtol=1e-6)

    def test_offscreen_dropped(self, backend):
        acc = FrameAccumulator(W, H)
        pos = np.array(
            [[100.0, 0.0, 0.0], [-100.0, 0.0, 0.0], [0.0, 50.0, 0.0], [np.nan, 0.0, 0.0]],
            dtype=np.float32,
        )
        vel = np.zeros_like(pos)
        drawn = rasterize(pos, vel, _view(), acc, backend=backend)
        assert drawn == 0
        assert acc.total().sum() == 0.0

    def test_left_edge_floors(self, backend):
        acc = FrameAccumulator(W, H)
        # fx = -0.5 lies outside; fx = 0.5 lands in column 0
        pos = np.array([[-8.125, 0.0, 0.0], [-7.875, 0.0, 0.0]], dtype=np.float32)
        vel = np.zeros_like(pos)
        drawn = rasterize(pos, vel, _view(), acc, backend=backend)
        assert drawn == 1
        assert acc.buffer[H // 2, 0, 2] == pytest.approx(1.0)

    def test_stacked_particles_sum(self, backend):
        acc = FrameAccumulator(W, H)
        pos = np.zeros((500, 3), dtype=np.float32)
        vel = np.tile(np.array([10.0, 0.0, 0.0], dtype=np.float32), (500, 1))
        rasterize(pos, vel, _view(peak=10.0), acc, backend=backend)
        # Speed ratio 1 maps to white
        np.testing.assert_allclose(acc.buffer[H // 2, W // 2], [500.0, 500.0, 500.0], rtol=1e-5)


class TestBackendParity:
    def test_totals_agree(self, cloud):
        pos, vel = cloud
        a = FrameAccumulator(W, H)
        b = FrameAccumulator(W, H)
        view = _view(theta=0.3, cx=0.5, cy=-0.2, scale=4.0, peak=12.0)
        na = rasterize(pos, vel, view, a, backend="numpy")
        nb = rasterize(pos, vel, view, b, backend="numba")
        assert abs(na - nb) <= 5
        np.testing.assert_allclose(a.total(), b.total(), rtol=5e-3)

    def test_threaded_workers_match_single(self, cloud):
        pos, vel = cloud
        single = FrameAccumulator(W, H)
        pooled = FrameAccumulator(W, H)
        view = _view(scale=3.0)
        n1 = rasterize(pos, vel, view, single, backend="numpy", workers=1)
        n4 = rasterize(pos, vel, view, pooled, backend="numpy", workers=4)
        assert n1 == n4
        np.testing.assert_allclose(single.buffer, pooled.buffer, rtol=1e-5, atol=1e-5)

    def test_unknown_backend(self, cloud):
        pos, vel = cloud
        with pytest.raises(ValueError):
            rasterize(pos, vel, _view(), FrameAccumulator(W, H), backend="opengl")
