"""Tests for per-frame particle statistics."""

import math

import numpy as np
import pytest

from attractorscope.core.stats import SAMPLE_STRIDE, FrameStats, collect_stats, yaw_angle


class TestYawAngle:
    def test_rate(self):
        assert yaw_angle(0) == 0.0
        assert yaw_angle(200) == pytest.approx(1.0)


class TestCollectStats:
    def test_known_sample(self):
        pos = np.array(
            [[1.0, 2.0, 0.0], [3.0, 4.0, 0.0], [5.0, 6.0, 0.0]], dtype=np.float32
        )
        vel = np.array(
            [[3.0, 4.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0]], dtype=np.float32
        )
        stats = collect_stats(pos, vel, theta=0.0, stride=1)

        assert isinstance(stats, FrameStats)
        assert stats.sample_count == 3
        assert stats.centroid_x == pytest.approx(3.0)
        assert stats.centroid_y == pytest.approx(4.0)
        assert stats.spread_x == pytest.approx(4.0 / 3.0)
        assert stats.spread_y == pytest.approx(4.0 / 3.0)
        assert stats.peak_speed == pytest.approx(5.0)

    def test_rotation_uses_z(self):
        pos = np.array([[0.0, 0.0, 2.0], [0.0, 0.0, -2.0]], dtype=np.float32)
        vel = np.zeros_like(pos)
        flat = collect_stats(pos, vel, theta=0.0, stride=1)
        quarter = collect_stats(pos, vel, theta=math.pi / 2, stride=1)
        assert flat.spread_x == pytest.approx(0.0)
        # rx = -z at a quarter turn
        assert quarter.spread_x == pytest.approx(2.0)

    def test_stride_selects_every_kth(self):
        pos = np.zeros((1000, 3), dtype=np.float32)
        pos[::SAMPLE_STRIDE, 0] = 10.0
        stats = collect_stats(pos, np.zeros_like(pos), theta=0.0)
        assert stats.sample_count == 10
        assert stats.centroid_x == pytest.approx(10.0)
        assert stats.spread_x == pytest.approx(0.0)

    def test_fewer_particles_than_stride(self):
        pos = np.full((5, 3), 2.0, dtype=np.float32)
        stats = collect_stats(pos, np.zeros_like(pos), theta=0.0)
        assert stats.sample_count == 1
        assert stats.centroid_y == pytest.approx(2.0)

    def test_uncentered_cloud(self, cloud):
        pos, vel = cloud
        stats = collect_stats(pos + np.float32(20.0), vel, theta=0.0, stride=1)
        assert stats.centroid_x == pytest.approx(20.0, abs=0.5)
        assert 2.0 < stats.spread_x < 3.0

    def test_invalid_inputs(self, cloud):
        pos, vel = cloud
        with pytest.raises(ValueError):
            collect_stats(pos, vel, theta=0.0, stride=0)
        empty = np.zeros((0, 3), dtype=np.float32)
        with pytest.raises(ValueError):
            collect_stats(empty, empty, theta=0.0)
