"""test/test_ingestion.py - 末端碰撞模型导入测试"""
import numpy as np
import pytest
import trimesh

from waypoint_mpc.ingestion import build_collision_proxy, load_mesh_points
from waypoint_mpc.kinematics import state_to_pose


def _cube_corners(center, half):
    signs = np.array([[sx, sy, sz] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)])
    return np.asarray(center, dtype=np.float64) + half * signs


class TestBuildCollisionProxy:

    def test_recentered_box(self):
        proxy = build_collision_proxy(_cube_corners([1.0, 1.0, 1.0], 0.05),
                                      leaf_size=0.001)
        np.testing.assert_allclose(proxy.box_min, [-0.05] * 3, atol=1e-12)
        np.testing.assert_allclose(proxy.box_max, [0.05] * 3, atol=1e-12)
        assert proxy.n_points == 8
        np.testing.assert_allclose(proxy.points.mean(axis=0), np.zeros(3), atol=1e-12)

    def test_margin_and_scale(self):
        proxy = build_collision_proxy(_cube_corners([0.0, 0.0, 0.0], 0.05),
                                      margin=0.01, scale=2.0, leaf_size=0.001)
        np.testing.assert_allclose(proxy.box_min, [-0.11] * 3, atol=1e-12)
        np.testing.assert_allclose(proxy.box_max, [0.11] * 3, atol=1e-12)

    def test_mounting_transform(self):
        mounting = state_to_pose([0.0, 0.0, 0.1], [0.0, 0.0, 0.0])
        proxy = build_collision_proxy(_cube_corners([2.0, 0.0, 0.0], 0.05),
                                      mounting=mounting, leaf_size=0.001)
        np.testing.assert_allclose(proxy.box_min, [-0.05, -0.05, 0.05], atol=1e-12)
        np.testing.assert_allclose(proxy.box_max, [0.05, 0.05, 0.15], atol=1e-12)
        np.testing.assert_allclose(proxy.points.mean(axis=0), [0.0, 0.0, 0.1], atol=1e-12)

    def test_custom_downsample(self):
        def _centroid_only(points, leaf_size):
            return points.mean(axis=0, keepdims=True)

        mounting = state_to_pose([0.0, 0.0, 0.1], [0.0, 0.0, 0.0])
        proxy = build_collision_proxy(_cube_corners([1.0, 0.0, 0.0], 0.05),
                                      mounting=mounting, downsample=_centroid_only)
        assert proxy.n_points == 1
        np.testing.assert_allclose(proxy.points[0], [0.0, 0.0, 0.1], atol=1e-12)

    def test_downsample_reduces_points(self):
        rng = np.random.default_rng(0)
        pts = rng.uniform(0.0, 0.1, size=(2000, 3))
        proxy = build_collision_proxy(pts, leaf_size=0.05)
        assert 0 < proxy.n_points < 2000

    @pytest.mark.parametrize("points", [
        np.empty((0, 3)),
        np.zeros((4, 2)),
        np.array([[0.0, np.inf, 0.0]]),
    ])
    def test_invalid_points_raise(self, points):
        with pytest.raises(ValueError):
            build_collision_proxy(points)

    @pytest.mark.parametrize("mounting", [
        np.eye(3),
        np.eye(4)[:3],
        np.full((4, 4), np.nan),
    ])
    def test_invalid_mounting_raises(self, mounting):
        with pytest.raises(ValueError):
            build_collision_proxy(_cube_corners([0, 0, 0], 0.05), mounting=mounting)

    def test_empty_downsample_raises(self):
        with pytest.raises(ValueError):
            build_collision_proxy(_cube_corners([0, 0, 0], 0.05),
                                  downsample=lambda p, s: np.empty((0, 3)))


class TestLoadMeshPoints:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_mesh_points(tmp_path / "missing.stl")

    def test_box_stl(self, tmp_path):
        path = tmp_path / "tool.stl"
        trimesh.creation.box(extents=[0.1, 0.1, 0.2]).export(str(path))
        vertices = load_mesh_points(path)
        assert vertices.shape[1] == 3 and len(vertices) >= 8
        np.testing.assert_allclose(vertices.max(axis=0), [0.05, 0.05, 0.1], atol=1e-6)

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "tool.foo"
        path.write_text("not a mesh")
        with pytest.raises(ValueError):
            load_mesh_points(path)
