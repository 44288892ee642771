"""test/test_kinematics.py - 位姿与误差运动学测试"""
import math

import numpy as np
import pytest

from waypoint_mpc.kinematics import (
    invert_pose,
    make_pose,
    pose_error,
    pose_to_rpy,
    pose_to_state,
    state_to_pose,
    transform_points,
)


def _rot_x(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[1, 0, 0], [0, c, -s], [0, s, c]])


def _rot_y(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, 0, s], [0, 1, 0], [-s, 0, c]])


def _rot_z(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, -s, 0], [s, c, 0], [0, 0, 1]])


def _axis_angle(axis, angle):
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    k = np.array([[0, -axis[2], axis[1]],
                  [axis[2], 0, -axis[0]],
                  [-axis[1], axis[0], 0]])
    return np.eye(3) + math.sin(angle) * k + (1 - math.cos(angle)) * k @ k


class TestStateToPose:
    """状态 → 位姿"""

    def test_identity(self):
        np.testing.assert_allclose(state_to_pose([0, 0, 0], [0, 0, 0]), np.eye(4))

    def test_translation(self):
        pose = state_to_pose([1.0, -2.0, 0.5], [0, 0, 0])
        np.testing.assert_allclose(pose[:3, 3], [1.0, -2.0, 0.5])
        np.testing.assert_allclose(pose[3], [0, 0, 0, 1])

    def test_intrinsic_zyx_order(self):
        roll, pitch, yaw = 0.3, -0.4, 1.2
        pose = state_to_pose([0, 0, 0], [roll, pitch, yaw])
        expected = _rot_z(yaw) @ _rot_y(pitch) @ _rot_x(roll)
        np.testing.assert_allclose(pose[:3, :3], expected, atol=1e-12)

    def test_proper_rotation(self):
        rng = np.random.default_rng(0)
        for _ in range(20):
            pose = state_to_pose(rng.normal(size=3), rng.uniform(-math.pi, math.pi, 3))
            rot = pose[:3, :3]
            np.testing.assert_allclose(rot @ rot.T, np.eye(3), atol=1e-12)
            assert np.linalg.det(rot) == pytest.approx(1.0)


class TestPoseToRpy:
    """位姿 → roll / pitch / yaw"""

    def test_round_trip(self):
        rng = np.random.default_rng(1)
        for _ in range(200):
            rpy = np.array([
                rng.uniform(-math.pi + 1e-3, math.pi - 1e-3),
                rng.uniform(-math.pi / 2 + 1e-2, math.pi / 2 - 1e-2),
                rng.uniform(-math.pi + 1e-3, math.pi - 1e-3),
            ])
            pose = state_to_pose([0, 0, 0], rpy)
            np.testing.assert_allclose(pose_to_rpy(pose), rpy, atol=1e-9)

    def test_accepts_rotation_matrix(self):
        rot = _rot_z(0.7)
        np.testing.assert_allclose(pose_to_rpy(rot), [0, 0, 0.7], atol=1e-12)

    def test_pose_to_state(self):
        state = np.array([0.1, 0.2, 0.3, 0.4, -0.5, 0.6])
        pose = state_to_pose(state[:3], state[3:])
        np.testing.assert_allclose(pose_to_state(pose), state, atol=1e-12)


class TestPoseError:
    """6D 位姿误差"""

    def test_self_error_is_zero(self):
        rng = np.random.default_rng(2)
        for _ in range(50):
            pose = state_to_pose(rng.normal(size=3), rng.uniform(-3, 3, 3))
            np.testing.assert_allclose(pose_error(pose, pose), np.zeros(6), atol=1e-12)

    def test_translation_part(self):
        a = state_to_pose([1.0, 2.0, 3.0], [0, 0, 0])
        b = state_to_pose([0.5, 2.5, 3.0], [0, 0, 0])
        np.testing.assert_allclose(pose_error(a, b)[:3], [0.5, -0.5, 0.0])

    def test_small_angle_branch(self):
        """|eps| < 1e-3 使用一阶近似"""
        a = make_pose(_rot_z(1e-4), [0, 0, 0])
        err = pose_error(a, np.eye(4))
        np.testing.assert_allclose(err[3:], [0, 0, 1e-4], atol=1e-12)

    def test_exact_branch(self):
        a = make_pose(_rot_z(1.0), [0, 0, 0])
        err = pose_error(a, np.eye(4))
        np.testing.assert_allclose(err[3:], [0, 0, 1.0], atol=1e-12)

    def test_relative_rotation(self):
        a = make_pose(_rot_x(0.8), [0, 0, 0])
        b = make_pose(_rot_x(0.3), [0, 0, 0])
        np.testing.assert_allclose(pose_error(a, b)[3:], [0.5, 0, 0], atol=1e-12)

    def test_singular_branch_half_turn(self):
        """180° 奇异分支: (π/2)·(diag(R) + 1)"""
        a = make_pose(np.diag([1.0, -1.0, -1.0]), [0, 0, 0])
        err = pose_error(a, np.eye(4))
        np.testing.assert_allclose(err[3:], [math.pi, 0, 0], atol=1e-12)

    def test_sweep_monotonic_and_matches_angle(self):
        """旋转角从 0 附近扫到 π 附近，误差模长单调递增且等于真实角度"""
        axis = [1.0, 2.0, -0.5]
        angles = np.concatenate([
            np.linspace(1e-6, 1e-3, 200),
            np.linspace(1e-3, math.pi - 1e-3, 2000)[1:],
        ])
        mags = []
        for ang in angles:
            err = pose_error(make_pose(_axis_angle(axis, ang), [0, 0, 0]), np.eye(4))
            assert np.all(np.isfinite(err))
            mags.append(np.linalg.norm(err[3:]))
        mags = np.array(mags)
        np.testing.assert_allclose(mags, angles, rtol=1e-8, atol=1e-12)
        assert np.all(np.diff(mags) > 0)

    def test_continuity_at_small_branch_boundary(self):
        """|eps| = 1e-3 对应角度 ≈ 5e-4，两侧结果连续"""
        boundary = math.asin(5e-4)
        lo = pose_error(make_pose(_rot_y(boundary - 1e-9), [0, 0, 0]), np.eye(4))
        hi = pose_error(make_pose(_rot_y(boundary + 1e-9), [0, 0, 0]), np.eye(4))
        assert abs(np.linalg.norm(hi[3:]) - np.linalg.norm(lo[3:])) < 1e-8

    def test_continuity_at_trace_boundary(self):
        """trace = -0.99 附近两侧结果连续"""
        boundary = math.acos((-0.99 - 1.0) / 2.0)
        lo = pose_error(make_pose(_rot_z(boundary - 1e-9), [0, 0, 0]), np.eye(4))
        hi = pose_error(make_pose(_rot_z(boundary + 1e-9), [0, 0, 0]), np.eye(4))
        assert abs(np.linalg.norm(hi[3:]) - np.linalg.norm(lo[3:])) < 1e-8
        assert np.linalg.norm(hi[3:]) == pytest.approx(boundary, abs=1e-8)


class TestPoseHelpers:

    def test_invert_pose(self):
        pose = state_to_pose([0.3, -0.1, 0.2], [0.1, 0.2, 0.3])
        np.testing.assert_allclose(pose @ invert_pose(pose), np.eye(4), atol=1e-12)

    def test_transform_points(self):
        pose = state_to_pose([1.0, 0.0, 0.0], [0.0, 0.0, math.pi / 2])
        out = transform_points(pose, np.array([[1.0, 0.0, 0.0]]))
        np.testing.assert_allclose(out, [[1.0, 1.0, 0.0]], atol=1e-12)
