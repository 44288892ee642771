"""
waypoint_mpc/kinematics.py - 位姿与误差运动学

位姿统一用 4x4 齐次矩阵 (float64) 表示；与状态向量交换时，姿态为
内旋 Z-Y-X 欧拉角 [roll, pitch, yaw]，即 R = Rz(yaw) · Ry(pitch) · Rx(roll)。

提供：
1. 状态向量 ↔ 位姿转换
2. 数值稳健的 6D 位姿误差（0° 附近一阶近似，180° 附近奇异分支）
3. 点集刚体变换等小工具
"""

import math
from typing import Sequence

import numpy as np
from scipy.spatial.transform import Rotation

# 旋转误差分支阈值
_TRACE_SINGULAR = -0.99
_EPS_SINGULAR = 1e-10
_EPS_SMALL = 1e-3


def make_pose(rotation: np.ndarray, translation: Sequence[float]) -> np.ndarray:
    """由旋转矩阵和平移构造 4x4 齐次位姿"""
    pose = np.eye(4)
    pose[:3, :3] = rotation
    pose[:3, 3] = translation
    return pose


def state_to_pose(position: Sequence[float], euler_zyx: Sequence[float]) -> np.ndarray:
    """位置 + 欧拉角 → 位姿

    Args:
        position: [x, y, z]
        euler_zyx: [roll, pitch, yaw]，依次绕 Z、Y、X 内旋组合

    Returns:
        4x4 齐次矩阵
    """
    roll, pitch, yaw = (float(a) for a in euler_zyx)
    rot = Rotation.from_euler('ZYX', [yaw, pitch, roll]).as_matrix()
    return make_pose(rot, np.asarray(position, dtype=np.float64))


def pose_to_rpy(pose: np.ndarray) -> np.ndarray:
    """从位姿（或 3x3 旋转矩阵）提取内旋 roll / pitch / yaw

    pitch 用 atan2(-R20, hypot(R21, R22)) 计算，而不是对单个元素取 asin，
    数值范围更好。
    """
    m = np.asarray(pose)[:3, :3]
    return np.array([
        math.atan2(m[2, 1], m[2, 2]),
        math.atan2(-m[2, 0], math.hypot(m[2, 1], m[2, 2])),
        math.atan2(m[1, 0], m[0, 0]),
    ])


def pose_to_state(pose: np.ndarray) -> np.ndarray:
    """位姿 → [x, y, z, roll, pitch, yaw]"""
    return np.concatenate([np.asarray(pose)[:3, 3], pose_to_rpy(pose)])


def pose_error(pose_a: np.ndarray, pose_b: np.ndarray) -> np.ndarray:
    """6D 位姿误差 [平移误差 (3), 旋转误差 (3)]

    平移部分为 a.t - b.t。旋转部分由相对旋转 R = Ra · Rbᵀ 计算：

    - trace > -0.99 或 |eps| > 1e-10：
        |eps| < 1e-3 时取一阶近似 (0.75 - t/12)·eps，避免除以接近 0 的范数；
        否则取精确的轴角 atan2(|eps|, t-1)/|eps| · eps
    - 否则（接近 180°）：(π/2)·(diag(R) + 1)

    Args:
        pose_a: 4x4 位姿
        pose_b: 4x4 位姿

    Returns:
        (6,) 误差向量
    """
    pose_a = np.asarray(pose_a, dtype=np.float64)
    pose_b = np.asarray(pose_b, dtype=np.float64)
    err = np.empty(6)
    err[:3] = pose_a[:3, 3] - pose_b[:3, 3]

    rel = pose_a[:3, :3] @ pose_b[:3, :3].T
    t = float(np.trace(rel))
    eps = np.array([rel[2, 1] - rel[1, 2],
                    rel[0, 2] - rel[2, 0],
                    rel[1, 0] - rel[0, 1]])
    eps_norm = float(np.linalg.norm(eps))

    if t > _TRACE_SINGULAR or eps_norm > _EPS_SINGULAR:
        if eps_norm < _EPS_SMALL:
            err[3:] = (0.75 - t / 12.0) * eps
        else:
            err[3:] = (math.atan2(eps_norm, t - 1.0) / eps_norm) * eps
    else:
        err[3:] = (math.pi / 2.0) * (np.diag(rel) + 1.0)
    return err


def invert_pose(pose: np.ndarray) -> np.ndarray:
    """刚体变换求逆"""
    rot = pose[:3, :3]
    return make_pose(rot.T, -rot.T @ pose[:3, 3])


def transform_points(pose: np.ndarray, points: np.ndarray) -> np.ndarray:
    """将点集 (N, 3) 从局部坐标系变换到 pose 所在坐标系"""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return points @ pose[:3, :3].T + pose[:3, 3]
