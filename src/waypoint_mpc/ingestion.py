"""
waypoint_mpc/ingestion.py - 末端碰撞模型导入

由已加载的末端网格点集构建 CollisionProxy：
1. 以质心为原点重新居中，可选缩放
2. 施加固定安装变换
3. 计算加 margin 的轴对齐包围盒
4. 体素降采样
5. 输出变换后的降采样点集

网格文件解析交给 trimesh；输入为空或非法时抛出 ValueError，
由 WaypointPlanner 捕获并保持原碰撞模型不变。
"""

import logging
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import trimesh

from .kinematics import transform_points
from .models import CollisionProxy
from .obstacles import voxel_downsample

logger = logging.getLogger(__name__)


def load_mesh_points(filepath: str | Path) -> np.ndarray:
    """读取网格文件（STL / OBJ / PLY ...）的顶点

    Args:
        filepath: 网格文件路径

    Returns:
        (N, 3) 顶点数组

    Raises:
        OSError: 文件不存在或无法读取
        ValueError: 格式不受支持、解析失败或文件不含顶点
    """
    filepath = Path(filepath)
    if not filepath.is_file():
        raise FileNotFoundError(f"网格文件不存在: {filepath}")
    try:
        mesh = trimesh.load(str(filepath), force='mesh')
    except (NotImplementedError, KeyError, IndexError, TypeError) as e:
        raise ValueError(f"无法解析网格文件 {filepath}: {e}") from e
    vertices = np.asarray(mesh.vertices, dtype=np.float64).reshape(-1, 3)
    if len(vertices) == 0:
        raise ValueError(f"网格文件不含顶点: {filepath}")
    return vertices


def build_collision_proxy(
    points: np.ndarray,
    mounting: Optional[np.ndarray] = None,
    margin: float = 0.0,
    scale: float = 1.0,
    leaf_size: float = 0.02,
    downsample: Callable[[np.ndarray, float], np.ndarray] = voxel_downsample,
) -> CollisionProxy:
    """由末端网格点集构建碰撞代理

    Args:
        points: (N, 3) 网格点（网格自身坐标系）
        mounting: 末端安装变换 4x4（默认单位阵）
        margin: 包围盒外扩量 (m)
        scale: 居中后的缩放系数
        leaf_size: 体素降采样尺寸 (m)
        downsample: 降采样函数 (points, leaf_size) -> points

    Returns:
        CollisionProxy（点集与 box 均在末端坐标系）

    Raises:
        ValueError: 点集为空、形状错误或含非有限值，或安装变换不是有限的 4x4 矩阵
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError(f"末端点集形状应为 (N, 3)，得到 {pts.shape}")
    if len(pts) == 0:
        raise ValueError("末端点集为空")
    if not np.all(np.isfinite(pts)):
        raise ValueError("末端点集包含非有限值")

    mounting = np.eye(4) if mounting is None else np.asarray(mounting, dtype=np.float64)
    if mounting.shape != (4, 4):
        raise ValueError(f"安装变换应为 4x4 齐次矩阵，得到 {mounting.shape}")
    if not np.all(np.isfinite(mounting)):
        raise ValueError("安装变换包含非有限值")

    centered = scale * (pts - pts.mean(axis=0))
    mounted = transform_points(mounting, centered)
    box_min = mounted.min(axis=0) - margin
    box_max = mounted.max(axis=0) + margin
    logger.info("末端包围盒: min=%s, max=%s",
                np.round(box_min, 4).tolist(), np.round(box_max, 4).tolist())

    reduced = downsample(centered, leaf_size)
    if len(reduced) == 0:
        raise ValueError("降采样结果为空")
    logger.info("末端点云降采样: %d → %d 个点", len(pts), len(reduced))

    return CollisionProxy(transform_points(mounting, reduced), box_min, box_max)
