"""
waypoint_mpc/obstacles.py - 障碍点云与空间查询

ObstacleCloud 是一次规划调用内只读的障碍点云快照：点数组设为只读，
最近邻索引 (scipy cKDTree) 在构造时一次建好，之后只查询不修改。
更新障碍物只能在两次规划调用之间整体替换快照，因此多线程并发读取安全。

提供三种查询：
1. 最近障碍点距离
2. 相机视锥内点数（视锥裁剪）
3. 末端坐标系 box 内点数
"""

import json
import logging
import math
from typing import Any, Dict, Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from .kinematics import invert_pose, transform_points

logger = logging.getLogger(__name__)


def voxel_downsample(points: np.ndarray, leaf_size: float) -> np.ndarray:
    """体素栅格降采样

    每个非空体素输出其中所有点的质心。

    Args:
        points: (N, 3) 点集
        leaf_size: 体素边长 (m)

    Returns:
        (K, 3) 降采样后的点集，K <= N
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(points) == 0 or leaf_size <= 0:
        return points.copy()
    keys = np.floor(points / leaf_size).astype(np.int64)
    _, inverse, counts = np.unique(keys, axis=0, return_inverse=True,
                                   return_counts=True)
    inverse = inverse.reshape(-1)
    sums = np.zeros((len(counts), 3))
    np.add.at(sums, inverse, points)
    return sums / counts[:, None]


class ObstacleCloud:
    """只读障碍点云快照

    Args:
        points: (N, 3) 障碍点（世界坐标系）
        tree: 已建好的 cKDTree（可选，须以同一点集构建）

    Example:
        >>> cloud = ObstacleCloud(np.random.rand(500, 3))
        >>> cloud.nearest_distance([0.5, 0.5, 0.5])
        >>> cloud.count_in_frustum(pose, 60.0, 60.0, 0.0, 0.5)
    """

    def __init__(self, points: Any, tree: Optional[cKDTree] = None) -> None:
        pts = np.array(points, dtype=np.float64).reshape(-1, 3)
        if not np.all(np.isfinite(pts)):
            raise ValueError("障碍点包含非有限值")
        pts.setflags(write=False)
        self._points = pts
        if len(pts) == 0:
            self._tree = None
        elif tree is not None:
            if tree.n != len(pts):
                raise ValueError(f"cKDTree 点数 {tree.n} 与点云 {len(pts)} 不一致")
            self._tree = tree
        else:
            self._tree = cKDTree(pts)

    @classmethod
    def empty(cls) -> 'ObstacleCloud':
        return cls(np.empty((0, 3)))

    @classmethod
    def from_points(cls, points: Any, leaf_size: Optional[float] = None) -> 'ObstacleCloud':
        """由点集创建，可选体素降采样"""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if leaf_size:
            n_before = len(pts)
            pts = voxel_downsample(pts, leaf_size)
            logger.info("障碍点云降采样: %d → %d 个点 (leaf=%.3f)",
                        n_before, len(pts), leaf_size)
        return cls(pts)

    @property
    def points(self) -> np.ndarray:
        return self._points

    @property
    def n_points(self) -> int:
        return int(self._points.shape[0])

    @property
    def is_empty(self) -> bool:
        return self._tree is None

    # ── 最近邻 ──

    def nearest_distance(self, point: Sequence[float]) -> Optional[float]:
        """单点到最近障碍点的欧氏距离，无障碍点时返回 None"""
        if self._tree is None:
            return None
        dist, _ = self._tree.query(np.asarray(point, dtype=np.float64).reshape(3), k=1)
        return float(dist)

    def nearest_distances(self, points: np.ndarray) -> np.ndarray:
        """批量最近距离 (M,)，无障碍点时全部为 inf"""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if self._tree is None:
            return np.full(len(points), np.inf)
        dist, _ = self._tree.query(points, k=1)
        return np.asarray(dist, dtype=np.float64)

    # ── 视锥裁剪 ──

    def frustum_points(
        self,
        pose: np.ndarray,
        fov_h_deg: float,
        fov_v_deg: float,
        near: float,
        far: float,
    ) -> Optional[np.ndarray]:
        """相机视锥内的障碍点

        相机位于 pose，采用光学坐标系：局部 +Z 朝前、+X 向右、+Y 向下
        （与 look-at 代价使用的 +Z 视线一致）。点在视锥内当且仅当
        near <= z <= far，|x| <= z·tan(fov_h/2)，|y| <= z·tan(fov_v/2)。

        Args:
            pose: 相机位姿 (4x4)
            fov_h_deg: 水平视场角 (deg)
            fov_v_deg: 垂直视场角 (deg)
            near: 近平面距离
            far: 远平面距离

        Returns:
            (K, 3) 世界坐标系下的可见点；无障碍点时返回 None
        """
        if self._tree is None:
            return None
        local = transform_points(invert_pose(pose), self._points)
        z = local[:, 2]
        tan_h = math.tan(math.radians(fov_h_deg) / 2.0)
        tan_v = math.tan(math.radians(fov_v_deg) / 2.0)
        mask = ((z >= near) & (z <= far)
                & (np.abs(local[:, 0]) <= z * tan_h)
                & (np.abs(local[:, 1]) <= z * tan_v))
        return self._points[mask]

    def count_in_frustum(
        self,
        pose: np.ndarray,
        fov_h_deg: float,
        fov_v_deg: float,
        near: float,
        far: float,
    ) -> Optional[int]:
        """视锥内点数；无障碍点时返回 None"""
        visible = self.frustum_points(pose, fov_h_deg, fov_v_deg, near, far)
        if visible is None:
            return None
        return int(visible.shape[0])

    # ── box 裁剪 ──

    def count_in_box(
        self,
        pose: np.ndarray,
        box_min: Sequence[float],
        box_max: Sequence[float],
    ) -> int:
        """pose 局部坐标系下 [box_min, box_max] 内的障碍点数（含边界）"""
        if self._tree is None:
            return 0
        local = transform_points(invert_pose(pose), self._points)
        lo = np.asarray(box_min, dtype=np.float64)
        hi = np.asarray(box_max, dtype=np.float64)
        inside = np.all((local >= lo) & (local <= hi), axis=1)
        return int(np.count_nonzero(inside))

    # ── 持久化 ──

    def to_dict(self) -> Dict[str, Any]:
        return {'points': self._points.tolist()}

    def to_json(self, filepath: str) -> None:
        """保存点云到 JSON 文件"""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ObstacleCloud':
        return cls(np.asarray(data.get('points', []), dtype=np.float64))

    @classmethod
    def from_json(cls, filepath: str) -> 'ObstacleCloud':
        """从 JSON 文件加载点云"""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def __repr__(self) -> str:
        return f"ObstacleCloud(n_points={self.n_points})"
