"""
waypoint_mpc/fusion.py - waypoint 融合后处理

合并相邻的近重复 waypoint：始终保留首尾点；中间点与上一个保留点
比较位姿误差，平移与旋转差异都在容差内时视为冗余并丢弃。
"""

import logging
from typing import List

import numpy as np

from .kinematics import pose_error

logger = logging.getLogger(__name__)


def fuse_waypoints(
    waypoints: List[np.ndarray],
    pos_tol: float,
    ori_tol: float,
) -> List[np.ndarray]:
    """丢弃与上一保留点过近的中间 waypoint

    Args:
        waypoints: 位姿序列 (4x4)
        pos_tol: 平移差容差 (m)
        ori_tol: 旋转差容差 (rad)

    Returns:
        融合后的位姿序列（新列表，首尾点保留）
    """
    if len(waypoints) <= 2:
        return list(waypoints)

    fused = [waypoints[0]]
    for i in range(1, len(waypoints) - 1):
        diff = pose_error(fused[-1], waypoints[i])
        pos_diff = float(np.linalg.norm(diff[:3]))
        ori_diff = float(np.linalg.norm(diff[3:]))
        if pos_diff < pos_tol and ori_diff < ori_tol:
            logger.debug("融合 waypoint %d (pos_diff=%.4g, ori_diff=%.4g)",
                         i, pos_diff, ori_diff)
            continue
        fused.append(waypoints[i])
    fused.append(waypoints[-1])

    if len(fused) < len(waypoints):
        logger.info("waypoint 融合: %d → %d 个点", len(waypoints), len(fused))
    return fused
