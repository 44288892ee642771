"""
waypoint_mpc/costs.py - 轨迹代价模型

单条轨迹代价 = Σ_{k=0..H} [跟踪位姿代价 + 启用的碰撞代价 + 可见性代价]
             + 终端位姿代价。

三种碰撞代价相互独立，可分别开关，共用 w_obs：
- obstacle_cost: 末端原点到最近障碍点的反距离势垒，d→0 时发散
- mesh_collision_cost: 末端点云逐点的二次势垒，在 margin 处为 0，不发散
- box_collision_cost: 末端 box 内障碍点数的线性惩罚

障碍点云为空时所有障碍 / 可见性代价退化为 0。
"""

import logging
import math
from typing import Optional

import numpy as np

from .dynamics import rollout
from .kinematics import pose_error, state_to_pose, transform_points
from .models import CollisionProxy, PlannerConfig
from .obstacles import ObstacleCloud

logger = logging.getLogger(__name__)

# 反距离势垒的最小距离，保证代价有限
_MIN_BARRIER_DISTANCE = 1e-12
# look-at 方向无定义的距离阈值
_LOOK_AT_EPS = 1e-8


class CostModel:
    """轨迹代价模型

    goal、min_visible_points、obstacles、collision_proxy 可在两次规划调用
    之间修改；单次调用期间只读，因此可被多个评估线程同时使用。

    Args:
        config: 规划参数
        obstacles: 障碍点云快照（None = 空）
        collision_proxy: 末端碰撞代理（None = 配置中的默认 box、无点集）
    """

    def __init__(
        self,
        config: PlannerConfig,
        obstacles: Optional[ObstacleCloud] = None,
        collision_proxy: Optional[CollisionProxy] = None,
    ) -> None:
        self.config = config
        self.obstacles = obstacles if obstacles is not None else ObstacleCloud.empty()
        self.collision_proxy = (collision_proxy if collision_proxy is not None
                                else CollisionProxy.from_config(config))
        self.goal = np.eye(4)
        self.min_visible_points = 0

    def update_visibility_threshold(self) -> int:
        """按当前障碍点数重新计算最小可见点阈值"""
        self.min_visible_points = int(
            self.config.min_visible_ratio * self.obstacles.n_points)
        return self.min_visible_points

    # ── 跟踪 ──

    def pose_cost(self, pose: np.ndarray, w_pos: float, w_ori: float) -> float:
        """位姿跟踪代价 + look-at-goal 代价"""
        err = pose_error(pose, self.goal)
        cost = w_pos * float(err[:3] @ err[:3]) + w_ori * float(err[3:] @ err[3:])

        look_at = self.goal[:3, 3] + self.goal[:3, :3] @ np.array(
            [0.0, 0.0, self.config.look_at_goal_distance])
        direction = look_at - pose[:3, 3]
        dist = float(np.linalg.norm(direction))
        if dist > _LOOK_AT_EPS:
            c = float(np.clip(pose[:3, 2] @ direction / dist, -1.0, 1.0))
            angle = math.acos(c)
            cost += self.config.w_look_at_goal * angle * angle
        return cost

    # ── 碰撞 ──

    def obstacle_cost(self, pose: np.ndarray) -> float:
        """末端原点的反距离势垒 0.5·w·(1/d - 1/m)²"""
        d = self.obstacles.nearest_distance(pose[:3, 3])
        margin = self.config.collision_margin
        if d is None or d >= margin:
            return 0.0
        d = max(d, _MIN_BARRIER_DISTANCE)
        diff = 1.0 / d - 1.0 / margin
        return 0.5 * self.config.w_obs * diff * diff

    def mesh_collision_cost(self, pose: np.ndarray) -> float:
        """末端点云逐点二次势垒 Σ w·(d - m)²/(2m)"""
        proxy = self.collision_proxy
        if proxy.is_empty or self.obstacles.is_empty:
            return 0.0
        dists = self.obstacles.nearest_distances(transform_points(pose, proxy.points))
        margin = self.config.collision_margin
        close = dists[dists < margin]
        if close.size == 0:
            return 0.0
        return float(self.config.w_obs * np.sum((close - margin) ** 2) / (2.0 * margin))

    def box_collision_cost(self, pose: np.ndarray) -> float:
        """末端 box 内障碍点数的线性惩罚"""
        proxy = self.collision_proxy
        count = self.obstacles.count_in_box(pose, proxy.box_min, proxy.box_max)
        return self.config.w_obs * float(count)

    # ── 可见性 ──

    def visible_count(self, pose: np.ndarray) -> Optional[int]:
        cfg = self.config
        return self.obstacles.count_in_frustum(
            pose, cfg.visibility_fov_h, cfg.visibility_fov_v,
            cfg.visibility_min_range, cfg.visibility_max_range)

    def visibility_cost(self, pose: np.ndarray) -> float:
        """可见点不足时的指数软约束 exp(α·δ) - 1"""
        visible = self.visible_count(pose)
        if visible is None:
            return 0.0
        delta = self.min_visible_points - visible
        if delta > 0:
            return math.exp(self.config.alpha_visibility * delta) - 1.0
        return 0.0

    # ── 组合 ──

    def step_cost(self, pose: np.ndarray) -> float:
        """单步代价：跟踪 + 启用的碰撞项 + 可见性"""
        cfg = self.config
        cost = self.pose_cost(pose, cfg.w_p, cfg.w_q)
        if cfg.use_point_obstacle_cost:
            cost += self.obstacle_cost(pose)
        if cfg.use_mesh_collision_cost:
            cost += self.mesh_collision_cost(pose)
        if cfg.use_box_collision_cost:
            cost += self.box_collision_cost(pose)
        if cfg.use_visibility_cost:
            cost += self.visibility_cost(pose)
        return cost

    def trajectory_cost(self, controls: np.ndarray, start_state: np.ndarray) -> float:
        """控制序列诱导轨迹的总代价

        Args:
            controls: 扁平控制序列 (horizon * action_dim,)
            start_state: 初始状态 [x, y, z, roll, pitch, yaw]

        Returns:
            标量总代价
        """
        cfg = self.config
        states = rollout(controls, start_state, cfg.horizon, cfg.action_dim)
        poses = [state_to_pose(s[:3], s[3:]) for s in states]
        total = sum(self.step_cost(pose) for pose in poses)
        total += self.pose_cost(poses[-1], cfg.w_p_term, cfg.w_q_term)
        return float(total)
