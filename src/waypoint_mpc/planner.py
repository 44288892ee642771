"""
waypoint_mpc/planner.py - 滚动时域 waypoint 规划器

WaypointPlanner 持有一次规划会话的全部状态：参数配置、障碍点云快照、
末端碰撞代理、热启动控制序列，以及两种可互换的优化器。

算法流程（generate_waypoints）：
1. 按当前障碍点数计算一次最小可见点阈值
2. 循环：优化器求解 → rollout 取下一步状态 → 与目标比较误差
3. 收敛或迭代预算耗尽：最后一个 waypoint 吸附到目标，退出
4. 统计诊断量（耗时、平均可见点数）
5. waypoint 融合
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from .costs import CostModel
from .dynamics import recede_controls, rollout
from .fusion import fuse_waypoints
from .ingestion import build_collision_proxy, load_mesh_points
from .kinematics import pose_error, pose_to_state, state_to_pose
from .models import CollisionProxy, PlannerConfig, PlanningResult, PlanStatus
from .obstacles import ObstacleCloud
from .optimizers import BaseOptimizer, MPPIController, NLPOptimizer
from .utils.timing import Timer

logger = logging.getLogger(__name__)


class WaypointPlanner:
    """滚动时域 waypoint 规划器

    Args:
        config: 规划参数配置
        obstacles: 障碍点云快照或 (N, 3) 点集（可选）
        collision_proxy: 末端碰撞代理（可选）

    Example:
        >>> planner = WaypointPlanner(PlannerConfig(horizon=5))
        >>> planner.set_obstacles(points)
        >>> result = planner.generate_waypoints(init_pose, goal_pose, method='nlp')
        >>> print(result.summary())
    """

    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        obstacles: Optional[Any] = None,
        collision_proxy: Optional[CollisionProxy] = None,
    ) -> None:
        self.config = config or PlannerConfig()
        self.cost_model = CostModel(self.config, collision_proxy=collision_proxy)
        if obstacles is not None:
            self.set_obstacles(obstacles)

        self.optimizers: Dict[str, BaseOptimizer] = {
            NLPOptimizer.name: NLPOptimizer(self.config, self.cost_model),
            MPPIController.name: MPPIController(self.config, self.cost_model),
        }
        self.U = np.zeros(max(self.config.control_size, 0))

    # ── 会话状态 ──

    @property
    def obstacles(self) -> ObstacleCloud:
        return self.cost_model.obstacles

    @property
    def collision_proxy(self) -> CollisionProxy:
        return self.cost_model.collision_proxy

    @property
    def goal(self) -> np.ndarray:
        return self.cost_model.goal

    def set_goal(self, goal: np.ndarray) -> None:
        self.cost_model.goal = np.array(goal, dtype=np.float64)

    def set_obstacles(self, obstacles: Any) -> None:
        """整体替换障碍点云快照（不得在规划调用期间调用）"""
        if not isinstance(obstacles, ObstacleCloud):
            obstacles = ObstacleCloud(obstacles)
        self.cost_model.obstacles = obstacles
        logger.info("障碍点云已更新: %d 个点", obstacles.n_points)

    def set_action(self, controls: np.ndarray) -> None:
        """设置热启动控制序列；尺寸不符时记录错误并清零缓冲区"""
        controls = np.asarray(controls, dtype=np.float64).reshape(-1)
        expected = self.config.control_size
        if controls.shape[0] != expected:
            logger.error("set_action: 控制序列长度 %d 与期望 %d 不符，缓冲区清零",
                         controls.shape[0], expected)
            self.U = np.zeros(max(expected, 0))
            return
        self.U = controls.copy()

    def reset_action(self) -> None:
        """清空热启动缓冲区并重置 MPPI 采样序列"""
        self.U = np.zeros(max(self.config.control_size, 0))
        mppi = self.optimizers[MPPIController.name]
        if isinstance(mppi, MPPIController):
            mppi.reset()

    # ── 单周期 ──

    def rollout(self, controls: np.ndarray, start_pose: np.ndarray) -> np.ndarray:
        """从 start_pose 积分控制序列，返回 (horizon+1, 6) 状态轨迹"""
        cfg = self.config
        return rollout(controls, pose_to_state(start_pose), cfg.horizon, cfg.action_dim)

    def get_action(self, start_pose: np.ndarray, method: str = "nlp") -> np.ndarray:
        """求解一个滚动时域周期

        Args:
            start_pose: 当前位姿 (4x4)
            method: 'nlp' 或 'mppi'

        Returns:
            本周期优化后的完整控制序列（滚动平移前）；horizon <= 0 时为空数组
        """
        optimizer = self._get_optimizer(method)
        cfg = self.config
        if cfg.horizon <= 0:
            logger.error("get_action: horizon=%d <= 0", cfg.horizon)
            return np.empty(0)
        if self.U.shape[0] != cfg.control_size:
            self.U = np.zeros(cfg.control_size)

        u_opt = optimizer.optimize(self.U.copy(), pose_to_state(start_pose))
        self.U = recede_controls(u_opt, cfg.horizon, cfg.action_dim)
        return u_opt

    def get_action_mppi(self, start_pose: np.ndarray) -> np.ndarray:
        return self.get_action(start_pose, method="mppi")

    def _get_optimizer(self, method: str) -> BaseOptimizer:
        try:
            return self.optimizers[method]
        except KeyError:
            raise ValueError(
                f"未知优化方法: {method}，可选 {sorted(self.optimizers)}") from None

    # ── waypoint 生成 ──

    def generate_waypoints(
        self,
        init: np.ndarray,
        goal: np.ndarray,
        method: str = "nlp",
    ) -> PlanningResult:
        """从 init 到 goal 运行滚动时域循环生成 waypoint

        Args:
            init: 初始位姿 (4x4)
            goal: 目标位姿 (4x4)
            method: 'nlp' 或 'mppi'

        Returns:
            PlanningResult（融合后的 waypoint + 诊断量）
        """
        self._get_optimizer(method)
        cfg = self.config
        timer = Timer()
        result = PlanningResult(method=method)

        current = np.array(init, dtype=np.float64)
        self.set_goal(goal)
        result.min_visible_points = self.cost_model.update_visibility_threshold()
        logger.info("最小可见点数: %d", result.min_visible_points)

        waypoints: List[np.ndarray] = [current]
        status = PlanStatus.RUNNING
        for it in range(cfg.max_iterations):
            with timer.phase("optimize"):
                u_opt = self.get_action(current, method)
            if u_opt.size == 0:
                result.message = "无效配置: horizon <= 0"
                break
            next_state = self.rollout(u_opt, current)[1]
            next_pose = state_to_pose(next_state[:3], next_state[3:])

            err = pose_error(next_pose, self.goal)
            pos_err = float(np.linalg.norm(err[:3]))
            ori_err = float(np.linalg.norm(err[3:]))
            result.n_iterations = it + 1
            result.final_position_error = pos_err
            result.final_orientation_error = ori_err
            logger.info("Iter %d -> pos_err=%.4f, ori_err=%.4f",
                        it + 1, pos_err, ori_err)

            if pos_err < cfg.position_tolerance and ori_err < cfg.orientation_tolerance:
                status = PlanStatus.CONVERGED
            elif it == cfg.max_iterations - 1:
                status = PlanStatus.BUDGET_EXHAUSTED
            if status is not PlanStatus.RUNNING:
                waypoints[-1] = self.goal.copy()
                break
            current = next_pose
            waypoints.append(current)

        result.status = status
        result.n_raw_waypoints = len(waypoints)
        if status is PlanStatus.CONVERGED:
            result.message = f"{result.n_iterations} 次迭代收敛"
        elif status is PlanStatus.BUDGET_EXHAUSTED:
            result.message = f"迭代预算 {cfg.max_iterations} 耗尽，终点吸附到目标"

        with timer.phase("diagnostics"):
            result.avg_visible_points = self.average_visible_points(waypoints)
        with timer.phase("fusion"):
            result.waypoints = fuse_waypoints(
                waypoints, cfg.fusion_position_tolerance,
                cfg.fusion_orientation_tolerance)

        result.computation_time = timer.total
        result.phase_times = timer.to_dict()
        logger.info("规划耗时 %.1f ms (单次优化平均 %.1f ms)，waypoint 数 %d，"
                    "平均可见点数 %.1f",
                    result.computation_time * 1000.0, timer.mean("optimize") * 1000.0,
                    result.n_raw_waypoints, result.avg_visible_points)
        logger.debug("阶段耗时:\n%s", timer.summary())
        return result

    def average_visible_points(self, waypoints: List[np.ndarray]) -> float:
        """各 waypoint 视锥内可见障碍点的平均数"""
        if not waypoints or self.obstacles.is_empty:
            return 0.0
        counts = [self.cost_model.visible_count(wp) for wp in waypoints]
        return float(np.mean(counts))

    # ── 末端碰撞模型 ──

    def update_end_effector(
        self,
        points: np.ndarray,
        mounting: Optional[np.ndarray] = None,
        margin: float = 0.0,
    ) -> bool:
        """由末端网格点集更新碰撞代理

        失败时保持原碰撞代理不变。

        Returns:
            是否更新成功
        """
        try:
            proxy = build_collision_proxy(
                points, mounting, margin,
                scale=self.config.ee_scale,
                leaf_size=self.config.ee_leaf_size,
            )
        except ValueError as e:
            logger.error("末端碰撞模型更新失败: %s", e)
            return False
        self.cost_model.collision_proxy = proxy
        logger.info("末端碰撞模型已更新: %d 个点", proxy.n_points)
        return True

    def update_end_effector_from_file(
        self,
        filepath: str | Path,
        mounting: Optional[np.ndarray] = None,
        margin: float = 0.0,
    ) -> bool:
        """由网格文件更新碰撞代理；读取失败时保持原碰撞代理不变"""
        try:
            points = load_mesh_points(filepath)
        except (OSError, ValueError) as e:
            logger.error("读取末端网格失败: %s", e)
            return False
        return self.update_end_effector(points, mounting, margin)
