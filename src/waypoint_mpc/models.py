"""
waypoint_mpc/models.py - 规划器数据模型

定义滚动时域 waypoint 规划器使用的核心数据结构：PlannerConfig、
CollisionProxy、PlanStatus、PlanningResult。
"""

import json
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


@dataclass
class PlannerConfig:
    """滚动时域规划器参数配置

    所有权重 / 容差 / 约束均为命名标量。规划调用之间可修改，
    单次规划调用期间只读。

    Attributes:
        horizon: 预测时域步数
        state_dim: 状态维度（位置 3 + 欧拉角 3）
        action_dim: 控制维度（简单积分器下等于 state_dim）
        w_p: 位置跟踪权重
        w_q: 姿态跟踪权重
        w_p_term: 终端位置权重
        w_q_term: 终端姿态权重
        w_look_at_goal: 相机 +Z 轴朝向目标观察点的权重
        look_at_goal_distance: 观察点沿目标 +Z 轴的偏移 (m)
        alpha_visibility: 可见性指数惩罚的增长速率
        visibility_fov_h: 视锥水平视场角 (deg)
        visibility_fov_v: 视锥垂直视场角 (deg)
        visibility_min_range: 视锥近平面距离 (m)
        visibility_max_range: 视锥远平面距离 (m)
        min_visible_ratio: 需要可见的障碍点比例
        w_obs: 障碍物代价权重（三种碰撞代价共用）
        collision_margin: 碰撞安全距离 (m)
        box_min: 末端碰撞 box 最小角点（末端坐标系）
        box_max: 末端碰撞 box 最大角点（末端坐标系）
        use_point_obstacle_cost: 启用单点反距离势垒代价
        use_mesh_collision_cost: 启用末端点云二次势垒代价
        use_box_collision_cost: 启用 box 内点计数代价
        use_visibility_cost: 启用可见性代价
        dp_min / dp_max: 每步平移增量上下界 (m)
        dtheta_min / dtheta_max: 每步旋转增量上下界 (rad)
        nlp_tol: COBYLA 终止信赖域半径 rhoend（绝对量，控制量单位）
        nlp_max_evals: NLP 最大代价评估次数
        nlp_initial_step: NLP 初始信赖域半径
        num_samples: MPPI 采样轨迹数
        mppi_lambda: MPPI 温度参数
        noise_std_pos: MPPI 平移噪声标准差
        noise_std_ori: MPPI 旋转噪声标准差
        mppi_seed: MPPI 基础随机种子（0 = 按时间生成）
        n_workers: MPPI 线程池大小（None = 默认）
        position_tolerance: 收敛位置容差 (m)
        orientation_tolerance: 收敛姿态容差 (rad)
        max_iterations: waypoint 生成最大迭代次数
        fusion_position_tolerance: waypoint 融合位置容差
        fusion_orientation_tolerance: waypoint 融合姿态容差
        ee_leaf_size: 末端模型体素降采样尺寸 (m)
        ee_scale: 末端模型缩放系数
    """
    horizon: int = 5
    state_dim: int = 6
    action_dim: int = 6

    # 跟踪代价
    w_p: float = 100.0
    w_q: float = 10.0
    w_p_term: float = 1e3
    w_q_term: float = 1e3
    w_look_at_goal: float = 10.0
    look_at_goal_distance: float = 0.11

    # 可见性
    alpha_visibility: float = 0.2
    visibility_fov_h: float = 60.0
    visibility_fov_v: float = 60.0
    visibility_min_range: float = 0.0
    visibility_max_range: float = 0.5
    min_visible_ratio: float = 0.5

    # 碰撞
    w_obs: float = 5.0
    collision_margin: float = 0.05
    box_min: Tuple[float, float, float] = (-0.08, -0.08, -0.08)
    box_max: Tuple[float, float, float] = (0.08, 0.08, 0.08)
    use_point_obstacle_cost: bool = False
    use_mesh_collision_cost: bool = True
    use_box_collision_cost: bool = False
    use_visibility_cost: bool = True

    # 控制约束
    dp_min: float = -0.1
    dp_max: float = 0.1
    dtheta_min: float = -0.1
    dtheta_max: float = 0.1

    # Optimizer A: 无导数 NLP
    nlp_tol: float = 1e-6
    nlp_max_evals: int = 200
    nlp_initial_step: float = 0.05

    # Optimizer B: MPPI
    num_samples: int = 2048
    mppi_lambda: float = 1.0
    noise_std_pos: float = 0.01
    noise_std_ori: float = 0.05
    mppi_seed: int = 0
    n_workers: Optional[int] = None

    # waypoint 生成
    position_tolerance: float = 1e-2
    orientation_tolerance: float = 1e-2
    max_iterations: int = 20
    fusion_position_tolerance: float = 1e-2
    fusion_orientation_tolerance: float = 0.1

    # 末端模型导入
    ee_leaf_size: float = 0.02
    ee_scale: float = 1.0

    def __post_init__(self) -> None:
        self.box_min = tuple(float(v) for v in self.box_min)
        self.box_max = tuple(float(v) for v in self.box_max)
        if len(self.box_min) != 3 or len(self.box_max) != 3:
            raise ValueError("box_min 和 box_max 必须是 3 维")
        if self.state_dim != self.action_dim:
            raise ValueError(
                f"简单积分器要求 state_dim == action_dim，"
                f"得到 {self.state_dim} 和 {self.action_dim}")
        if self.action_dim != 6:
            raise ValueError(f"action_dim 必须为 6 (平移 3 + 旋转 3)，得到 {self.action_dim}")
        if self.dp_min > self.dp_max or self.dtheta_min > self.dtheta_max:
            raise ValueError("控制约束下界大于上界")
        if self.collision_margin <= 0:
            raise ValueError("collision_margin 必须为正")
        if self.mppi_lambda <= 0:
            raise ValueError("mppi_lambda 必须为正")
        if self.mppi_seed < 0:
            raise ValueError(f"mppi_seed 必须 >= 0，得到 {self.mppi_seed}")

    @property
    def control_size(self) -> int:
        """控制序列长度 horizon * action_dim"""
        return self.horizon * self.action_dim

    def control_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """按时域展开的控制上下界

        Returns:
            (lb, ub)，长度均为 horizon * action_dim
        """
        step_lb = np.array([self.dp_min] * 3 + [self.dtheta_min] * 3)
        step_ub = np.array([self.dp_max] * 3 + [self.dtheta_max] * 3)
        n = max(self.horizon, 0)
        return np.tile(step_lb, n), np.tile(step_ub, n)

    # ── JSON 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        """转为字典"""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['box_min'] = list(self.box_min)
        data['box_max'] = list(self.box_max)
        return data

    def to_json(self, filepath: str | Path) -> str:
        """保存到 JSON 文件

        Args:
            filepath: 输出路径

        Returns:
            保存的文件路径字符串
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return str(filepath)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlannerConfig':
        """从字典创建（忽略未知字段，缺失字段用默认值）"""
        valid_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    @classmethod
    def from_json(cls, filepath: str | Path) -> 'PlannerConfig':
        """从 JSON 文件加载"""
        filepath = Path(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass(frozen=True)
class CollisionProxy:
    """末端执行器碰撞代理

    降采样后的末端点集与轴对齐包围盒，均在末端坐标系下表示。
    只能整体替换，规划期间不可变。

    Attributes:
        points: 末端点集 (M, 3)
        box_min: 包围盒最小角点 (3,)
        box_max: 包围盒最大角点 (3,)
    """
    points: np.ndarray
    box_min: np.ndarray
    box_max: np.ndarray

    def __post_init__(self) -> None:
        pts = np.array(self.points, dtype=np.float64).reshape(-1, 3)
        lo = np.array(self.box_min, dtype=np.float64).reshape(3)
        hi = np.array(self.box_max, dtype=np.float64).reshape(3)
        for arr in (pts, lo, hi):
            arr.setflags(write=False)
        object.__setattr__(self, 'points', pts)
        object.__setattr__(self, 'box_min', lo)
        object.__setattr__(self, 'box_max', hi)

    @classmethod
    def from_config(cls, config: PlannerConfig) -> 'CollisionProxy':
        """仅含配置中默认 box、无点集的代理"""
        return cls(np.empty((0, 3)), config.box_min, config.box_max)

    @property
    def n_points(self) -> int:
        return int(self.points.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.n_points == 0


class PlanStatus(Enum):
    """waypoint 生成状态机"""
    RUNNING = "running"
    CONVERGED = "converged"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass
class PlanningResult:
    """waypoint 规划结果

    Attributes:
        waypoints: 融合后的位姿序列 [init, ..., goal]，每个为 4x4 齐次矩阵
        status: 终止状态
        method: 使用的优化器 ('nlp' / 'mppi')
        n_iterations: 实际迭代次数
        n_raw_waypoints: 融合前的 waypoint 数
        computation_time: 规划耗时 (s)
        phase_times: 各阶段耗时 (s)，含 total
        avg_visible_points: 各 waypoint 视锥内可见点的平均数
        min_visible_points: 本次规划的最小可见点阈值
        final_position_error: 最后一次预测位姿的位置误差
        final_orientation_error: 最后一次预测位姿的姿态误差
        message: 描述信息
        timestamp: 时间戳
    """
    waypoints: List[np.ndarray] = field(default_factory=list)
    status: PlanStatus = PlanStatus.RUNNING
    method: str = "nlp"
    n_iterations: int = 0
    n_raw_waypoints: int = 0
    computation_time: float = 0.0
    phase_times: Dict[str, float] = field(default_factory=dict)
    avg_visible_points: float = 0.0
    min_visible_points: int = 0
    final_position_error: float = float('nan')
    final_orientation_error: float = float('nan')
    message: str = ""
    timestamp: str = field(
        default_factory=lambda: datetime.now().strftime('%Y%m%d_%H%M%S'))

    @property
    def converged(self) -> bool:
        return self.status is PlanStatus.CONVERGED

    @property
    def n_waypoints(self) -> int:
        return len(self.waypoints)

    def positions(self) -> np.ndarray:
        """waypoint 平移部分 (n, 3)"""
        if not self.waypoints:
            return np.empty((0, 3))
        return np.array([wp[:3, 3] for wp in self.waypoints])

    def compute_path_length(self) -> float:
        """waypoint 平移路径总长度"""
        pos = self.positions()
        if len(pos) < 2:
            return 0.0
        return float(np.sum(np.linalg.norm(np.diff(pos, axis=0), axis=1)))

    def summary(self) -> str:
        """单行摘要"""
        return (f"[{self.method}] {self.status.value}: "
                f"{self.n_iterations} iters, "
                f"{self.n_raw_waypoints} -> {self.n_waypoints} waypoints, "
                f"{self.computation_time * 1000:.1f} ms, "
                f"avg visible {self.avg_visible_points:.1f}")

    # ── 路径序列化 ─────────────────────────────────────────

    def save_path(self, filepath: str | Path) -> str:
        """将规划结果保存为 JSON 文件

        Args:
            filepath: 输出 JSON 路径

        Returns:
            保存的文件路径字符串
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {
            "waypoints": [wp.tolist() for wp in self.waypoints],
            "status": self.status.value,
            "method": self.method,
            "n_iterations": self.n_iterations,
            "n_raw_waypoints": self.n_raw_waypoints,
            "n_waypoints": self.n_waypoints,
            "path_length": self.compute_path_length(),
            "computation_time": self.computation_time,
            "phase_times": self.phase_times,
            "avg_visible_points": self.avg_visible_points,
            "min_visible_points": self.min_visible_points,
            "final_position_error": self.final_position_error,
            "final_orientation_error": self.final_orientation_error,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        return str(filepath)

    @classmethod
    def load_path(cls, filepath: str | Path) -> 'PlanningResult':
        """从 JSON 文件加载规划结果"""
        filepath = Path(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return cls(
            waypoints=[np.array(wp, dtype=np.float64) for wp in data['waypoints']],
            status=PlanStatus(data.get('status', PlanStatus.RUNNING.value)),
            method=data.get('method', 'nlp'),
            n_iterations=int(data.get('n_iterations', 0)),
            n_raw_waypoints=int(data.get('n_raw_waypoints', 0)),
            computation_time=float(data.get('computation_time', 0.0)),
            phase_times={k: float(v) for k, v in data.get('phase_times', {}).items()},
            avg_visible_points=float(data.get('avg_visible_points', 0.0)),
            min_visible_points=int(data.get('min_visible_points', 0)),
            final_position_error=float(data.get('final_position_error', float('nan'))),
            final_orientation_error=float(data.get('final_orientation_error', float('nan'))),
            message=data.get('message', ''),
            timestamp=data.get('timestamp', ''),
        )
