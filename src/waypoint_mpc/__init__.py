"""
waypoint_mpc - 6-DoF 末端滚动时域 waypoint 规划

在静态障碍点云中，将带相机的末端工具从初始位姿移动到目标位姿，
同时兼顾位姿跟踪、相机可见性与碰撞代价。

核心组成：
1. 位姿与误差运动学（kinematics）
2. 积分器 rollout（dynamics）
3. 障碍点云空间查询：最近邻 / 视锥 / box（obstacles）
4. 代价模型：跟踪、look-at、可见性、三种碰撞代价（costs）
5. 两种优化器：无导数 NLP 与 MPPI 采样控制器（optimizers）
6. 滚动时域 waypoint 生成与融合（planner / fusion）
7. 末端碰撞模型导入（ingestion）
"""

from .models import (
    PlannerConfig,
    CollisionProxy,
    PlanStatus,
    PlanningResult,
)
from .kinematics import (
    make_pose,
    state_to_pose,
    pose_to_rpy,
    pose_to_state,
    pose_error,
    invert_pose,
    transform_points,
)
from .dynamics import rollout, recede_controls
from .obstacles import ObstacleCloud, voxel_downsample
from .costs import CostModel
from .optimizers import BaseOptimizer, NLPOptimizer, MPPIController
from .fusion import fuse_waypoints
from .ingestion import build_collision_proxy, load_mesh_points
from .planner import WaypointPlanner
from .report import PlanningReportGenerator

__version__ = "0.1.0"

__all__ = [
    # 数据模型
    'PlannerConfig',
    'CollisionProxy',
    'PlanStatus',
    'PlanningResult',
    # 运动学
    'make_pose',
    'state_to_pose',
    'pose_to_rpy',
    'pose_to_state',
    'pose_error',
    'invert_pose',
    'transform_points',
    'rollout',
    'recede_controls',
    # 空间查询与代价
    'ObstacleCloud',
    'voxel_downsample',
    'CostModel',
    # 优化器
    'BaseOptimizer',
    'NLPOptimizer',
    'MPPIController',
    # 规划与后处理
    'WaypointPlanner',
    'fuse_waypoints',
    'build_collision_proxy',
    'load_mesh_points',
    # 报告
    'PlanningReportGenerator',
]
