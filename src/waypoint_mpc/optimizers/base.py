"""
optimizers/base.py - 优化器抽象基类

所有优化器接收热启动控制序列与当前状态，返回本周期优化后的完整
控制序列。热启动缓冲区的维护（尺寸校验、滚动平移）由 WaypointPlanner
负责，优化器本身无跨周期状态。
"""

from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np

from ..costs import CostModel
from ..models import PlannerConfig


class BaseOptimizer(ABC):
    """滚动时域优化器基类

    Args:
        config: 规划参数（单次调用期间只读）
        cost_model: 轨迹代价模型
    """

    name: str = "base"

    def __init__(self, config: PlannerConfig, cost_model: CostModel) -> None:
        self.config = config
        self.cost_model = cost_model

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """按时域展开的控制上下界 (lb, ub)"""
        return self.config.control_bounds()

    def clip(self, controls: np.ndarray) -> np.ndarray:
        lb, ub = self.bounds()
        return np.clip(controls, lb, ub)

    @abstractmethod
    def optimize(self, warm_start: np.ndarray, start_state: np.ndarray) -> np.ndarray:
        """求解一个滚动时域周期

        Args:
            warm_start: 热启动控制序列 (horizon * action_dim,)
            start_state: 当前状态 [x, y, z, roll, pitch, yaw]

        Returns:
            优化后的控制序列 (horizon * action_dim,)
        """
