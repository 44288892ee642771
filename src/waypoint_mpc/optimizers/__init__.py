"""
waypoint_mpc.optimizers - 滚动时域轨迹优化器

两种可互换的优化策略，接口相同：
- NLPOptimizer: 有界、热启动的无导数非线性规划 (scipy COBYLA)
- MPPIController: 并行采样 + 重要性加权的随机控制器
"""

from .base import BaseOptimizer
from .nlp import NLPOptimizer
from .mppi import MPPIController

__all__ = [
    'BaseOptimizer',
    'NLPOptimizer',
    'MPPIController',
]
