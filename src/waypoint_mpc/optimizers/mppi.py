"""
optimizers/mppi.py - Optimizer B: MPPI 采样控制器

对热启动控制序列加高斯噪声生成 N 条候选，并行评估轨迹代价，
按 softmax(-cost/λ) 重要性加权平均得到新的控制序列。

并行说明:
    每条候选一个线程池任务。NumPy / cKDTree 查询在 C 层释放 GIL，
    ThreadPoolExecutor 可获得并行加速。每个任务使用独立的 Generator
    (种子 = 调用级基础种子 + 候选序号)，只写入自己的结果槽位；
    所有任务完成后才做加权平均。
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Tuple

import numpy as np

from .base import BaseOptimizer
from ..costs import CostModel
from ..models import PlannerConfig
from ..utils.seed import make_seed, worker_rng

logger = logging.getLogger(__name__)


class MPPIController(BaseOptimizer):
    """MPPI 重要性加权采样控制器

    不做收敛判断，每次调用返回一次更新后的控制序列；收敛由外层
    waypoint 循环判定。

    Example:
        >>> mppi = MPPIController(config, cost_model)
        >>> u_opt = mppi.optimize(u_warm, state)
    """

    name = "mppi"

    def __init__(self, config: PlannerConfig, cost_model: CostModel) -> None:
        super().__init__(config, cost_model)
        self._n_calls = 0

    def reset(self) -> None:
        """重置调用计数（固定种子下重新得到相同的采样序列）"""
        self._n_calls = 0

    def _next_base_seed(self) -> int:
        base = make_seed(self.config.mppi_seed) + self._n_calls * self.config.num_samples
        self._n_calls += 1
        return base

    def noise_scale(self) -> np.ndarray:
        """各控制分量的噪声尺度: std · exp(-k)，k 为时域步序号"""
        cfg = self.config
        step_std = np.array([cfg.noise_std_pos] * 3 + [cfg.noise_std_ori] * 3)
        decay = np.exp(-np.arange(cfg.horizon, dtype=np.float64))
        return (decay[:, None] * step_std[None, :]).reshape(-1)

    def sample_candidate(
        self,
        mean: np.ndarray,
        base_seed: int,
        index: int,
    ) -> np.ndarray:
        """生成第 index 条候选控制序列（已裁剪到约束内）"""
        rng = worker_rng(base_seed, index)
        noise = rng.standard_normal(mean.shape[0]) * self.noise_scale()
        return self.clip(mean + noise)

    def _evaluate(
        self,
        mean: np.ndarray,
        start_state: np.ndarray,
        base_seed: int,
        index: int,
    ) -> Tuple[np.ndarray, float]:
        candidate = self.sample_candidate(mean, base_seed, index)
        return candidate, self.cost_model.trajectory_cost(candidate, start_state)

    @staticmethod
    def importance_weights(costs: np.ndarray, lam: float) -> np.ndarray:
        """w_i = exp(-(c_i - min c)/λ)，归一化；先减最小代价防止溢出"""
        costs = np.asarray(costs, dtype=np.float64)
        weights = np.exp(-(costs - np.min(costs)) / lam)
        return weights / np.sum(weights)

    def optimize(self, warm_start: np.ndarray, start_state: np.ndarray) -> np.ndarray:
        cfg = self.config
        n = cfg.num_samples
        mean = np.asarray(warm_start, dtype=np.float64)
        base_seed = self._next_base_seed()

        candidates = np.empty((n, mean.shape[0]))
        costs = np.full(n, np.inf)

        with ThreadPoolExecutor(max_workers=cfg.n_workers) as executor:
            futures = {
                executor.submit(self._evaluate, mean, start_state, base_seed, i): i
                for i in range(n)
            }
            for future in as_completed(futures):
                idx = futures[future]
                try:
                    candidates[idx], costs[idx] = future.result()
                except Exception as e:
                    logger.warning("MPPI 候选评估异常 (index %d): %s", idx, e)
                    candidates[idx] = self.clip(mean)
                    costs[idx] = np.inf

        finite = np.isfinite(costs)
        if not np.any(finite):
            logger.error("MPPI: 全部 %d 条候选代价无效，保持热启动序列", n)
            return self.clip(mean)

        weights = np.zeros(n)
        weights[finite] = self.importance_weights(costs[finite], cfg.mppi_lambda)
        u_opt = weights @ candidates

        logger.debug("MPPI: %d 条候选, min cost=%.6g, 有效样本数=%.1f",
                     n, float(np.min(costs[finite])), 1.0 / float(np.sum(weights ** 2)))
        return u_opt
