"""
optimizers/nlp.py - Optimizer A: 无导数 NLP

将代价模型与 rollout 组合为有界非线性规划，用 scipy 的 COBYLA
（无导数、信赖域线性近似）局部求解，以上一周期结果热启动。

求解器异常或未收敛时不视为硬失败：记录日志，采用求解器评估过的
最优候选继续生成轨迹。
"""

import logging
from typing import Optional

import numpy as np
from scipy.optimize import Bounds, minimize

from .base import BaseOptimizer
from ..kinematics import pose_error, state_to_pose
from ..dynamics import rollout

logger = logging.getLogger(__name__)


class NLPOptimizer(BaseOptimizer):
    """有界无导数 NLP 优化器

    Example:
        >>> opt = NLPOptimizer(config, cost_model)
        >>> u_opt = opt.optimize(np.zeros(config.control_size), state)
    """

    name = "nlp"

    def optimize(self, warm_start: np.ndarray, start_state: np.ndarray) -> np.ndarray:
        cfg = self.config
        lb, ub = self.bounds()
        x0 = np.clip(np.asarray(warm_start, dtype=np.float64), lb, ub)

        best_x: Optional[np.ndarray] = None
        best_f = np.inf

        def _objective(x: np.ndarray) -> float:
            nonlocal best_x, best_f
            f = self.cost_model.trajectory_cost(x, start_state)
            if f < best_f:
                best_f = f
                best_x = np.array(x, dtype=np.float64)
            return f

        try:
            res = minimize(
                _objective,
                x0,
                method='COBYLA',
                bounds=Bounds(lb, ub),
                tol=cfg.nlp_tol,
                options={
                    'maxiter': cfg.nlp_max_evals,
                    'rhobeg': cfg.nlp_initial_step,
                },
            )
        except Exception as e:
            logger.warning("NLP 求解失败: %s，使用已评估的最优候选", e)
            u_opt = best_x if best_x is not None else x0
        else:
            if res.success:
                logger.debug("NLP 收敛: cost=%.6g, nfev=%d", res.fun, res.nfev)
            else:
                logger.warning("NLP 未收敛 (%s): cost=%.6g, nfev=%d",
                               res.message, res.fun, res.nfev)
            u_opt = np.asarray(res.x, dtype=np.float64)
            # 返回点可能不是评估过的最优点
            if best_x is not None and best_f < res.fun:
                u_opt = best_x

        u_opt = np.clip(u_opt, lb, ub)

        if logger.isEnabledFor(logging.DEBUG):
            final = rollout(u_opt, start_state, cfg.horizon, cfg.action_dim)[-1]
            err = pose_error(state_to_pose(final[:3], final[3:]), self.cost_model.goal)
            logger.debug("NLP 终端误差: pos=%.4f, ori=%.4f",
                         np.linalg.norm(err[:3]), np.linalg.norm(err[3:]))
        return u_opt
