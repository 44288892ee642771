"""
waypoint_mpc/dynamics.py - 积分器 rollout

简单积分器模型：x[k+1] = x[k] + u[k]。控制维度与状态维度一一对应，
不做饱和；约束由优化器的上下界保证。
"""

import numpy as np


def rollout(
    controls: np.ndarray,
    start_state: np.ndarray,
    horizon: int,
    action_dim: int,
) -> np.ndarray:
    """将控制序列积分为状态轨迹

    Args:
        controls: 扁平控制序列，长度 horizon * action_dim（按步排列）
        start_state: 初始状态 (action_dim,)
        horizon: 时域步数
        action_dim: 控制维度

    Returns:
        (horizon + 1, action_dim) 状态轨迹，第 0 行为 start_state
    """
    deltas = np.asarray(controls, dtype=np.float64).reshape(horizon, action_dim)
    start = np.asarray(start_state, dtype=np.float64).reshape(1, action_dim)
    return np.cumsum(np.vstack([start, deltas]), axis=0)


def recede_controls(controls: np.ndarray, horizon: int, action_dim: int) -> np.ndarray:
    """滚动时域：控制序列左移一步，末步补零

    horizon == 1 时整段清零。
    """
    controls = np.asarray(controls, dtype=np.float64)
    shifted = np.zeros_like(controls)
    if horizon > 1:
        shifted[:-action_dim] = controls[action_dim:]
    return shifted
