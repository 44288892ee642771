"""
utils/seed.py — 随机种子管理

统一管理可复现性种子。并行采样时每个任务使用独立的 Generator，
种子由调用级基础种子加任务序号得到，不共享任何随机状态。
"""

import time

import numpy as np

_SEED_MOD = 2**31


def make_seed(seed: int = 0) -> int:
    """如果 seed == 0, 用当前时间戳生成; 否则原样返回."""
    if seed == 0:
        return time.time_ns() % _SEED_MOD
    return seed


def worker_rng(base_seed: int, index: int) -> np.random.Generator:
    """第 index 个并行任务的私有 Generator (种子 = base_seed + index)."""
    return np.random.default_rng(base_seed + index)
