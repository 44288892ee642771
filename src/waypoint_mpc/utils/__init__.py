"""waypoint_mpc.utils - 随机种子与计时工具"""

from .seed import make_seed, worker_rng
from .timing import Timer

__all__ = ['make_seed', 'worker_rng', 'Timer']
