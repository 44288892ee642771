"""
utils/timing.py — 规划阶段计时器

generate_waypoints 每次迭代进入一次 "optimize" 阶段，诊断与融合各一次；
同名阶段累计耗时与进入次数，汇总时给出单次平均耗时。
"""

import time
from contextlib import contextmanager
from typing import Dict


class Timer:
    """按阶段名累计耗时 (秒) 与进入次数。"""

    def __init__(self):
        self.records: Dict[str, float] = {}
        self.counts: Dict[str, int] = {}

    @contextmanager
    def phase(self, name: str):
        """计入 name 阶段一次；阶段内抛出异常时同样计时."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.records[name] = self.records.get(name, 0.0) + time.perf_counter() - t0
            self.counts[name] = self.counts.get(name, 0) + 1

    def mean(self, name: str) -> float:
        """name 阶段单次平均耗时，未进入过时为 0"""
        n = self.counts.get(name, 0)
        return self.records[name] / n if n else 0.0

    @property
    def total(self) -> float:
        return sum(self.records.values())

    def to_dict(self) -> dict:
        return {**self.records, "total": self.total}

    def summary(self, unit: str = "ms") -> str:
        mul = 1000.0 if unit == "ms" else 1.0
        lines = []
        for name, sec in self.records.items():
            lines.append(f"  {name:12s} x{self.counts[name]:<4d}: {sec * mul:8.1f} {unit}"
                         f"  (avg {self.mean(name) * mul:.2f})")
        lines.append(f"  {'TOTAL':18s}: {self.total * mul:8.1f} {unit}")
        return "\n".join(lines)
