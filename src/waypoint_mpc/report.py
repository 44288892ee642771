"""
report.py - 规划报告生成器

将 PlanningResult 转换为 Markdown 格式报告，包含运行摘要、
参数配置和 waypoint 列表。
"""

import logging
from pathlib import Path
from typing import List, Optional

import numpy as np

from .kinematics import pose_to_rpy
from .models import PlannerConfig, PlanningResult

logger = logging.getLogger(__name__)


class PlanningReportGenerator:
    """waypoint 规划报告生成器"""

    @staticmethod
    def generate(result: PlanningResult, config: Optional[PlannerConfig] = None) -> str:
        """生成完整的 Markdown 报告

        Args:
            result: 规划结果
            config: 规划参数（可选，提供时输出参数表）

        Returns:
            Markdown 格式的报告字符串
        """
        lines: List[str] = []
        _a = lines.append

        _a("# Waypoint 规划报告")
        _a("")
        _a(f"生成时间: {result.timestamp}")
        _a("")

        _a("## 运行摘要")
        _a("")
        _a(f"- **优化方法**: {result.method}")
        _a(f"- **终止状态**: {result.status.value}")
        _a(f"- **迭代次数**: {result.n_iterations}")
        _a(f"- **waypoint 数**: {result.n_raw_waypoints} → {result.n_waypoints} (融合后)")
        _a(f"- **路径长度**: {result.compute_path_length():.4f} m")
        _a(f"- **计算耗时**: {result.computation_time:.4f} 秒")
        if result.phase_times:
            phases = ", ".join(f"{k}={v * 1000:.1f} ms" for k, v in result.phase_times.items()
                               if k != "total")
            _a(f"- **阶段耗时**: {phases}")
        _a(f"- **最小可见点阈值**: {result.min_visible_points}")
        _a(f"- **平均可见点数**: {result.avg_visible_points:.2f}")
        _a(f"- **最终误差**: pos={result.final_position_error:.4g}, "
           f"ori={result.final_orientation_error:.4g}")
        if result.message:
            _a(f"- **信息**: {result.message}")
        _a("")

        if config is not None:
            _a("## 参数配置")
            _a("")
            _a("| 参数 | 值 |")
            _a("|------|----|")
            for key, value in config.to_dict().items():
                _a(f"| {key} | {value} |")
            _a("")

        _a("## Waypoints")
        _a("")
        _a("| # | x | y | z | roll | pitch | yaw |")
        _a("|---|---|---|---|------|-------|-----|")
        for i, wp in enumerate(result.waypoints):
            p = wp[:3, 3]
            rpy = np.degrees(pose_to_rpy(wp))
            _a(f"| {i} | {p[0]:.4f} | {p[1]:.4f} | {p[2]:.4f} "
               f"| {rpy[0]:.2f}° | {rpy[1]:.2f}° | {rpy[2]:.2f}° |")
        _a("")

        return "\n".join(lines)

    @classmethod
    def save(
        cls,
        result: PlanningResult,
        filepath: str | Path,
        config: Optional[PlannerConfig] = None,
    ) -> str:
        """生成报告并写入文件，返回文件路径"""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(cls.generate(result, config), encoding='utf-8')
        logger.info("规划报告已保存到 %s", filepath)
        return str(filepath)
