"""test/test_report.py - 规划报告生成测试"""
import numpy as np

from waypoint_mpc.kinematics import state_to_pose
from waypoint_mpc.models import PlannerConfig, PlanningResult, PlanStatus
from waypoint_mpc.report import PlanningReportGenerator


def _result():
    return PlanningResult(
        waypoints=[np.eye(4), state_to_pose([0.3, 0.0, 0.0], [0.0, 0.0, np.pi / 2])],
        status=PlanStatus.BUDGET_EXHAUSTED,
        method="nlp",
        n_iterations=20,
        n_raw_waypoints=20,
        phase_times={"optimize": 0.5, "fusion": 0.001, "total": 0.501},
        message="budget",
    )


class TestPlanningReportGenerator:

    def test_sections(self):
        text = PlanningReportGenerator.generate(_result())
        assert text.startswith("# Waypoint 规划报告")
        assert "## 运行摘要" in text
        assert "budget_exhausted" in text
        assert "## 参数配置" not in text
        assert "## Waypoints" in text

    def test_waypoint_rows_in_degrees(self):
        text = PlanningReportGenerator.generate(_result())
        assert "| 1 | 0.3000 | 0.0000 | 0.0000 " in text
        assert "90.00°" in text

    def test_config_table(self):
        text = PlanningReportGenerator.generate(_result(), PlannerConfig(horizon=9))
        assert "## 参数配置" in text
        assert "| horizon | 9 |" in text

    def test_save(self, tmp_path):
        path = PlanningReportGenerator.save(_result(), tmp_path / "r" / "report.md")
        with open(path, encoding='utf-8') as f:
            assert "## Waypoints" in f.read()

    def test_phase_times_line(self):
        text = PlanningReportGenerator.generate(_result())
        assert "optimize=500.0 ms" in text
        assert "total=" not in text
