#!/usr/bin/env python
"""
examples/waypoint_demo.py - 随机障碍点云下的 waypoint 规划演示

在起点与终点之间随机生成一团障碍点云，运行滚动时域规划，
输出每次迭代的日志、诊断量、JSON 结果和 Markdown 报告。

运行：
    python examples/waypoint_demo.py
    python examples/waypoint_demo.py --method mppi --num-samples 256 --seed 7
    python examples/waypoint_demo.py --config my_config.json --ee-mesh tool.stl
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path

import numpy as np

from waypoint_mpc import (
    PlannerConfig,
    PlanningReportGenerator,
    WaypointPlanner,
    state_to_pose,
)

# ── 日志配置 ──────────────────────────────────────────────
LOG_FMT = "[%(asctime)s] %(levelname)-7s %(name)s: %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FMT, datefmt="%H:%M:%S")
logger = logging.getLogger("waypoint_demo")


def random_obstacle_cloud(
    rng: np.random.Generator,
    center: np.ndarray,
    n_points: int,
    radius: float,
) -> np.ndarray:
    """在 center 附近生成高斯分布的障碍点团"""
    return center + rng.normal(scale=radius, size=(n_points, 3))


def main():
    parser = argparse.ArgumentParser(
        description="滚动时域 waypoint 规划演示")
    parser.add_argument("--method", choices=["nlp", "mppi"], default="nlp",
                        help="优化方法")
    parser.add_argument("--seed", type=int, default=None,
                        help="随机种子 (默认随机)")
    parser.add_argument("--n-points", type=int, default=200,
                        help="障碍点数")
    parser.add_argument("--horizon", type=int, default=None,
                        help="预测时域 (覆盖配置)")
    parser.add_argument("--num-samples", type=int, default=None,
                        help="MPPI 采样数 (覆盖配置)")
    parser.add_argument("--config", type=str, default=None,
                        help="PlannerConfig JSON 文件")
    parser.add_argument("--ee-mesh", type=str, default=None,
                        help="末端网格文件 (STL/OBJ/PLY)")
    parser.add_argument("--output", type=str, default=None,
                        help="输出目录 (默认 examples/output/waypoints_<timestamp>)")
    args = parser.parse_args()

    seed = args.seed if args.seed is not None else int(datetime.now().timestamp())
    rng = np.random.default_rng(seed)

    config = PlannerConfig.from_json(args.config) if args.config else PlannerConfig()
    if args.horizon is not None:
        config.horizon = args.horizon
    if args.num_samples is not None:
        config.num_samples = args.num_samples
    config.mppi_seed = seed

    init = state_to_pose([0.0, 0.0, 0.0], [0.0, 0.0, 0.0])
    goal = state_to_pose([0.4, 0.1, 0.0], [0.0, 0.0, 0.3])

    # 障碍点团放在起终点连线中点上方，落在视锥内
    midpoint = 0.5 * (init[:3, 3] + goal[:3, 3]) + np.array([0.0, 0.0, 0.25])
    points = random_obstacle_cloud(rng, midpoint, args.n_points, 0.05)

    logger.info("seed=%d, method=%s, horizon=%d, 障碍点 %d 个",
                seed, args.method, config.horizon, len(points))

    planner = WaypointPlanner(config, obstacles=points)
    if args.ee_mesh:
        mounting = state_to_pose([0.0, 0.0, 0.05], [0.0, 0.0, 0.0])
        if not planner.update_end_effector_from_file(args.ee_mesh, mounting, margin=0.01):
            logger.warning("末端网格加载失败，使用默认碰撞 box")

    result = planner.generate_waypoints(init, goal, method=args.method)
    logger.info(result.summary())

    output_dir = Path(args.output) if args.output else (
        Path(__file__).resolve().parent / "output"
        / f"waypoints_{result.timestamp}")
    output_dir.mkdir(parents=True, exist_ok=True)
    result.save_path(output_dir / "result.json")
    config.to_json(output_dir / "config.json")
    PlanningReportGenerator.save(result, output_dir / "report.md", config)
    logger.info("输出目录: %s", output_dir)


if __name__ == "__main__":
    main()
