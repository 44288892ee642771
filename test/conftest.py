"""
conftest.py — pytest fixtures shared across the test suite.

Provides small planner configurations, poses and obstacle clouds so that
individual test modules stay short and focused.
"""

import pytest
import numpy as np

from waypoint_mpc import (
    ObstacleCloud,
    PlannerConfig,
    WaypointPlanner,
    state_to_pose,
)


# =========================================================================
# Config fixtures
# =========================================================================

@pytest.fixture()
def small_config() -> PlannerConfig:
    """短时域、小预算配置，用于快速单元测试"""
    return PlannerConfig(
        horizon=3,
        nlp_max_evals=150,
        num_samples=64,
        n_workers=4,
        mppi_seed=42,
        max_iterations=8,
    )


@pytest.fixture()
def default_config() -> PlannerConfig:
    return PlannerConfig()


# =========================================================================
# Pose fixtures
# =========================================================================

@pytest.fixture()
def identity_pose() -> np.ndarray:
    return np.eye(4)


@pytest.fixture()
def goal_x03() -> np.ndarray:
    """沿 x 平移 0.3 m、无旋转的目标位姿"""
    return state_to_pose([0.3, 0.0, 0.0], [0.0, 0.0, 0.0])


# =========================================================================
# Obstacle fixtures
# =========================================================================

@pytest.fixture()
def front_cloud() -> ObstacleCloud:
    """原点相机正前方 (+Z, 0.3 m) 的 10 个点"""
    pts = np.array([[0.01 * i, 0.0, 0.3] for i in range(10)])
    return ObstacleCloud(pts)


@pytest.fixture()
def small_planner(small_config) -> WaypointPlanner:
    return WaypointPlanner(small_config)
