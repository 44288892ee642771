"""test/test_utils.py - 种子与计时工具测试"""
import time

import numpy as np
import pytest

from waypoint_mpc.utils import Timer, make_seed, worker_rng


class TestSeed:

    def test_nonzero_passthrough(self):
        assert make_seed(42) == 42

    def test_zero_uses_clock(self):
        seed = make_seed(0)
        assert 0 <= seed < 2**31

    def test_worker_rng_independent_streams(self):
        a = worker_rng(100, 0).standard_normal(4)
        b = worker_rng(100, 1).standard_normal(4)
        c = worker_rng(100, 0).standard_normal(4)
        np.testing.assert_array_equal(a, c)
        assert not np.array_equal(a, b)


class TestTimer:

    def test_phases_accumulate(self):
        timer = Timer()
        with timer.phase("a"):
            time.sleep(0.001)
        with timer.phase("a"):
            time.sleep(0.001)
        with timer.phase("b"):
            pass
        assert set(timer.records) == {"a", "b"}
        assert timer.records["a"] >= 0.002
        assert timer.total == pytest.approx(sum(timer.records.values()))
        assert timer.to_dict()["total"] == timer.total
        assert "TOTAL" in timer.summary()

    def test_phase_recorded_on_exception(self):
        timer = Timer()
        with pytest.raises(RuntimeError):
            with timer.phase("fail"):
                raise RuntimeError("boom")
        assert "fail" in timer.records

    def test_counts_and_mean(self):
        timer = Timer()
        for _ in range(3):
            with timer.phase("optimize"):
                pass
        assert timer.counts["optimize"] == 3
        assert timer.mean("optimize") == pytest.approx(timer.records["optimize"] / 3)
        assert timer.mean("missing") == 0.0
