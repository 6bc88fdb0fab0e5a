"""
资源池单元测试
测试ResourcePool的核心功能

测试内容:
- 原子预留（全部满足或不做修改）
- 资源释放与超额释放
- 普通工具（未配置类型）
- 快照与占用统计
"""

import pytest

from constructsim.core.resource_pool import ResourcePool
from constructsim.exceptions import ResourceOveruseError
from constructsim.models.config_model import SimulatorConfig


class TestResourcePoolReserve:
    """预留测试"""

    def test_pool_initialization(self):
        """测试资源池初始化"""
        pool = ResourcePool({"worker": 4, "crane": 1})

        assert pool.get_available_count("worker") == 4
        assert pool.get_capacity("crane") == 1
        assert pool.is_idle()

    def test_from_config(self):
        """测试根据配置创建"""
        pool = ResourcePool.from_config(SimulatorConfig(resources={"worker": 3}))

        assert pool.capacity() == {"worker": 3}

    def test_reserve_single(self):
        """测试预留单一类型"""
        pool = ResourcePool({"worker": 2})

        assert pool.try_reserve("worker", 1)
        assert pool.get_available_count("worker") == 1
        assert pool.get_in_use_count("worker") == 1

    def test_reserve_insufficient_leaves_pool_unchanged(self):
        """测试资源不足时不做部分预留"""
        pool = ResourcePool({"worker": 2})

        assert not pool.try_reserve("worker", 3)
        assert pool.get_available_count("worker") == 2

    def test_reserve_all_is_atomic(self):
        """测试联合预留：任一不足则全部不扣减"""
        pool = ResourcePool({"worker": 5, "crane": 1})
        pool.try_reserve("crane", 1)

        assert not pool.try_reserve_all({"worker": 2, "crane": 1})
        assert pool.get_available_count("worker") == 5
        assert pool.get_available_count("crane") == 0

    def test_reserve_all_success(self):
        pool = ResourcePool({"worker": 5, "crane": 1})

        assert pool.try_reserve_all({"worker": 2, "crane": 1})
        assert pool.occupancy() == {"worker": 2, "crane": 1}

    def test_unconfigured_kind_is_unlimited(self):
        """测试未配置的设备视为普通工具"""
        pool = ResourcePool({"worker": 1})

        assert pool.try_reserve_all({"worker": 1, "hammer": 10})
        assert pool.get_available_count("hammer") is None
        assert not pool.is_constrained("hammer")
        pool.release_all({"worker": 1, "hammer": 10})
        assert pool.is_idle()

    def test_negative_count_rejected(self):
        pool = ResourcePool({"worker": 1})

        with pytest.raises(ValueError):
            pool.try_reserve("worker", -1)
        with pytest.raises(ValueError):
            pool.release("worker", -1)

    def test_negative_capacity_rejected(self):
        with pytest.raises(ValueError):
            ResourcePool({"worker": -1})

    def test_fits_capacity(self):
        pool = ResourcePool({"worker": 2})
        pool.try_reserve("worker", 2)

        assert pool.fits_capacity({"worker": 2})
        assert not pool.fits_capacity({"worker": 3})
        assert not pool.can_reserve({"worker": 1})


class TestResourcePoolRelease:
    """释放测试"""

    def test_release(self):
        pool = ResourcePool({"worker": 2})
        pool.try_reserve("worker", 2)
        pool.release("worker", 1)

        assert pool.get_available_count("worker") == 1

    def test_release_beyond_capacity_raises(self):
        """测试超额释放抛出 ResourceOveruseError 且不修改"""
        pool = ResourcePool({"worker": 2})
        pool.try_reserve("worker", 1)

        with pytest.raises(ResourceOveruseError) as exc_info:
            pool.release("worker", 2)

        assert exc_info.value.kind == "worker"
        assert exc_info.value.capacity == 2
        assert pool.get_available_count("worker") == 1

    def test_release_all_checks_before_mutating(self):
        pool = ResourcePool({"worker": 2, "crane": 1})
        pool.try_reserve("worker", 1)

        with pytest.raises(ResourceOveruseError):
            pool.release_all({"worker": 1, "crane": 1})
        assert pool.get_available_count("worker") == 1
        assert pool.get_available_count("crane") == 1

    def test_reset(self):
        pool = ResourcePool({"worker": 3})
        pool.try_reserve("worker", 3)
        pool.reset()

        assert pool.is_idle()

    def test_available_stays_within_bounds(self):
        """测试任意预留/释放序列下 0 <= 可用数 <= 容量"""
        pool = ResourcePool({"worker": 3})
        operations = [("r", 2), ("r", 2), ("r", 1), ("f", 1), ("r", 1), ("f", 3), ("r", 3)]

        for op, count in operations:
            if op == "r":
                pool.try_reserve("worker", count)
            else:
                pool.release("worker", count)
            available = pool.get_available_count("worker")
            assert 0 <= available <= 3

    def test_snapshot(self):
        pool = ResourcePool({"worker": 3, "crane": 1})
        pool.try_reserve("worker", 2)

        snapshot = pool.snapshot()

        assert snapshot["worker"] == {"capacity": 3, "available": 1, "in_use": 2}
        assert snapshot["crane"]["in_use"] == 0
