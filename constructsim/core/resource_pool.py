"""
资源池
管理工人与设备的可用数量

功能:
- 原子的检查并预留（全部满足才扣减，不做部分预留）
- 资源释放（超出容量视为致命错误）
- 多资源类型的联合预留
- 占用统计

设计要点:
- 可用数始终满足 0 <= available <= capacity
- 未配置的设备类型视为普通工具，无限供应
- 所有变更在同一个临界区内完成，嵌套调用直接拒绝
"""

from contextlib import contextmanager
from typing import Dict, Iterator, Mapping, Optional

from constructsim.exceptions import ResourceOveruseError
from constructsim.models.step_model import WORKER
from constructsim.utils.logger import get_logger

logger = get_logger(__name__)


class ResourcePool:
    """
    资源池

    按资源类型计数管理有限资源
    - 已配置类型：有限数量，预留前检查
    - 未配置类型：普通工具，总是可用
    """

    def __init__(self, capacity: Mapping[str, int]):
        """
        初始化资源池

        Args:
            capacity: 资源类型 -> 容量
        """
        for kind, count in capacity.items():
            if count < 0:
                raise ValueError(f"资源 '{kind}' 容量不能为负: {count}")
        self._capacity: Dict[str, int] = dict(capacity)
        self._available: Dict[str, int] = dict(capacity)
        self._mutating = False

    @classmethod
    def from_config(cls, config) -> "ResourcePool":
        """根据 SimulatorConfig 创建资源池"""
        return cls(config.resources)

    @contextmanager
    def _critical_section(self) -> Iterator[None]:
        if self._mutating:
            raise RuntimeError("资源池不允许嵌套修改")
        self._mutating = True
        try:
            yield
        finally:
            self._mutating = False

    def is_constrained(self, kind: str) -> bool:
        """是否为有限资源"""
        return kind in self._capacity

    def try_reserve(self, kind: str, count: int) -> bool:
        """
        预留单一类型资源

        Args:
            kind: 资源类型
            count: 数量

        Returns:
            是否预留成功（失败时可用数不变）
        """
        return self.try_reserve_all({kind: count})

    def try_reserve_all(self, requirements: Mapping[str, int]) -> bool:
        """
        联合预留多种资源

        全部满足才一起扣减，任一不足则不做任何修改

        Args:
            requirements: 资源类型 -> 数量

        Returns:
            是否预留成功
        """
        self._check_counts(requirements)
        with self._critical_section():
            for kind, count in requirements.items():
                if kind in self._available and self._available[kind] < count:
                    return False
            for kind, count in requirements.items():
                if kind in self._available:
                    self._available[kind] -= count
            return True

    def release(self, kind: str, count: int):
        """
        释放单一类型资源

        Args:
            kind: 资源类型
            count: 数量

        Raises:
            ResourceOveruseError: 释放后超出容量
        """
        self.release_all({kind: count})

    def release_all(self, requirements: Mapping[str, int]):
        """
        联合释放多种资源

        先整体检查，再一起归还；超出容量时不做任何修改并抛出错误

        Raises:
            ResourceOveruseError: 任一类型释放后超出容量
        """
        self._check_counts(requirements)
        with self._critical_section():
            for kind, count in requirements.items():
                if kind not in self._available:
                    continue
                if self._available[kind] + count > self._capacity[kind]:
                    logger.error(
                        "资源释放超出容量: %s +%d (可用 %d / 容量 %d)",
                        kind, count, self._available[kind], self._capacity[kind]
                    )
                    raise ResourceOveruseError(
                        kind, count, self._available[kind], self._capacity[kind]
                    )
            for kind, count in requirements.items():
                if kind in self._available:
                    self._available[kind] += count

    def can_reserve(self, requirements: Mapping[str, int]) -> bool:
        """只检查不扣减"""
        return all(
            kind not in self._available or self._available[kind] >= count
            for kind, count in requirements.items()
        )

    def fits_capacity(self, requirements: Mapping[str, int]) -> bool:
        """需求是否不超过总容量（否则永远无法满足）"""
        return all(
            kind not in self._capacity or self._capacity[kind] >= count
            for kind, count in requirements.items()
        )

    def reset(self):
        """归还全部资源"""
        with self._critical_section():
            self._available = dict(self._capacity)

    def get_available_count(self, kind: str = WORKER) -> Optional[int]:
        """
        获取可用数量

        Args:
            kind: 资源类型

        Returns:
            可用数量，普通工具返回None（不限量）
        """
        return self._available.get(kind)

    def get_capacity(self, kind: str = WORKER) -> Optional[int]:
        return self._capacity.get(kind)

    def get_in_use_count(self, kind: str = WORKER) -> int:
        if kind not in self._capacity:
            return 0
        return self._capacity[kind] - self._available[kind]

    def occupancy(self) -> Dict[str, int]:
        """
        当前占用

        Returns:
            资源类型 -> 占用数量（只含占用大于0的类型）
        """
        return {
            kind: self._capacity[kind] - available
            for kind, available in self._available.items()
            if self._capacity[kind] - available > 0
        }

    def capacity(self) -> Dict[str, int]:
        return dict(self._capacity)

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        """
        资源池快照

        Returns:
            资源类型 -> {capacity, available, in_use}
        """
        return {
            kind: {
                "capacity": self._capacity[kind],
                "available": self._available[kind],
                "in_use": self._capacity[kind] - self._available[kind],
            }
            for kind in self._capacity
        }

    def is_idle(self) -> bool:
        """所有资源都已归还"""
        return self._available == self._capacity

    @staticmethod
    def _check_counts(requirements: Mapping[str, int]):
        for kind, count in requirements.items():
            if count < 0:
                raise ValueError(f"资源 '{kind}' 数量不能为负: {count}")

    def __repr__(self) -> str:
        return f"ResourcePool(available={self._available}, capacity={self._capacity})"
