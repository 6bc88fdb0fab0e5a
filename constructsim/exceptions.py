"""
异常定义
施工进度仿真系统的错误分类

分类:
- 加载期错误（MalformedProjectError / CyclicDependencyError）：中止加载，不发布时间线
- 资源不变量错误（ResourceOveruseError / ResourceUnavailableError）：致命，当前会话必须销毁后重新加载
- 播放控制错误（InvalidSpeedError / InvalidSeekError）：局部错误，原状态不变
- 阶段状态错误（PhaseTransitionError）：致命
"""

from typing import List, Optional


class ConstructionSimError(Exception):
    """所有仿真错误的基类"""

    pass


class ConfigError(ConstructionSimError):
    """配置文件无效"""

    pass


class ProjectLoadError(ConstructionSimError):
    """项目加载失败（加载为原子操作，失败时保留旧时间线）"""

    pass


class MalformedProjectError(ProjectLoadError):
    """构件数据无效（缺少几何引用、未知类型、重复ID等）"""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class CyclicDependencyError(ProjectLoadError):
    """施工步骤依赖图存在循环"""

    def __init__(self, message: str, cycle: Optional[List[str]] = None):
        super().__init__(message)
        self.cycle = cycle or []


class ResourceOveruseError(ConstructionSimError):
    """
    资源释放超出容量

    属于内部不变量被破坏，不做静默修正
    """

    def __init__(self, kind: str, count: int, available: int, capacity: int):
        super().__init__(
            f"资源 '{kind}' 释放 {count} 个后可用数 {available + count} "
            f"超出容量 {capacity}"
        )
        self.kind = kind
        self.count = count
        self.available = available
        self.capacity = capacity


class ResourceUnavailableError(ConstructionSimError):
    """回放已排程的时间线时预留失败（时间线与资源池不一致）"""

    def __init__(self, step_id: str, requirements: dict):
        super().__init__(f"步骤 '{step_id}' 无法预留资源 {requirements}")
        self.step_id = step_id
        self.requirements = requirements


class PhaseTransitionError(ConstructionSimError):
    """阶段状态转换非法（例如前一阶段未完成就激活）"""

    pass


class TransportError(ConstructionSimError):
    """播放控制命令无效（非致命）"""

    pass


class InvalidSpeedError(TransportError):
    """播放倍速必须为正数"""

    pass


class InvalidSeekError(TransportError):
    """跳转时间超出 [0, 总工期] 范围"""

    pass


class NoProjectLoadedError(ConstructionSimError):
    """尚未加载项目"""

    pass


class SessionFailedError(ConstructionSimError):
    """会话已因致命错误失效，需要重新加载项目"""

    pass
