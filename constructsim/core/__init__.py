"""
调度核心模块包

模块说明:
- dependency_graph.py: 依赖图构建器（NetworkX）
- timeline_builder.py: 时间线构建器（SimPy虚拟时钟）
- resource_pool.py: 资源池
- phase_machine.py: 阶段状态机
- playback_clock.py: 播放时钟
- event_bus.py: 事件总线与事件记录
- simulation_driver.py: 仿真驱动器
"""

from constructsim.core.resource_pool import ResourcePool
from constructsim.core.dependency_graph import DependencyGraphBuilder
from constructsim.core.timeline_builder import TimelineBuilder
from constructsim.core.phase_machine import PhaseStateMachine, PhaseTracker
from constructsim.core.playback_clock import PlaybackClock, PlaybackState
from constructsim.core.event_bus import EventBus, EventLog, SimulationEvent
from constructsim.core.simulation_driver import ConstructionSimulator

__all__ = [
    "ResourcePool",
    "DependencyGraphBuilder",
    "TimelineBuilder",
    "PhaseStateMachine",
    "PhaseTracker",
    "PlaybackClock",
    "PlaybackState",
    "EventBus",
    "EventLog",
    "SimulationEvent",
    "ConstructionSimulator",
]
