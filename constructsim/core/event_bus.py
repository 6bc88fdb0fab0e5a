"""
事件总线与事件记录
把仿真事件分发给渲染引擎/界面等订阅者，并保留历史

功能:
- 按事件类型订阅 / 订阅全部事件
- 订阅者异常隔离（记录日志，不中断仿真）
- 事件历史查询（类型、时间范围、步骤）
- 事件历史容量上限（丢弃最早的事件）
- 甘特图行导出

设计要点:
- 订阅者只观察仿真，不向调度反馈
- 事件按发出顺序同步分发
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from constructsim.models.enums import SimulationEventType
from constructsim.utils.logger import get_logger
from constructsim.utils.time_converter import days_to_week_day, format_sim_time

logger = get_logger(__name__)

EventHandler = Callable[["SimulationEvent"], None]


@dataclass(frozen=True)
class SimulationEvent:
    """
    仿真事件

    Attributes:
        event_type: 事件类型
        time: 仿真时间
        step_id: 相关步骤ID（步骤事件）
        element_id: 相关构件ID（步骤事件）
        task_name: 任务名称（步骤事件）
        phase_id: 阶段ID
        phase_index: 阶段序号
        data: 附加数据
    """
    event_type: SimulationEventType
    time: float
    step_id: Optional[str] = None
    element_id: Optional[str] = None
    task_name: Optional[str] = None
    phase_id: Optional[str] = None
    phase_index: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "event_type": self.event_type.value,
            "time": self.time,
            "step_id": self.step_id,
            "element_id": self.element_id,
            "task_name": self.task_name,
            "phase_id": self.phase_id,
            "phase_index": self.phase_index,
            "data": dict(self.data),
        }


class EventBus:
    """
    事件总线

    同步分发：publish 返回时所有订阅者都已被调用
    """

    def __init__(self):
        self._handlers: Dict[SimulationEventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: SimulationEventType, handler: EventHandler) -> EventHandler:
        """
        订阅指定类型的事件

        Returns:
            传入的处理函数（便于取消订阅）
        """
        self._handlers.setdefault(SimulationEventType(event_type), []).append(handler)
        return handler

    def subscribe_all(self, handler: EventHandler) -> EventHandler:
        """订阅全部事件"""
        self._global_handlers.append(handler)
        return handler

    def unsubscribe(self, handler: EventHandler, event_type: Optional[SimulationEventType] = None):
        """
        取消订阅

        Args:
            handler: 处理函数
            event_type: 事件类型，None 表示从所有订阅中移除
        """
        if event_type is None:
            targets = list(self._handlers.values()) + [self._global_handlers]
        else:
            targets = [self._handlers.get(SimulationEventType(event_type), [])]
        for handlers in targets:
            while handler in handlers:
                handlers.remove(handler)

    def publish(self, event: SimulationEvent):
        """
        分发事件

        订阅者抛出的异常被记录后忽略，其余订阅者照常调用
        """
        handlers = self._handlers.get(event.event_type, []) + self._global_handlers
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "事件处理函数 %r 处理 %s 时出错", handler, event.event_type.value
                )

    def clear(self):
        self._handlers.clear()
        self._global_handlers.clear()


class EventLog:
    """
    事件记录

    记录仿真过程中发出的全部事件，提供查询和甘特图导出
    """

    def __init__(
        self,
        work_days_per_week: int = 6,
        time_unit: str = "day",
        max_events: Optional[int] = None
    ):
        """
        初始化事件记录

        Args:
            work_days_per_week: 每周工作天数（时间格式化用）
            time_unit: 仿真时间单位
            max_events: 最多保留的事件数，超出时丢弃最早的事件；None 或 0 表示不限
        """
        self.max_events = max_events or None
        self.events: Deque[SimulationEvent] = deque(maxlen=self.max_events)
        self.work_days_per_week = work_days_per_week
        self.time_unit = time_unit

    def add_event(self, event: SimulationEvent):
        self.events.append(event)

    def get_all_events(self) -> List[SimulationEvent]:
        return list(self.events)

    def get_events_by_type(self, event_type: SimulationEventType) -> List[SimulationEvent]:
        """
        获取指定类型的事件

        Args:
            event_type: 事件类型

        Returns:
            该类型的所有事件
        """
        return [e for e in self.events if e.event_type == event_type]

    def get_events_in_range(self, start: float, end: float) -> List[SimulationEvent]:
        """
        获取指定时间范围内的事件

        Args:
            start: 开始时间（含）
            end: 结束时间（含）
        """
        return [e for e in self.events if start <= e.time <= end]

    def get_events_by_step(self, step_id: str) -> List[SimulationEvent]:
        return [e for e in self.events if e.step_id == step_id]

    def get_event_count(self) -> int:
        return len(self.events)

    def get_event_type_counts(self) -> Dict[str, int]:
        """
        获取各类型事件数量统计

        Returns:
            事件类型 -> 数量 映射
        """
        counts = {event_type.value: 0 for event_type in SimulationEventType}
        for event in self.events:
            counts[event.event_type.value] += 1
        return counts

    def to_gantt_rows(self) -> List[Dict[str, Any]]:
        """
        导出甘特图行

        按事件重放每个步骤的最新开始/完成时间，回退事件撤销对应记录；
        尚未完成的步骤 end 为 None

        Returns:
            甘特图行列表（按开始时间排列）
        """
        rows: Dict[str, Dict[str, Any]] = {}
        for event in self.events:
            if event.step_id is None:
                continue
            if event.event_type == SimulationEventType.STEP_STARTED:
                rows[event.step_id] = {
                    "step_id": event.step_id,
                    "element_id": event.element_id,
                    "task_name": event.task_name,
                    "phase_id": event.phase_id,
                    "start": event.time,
                    "end": None,
                }
            elif event.event_type == SimulationEventType.STEP_COMPLETED and event.step_id in rows:
                rows[event.step_id]["end"] = event.time
            elif event.event_type == SimulationEventType.STEP_REVERTED and event.step_id in rows:
                if event.data.get("to") == "active":
                    rows[event.step_id]["end"] = None
                else:
                    del rows[event.step_id]

        result = []
        for row in sorted(rows.values(), key=lambda r: r["start"]):
            row["start_label"] = days_to_week_day(row["start"], self.work_days_per_week)
            row["end_label"] = (
                days_to_week_day(row["end"], self.work_days_per_week)
                if row["end"] is not None else None
            )
            row["duration_label"] = (
                format_sim_time(row["end"] - row["start"], self.time_unit)
                if row["end"] is not None else None
            )
            result.append(row)
        return result

    def clear(self):
        """清空所有事件"""
        self.events.clear()

    def get_summary(self) -> Dict[str, Any]:
        """
        获取事件汇总

        Returns:
            汇总信息字典
        """
        return {
            "total_events": len(self.events),
            "event_type_counts": self.get_event_type_counts(),
            "last_event_time": self.events[-1].time if self.events else None,
        }
