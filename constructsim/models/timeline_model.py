"""
时间线模型
已排程的施工步骤序列与阶段时间窗

模型:
- ScheduledStep: 带计划开始/结束时间的步骤
- PhaseWindow: 阶段时间窗（开始 = 前一阶段完成时刻）
- Transition: 时间区间内的状态边界（步骤开始/完成、阶段开始/完成）
- Timeline: 不可变时间线

设计要点:
- 任意时刻 t 的活动步骤、阶段状态、资源占用都是 t 与时间线的纯函数
- 步骤活动区间为半开区间 [start, end)
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from constructsim.models.enums import PhaseState, StepStatus
from constructsim.models.phase_model import PhaseDefinition
from constructsim.models.step_model import ConstructionStep


@dataclass(frozen=True)
class ScheduledStep:
    """
    已排程步骤

    Attributes:
        step: 施工步骤
        scheduled_start: 计划开始时间
        scheduled_end: 计划结束时间
    """
    step: ConstructionStep
    scheduled_start: float
    scheduled_end: float

    @property
    def step_id(self) -> str:
        return self.step.step_id

    @property
    def duration(self) -> float:
        return self.scheduled_end - self.scheduled_start

    def is_active_at(self, t: float) -> bool:
        """t 是否落在 [start, end) 内"""
        return self.scheduled_start <= t < self.scheduled_end

    def status_at(self, t: float) -> StepStatus:
        if t >= self.scheduled_end:
            return StepStatus.COMPLETED
        if t >= self.scheduled_start:
            return StepStatus.ACTIVE
        return StepStatus.PENDING

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "step_id": self.step.step_id,
            "element_id": self.step.element_id,
            "task_name": self.step.task_name,
            "phase": self.step.phase_id.value,
            "zone": self.step.zone,
            "scheduled_start": self.scheduled_start,
            "scheduled_end": self.scheduled_end,
            "duration": self.duration,
            "predecessors": list(self.step.predecessors),
            "required_workers": self.step.required_workers,
            "required_equipment": list(self.step.required_equipment),
        }


@dataclass(frozen=True)
class PhaseWindow:
    """
    阶段时间窗

    Attributes:
        phase: 阶段定义
        step_ids: 属于该阶段的步骤（时间线顺序）
        start: 进入 Active 的时刻
        end: 进入 Completed 的时刻
    """
    phase: PhaseDefinition
    step_ids: Tuple[str, ...]
    start: float
    end: float

    @property
    def index(self) -> int:
        return self.phase.index

    def state_at(self, t: float) -> PhaseState:
        if t >= self.end:
            return PhaseState.COMPLETED
        if t >= self.start:
            return PhaseState.ACTIVE
        return PhaseState.PENDING

    def progress_at(self, t: float) -> float:
        """阶段内时间进度（0-1）"""
        if t >= self.end:
            return 1.0
        if t <= self.start:
            return 0.0
        return (t - self.start) / (self.end - self.start)

    def to_dict(self) -> dict:
        return {
            "phase_id": self.phase.id.value,
            "name": self.phase.name,
            "index": self.phase.index,
            "nominal_duration": self.phase.nominal_duration,
            "start": self.start,
            "end": self.end,
            "step_count": len(self.step_ids),
        }


# 同一时刻的边界处理顺序：先完成步骤，再推进阶段，最后开始新步骤
STEP_END = 0
PHASE_BOUNDARY = 1
STEP_START = 2


@dataclass(frozen=True)
class Transition:
    """
    状态边界

    Attributes:
        time: 发生时刻
        group: 同一时刻的处理组（STEP_END / PHASE_BOUNDARY / STEP_START）
        entering: True 表示进入（开始），False 表示离开（完成）
        step: 相关步骤（阶段边界时为None）
        phase: 相关阶段时间窗（步骤边界时为None）
    """
    time: float
    group: int
    entering: bool
    step: Optional[ScheduledStep] = None
    phase: Optional[PhaseWindow] = None

    def sort_key(self) -> tuple:
        if self.phase is not None:
            # 同一阶段先开始后完成（空阶段在同一时刻开始并完成）
            return (self.time, self.group, self.phase.index, 0 if self.entering else 1)
        return (self.time, self.group, self.step.step.phase_index, self.step.step.order)


def compute_phase_windows(
    steps: Sequence[ScheduledStep],
    catalog: Sequence[PhaseDefinition]
) -> Tuple[PhaseWindow, ...]:
    """
    计算阶段时间窗

    阶段 k 在阶段 k-1 完成时进入 Active，
    在 max(开始时刻, 本阶段步骤最晚结束时刻) 完成

    Args:
        steps: 已排程步骤
        catalog: 阶段目录（顺序）

    Returns:
        阶段时间窗元组
    """
    by_phase: Dict[str, List[ScheduledStep]] = {p.id.value: [] for p in catalog}
    for scheduled in steps:
        by_phase[scheduled.step.phase_id.value].append(scheduled)

    windows: List[PhaseWindow] = []
    previous_end = 0.0
    for phase in catalog:
        members = by_phase[phase.id.value]
        latest = max((s.scheduled_end for s in members), default=previous_end)
        end = max(previous_end, latest)
        windows.append(PhaseWindow(
            phase=phase,
            step_ids=tuple(s.step_id for s in members),
            start=previous_end,
            end=end
        ))
        previous_end = end
    return tuple(windows)


@dataclass(frozen=True)
class Timeline:
    """
    时间线

    项目加载时构建一次，之后只读

    Attributes:
        project_name: 项目名称
        steps: 已排程步骤（按开始时间、阶段顺序、声明顺序排列）
        phases: 阶段时间窗（目录顺序）
        capacity: 排程时使用的资源容量
    """
    project_name: str
    steps: Tuple[ScheduledStep, ...]
    phases: Tuple[PhaseWindow, ...]
    capacity: Mapping[str, int] = field(default_factory=dict, hash=False)
    _index: Dict[str, ScheduledStep] = field(
        default_factory=dict, init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self):
        object.__setattr__(self, "_index", {s.step_id: s for s in self.steps})

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[ScheduledStep]:
        return iter(self.steps)

    def __contains__(self, step_id: str) -> bool:
        return step_id in self._index

    @property
    def total_duration(self) -> float:
        """总工期（最后一个阶段完成时刻）"""
        if self.phases:
            return self.phases[-1].end
        return max((s.scheduled_end for s in self.steps), default=0.0)

    def get(self, step_id: str) -> Optional[ScheduledStep]:
        """获取指定步骤"""
        return self._index.get(step_id)

    def active_at(self, t: float) -> List[ScheduledStep]:
        """t 时刻正在进行的步骤"""
        return [s for s in self.steps if s.is_active_at(t)]

    def active_ids_at(self, t: float) -> List[str]:
        return [s.step_id for s in self.steps if s.is_active_at(t)]

    def completed_ids_at(self, t: float) -> List[str]:
        return [s.step_id for s in self.steps if t >= s.scheduled_end]

    def status_at(self, t: float) -> Dict[str, StepStatus]:
        """步骤ID -> 状态"""
        return {s.step_id: s.status_at(t) for s in self.steps}

    def occupancy_at(self, t: float) -> Dict[str, int]:
        """
        t 时刻的资源占用

        Returns:
            资源类型 -> 占用数量
        """
        occupancy: Dict[str, int] = {}
        for scheduled in self.active_at(t):
            for kind, count in scheduled.step.get_requirements().items():
                occupancy[kind] = occupancy.get(kind, 0) + count
        return occupancy

    def phase_states_at(self, t: float) -> List[PhaseState]:
        return [w.state_at(t) for w in self.phases]

    def phase_index_at(self, t: float) -> int:
        """
        t 时刻的当前阶段序号

        第一个未完成的阶段；全部完成时返回最后一个阶段
        """
        for window in self.phases:
            if window.state_at(t) != PhaseState.COMPLETED:
                return window.index
        return len(self.phases) - 1 if self.phases else 0

    def is_finished_at(self, t: float) -> bool:
        if not self.phases:
            return t >= self.total_duration
        return self.phases[-1].state_at(t) == PhaseState.COMPLETED

    def transitions_between(
        self,
        t0: Optional[float],
        t1: float
    ) -> List[Transition]:
        """
        区间 (t0, t1] 内的所有状态边界（按处理顺序排列）

        Args:
            t0: 区间起点（不含），None 表示从头开始
            t1: 区间终点（含）

        Returns:
            有序边界列表
        """
        def inside(time: float) -> bool:
            if time > t1:
                return False
            return t0 is None or time > t0

        transitions: List[Transition] = []
        for scheduled in self.steps:
            if inside(scheduled.scheduled_start):
                transitions.append(Transition(
                    scheduled.scheduled_start, STEP_START, True, step=scheduled
                ))
            if inside(scheduled.scheduled_end):
                transitions.append(Transition(
                    scheduled.scheduled_end, STEP_END, False, step=scheduled
                ))
        for window in self.phases:
            if inside(window.start):
                transitions.append(Transition(
                    window.start, PHASE_BOUNDARY, True, phase=window
                ))
            if inside(window.end):
                transitions.append(Transition(
                    window.end, PHASE_BOUNDARY, False, phase=window
                ))
        transitions.sort(key=lambda tr: tr.sort_key())
        return transitions

    def to_rows(self) -> List[dict]:
        """时间线表格（供接口/甘特图使用）"""
        return [s.to_dict() for s in self.steps]
