"""
阶段状态机
每个施工阶段一个 Pending → Active → Completed 状态机

功能:
- 单阶段生命周期转换（非法转换抛出 PhaseTransitionError）
- 阶段跟踪器：严格按目录顺序推进
- 回退：向后跳转时按逆序撤销阶段状态

设计要点:
- 阶段 N 只有在阶段 N-1 已完成时才能进入 Active
- 最后一个阶段完成即整个仿真完成
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from constructsim.exceptions import PhaseTransitionError
from constructsim.models.enums import PhaseState
from constructsim.models.phase_model import PhaseDefinition


class PhaseStateMachine:
    """单个阶段的状态机"""

    def __init__(self, phase: PhaseDefinition):
        self.phase = phase
        self.state = PhaseState.PENDING

    @property
    def index(self) -> int:
        return self.phase.index

    def activate(self):
        """Pending → Active"""
        self._transition(PhaseState.PENDING, PhaseState.ACTIVE)

    def complete(self):
        """Active → Completed"""
        self._transition(PhaseState.ACTIVE, PhaseState.COMPLETED)

    def revert(self) -> PhaseState:
        """
        回退一个状态（Completed → Active 或 Active → Pending）

        Returns:
            回退后的状态
        """
        if self.state == PhaseState.COMPLETED:
            self.state = PhaseState.ACTIVE
        elif self.state == PhaseState.ACTIVE:
            self.state = PhaseState.PENDING
        else:
            raise PhaseTransitionError(f"阶段 '{self.phase.name}' 处于 pending，无法回退")
        return self.state

    def reset(self):
        self.state = PhaseState.PENDING

    def _transition(self, expected: PhaseState, target: PhaseState):
        if self.state != expected:
            raise PhaseTransitionError(
                f"阶段 '{self.phase.name}' 不能从 {self.state.value} 转换到 {target.value}"
            )
        self.state = target

    def __repr__(self) -> str:
        return f"PhaseStateMachine({self.phase.id.value}, {self.state.value})"


@dataclass(frozen=True)
class PhaseChange:
    """
    阶段状态变化

    Attributes:
        index: 阶段序号
        old_state: 变化前状态
        new_state: 变化后状态
    """
    index: int
    old_state: PhaseState
    new_state: PhaseState

    @property
    def is_revert(self) -> bool:
        return self.new_state.rank < self.old_state.rank


class PhaseTracker:
    """
    阶段跟踪器

    持有目录中每个阶段的状态机，保证阶段按目录顺序转换
    """

    def __init__(self, catalog: Sequence[PhaseDefinition]):
        """
        初始化阶段跟踪器

        Args:
            catalog: 阶段目录（顺序）
        """
        self.machines: List[PhaseStateMachine] = [PhaseStateMachine(p) for p in catalog]

    def __len__(self) -> int:
        return len(self.machines)

    def start_phase(self, index: int) -> PhaseChange:
        """
        激活阶段

        Raises:
            PhaseTransitionError: 前一阶段未完成或本阶段不是 pending
        """
        if index > 0 and self.machines[index - 1].state != PhaseState.COMPLETED:
            raise PhaseTransitionError(
                f"阶段 {index} 不能在阶段 {index - 1} 完成前激活"
            )
        self.machines[index].activate()
        return PhaseChange(index, PhaseState.PENDING, PhaseState.ACTIVE)

    def complete_phase(self, index: int) -> PhaseChange:
        """完成阶段"""
        self.machines[index].complete()
        return PhaseChange(index, PhaseState.ACTIVE, PhaseState.COMPLETED)

    def revert_phase(self, index: int) -> PhaseChange:
        """
        回退阶段一个状态

        Raises:
            PhaseTransitionError: 后续阶段尚未回退到 pending
        """
        if index + 1 < len(self.machines) and self.machines[index + 1].state != PhaseState.PENDING:
            raise PhaseTransitionError(
                f"阶段 {index} 不能在阶段 {index + 1} 回退前回退"
            )
        machine = self.machines[index]
        old_state = machine.state
        return PhaseChange(index, old_state, machine.revert())

    def reset(self):
        """全部阶段回到 pending（停止仿真）"""
        for machine in self.machines:
            machine.reset()

    def states(self) -> List[PhaseState]:
        return [m.state for m in self.machines]

    def current_index(self) -> int:
        """第一个未完成阶段的序号，全部完成时返回最后一个阶段"""
        for machine in self.machines:
            if machine.state != PhaseState.COMPLETED:
                return machine.index
        return len(self.machines) - 1

    def get_machine(self, index: int) -> Optional[PhaseStateMachine]:
        if 0 <= index < len(self.machines):
            return self.machines[index]
        return None

    def is_finished(self) -> bool:
        """最后一个阶段已完成"""
        return bool(self.machines) and self.machines[-1].state == PhaseState.COMPLETED
