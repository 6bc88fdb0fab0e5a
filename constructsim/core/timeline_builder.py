"""
时间线构建器
对施工步骤做拓扑排序并分配开始/结束时间

功能:
- Kahn式列表调度：每个决策时刻先释放到期步骤，再按优先级启动就绪步骤
- 贪心资源预留：资源不足时推迟到已排程步骤释放资源的时刻
- 阶段门控：后一阶段的步骤等待前面所有阶段的步骤完成
- 阶段门控下拒绝指向更晚阶段的前置依赖
- 循环依赖与资源不可满足检测

设计要点:
- 使用SimPy环境作为排程用的虚拟时钟，每个已启动步骤是一个SimPy进程
- 平局裁决：(1) 阶段目录顺序 (2) 声明顺序
- scheduledStart = max(前置步骤结束, 资源可用时刻)
- 贪心策略得到可行但不一定最短的工期
"""

from typing import Dict, Generator, List, Optional, Sequence, Set

import simpy

from constructsim.core.dependency_graph import check_step_graph
from constructsim.core.resource_pool import ResourcePool
from constructsim.exceptions import MalformedProjectError
from constructsim.models.config_model import SimulatorConfig
from constructsim.models.phase_model import PhaseDefinition, build_phase_catalog
from constructsim.models.step_model import ConstructionStep
from constructsim.models.timeline_model import (
    ScheduledStep,
    Timeline,
    compute_phase_windows,
)
from constructsim.utils.logger import get_logger

logger = get_logger(__name__)


class _SchedulingRun:
    """
    单次排程过程的状态

    仅在 TimelineBuilder.schedule 内部使用
    """

    def __init__(
        self,
        env: simpy.Environment,
        steps: Sequence[ConstructionStep],
        pool: ResourcePool,
        phase_gating: bool
    ):
        self.env = env
        self.pool = pool
        self.phase_gating = phase_gating
        self.steps: Dict[str, ConstructionStep] = {s.step_id: s for s in steps}
        self.pending: List[ConstructionStep] = sorted(steps, key=lambda s: s.sort_key())
        self.running: Set[str] = set()
        self.finished: List[str] = []
        self.done: Set[str] = set()
        self.starts: Dict[str, float] = {}
        self.ends: Dict[str, float] = {}
        self.wakeup: Optional[simpy.Event] = None

    def dispatcher(self) -> Generator:
        """
        调度进程

        每次被唤醒时：先处理完成的步骤（释放资源），再启动就绪步骤
        """
        while True:
            self._release_finished()

            if not self.pending and not self.running:
                return

            started = self._start_ready()

            if not self.running:
                self._raise_stalled()

            if started:
                logger.debug("t=%.2f 启动 %d 个步骤", self.env.now, started)

            self.wakeup = self.env.event()
            yield self.wakeup

    def _run_step(self, step: ConstructionStep) -> Generator:
        """单个步骤进程：占用资源直到工期结束"""
        yield self.env.timeout(step.duration)
        self.ends[step.step_id] = self.env.now
        self.finished.append(step.step_id)
        if self.wakeup is not None and not self.wakeup.triggered:
            self.wakeup.succeed()

    def _release_finished(self):
        # 同一时刻完成的步骤按优先级顺序释放
        self.finished.sort(key=lambda sid: self.steps[sid].sort_key())
        for step_id in self.finished:
            self.pool.release_all(self.steps[step_id].get_requirements())
            self.running.discard(step_id)
            self.done.add(step_id)
        self.finished = []

    def _gate_index(self) -> Optional[int]:
        """最早的未完成阶段序号（阶段门控）"""
        if not self.phase_gating:
            return None
        indices = [s.phase_index for s in self.pending]
        indices.extend(self.steps[sid].phase_index for sid in self.running)
        return min(indices) if indices else None

    def _is_ready(self, step: ConstructionStep, gate: Optional[int]) -> bool:
        if gate is not None and step.phase_index > gate:
            return False
        return all(pred in self.done for pred in step.predecessors)

    def _start_ready(self) -> int:
        gate = self._gate_index()
        started = 0
        remaining: List[ConstructionStep] = []
        for step in self.pending:
            if self._is_ready(step, gate) and self.pool.try_reserve_all(step.get_requirements()):
                self.starts[step.step_id] = self.env.now
                self.running.add(step.step_id)
                self.env.process(self._run_step(step))
                started += 1
            else:
                remaining.append(step)
        self.pending = remaining
        return started

    def _raise_stalled(self):
        """没有运行中的步骤却仍有未排程步骤：前置条件或资源永远无法满足"""
        gate = self._gate_index()
        ready = [s for s in self.pending if self._is_ready(s, gate)]
        if not ready:
            blocked = self.pending[0]
            waiting = [p for p in blocked.predecessors if p not in self.done]
            raise MalformedProjectError(
                f"步骤 '{blocked.step_id}' 无法就绪（等待 {waiting or '阶段门控'}），"
                f"剩余 {len(self.pending)} 个步骤无法排程"
            )
        blocked = ready[0]
        raise MalformedProjectError(
            f"步骤 '{blocked.step_id}' 的资源需求 {blocked.get_requirements()} "
            f"无法由资源池满足"
        )


class TimelineBuilder:
    """
    时间线构建器

    把施工步骤与资源池转换为不可变的时间线
    """

    def __init__(
        self,
        config: Optional[SimulatorConfig] = None,
        catalog: Optional[List[PhaseDefinition]] = None
    ):
        """
        初始化时间线构建器

        Args:
            config: 全局配置（阶段门控、阶段工期覆盖）
            catalog: 阶段目录，默认由配置生成
        """
        self.config = config or SimulatorConfig()
        self.catalog = catalog or build_phase_catalog(self.config.phase_durations)

    def schedule(
        self,
        steps: Sequence[ConstructionStep],
        resource_pool: ResourcePool,
        project_name: str = ""
    ) -> Timeline:
        """
        排程

        Args:
            steps: 施工步骤
            resource_pool: 资源池（排程期间作为草稿使用，结束后恢复原状）
            project_name: 项目名称

        Returns:
            时间线

        Raises:
            MalformedProjectError: 前置步骤不存在、资源需求超过容量，
                或阶段门控下存在指向更晚阶段的前置依赖
            CyclicDependencyError: 依赖图存在循环
        """
        steps = list(steps)
        check_step_graph(steps)
        if self.config.phase_gating:
            self._check_phase_order(steps)

        for step in steps:
            if not resource_pool.fits_capacity(step.get_requirements()):
                raise MalformedProjectError(
                    f"步骤 '{step.step_id}' 的资源需求 {step.get_requirements()} "
                    f"超过资源池容量 {resource_pool.capacity()}"
                )

        env = simpy.Environment()
        run = _SchedulingRun(env, steps, resource_pool, self.config.phase_gating)
        dispatcher = env.process(run.dispatcher())
        env.run(until=dispatcher)

        scheduled = [
            ScheduledStep(
                step=step,
                scheduled_start=run.starts[step.step_id],
                scheduled_end=run.ends[step.step_id]
            )
            for step in steps
        ]
        scheduled.sort(key=lambda s: (s.scheduled_start,) + s.step.sort_key())

        timeline = Timeline(
            project_name=project_name,
            steps=tuple(scheduled),
            phases=compute_phase_windows(scheduled, self.catalog),
            capacity=resource_pool.capacity()
        )
        logger.info(
            "时间线构建完成：%d 个步骤，总工期 %.1f %s",
            len(timeline), timeline.total_duration, self.config.time_unit
        )
        return timeline

    @staticmethod
    def _check_phase_order(steps: Sequence[ConstructionStep]):
        """
        阶段门控下，步骤不能依赖属于更晚阶段的步骤

        Raises:
            MalformedProjectError: 列出所有违反阶段顺序的依赖边
        """
        by_id = {s.step_id: s for s in steps}
        errors: List[str] = []
        for step in steps:
            for pred_id in step.predecessors:
                pred = by_id[pred_id]
                if pred.phase_index > step.phase_index:
                    errors.append(
                        f"步骤 '{step.step_id}'（{step.phase_id.value}）依赖更晚阶段的步骤 "
                        f"'{pred_id}'（{pred.phase_id.value}），阶段门控下无法排程"
                    )
        if errors:
            raise MalformedProjectError(errors[0], errors=errors)
