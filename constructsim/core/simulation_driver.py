"""
仿真驱动器
按播放时钟推进已排程的时间线，分配资源并发出事件

功能:
- 项目加载（原子：新时间线完整构建后才替换旧会话）
- 播放控制：播放、暂停、停止、跳转、倍速、跳转到阶段、外部节拍
- 节拍推进：按时间顺序重放区间内的状态边界，完成先于开始
- 跳转：从零重新计算活动步骤集合与资源占用（与连续播放结果一致）
- 致命错误处理：资源不变量被破坏时销毁会话，需重新加载

设计要点:
- 会话状态（时间线、资源池、阶段跟踪器、已占用步骤）全部由驱动器持有
- 事件处理函数中发出的播放控制命令延迟到当前命令结束后执行
- 同一时刻的处理顺序：步骤完成 → 阶段完成/开始 → 步骤开始
"""

import functools
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Tuple, Union

from constructsim.core.dependency_graph import DependencyGraphBuilder
from constructsim.core.event_bus import EventBus, EventHandler, EventLog, SimulationEvent
from constructsim.core.phase_machine import PhaseChange, PhaseTracker
from constructsim.core.playback_clock import PlaybackClock
from constructsim.core.resource_pool import ResourcePool
from constructsim.core.timeline_builder import TimelineBuilder
from constructsim.exceptions import (
    ConstructionSimError,
    NoProjectLoadedError,
    PhaseTransitionError,
    ProjectLoadError,
    ResourceOveruseError,
    ResourceUnavailableError,
    SessionFailedError,
)
from constructsim.models.config_model import SimulatorConfig
from constructsim.models.enums import (
    PhaseState,
    SimulationEventType,
    SimulationStatus,
    StepStatus,
)
from constructsim.models.phase_model import build_phase_catalog
from constructsim.models.project_model import ProjectModel, parse_project
from constructsim.models.timeline_model import (
    PhaseWindow,
    ScheduledStep,
    Timeline,
    Transition,
)
from constructsim.utils.logger import get_logger

logger = get_logger(__name__)

# 会话已占用资源、正在跟踪阶段的状态
ARMED_STATUSES = (SimulationStatus.RUNNING, SimulationStatus.FINISHED)

# 致命错误：会话必须销毁后重新加载
FATAL_ERRORS = (ResourceOveruseError, ResourceUnavailableError, PhaseTransitionError)


def transport_command(method: Callable) -> Callable:
    """
    播放控制命令装饰器

    命令执行期间（包括事件分发）再次发出的命令进入延迟队列，
    在外层命令结束后依次执行；延迟命令的致命错误由外层命令抛出
    """
    @functools.wraps(method)
    def wrapper(self: "ConstructionSimulator", *args, **kwargs):
        if self._in_command:
            logger.debug("延迟执行命令 %s%r", method.__name__, args)
            self._deferred.append((method, args, kwargs))
            return None
        try:
            result = self._execute(method, args, kwargs)
            self._run_deferred()
        except Exception:
            self._deferred.clear()
            raise
        return result
    return wrapper


class ConstructionSimulator:
    """
    施工仿真驱动器

    负责协调整个仿真会话，包括：
    - 项目加载与时间线构建
    - 按播放时钟推进并分配资源
    - 阶段状态机驱动
    - 事件分发与记录
    """

    def __init__(self, config: Optional[SimulatorConfig] = None):
        """
        初始化仿真驱动器

        Args:
            config: 全局配置
        """
        self.config = config or SimulatorConfig()
        self.catalog = build_phase_catalog(self.config.phase_durations)
        self.graph_builder = DependencyGraphBuilder(self.config)
        self.timeline_builder = TimelineBuilder(self.config, self.catalog)

        self.event_bus = EventBus()
        self.event_log = EventLog(
            self.config.work_days_per_week,
            self.config.time_unit,
            max_events=self.config.event_log_limit
        )
        self.event_bus.subscribe_all(self.event_log.add_event)

        # 会话状态（load_project 时创建）
        self.project: Optional[ProjectModel] = None
        self.timeline: Optional[Timeline] = None
        self.pool = ResourcePool.from_config(self.config)
        self.clock = PlaybackClock(speed=self.config.default_speed)
        self.tracker = PhaseTracker(self.catalog)
        self.status = SimulationStatus.IDLE
        self.last_error: Optional[str] = None

        self._held: Set[str] = set()
        self._observed_time: Optional[float] = None
        self._finished_emitted = False
        self._emitted: List[SimulationEvent] = []
        self._in_command = False
        self._deferred: Deque[Tuple[Callable, tuple, dict]] = deque()

    # ============ 项目加载 ============

    @transport_command
    def load_project(self, model: Union[ProjectModel, dict]) -> Timeline:
        """
        加载项目

        新时间线完整构建成功后才替换当前会话；失败时旧会话保持不变

        Args:
            model: 项目模型或原始字典

        Returns:
            新时间线

        Raises:
            MalformedProjectError: 构件数据无效
            CyclicDependencyError: 依赖图存在循环
        """
        try:
            project = parse_project(model)
            steps = self.graph_builder.build(project)
            pool = ResourcePool.from_config(self.config)
            timeline = self.timeline_builder.schedule(steps, pool, project.name)
        except ProjectLoadError as e:
            logger.warning("项目加载失败，保留当前会话: %s", e)
            raise

        self._teardown()
        self.project = project
        self.timeline = timeline
        self.pool = pool
        self.tracker = PhaseTracker(self.catalog)
        self.clock.reset(timeline.total_duration, self.config.default_speed)
        self.event_log.clear()
        self.status = SimulationStatus.LOADED
        self.last_error = None
        self._finished_emitted = False

        logger.info(
            "项目 '%s' 已加载：%d 个步骤，%d 个阶段，总工期 %.1f %s",
            project.name, len(timeline), len(timeline.phases),
            timeline.total_duration, self.config.time_unit
        )
        return timeline

    # ============ 播放控制 ============

    @transport_command
    def play(self) -> List[SimulationEvent]:
        """
        开始/继续播放

        停止后再次播放从时钟当前时间继续，不回到0

        Returns:
            本次命令发出的事件
        """
        self._require_session()
        if self.status not in ARMED_STATUSES:
            self._arm()
            self._advance_to(self.clock.current_time, mutate_pool=False)
            self._rebuild_pool(self.clock.current_time)
            self._check_finished()
        self.clock.play()
        logger.debug("播放 t=%.2f", self.clock.current_time)
        return self._take_emitted()

    @transport_command
    def pause(self):
        """暂停，当前时间冻结"""
        self._require_session()
        self.clock.pause()
        logger.debug("暂停 t=%.2f", self.clock.current_time)

    @transport_command
    def stop(self) -> List[SimulationEvent]:
        """
        停止

        释放全部占用资源，阶段状态机回到 pending，当前时间保留
        事件记录随之清空，只保留本次停止事件
        """
        self._require_session()
        self.clock.pause()
        for step_id in sorted(self._held):
            self.pool.release_all(self.timeline.get(step_id).step.get_requirements())
        self._held.clear()
        self.tracker.reset()
        self._observed_time = None
        self._finished_emitted = False
        self.event_log.clear()
        self.status = SimulationStatus.STOPPED
        self._emit(SimulationEvent(
            SimulationEventType.SIMULATION_STOPPED,
            self.clock.current_time
        ))
        logger.debug("停止 t=%.2f", self.clock.current_time)
        return self._take_emitted()

    @transport_command
    def seek(self, time: float) -> List[SimulationEvent]:
        """
        跳转到指定时间

        活动步骤集合与资源占用从零重新计算，
        结果与从头连续播放到该时刻完全一致

        Args:
            time: 目标时间（[0, 总工期]）

        Returns:
            本次命令发出的事件（向后跳转时为回退事件）

        Raises:
            InvalidSeekError: 时间超出范围（状态不变）
        """
        self._require_session()
        self._seek_to(time)
        return self._take_emitted()

    @transport_command
    def set_speed(self, multiplier: float):
        """
        设置倍速

        Raises:
            InvalidSpeedError: 倍速不是正数（原倍速不变）
        """
        self._require_alive()
        self.clock.set_speed(multiplier)
        logger.debug("倍速 %.2f", multiplier)

    @transport_command
    def jump_to_phase(self, index: int) -> List[SimulationEvent]:
        """
        跳转到阶段开始时刻

        Args:
            index: 阶段序号（越界时截断到目录范围）
        """
        self._require_session()
        index = max(0, min(int(index), len(self.timeline.phases) - 1))
        window = self.timeline.phases[index]
        logger.debug("跳转到阶段 %d (%s)", index, window.phase.name)
        self._seek_to(window.start)
        return self._take_emitted()

    @transport_command
    def tick(self, delta: float) -> List[SimulationEvent]:
        """
        外部节拍

        仅在播放中推进 currentTime += delta * speed，
        按时间顺序重放区间内的边界：完成释放资源，开始预留资源

        Args:
            delta: 墙钟时间增量

        Returns:
            本次节拍发出的事件
        """
        self._require_session()
        if not self.clock.is_playing:
            return []
        if self.status not in ARMED_STATUSES:
            self._arm()
        _, new = self.clock.advance(delta)
        if self._observed_time is None or new > self._observed_time:
            self._advance_to(new, mutate_pool=True)
        self._check_finished()
        return self._take_emitted()

    # ============ 订阅 ============

    def subscribe(self, event_type: SimulationEventType, handler: EventHandler) -> EventHandler:
        return self.event_bus.subscribe(event_type, handler)

    def subscribe_all(self, handler: EventHandler) -> EventHandler:
        return self.event_bus.subscribe_all(handler)

    def unsubscribe(self, handler: EventHandler, event_type: Optional[SimulationEventType] = None):
        self.event_bus.unsubscribe(handler, event_type)

    # ============ 查询 ============

    @property
    def current_time(self) -> float:
        return self.clock.current_time

    def get_total_duration(self) -> float:
        return self.timeline.total_duration if self.timeline else 0.0

    def get_current_phase_index(self) -> int:
        if self.timeline is None:
            return 0
        return self.timeline.phase_index_at(self.clock.current_time)

    def get_phase_progress(self) -> float:
        """
        当前阶段的时间进度

        Returns:
            0-1 之间的进度
        """
        if self.timeline is None or not self.timeline.phases:
            return 0.0
        t = self.clock.current_time
        return self.timeline.phases[self.timeline.phase_index_at(t)].progress_at(t)

    def get_overall_progress(self) -> float:
        if self.timeline is None:
            return 0.0
        return self.clock.state.progress

    def get_active_step_ids(self) -> List[str]:
        """当前占用资源的步骤（时间线顺序）"""
        if self.timeline is None:
            return []
        return [s.step_id for s in self.timeline.steps if s.step_id in self._held]

    def get_phase_states(self) -> List[PhaseState]:
        return self.tracker.states()

    def get_snapshot(self) -> Dict[str, Any]:
        """
        获取会话快照

        Returns:
            状态、播放状态、阶段、活动步骤、资源占用
        """
        playback = self.clock.state
        phase_index = self.get_current_phase_index()
        return {
            "status": self.status.value,
            "project_name": self.project.name if self.project else None,
            "current_time": playback.current_time,
            "speed_multiplier": playback.speed_multiplier,
            "is_playing": playback.is_playing,
            "total_duration": playback.total_duration,
            "overall_progress": self.get_overall_progress(),
            "current_phase_index": phase_index,
            "current_phase": (
                self.timeline.phases[phase_index].phase.id.value
                if self.timeline and self.timeline.phases else None
            ),
            "phase_progress": self.get_phase_progress(),
            "phase_states": [s.value for s in self.tracker.states()],
            "active_steps": self.get_active_step_ids(),
            "occupancy": self.pool.occupancy(),
            "resources": self.pool.snapshot(),
            "last_error": self.last_error,
        }

    # ============ 内部：会话 ============

    def _require_alive(self):
        if self.status == SimulationStatus.FAILED:
            raise SessionFailedError(f"会话已失效，请重新加载项目: {self.last_error}")

    def _require_session(self):
        self._require_alive()
        if self.timeline is None:
            raise NoProjectLoadedError("尚未加载项目")

    def _arm(self):
        """从零开始跟踪：资源全部归还，阶段回到 pending"""
        self.pool.reset()
        self._held.clear()
        self.tracker.reset()
        self._observed_time = None
        self._finished_emitted = False
        self.status = SimulationStatus.RUNNING

    def _teardown(self):
        """销毁当前会话（不发出事件）"""
        self.clock.pause()
        self.pool.reset()
        self._held.clear()
        self.tracker.reset()
        self._observed_time = None
        self._emitted = []

    def _fail(self, error: Exception):
        """致命错误：销毁会话并通知订阅者"""
        logger.error("仿真会话失败: %s", error, exc_info=error)
        t = self.clock.current_time
        self._teardown()
        self.status = SimulationStatus.FAILED
        self.last_error = str(error)
        self._emit(SimulationEvent(
            SimulationEventType.SIMULATION_FAILED,
            t,
            data={"error": type(error).__name__, "message": str(error)}
        ))

    def _execute(self, method: Callable, args: tuple, kwargs: dict):
        self._in_command = True
        try:
            return method(self, *args, **kwargs)
        except FATAL_ERRORS as e:
            self._fail(e)
            raise
        finally:
            self._in_command = False

    def _run_deferred(self):
        """依次执行延迟命令；致命错误向外层命令的调用方传播"""
        while self._deferred:
            method, args, kwargs = self._deferred.popleft()
            try:
                self._execute(method, args, kwargs)
            except FATAL_ERRORS:
                raise
            except ConstructionSimError as e:
                logger.warning("延迟命令 %s 执行失败: %s", method.__name__, e)

    # ============ 内部：状态推进 ============

    def _seek_to(self, time: float):
        self.clock.seek(time)
        t = self.clock.current_time
        if self.status not in ARMED_STATUSES:
            self._arm()

        if self._observed_time is not None and t < self._observed_time:
            self._revert_to(t)
        else:
            self._advance_to(t, mutate_pool=False)
        self._rebuild_pool(t)
        self._check_finished()
        logger.debug("跳转 t=%.2f，活动步骤 %d 个", t, len(self._held))

    def _advance_to(self, t: float, mutate_pool: bool):
        """
        向前重放 (observed, t] 内的边界

        Args:
            t: 目标时间
            mutate_pool: 是否逐个边界预留/释放资源（跳转时改为事后整体重建）
        """
        for transition in self.timeline.transitions_between(self._observed_time, t):
            if transition.phase is not None:
                self._apply_phase_transition(transition)
            elif transition.entering:
                self._start_step(transition.step, mutate_pool)
            else:
                self._complete_step(transition.step, mutate_pool)
        self._observed_time = t

    def _revert_to(self, t: float):
        """向后跳转：按逆序撤销 (t, observed] 内的边界"""
        transitions = self.timeline.transitions_between(t, self._observed_time)
        for transition in reversed(transitions):
            if transition.phase is not None:
                change = self.tracker.revert_phase(transition.phase.index)
                self._emit_phase(SimulationEventType.PHASE_REVERTED, transition.phase, change)
                continue
            scheduled = transition.step
            restored = StepStatus.PENDING if transition.entering else StepStatus.ACTIVE
            if transition.entering:
                self._held.discard(scheduled.step_id)
            else:
                self._held.add(scheduled.step_id)
            self._emit_step(
                SimulationEventType.STEP_REVERTED, scheduled,
                {"to": restored.value}
            )
        self._observed_time = t

    def _start_step(self, scheduled: ScheduledStep, mutate_pool: bool):
        requirements = scheduled.step.get_requirements()
        if mutate_pool and not self.pool.try_reserve_all(requirements):
            raise ResourceUnavailableError(scheduled.step_id, requirements)
        self._held.add(scheduled.step_id)
        self._emit_step(SimulationEventType.STEP_STARTED, scheduled)

    def _complete_step(self, scheduled: ScheduledStep, mutate_pool: bool):
        if mutate_pool:
            self.pool.release_all(scheduled.step.get_requirements())
        self._held.discard(scheduled.step_id)
        self._emit_step(SimulationEventType.STEP_COMPLETED, scheduled)

    def _apply_phase_transition(self, transition: Transition):
        window = transition.phase
        if transition.entering:
            change = self.tracker.start_phase(window.index)
            self._emit_phase(SimulationEventType.PHASE_STARTED, window, change)
        else:
            change = self.tracker.complete_phase(window.index)
            self._emit_phase(SimulationEventType.PHASE_COMPLETED, window, change)

    def _rebuild_pool(self, t: float):
        """资源占用从零重建：归还全部资源，再为 t 时刻的活动步骤预留"""
        self.pool.reset()
        active = self.timeline.active_at(t)
        for scheduled in active:
            requirements = scheduled.step.get_requirements()
            if not self.pool.try_reserve_all(requirements):
                raise ResourceUnavailableError(scheduled.step_id, requirements)
        self._held = {s.step_id for s in active}

    def _check_finished(self):
        t = self.clock.current_time
        if self.tracker.is_finished():
            if not self._finished_emitted:
                self._finished_emitted = True
                self.status = SimulationStatus.FINISHED
                self._emit(SimulationEvent(
                    SimulationEventType.SIMULATION_FINISHED, t,
                    data={"total_duration": self.timeline.total_duration}
                ))
                logger.info("仿真完成，总工期 %.1f %s", t, self.config.time_unit)
        elif self.status == SimulationStatus.FINISHED or self._finished_emitted:
            self._finished_emitted = False
            self.status = SimulationStatus.RUNNING

    # ============ 内部：事件 ============

    def _emit(self, event: SimulationEvent):
        self._emitted.append(event)
        self.event_bus.publish(event)

    def _emit_step(
        self,
        event_type: SimulationEventType,
        scheduled: ScheduledStep,
        data: Optional[Dict[str, Any]] = None
    ):
        step = scheduled.step
        if event_type == SimulationEventType.STEP_STARTED:
            time = scheduled.scheduled_start
        elif event_type == SimulationEventType.STEP_COMPLETED:
            time = scheduled.scheduled_end
        else:
            time = self.clock.current_time
        self._emit(SimulationEvent(
            event_type,
            time,
            step_id=step.step_id,
            element_id=step.element_id,
            task_name=step.task_name,
            phase_id=step.phase_id.value,
            phase_index=step.phase_index,
            data=data or {},
        ))

    def _emit_phase(self, event_type: SimulationEventType, window: PhaseWindow, change: PhaseChange):
        if event_type == SimulationEventType.PHASE_STARTED:
            time = window.start
        elif event_type == SimulationEventType.PHASE_COMPLETED:
            time = window.end
        else:
            time = self.clock.current_time
        self._emit(SimulationEvent(
            event_type,
            time,
            phase_id=window.phase.id.value,
            phase_index=window.index,
            data={"name": window.phase.name, "to": change.new_state.value},
        ))

    def _take_emitted(self) -> List[SimulationEvent]:
        emitted, self._emitted = self._emitted, []
        return emitted
