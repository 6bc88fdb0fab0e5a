"""
仿真驱动器单元测试
测试ConstructionSimulator的播放控制与会话管理

测试内容:
- 项目加载（原子性、循环依赖、无效数据）
- 节拍推进与事件顺序
- 跳转一致性（与连续播放结果相同）
- 停止与恢复（停止清空事件记录）
- 跳转到阶段
- 致命错误处理
- 事件处理函数中的延迟命令

测试项目（默认资源，阶段门控）:
    SITE: clear 0-3, level 3-6, survey 6-7, setup 7-11
    F1:   rebar 11-13, formwork 13-15, pour 15-16, cure 16-19
    C1:   formwork 19-20, rebar 20-21, pour 21-22, cure 22-24
    W1:   formwork 24-26, rebar 26-28, pour 28-29, cure 29-32
"""

import pytest

from constructsim.core.simulation_driver import ConstructionSimulator
from constructsim.exceptions import (
    CyclicDependencyError,
    InvalidSeekError,
    InvalidSpeedError,
    MalformedProjectError,
    NoProjectLoadedError,
    ResourceOveruseError,
    ResourceUnavailableError,
    SessionFailedError,
)
from constructsim.models.config_model import SimulatorConfig
from constructsim.models.enums import PhaseState, SimulationEventType, SimulationStatus

E = SimulationEventType

PROJECT = {
    "name": "Small House",
    "elements": [
        {"id": "SITE", "kind": "site", "geometryRef": "terrain"},
        {"id": "F1", "kind": "footing", "geometryRef": {"ref": "f1", "zone": "A"}},
        {"id": "C1", "kind": "column", "dependsOn": ["F1"], "geometryRef": {"ref": "c1", "zone": "A"}},
        {"id": "W1", "kind": "wall", "dependsOn": ["C1"], "geometryRef": {"ref": "w1", "zone": "A"}},
    ],
}

CYCLIC_PROJECT = {
    "name": "Cyclic",
    "elements": [
        {"id": "X", "kind": "column", "dependsOn": ["Y"], "geometryRef": "x"},
        {"id": "Y", "kind": "column", "dependsOn": ["X"], "geometryRef": "y"},
    ],
}


def create_simulator() -> ConstructionSimulator:
    """辅助函数：创建并加载测试项目"""
    sim = ConstructionSimulator()
    sim.load_project(PROJECT)
    return sim


def event_types(events):
    return [e.event_type for e in events]


class TestProjectLoading:
    """项目加载测试"""

    def test_load(self):
        sim = create_simulator()

        assert sim.status == SimulationStatus.LOADED
        assert sim.get_total_duration() == 32
        assert sim.current_time == 0
        assert sim.pool.is_idle()

    def test_schedule(self):
        sim = create_simulator()
        timeline = sim.timeline

        assert timeline.get("SITE:setup").scheduled_end == 11
        assert timeline.get("F1:rebar").scheduled_start == 11
        assert timeline.get("C1:formwork").scheduled_start == 19
        assert timeline.get("W1:cure").scheduled_end == 32

    def test_cyclic_load_keeps_previous_session(self):
        """测试循环依赖的项目加载失败且保留旧时间线"""
        sim = create_simulator()
        sim.seek(12)
        timeline = sim.timeline

        with pytest.raises(CyclicDependencyError):
            sim.load_project(CYCLIC_PROJECT)

        assert sim.timeline is timeline
        assert sim.status == SimulationStatus.RUNNING
        assert sim.current_time == 12
        assert sim.get_active_step_ids() == ["F1:rebar"]

    def test_backward_phase_dependency_keeps_previous_session(self):
        """测试基础依赖装饰构件时加载失败，错误指明依赖边且保留旧会话"""
        sim = create_simulator()
        sim.seek(12)
        timeline = sim.timeline
        project = {
            "name": "Backward",
            "elements": [
                {"id": "PT", "kind": "painting", "geometryRef": "pt"},
                {"id": "F1", "kind": "footing", "dependsOn": ["PT"], "geometryRef": "f1"},
            ],
        }

        with pytest.raises(MalformedProjectError) as exc_info:
            sim.load_project(project)

        assert len(exc_info.value.errors) == 1
        assert "F1:rebar" in exc_info.value.errors[0]
        assert "PT:finish" in exc_info.value.errors[0]
        assert sim.timeline is timeline
        assert sim.status == SimulationStatus.RUNNING
        assert sim.get_active_step_ids() == ["F1:rebar"]

    def test_malformed_load(self):
        sim = ConstructionSimulator()

        with pytest.raises(MalformedProjectError):
            sim.load_project({"elements": [{"id": "W1", "kind": "wall"}]})

        assert sim.status == SimulationStatus.IDLE
        assert sim.timeline is None

    def test_commands_without_project(self):
        sim = ConstructionSimulator()

        with pytest.raises(NoProjectLoadedError):
            sim.play()
        with pytest.raises(NoProjectLoadedError):
            sim.seek(0)

    def test_reload_resets_session(self):
        sim = create_simulator()
        sim.play()
        sim.tick(12)

        sim.load_project(PROJECT)

        assert sim.status == SimulationStatus.LOADED
        assert sim.current_time == 0
        assert sim.pool.is_idle()
        assert sim.event_log.get_event_count() == 0


class TestTick:
    """节拍推进测试"""

    def test_tick_ignored_while_paused(self):
        sim = create_simulator()

        assert sim.tick(5) == []
        assert sim.current_time == 0

    def test_play_starts_first_step(self):
        sim = create_simulator()

        events = sim.play()

        assert sim.status == SimulationStatus.RUNNING
        assert sim.get_active_step_ids() == ["SITE:clear"]
        assert E.PHASE_STARTED in event_types(events)
        assert sim.pool.occupancy() == {"worker": 4, "excavator": 1}

    def test_completion_before_start(self):
        """测试同一时刻先完成后开始"""
        sim = create_simulator()
        sim.play()

        events = sim.tick(3)

        assert event_types(events) == [E.STEP_COMPLETED, E.STEP_STARTED]
        assert events[0].step_id == "SITE:clear"
        assert events[1].step_id == "SITE:level"
        assert events[1].time == 3
        assert sim.pool.occupancy() == {"worker": 2, "compactor": 1}

    def test_speed_multiplier(self):
        sim = create_simulator()
        sim.set_speed(2)
        sim.play()

        sim.tick(1.5)

        assert sim.current_time == 3

    def test_invalid_speed(self):
        sim = create_simulator()
        sim.set_speed(4)

        with pytest.raises(InvalidSpeedError):
            sim.set_speed(-1)
        assert sim.clock.speed == 4

    def test_pause(self):
        sim = create_simulator()
        sim.play()
        sim.tick(2)
        sim.pause()

        assert sim.tick(2) == []
        assert sim.current_time == 2

    def test_active_at_twelve(self):
        sim = create_simulator()
        sim.play()
        sim.tick(12)

        assert sim.get_active_step_ids() == ["F1:rebar"]
        assert sim.pool.occupancy() == {"worker": 3}
        assert sim.get_current_phase_index() == 2

    def test_finish(self):
        """测试播放到结束：自动暂停且只发出一次完成事件"""
        sim = create_simulator()
        sim.play()

        events = sim.tick(100)
        sim.play()
        sim.tick(1)

        finished = sim.event_log.get_events_by_type(E.SIMULATION_FINISHED)
        assert event_types(events)[-1] == E.SIMULATION_FINISHED
        assert len(finished) == 1
        assert sim.current_time == 32
        assert sim.status == SimulationStatus.FINISHED
        assert sim.pool.is_idle()
        assert sim.get_phase_states() == [PhaseState.COMPLETED] * 8

    def test_phase_order(self):
        """测试阶段严格按目录顺序开始和完成"""
        sim = create_simulator()
        sim.play()
        for _ in range(40):
            sim.tick(1)

        sequence = [
            (e.event_type, e.phase_index)
            for e in sim.event_log.get_all_events()
            if e.event_type in (E.PHASE_STARTED, E.PHASE_COMPLETED)
        ]
        expected = []
        for index in range(8):
            expected += [(E.PHASE_STARTED, index), (E.PHASE_COMPLETED, index)]
        assert sequence == expected

    def test_pool_matches_timeline(self):
        """测试逐帧推进时资源占用与时间线一致"""
        sim = create_simulator()
        sim.play()
        for _ in range(64):
            sim.tick(0.5)
            expected = {
                kind: count
                for kind, count in sim.timeline.occupancy_at(sim.current_time).items()
                if sim.pool.is_constrained(kind)
            }
            assert sim.pool.occupancy() == expected


class TestSeek:
    """跳转测试"""

    def test_seek_matches_continuous_play(self):
        played = create_simulator()
        played.play()
        played.tick(12)

        jumped = create_simulator()
        jumped.seek(12)

        assert jumped.get_active_step_ids() == played.get_active_step_ids()
        assert jumped.pool.occupancy() == played.pool.occupancy()
        assert jumped.get_phase_states() == played.get_phase_states()

    def test_seek_is_idempotent(self):
        """测试 seek(12) → seek(25) → seek(12) 与直接 seek(12) 一致"""
        sim = create_simulator()
        sim.seek(12)
        sim.seek(25)
        sim.seek(12)

        fresh = create_simulator()
        fresh.seek(12)

        assert sim.get_active_step_ids() == fresh.get_active_step_ids()
        assert sim.pool.occupancy() == fresh.pool.occupancy()
        assert sim.get_phase_states() == fresh.get_phase_states()

    def test_backward_seek_emits_reverts(self):
        sim = create_simulator()
        sim.seek(25)

        events = sim.seek(12)
        types = set(event_types(events))

        assert types == {E.STEP_REVERTED, E.PHASE_REVERTED}
        reverted_phases = [e.phase_index for e in events if e.event_type == E.PHASE_REVERTED]
        assert reverted_phases == [3, 2]
        restored = {e.step_id: e.data["to"] for e in events if e.step_id == "F1:rebar"}
        assert restored == {"F1:rebar": "active"}

    def test_seek_out_of_range(self):
        sim = create_simulator()
        sim.seek(5)

        with pytest.raises(InvalidSeekError):
            sim.seek(33)
        with pytest.raises(InvalidSeekError):
            sim.seek(-1)
        assert sim.current_time == 5
        assert sim.status == SimulationStatus.RUNNING

    def test_seek_keeps_play_state(self):
        sim = create_simulator()
        sim.play()
        sim.seek(20)

        assert sim.clock.is_playing
        sim.tick(1)
        assert sim.current_time == 21

    def test_seek_back_from_finished(self):
        sim = create_simulator()
        sim.seek(32)
        assert sim.status == SimulationStatus.FINISHED

        sim.seek(30)

        assert sim.status == SimulationStatus.RUNNING
        assert sim.get_active_step_ids() == ["W1:cure"]


class TestStopAndJump:
    """停止与阶段跳转测试"""

    def test_stop_releases_everything(self):
        sim = create_simulator()
        sim.play()
        sim.tick(12)

        events = sim.stop()

        assert event_types(events) == [E.SIMULATION_STOPPED]
        assert sim.status == SimulationStatus.STOPPED
        assert sim.pool.is_idle()
        assert sim.get_active_step_ids() == []
        assert sim.get_phase_states() == [PhaseState.PENDING] * 8
        assert sim.current_time == 12

    def test_stop_clears_event_log(self):
        sim = create_simulator()
        sim.play()
        sim.tick(12)
        assert sim.event_log.get_event_count() > 1

        sim.stop()

        assert event_types(sim.event_log.get_all_events()) == [E.SIMULATION_STOPPED]

    def test_event_log_limit_from_config(self):
        sim = ConstructionSimulator(SimulatorConfig(event_log_limit=3))
        sim.load_project(PROJECT)

        sim.seek(32)

        assert sim.event_log.get_event_count() == 3
        assert sim.event_log.get_all_events()[-1].event_type == E.SIMULATION_FINISHED

    def test_resume_after_stop(self):
        """测试停止后播放从当前时间继续"""
        sim = create_simulator()
        sim.play()
        sim.tick(12)
        sim.stop()

        sim.play()

        assert sim.current_time == 12
        assert sim.get_active_step_ids() == ["F1:rebar"]
        assert sim.pool.occupancy() == {"worker": 3}

    def test_jump_to_phase(self):
        sim = create_simulator()

        sim.jump_to_phase(3)

        assert sim.current_time == 19
        assert sim.get_active_step_ids() == ["C1:formwork"]

    @pytest.mark.parametrize("index, expected", [(99, 32), (-5, 0)])
    def test_jump_index_clamped(self, index, expected):
        sim = create_simulator()

        sim.jump_to_phase(index)

        assert sim.current_time == expected


class TestFatalErrors:
    """致命错误测试"""

    def test_unavailable_resources_fail_session(self):
        sim = create_simulator()
        sim.play()
        # 外部占用压实机，场地平整无法开始
        sim.pool.try_reserve("compactor", 1)

        with pytest.raises(ResourceUnavailableError):
            sim.tick(3.5)

        assert sim.status == SimulationStatus.FAILED
        assert sim.last_error
        assert sim.event_log.get_events_by_type(E.SIMULATION_FAILED)
        assert sim.pool.is_idle()

    def test_failed_session_rejects_commands(self):
        sim = create_simulator()
        sim.play()
        sim.pool.try_reserve("compactor", 1)
        with pytest.raises(ResourceUnavailableError):
            sim.tick(3.5)

        with pytest.raises(SessionFailedError):
            sim.play()
        with pytest.raises(SessionFailedError):
            sim.seek(1)

        sim.load_project(PROJECT)
        assert sim.status == SimulationStatus.LOADED
        sim.play()
        assert sim.status == SimulationStatus.RUNNING

    def test_overuse_fails_session(self):
        sim = create_simulator()
        sim.play()
        sim.pool.reset()

        with pytest.raises(ResourceOveruseError):
            sim.tick(3.5)

        assert sim.status == SimulationStatus.FAILED

    def test_fatal_error_in_deferred_command_propagates(self):
        """测试事件处理函数中发出的命令失败时，由外层命令抛出致命错误"""
        sim = create_simulator()
        sim.play()
        calls = []

        def on_started(event):
            if calls:
                return
            calls.append(event.step_id)
            sim.pool.reset()
            sim.tick(3)

        sim.subscribe(E.STEP_STARTED, on_started)

        with pytest.raises(ResourceOveruseError):
            sim.tick(3.5)

        assert calls == ["SITE:level"]
        assert sim.status == SimulationStatus.FAILED
        assert sim.event_log.get_events_by_type(E.SIMULATION_FAILED)
        assert sim.pool.is_idle()


class TestSubscribers:
    """订阅者测试"""

    def test_command_from_handler_is_deferred(self):
        """测试事件处理函数中发出的暂停在当前节拍结束后执行"""
        sim = create_simulator()
        sim.play()
        seen = []

        def on_started(event):
            seen.append((event.step_id, sim.current_time))
            sim.pause()

        sim.subscribe(E.STEP_STARTED, on_started)
        events = sim.tick(7.5)

        assert [s for s, _ in seen] == ["SITE:level", "SITE:survey", "SITE:setup"]
        assert all(t == 7.5 for _, t in seen)
        assert len([e for e in events if e.event_type == E.STEP_STARTED]) == 3
        assert sim.current_time == 7.5
        assert not sim.clock.is_playing

    def test_raising_handler_is_isolated(self):
        sim = create_simulator()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        sim.subscribe_all(broken)
        sim.subscribe_all(received.append)
        sim.play()
        sim.tick(3)

        assert sim.status == SimulationStatus.RUNNING
        assert any(e.step_id == "SITE:level" for e in received)

    def test_unsubscribe(self):
        sim = create_simulator()
        received = []
        handler = sim.subscribe(E.STEP_STARTED, received.append)
        sim.unsubscribe(handler)

        sim.play()

        assert received == []

    def test_snapshot(self):
        sim = create_simulator()
        sim.seek(12)

        snapshot = sim.get_snapshot()

        assert snapshot["status"] == "running"
        assert snapshot["project_name"] == "Small House"
        assert snapshot["current_phase"] == "foundations"
        assert snapshot["active_steps"] == ["F1:rebar"]
        assert snapshot["overall_progress"] == pytest.approx(12 / 32)
        assert snapshot["phase_progress"] == pytest.approx(1 / 8)
