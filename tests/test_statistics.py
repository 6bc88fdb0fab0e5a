"""
统计与时间转换工具单元测试
"""

import pytest

from constructsim.core.resource_pool import ResourcePool
from constructsim.core.timeline_builder import TimelineBuilder
from constructsim.models.step_model import ConstructionStep
from constructsim.utils.statistics import (
    calculate_peak_concurrency,
    calculate_phase_summary,
    calculate_resource_profile,
    calculate_resource_utilization,
    generate_timeline_report,
)
from constructsim.utils.time_converter import (
    days_to_week_day,
    format_duration,
    format_sim_time,
    week_day_to_days,
)


@pytest.fixture
def serial_timeline():
    """A(2) → B(3)，工人容量1"""
    steps = [
        ConstructionStep(step_id="A", task_name="A", duration=2),
        ConstructionStep(step_id="B", task_name="B", duration=3, predecessors=("A",), order=1),
    ]
    return TimelineBuilder().schedule(steps, ResourcePool({"worker": 1}), project_name="Serial")


class TestStatistics:
    """时间线统计测试"""

    def test_resource_profile(self, serial_timeline):
        times, usage = calculate_resource_profile(serial_timeline, "worker")

        assert list(times) == [0, 2, 5]
        assert list(usage) == [1, 1, 0]

    def test_utilization(self, serial_timeline):
        (worker,) = calculate_resource_utilization(serial_timeline)

        assert worker.kind == "worker"
        assert worker.peak == 1
        assert worker.busy_time == pytest.approx(5)
        assert worker.utilization_rate == pytest.approx(1.0)

    def test_peak_concurrency(self, serial_timeline):
        assert calculate_peak_concurrency(serial_timeline) == 1

    def test_phase_summary(self, serial_timeline):
        summary = calculate_phase_summary(serial_timeline)
        structure = [p for p in summary if p["phase_id"] == "structure"][0]

        assert structure["actual_duration"] == 5
        assert structure["step_count"] == 2

    def test_report(self, serial_timeline):
        report = generate_timeline_report(serial_timeline)

        assert report["summary"]["project_name"] == "Serial"
        assert report["summary"]["total_duration"] == 5
        assert report["summary"]["step_count"] == 2
        assert report["bottlenecks"] == ["worker"]


class TestTimeConverter:
    """时间转换测试"""

    def test_week_day(self):
        assert days_to_week_day(2, 6) == "W1 D3.0"
        assert days_to_week_day(6, 6) == "W2 D1.0"
        assert week_day_to_days(2, 1, 6) == 6.0

    def test_format_sim_time(self):
        assert format_sim_time(12.5) == "12.5天"
        assert format_sim_time(3) == "3天"
        assert format_sim_time(2, "hour") == "2小时"

    def test_format_duration(self):
        assert format_duration(4.5) == "4.5天"
        assert format_duration(6) == "1周"
        assert format_duration(9) == "1周3天"
