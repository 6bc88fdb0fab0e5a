"""
时间线统计计算工具
提供已排程时间线的资源与阶段统计

功能:
- 资源占用曲线（阶梯函数）
- 资源利用率与峰值
- 阶段工期汇总（实际 vs 名义）
- 综合时间线报告
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import numpy as np

from constructsim.models.timeline_model import Timeline
from constructsim.utils.time_converter import format_duration


@dataclass
class ResourceUsage:
    """单一资源类型的使用统计"""
    kind: str
    capacity: int
    peak: int
    busy_time: float
    utilization_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "capacity": self.capacity,
            "peak": self.peak,
            "busy_time": self.busy_time,
            "utilization_rate": self.utilization_rate,
            "utilization_percentage": f"{self.utilization_rate * 100:.1f}%",
        }


def calculate_resource_profile(
    timeline: Timeline,
    kind: str
) -> Tuple[np.ndarray, np.ndarray]:
    """
    计算资源占用曲线

    占用量在相邻断点之间恒定：usage[i] 对应区间 [times[i], times[i+1])

    Args:
        timeline: 时间线
        kind: 资源类型

    Returns:
        (断点时间数组, 各断点起的占用量数组)
    """
    boundaries = [0.0, timeline.total_duration]
    for scheduled in timeline.steps:
        boundaries.append(scheduled.scheduled_start)
        boundaries.append(scheduled.scheduled_end)
    times = np.unique(np.array(boundaries, dtype=float))

    usage = np.zeros(len(times), dtype=int)
    for scheduled in timeline.steps:
        count = scheduled.step.get_requirements().get(kind, 0)
        if count == 0:
            continue
        active = (times >= scheduled.scheduled_start) & (times < scheduled.scheduled_end)
        usage[active] += count
    return times, usage


def calculate_resource_utilization(timeline: Timeline) -> List[ResourceUsage]:
    """
    计算资源利用率

    利用率 = 占用量对时间的积分 / (容量 × 总工期)

    Args:
        timeline: 时间线

    Returns:
        各有限资源类型的使用统计
    """
    total = timeline.total_duration
    results = []
    for kind, capacity in timeline.capacity.items():
        times, usage = calculate_resource_profile(timeline, kind)
        busy_time = float(np.sum(usage[:-1] * np.diff(times))) if len(times) > 1 else 0.0
        peak = int(usage.max()) if len(usage) else 0
        rate = busy_time / (capacity * total) if capacity > 0 and total > 0 else 0.0
        results.append(ResourceUsage(
            kind=kind,
            capacity=capacity,
            peak=peak,
            busy_time=busy_time,
            utilization_rate=min(1.0, rate),
        ))
    return results


def calculate_phase_summary(timeline: Timeline) -> List[Dict[str, Any]]:
    """
    计算阶段工期汇总

    Args:
        timeline: 时间线

    Returns:
        每个阶段的实际工期、名义工期、偏差
    """
    summary = []
    for window in timeline.phases:
        actual = window.end - window.start
        summary.append({
            "phase_id": window.phase.id.value,
            "name": window.phase.name,
            "start": window.start,
            "end": window.end,
            "actual_duration": actual,
            "nominal_duration": window.phase.nominal_duration,
            "deviation": actual - window.phase.nominal_duration,
            "step_count": len(window.step_ids),
        })
    return summary


def calculate_peak_concurrency(timeline: Timeline) -> int:
    """同时进行的最大步骤数"""
    if not timeline.steps:
        return 0
    starts = np.array([s.scheduled_start for s in timeline.steps])
    ends = np.array([s.scheduled_end for s in timeline.steps])
    return int(max(np.sum((starts <= t) & (ends > t)) for t in starts))


def generate_timeline_report(timeline: Timeline, work_days_per_week: int = 6) -> Dict[str, Any]:
    """
    生成完整的时间线报告

    Args:
        timeline: 时间线
        work_days_per_week: 每周工作天数

    Returns:
        报告字典
    """
    element_ids = {s.step.element_id for s in timeline.steps}
    resources = calculate_resource_utilization(timeline)
    bottlenecks = [r.kind for r in resources if r.utilization_rate > 0.8]

    return {
        "summary": {
            "project_name": timeline.project_name,
            "total_duration": timeline.total_duration,
            "total_duration_label": format_duration(timeline.total_duration, work_days_per_week),
            "step_count": len(timeline),
            "element_count": len(element_ids),
            "peak_concurrency": calculate_peak_concurrency(timeline),
        },
        "phases": calculate_phase_summary(timeline),
        "resources": [r.to_dict() for r in resources],
        "bottlenecks": bottlenecks,
    }
