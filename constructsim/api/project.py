"""
项目接口
提供项目加载与时间线查询功能

API端点:
- POST /api/project/load: 加载项目并构建时间线
- GET /api/project/timeline: 获取已排程的时间线
- GET /api/project/phases: 获取阶段时间窗与当前状态
- GET /api/project/element-kinds: 获取构件类型与步骤模板
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException

from constructsim.api.session import APIResponse, error_response, get_simulator
from constructsim.exceptions import ProjectLoadError
from constructsim.models.templates import list_element_kinds
from constructsim.utils.statistics import generate_timeline_report

router = APIRouter()


def _require_timeline():
    simulator = get_simulator()
    if simulator.timeline is None:
        raise HTTPException(status_code=404, detail="尚未加载项目")
    return simulator


@router.post("/load", response_model=APIResponse)
async def load_project(payload: Dict[str, Any] = Body(...)):
    """
    加载项目

    请求体为项目模型：{name, elements: [{id, kind, dependsOn, geometryRef}]}

    加载是原子的：失败时返回错误信息，当前会话保持不变
    """
    simulator = get_simulator()
    try:
        timeline = simulator.load_project(payload)
    except ProjectLoadError as e:
        return error_response(e)

    return APIResponse(
        success=True,
        message=f"项目 '{timeline.project_name}' 加载成功",
        data={
            "project_name": timeline.project_name,
            "step_count": len(timeline),
            "total_duration": timeline.total_duration,
            "phases": [w.to_dict() for w in timeline.phases],
        }
    )


@router.get("/timeline", response_model=APIResponse)
async def get_timeline():
    """
    获取时间线

    返回所有已排程步骤（按开始时间排列）和时间线报告
    """
    simulator = _require_timeline()
    timeline = simulator.timeline
    return APIResponse(
        success=True,
        message="获取成功",
        data={
            "steps": timeline.to_rows(),
            "report": generate_timeline_report(
                timeline, simulator.config.work_days_per_week
            ),
        }
    )


@router.get("/phases", response_model=APIResponse)
async def get_phases():
    """获取阶段时间窗及当前时刻的阶段状态"""
    simulator = _require_timeline()
    states = simulator.get_phase_states()
    phases = []
    for window, state in zip(simulator.timeline.phases, states):
        item = window.to_dict()
        item["state"] = state.value
        item["progress"] = window.progress_at(simulator.current_time)
        phases.append(item)
    return APIResponse(
        success=True,
        message="获取成功",
        data={
            "current_phase_index": simulator.get_current_phase_index(),
            "phases": phases,
        }
    )


@router.get("/element-kinds", response_model=APIResponse)
async def get_element_kinds():
    """获取支持的构件类型及其步骤模板"""
    return APIResponse(
        success=True,
        message="获取成功",
        data=list_element_kinds()
    )
