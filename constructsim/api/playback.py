"""
播放控制接口
提供播放、暂停、停止、跳转、倍速等控制功能

API端点:
- POST /api/playback/play: 开始/继续播放
- POST /api/playback/pause: 暂停
- POST /api/playback/stop: 停止（释放全部资源）
- POST /api/playback/seek: 跳转到指定时间
- POST /api/playback/speed: 设置倍速
- POST /api/playback/jump-to-phase/{index}: 跳转到阶段开始
- POST /api/playback/tick: 外部节拍推进
- GET /api/playback/state: 获取会话快照
- GET /api/playback/events: 获取事件记录
"""

from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from constructsim.api.session import APIResponse, error_response, get_simulator
from constructsim.core.event_bus import SimulationEvent
from constructsim.exceptions import ConstructionSimError
from constructsim.models.enums import SimulationEventType

router = APIRouter()


# ============ 请求模型 ============

class SeekRequest(BaseModel):
    """跳转请求"""
    time: float = Field(description="目标仿真时间")


class SpeedRequest(BaseModel):
    """倍速请求"""
    multiplier: float = Field(description="播放倍速（必须为正数）")


class TickRequest(BaseModel):
    """节拍请求"""
    delta: float = Field(ge=0, description="墙钟时间增量")


def _command_response(message: str, events: Optional[List[SimulationEvent]] = None) -> APIResponse:
    simulator = get_simulator()
    data = {"state": simulator.get_snapshot()}
    if events is not None:
        data["events"] = [e.to_dict() for e in events]
    return APIResponse(success=True, message=message, data=data)


# ============ API端点 ============

@router.post("/play", response_model=APIResponse)
async def play():
    """开始/继续播放（停止后从当前时间继续）"""
    try:
        events = get_simulator().play()
    except ConstructionSimError as e:
        return error_response(e)
    return _command_response("开始播放", events)


@router.post("/pause", response_model=APIResponse)
async def pause():
    """暂停"""
    try:
        get_simulator().pause()
    except ConstructionSimError as e:
        return error_response(e)
    return _command_response("已暂停")


@router.post("/stop", response_model=APIResponse)
async def stop():
    """停止：释放全部资源，阶段回到等待状态，保留当前时间"""
    try:
        events = get_simulator().stop()
    except ConstructionSimError as e:
        return error_response(e)
    return _command_response("已停止", events)


@router.post("/seek", response_model=APIResponse)
async def seek(request: SeekRequest):
    """跳转到 [0, 总工期] 内任意时刻"""
    try:
        events = get_simulator().seek(request.time)
    except ConstructionSimError as e:
        return error_response(e)
    return _command_response(f"已跳转到 {request.time}", events)


@router.post("/speed", response_model=APIResponse)
async def set_speed(request: SpeedRequest):
    """设置倍速，非法倍速被拒绝且原倍速不变"""
    try:
        get_simulator().set_speed(request.multiplier)
    except ConstructionSimError as e:
        return error_response(e)
    return _command_response(f"倍速已设置为 {request.multiplier}")


@router.post("/jump-to-phase/{index}", response_model=APIResponse)
async def jump_to_phase(index: int):
    """跳转到阶段开始时刻（序号越界时截断）"""
    try:
        events = get_simulator().jump_to_phase(index)
    except ConstructionSimError as e:
        return error_response(e)
    return _command_response(f"已跳转到阶段 {index}", events)


@router.post("/tick", response_model=APIResponse)
async def tick(request: TickRequest):
    """外部节拍：播放中按倍速推进仿真时间"""
    try:
        events = get_simulator().tick(request.delta)
    except ConstructionSimError as e:
        return error_response(e)
    return _command_response("已推进", events)


@router.get("/state", response_model=APIResponse)
async def get_state():
    """获取会话快照"""
    return APIResponse(
        success=True,
        message="获取成功",
        data=get_simulator().get_snapshot()
    )


@router.get("/events", response_model=APIResponse)
async def get_events(
    event_type: Optional[SimulationEventType] = Query(default=None, description="事件类型筛选"),
    start: Optional[float] = Query(default=None, description="开始时间"),
    end: Optional[float] = Query(default=None, description="结束时间"),
    gantt: bool = Query(default=False, description="附带甘特图行")
):
    """
    获取事件记录

    支持按类型和时间范围筛选
    """
    event_log = get_simulator().event_log
    if event_type is not None:
        events = event_log.get_events_by_type(event_type)
    else:
        events = event_log.get_all_events()
    if start is not None or end is not None:
        lower = start if start is not None else float("-inf")
        upper = end if end is not None else float("inf")
        events = [e for e in events if lower <= e.time <= upper]

    data = {
        "events": [e.to_dict() for e in events],
        "summary": event_log.get_summary(),
    }
    if gantt:
        data["gantt"] = event_log.to_gantt_rows()
    return APIResponse(success=True, message="获取成功", data=data)
