"""
接口会话
各路由共享的仿真驱动器实例与统一响应格式
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from constructsim.core.simulation_driver import ConstructionSimulator
from constructsim.models.config_model import SimulatorConfig, load_config


class APIResponse(BaseModel):
    """统一API响应格式"""
    success: bool = Field(description="请求是否成功")
    message: str = Field(description="响应消息")
    data: Optional[Any] = Field(default=None, description="响应数据")


# 进程内单会话（渲染端/界面共用一个仿真）
_simulator: Optional[ConstructionSimulator] = None


def get_simulator() -> ConstructionSimulator:
    """获取共享的仿真驱动器（首次调用时按默认配置创建）"""
    global _simulator
    if _simulator is None:
        _simulator = ConstructionSimulator(load_config())
    return _simulator


def reset_simulator(config: Optional[SimulatorConfig] = None) -> ConstructionSimulator:
    """替换共享的仿真驱动器"""
    global _simulator
    _simulator = ConstructionSimulator(config or load_config())
    return _simulator


def error_response(error: Exception) -> APIResponse:
    """把仿真错误转换为失败响应"""
    data = {"error": type(error).__name__}
    errors = getattr(error, "errors", None)
    if errors:
        data["errors"] = errors
    cycle = getattr(error, "cycle", None)
    if cycle:
        data["cycle"] = cycle
    return APIResponse(success=False, message=str(error), data=data)
