"""
全局配置模型
定义仿真系统的全局配置参数

配置项:
- 资源池容量（工人与设备）
- 阶段门控与名义工期
- 播放默认倍速
- 事件记录容量上限
- 日志级别
"""

import os
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from constructsim.exceptions import ConfigError
from constructsim.models.enums import PhaseId

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "config", "default_config.yaml"
)


class SimulatorConfig(BaseModel):
    """
    全局配置模型

    Attributes:
        resources: 资源类型 -> 容量（未配置的设备类型视为普通工具，不限量）
        phase_gating: 是否启用阶段门控（后一阶段的步骤必须等前一阶段全部完成）
        default_speed: 默认播放倍速
        time_unit: 仿真时间单位
        phase_durations: 阶段名义工期覆盖（阶段ID -> 天）
        template_duration_scale: 模板工期缩放系数
        work_days_per_week: 每周工作天数（时间格式化用）
        event_log_limit: 事件记录最多保留的事件数（0 表示不限）
        log_level: 日志级别
    """

    resources: Dict[str, int] = Field(
        default={
            "worker": 12,
            "excavator": 2,
            "crane": 1,
            "concrete_mixer": 2,
            "scaffolding": 4,
            "compactor": 1,
        },
        description="资源容量"
    )
    phase_gating: bool = Field(
        default=True,
        description="阶段门控"
    )
    default_speed: float = Field(
        default=1.0,
        gt=0,
        description="默认播放倍速"
    )
    time_unit: str = Field(
        default="day",
        description="仿真时间单位"
    )
    phase_durations: Dict[str, float] = Field(
        default_factory=dict,
        description="阶段名义工期覆盖"
    )
    template_duration_scale: float = Field(
        default=1.0,
        gt=0,
        description="模板工期缩放系数"
    )
    work_days_per_week: int = Field(
        default=6,
        ge=1,
        le=7,
        description="每周工作天数"
    )
    event_log_limit: int = Field(
        default=50000,
        ge=0,
        description="事件记录容量上限"
    )
    log_level: str = Field(
        default="INFO",
        description="日志级别"
    )

    @field_validator("resources")
    @classmethod
    def _check_resources(cls, value: Dict[str, int]) -> Dict[str, int]:
        for kind, capacity in value.items():
            if capacity < 0:
                raise ValueError(f"资源 '{kind}' 容量不能为负")
        return value

    @field_validator("phase_durations")
    @classmethod
    def _check_phase_durations(cls, value: Dict[str, float]) -> Dict[str, float]:
        valid_ids = {p.value for p in PhaseId}
        for phase_id, duration in value.items():
            if phase_id not in valid_ids:
                raise ValueError(f"未知阶段 '{phase_id}'")
            if duration < 0:
                raise ValueError(f"阶段 '{phase_id}' 工期不能为负")
        return value

    def get_capacity(self, kind: str) -> int:
        """
        获取资源容量

        Args:
            kind: 资源类型

        Returns:
            容量，不存在返回0
        """
        return self.resources.get(kind, 0)

    class Config:
        json_schema_extra = {
            "example": {
                "resources": {"worker": 12, "excavator": 2, "crane": 1},
                "phase_gating": True,
                "default_speed": 1.0,
                "template_duration_scale": 1.0
            }
        }


def load_config(path: Optional[str] = None) -> SimulatorConfig:
    """
    加载配置文件

    Args:
        path: YAML配置文件路径，默认 config/default_config.yaml

    Returns:
        配置对象（文件不存在时返回默认配置）

    Raises:
        ConfigError: 文件内容无效
    """
    config_path = path or DEFAULT_CONFIG_PATH
    if not os.path.exists(config_path):
        if path is not None:
            raise ConfigError(f"配置文件不存在: {path}")
        return SimulatorConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"配置文件解析失败: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigError("配置文件顶层必须是映射")

    try:
        return SimulatorConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"配置无效: {e}") from e
