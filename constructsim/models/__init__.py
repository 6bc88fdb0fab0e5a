"""
数据模型包
包含系统中使用的Pydantic数据模型与不可变记录

模块说明:
- enums.py: 枚举定义（PhaseId, ElementKind, SimulationEventType等）
- project_model.py: 项目与构件模型
- step_model.py: 施工步骤模型
- phase_model.py: 施工阶段目录
- templates.py: 构件类型步骤模板
- timeline_model.py: 时间线与阶段时间窗
- config_model.py: 全局配置模型
"""

from constructsim.models.enums import (
    PhaseId,
    ElementKind,
    StepStatus,
    PhaseState,
    SimulationStatus,
    SimulationEventType,
    ELEMENT_KIND_META,
)
from constructsim.models.config_model import SimulatorConfig, load_config
from constructsim.models.project_model import (
    GeometryRef,
    Element,
    ProjectModel,
    parse_project,
)
from constructsim.models.step_model import ConstructionStep, WORKER
from constructsim.models.phase_model import (
    PhaseDefinition,
    PHASE_CATALOG,
    build_phase_catalog,
)
from constructsim.models.templates import (
    StepTemplate,
    ElementTemplate,
    STEP_TEMPLATES,
)
from constructsim.models.timeline_model import (
    ScheduledStep,
    PhaseWindow,
    Transition,
    Timeline,
)

__all__ = [
    # 枚举
    "PhaseId",
    "ElementKind",
    "StepStatus",
    "PhaseState",
    "SimulationStatus",
    "SimulationEventType",
    "ELEMENT_KIND_META",
    # 配置
    "SimulatorConfig",
    "load_config",
    # 项目
    "GeometryRef",
    "Element",
    "ProjectModel",
    "parse_project",
    # 步骤与阶段
    "ConstructionStep",
    "WORKER",
    "PhaseDefinition",
    "PHASE_CATALOG",
    "build_phase_catalog",
    "StepTemplate",
    "ElementTemplate",
    "STEP_TEMPLATES",
    # 时间线
    "ScheduledStep",
    "PhaseWindow",
    "Transition",
    "Timeline",
]
