"""
枚举定义
包含系统中使用的所有枚举类型

枚举类:
- PhaseId: 施工阶段（固定目录顺序）
- ElementKind: 建筑构件类型
- StepStatus: 施工步骤状态
- PhaseState: 阶段生命周期状态
- SimulationStatus: 仿真会话状态
- SimulationEventType: 仿真事件类型
"""

from enum import Enum


class PhaseId(str, Enum):
    """
    施工阶段枚举

    声明顺序即目录顺序，阶段严格按此顺序推进
    """
    SITE_PREPARATION = "site_preparation"  # 场地准备
    EXCAVATION = "excavation"              # 土方开挖
    FOUNDATIONS = "foundations"            # 基础
    STRUCTURE = "structure"                # 主体结构
    CLOSING = "closing"                    # 围护封闭
    INSTALLATIONS = "installations"        # 机电安装
    FINISHES = "finishes"                  # 装饰装修
    FINALIZATION = "finalization"          # 收尾交付

    @property
    def index(self) -> int:
        """阶段在目录中的位置"""
        return list(PhaseId).index(self)


class ElementKind(str, Enum):
    """
    建筑构件类型枚举

    每种类型对应 templates.py 中的一个步骤模板
    """
    SITE = "site"
    EXCAVATION = "excavation"
    FOOTING = "footing"
    COLUMN = "column"
    BEAM = "beam"
    SLAB = "slab"
    STAIR = "stair"
    WALL = "wall"
    MASONRY = "masonry"
    OPENING = "opening"
    ROOF = "roof"
    WATERPROOFING = "waterproofing"
    ELECTRICAL = "electrical"
    PLUMBING = "plumbing"
    GAS = "gas"
    HVAC = "hvac"
    PLASTER = "plaster"
    FLOORING = "flooring"
    PAINTING = "painting"
    CARPENTRY = "carpentry"
    SANITARY = "sanitary"
    CLEANING = "cleaning"
    FURNITURE = "furniture"
    COMMISSIONING = "commissioning"


class StepStatus(str, Enum):
    """
    施工步骤状态枚举

    Values:
        PENDING: 未开始（t < start）
        ACTIVE: 进行中（start <= t < end）
        COMPLETED: 已完成（t >= end）
    """
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        """状态先后次序，用于判断前进/回退"""
        return list(type(self)).index(self)


class PhaseState(str, Enum):
    """
    阶段状态枚举

    Values:
        PENDING: 等待中
        ACTIVE: 进行中
        COMPLETED: 已完成
    """
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)


class SimulationStatus(str, Enum):
    """
    仿真会话状态枚举

    Values:
        IDLE: 未加载项目
        LOADED: 已加载时间线，未占用资源
        RUNNING: 会话运行中（资源已按当前时间分配）
        FINISHED: 最后一个阶段已完成
        STOPPED: 已停止（资源全部释放，阶段重置）
        FAILED: 致命错误，需要重新加载
    """
    IDLE = "idle"
    LOADED = "loaded"
    RUNNING = "running"
    FINISHED = "finished"
    STOPPED = "stopped"
    FAILED = "failed"


class SimulationEventType(str, Enum):
    """
    仿真事件类型枚举

    渲染引擎/界面通过这些事件观察仿真，不反向影响调度
    """
    STEP_STARTED = "step_started"
    STEP_COMPLETED = "step_completed"
    STEP_REVERTED = "step_reverted"
    PHASE_STARTED = "phase_started"
    PHASE_COMPLETED = "phase_completed"
    PHASE_REVERTED = "phase_reverted"
    SIMULATION_FINISHED = "simulation_finished"
    SIMULATION_STOPPED = "simulation_stopped"
    SIMULATION_FAILED = "simulation_failed"


# ============ 构件类型元数据 ============

ELEMENT_KIND_META = {
    ElementKind.SITE: {"zh": "场地", "en": "Site"},
    ElementKind.EXCAVATION: {"zh": "基坑", "en": "Excavation"},
    ElementKind.FOOTING: {"zh": "独立基础", "en": "Footing"},
    ElementKind.COLUMN: {"zh": "柱", "en": "Column"},
    ElementKind.BEAM: {"zh": "梁", "en": "Beam"},
    ElementKind.SLAB: {"zh": "楼板", "en": "Slab"},
    ElementKind.STAIR: {"zh": "结构楼梯", "en": "Stair"},
    ElementKind.WALL: {"zh": "混凝土墙", "en": "Wall"},
    ElementKind.MASONRY: {"zh": "砌体墙", "en": "Masonry"},
    ElementKind.OPENING: {"zh": "门窗洞口", "en": "Opening"},
    ElementKind.ROOF: {"zh": "屋面", "en": "Roof"},
    ElementKind.WATERPROOFING: {"zh": "防水", "en": "Waterproofing"},
    ElementKind.ELECTRICAL: {"zh": "电气", "en": "Electrical"},
    ElementKind.PLUMBING: {"zh": "给排水", "en": "Plumbing"},
    ElementKind.GAS: {"zh": "燃气", "en": "Gas"},
    ElementKind.HVAC: {"zh": "暖通空调", "en": "HVAC"},
    ElementKind.PLASTER: {"zh": "抹灰", "en": "Plaster"},
    ElementKind.FLOORING: {"zh": "地面铺贴", "en": "Flooring"},
    ElementKind.PAINTING: {"zh": "涂装", "en": "Painting"},
    ElementKind.CARPENTRY: {"zh": "木作", "en": "Carpentry"},
    ElementKind.SANITARY: {"zh": "卫浴洁具", "en": "Sanitary"},
    ElementKind.CLEANING: {"zh": "保洁", "en": "Cleaning"},
    ElementKind.FURNITURE: {"zh": "家具", "en": "Furniture"},
    ElementKind.COMMISSIONING: {"zh": "系统调试与交付", "en": "Commissioning"},
}


def get_element_kind_info(kind: ElementKind) -> dict:
    """
    获取构件类型的详细信息

    Args:
        kind: 构件类型枚举值

    Returns:
        包含中英文名称的字典
    """
    return ELEMENT_KIND_META.get(kind, {"zh": "未知", "en": "Unknown"})
