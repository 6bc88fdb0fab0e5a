"""
施工阶段模型
定义固定顺序的施工阶段目录

模型:
- PhaseDefinition: 单个施工阶段
- PHASE_CATALOG: 固定的阶段目录（场地准备 → ... → 收尾交付）
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from constructsim.models.enums import PhaseId


class PhaseDefinition(BaseModel):
    """
    施工阶段定义

    Attributes:
        id: 阶段ID
        name: 阶段名称
        index: 目录中的位置（0起）
        nominal_duration: 名义工期（天），仅作参考展示
        tasks: 阶段包含的典型工作
    """

    model_config = ConfigDict(frozen=True)

    id: PhaseId = Field(description="阶段ID")
    name: str = Field(description="阶段名称")
    index: int = Field(ge=0, description="目录顺序")
    nominal_duration: float = Field(ge=0, description="名义工期（天）")
    tasks: List[str] = Field(default_factory=list, description="典型工作")


PHASE_CATALOG: List[PhaseDefinition] = [
    PhaseDefinition(
        id=PhaseId.SITE_PREPARATION,
        name="场地准备",
        index=0,
        nominal_duration=15,
        tasks=["场地清理", "场地平整", "测量放线", "临设搭建"],
    ),
    PhaseDefinition(
        id=PhaseId.EXCAVATION,
        name="土方开挖",
        index=1,
        nominal_duration=10,
        tasks=["基槽开挖", "余土外运", "槽底夯实"],
    ),
    PhaseDefinition(
        id=PhaseId.FOUNDATIONS,
        name="基础施工",
        index=2,
        nominal_duration=20,
        tasks=["基础钢筋", "基础模板", "混凝土浇筑", "混凝土养护"],
    ),
    PhaseDefinition(
        id=PhaseId.STRUCTURE,
        name="主体结构",
        index=3,
        nominal_duration=45,
        tasks=["柱施工", "梁施工", "楼板施工", "结构楼梯"],
    ),
    PhaseDefinition(
        id=PhaseId.CLOSING,
        name="围护封闭",
        index=4,
        nominal_duration=30,
        tasks=["砌体", "门窗安装", "屋面", "防水"],
    ),
    PhaseDefinition(
        id=PhaseId.INSTALLATIONS,
        name="机电安装",
        index=5,
        nominal_duration=40,
        tasks=["电气安装", "给排水安装", "燃气安装", "空调系统"],
    ),
    PhaseDefinition(
        id=PhaseId.FINISHES,
        name="装饰装修",
        index=6,
        nominal_duration=60,
        tasks=["抹灰", "地面与墙砖", "涂装", "木作", "卫浴洁具"],
    ),
    PhaseDefinition(
        id=PhaseId.FINALIZATION,
        name="收尾交付",
        index=7,
        nominal_duration=15,
        tasks=["竣工保洁", "家具安装", "系统调试", "竣工交付"],
    ),
]


def get_phase(phase_id: PhaseId) -> PhaseDefinition:
    """按ID获取阶段定义"""
    return PHASE_CATALOG[PhaseId(phase_id).index]


def get_phase_by_index(index: int) -> Optional[PhaseDefinition]:
    """
    按目录位置获取阶段

    Args:
        index: 阶段序号

    Returns:
        阶段定义，越界返回None
    """
    if 0 <= index < len(PHASE_CATALOG):
        return PHASE_CATALOG[index]
    return None


def build_phase_catalog(
    duration_overrides: Optional[Dict[str, float]] = None
) -> List[PhaseDefinition]:
    """
    生成阶段目录（可覆盖名义工期）

    Args:
        duration_overrides: 阶段ID -> 名义工期

    Returns:
        阶段定义列表（目录顺序）
    """
    if not duration_overrides:
        return list(PHASE_CATALOG)
    catalog = []
    for phase in PHASE_CATALOG:
        duration = duration_overrides.get(phase.id.value, phase.nominal_duration)
        catalog.append(phase.model_copy(update={"nominal_duration": duration}))
    return catalog
