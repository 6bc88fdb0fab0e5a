"""
施工步骤模型
定义由构件派生的可调度工作单元

模型:
- ConstructionStep: 单个施工步骤
"""

from typing import Dict, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

from constructsim.models.enums import PhaseId

WORKER = "worker"


class ConstructionStep(BaseModel):
    """
    施工步骤模型

    由依赖图构建器创建，时间线构建后不再修改

    Attributes:
        step_id: 唯一步骤ID（"构件ID:模板键"）
        element_id: 所属构件ID
        task_name: 任务名称
        phase_id: 所属施工阶段
        duration: 估计工期（天）
        predecessors: 前置步骤ID
        required_workers: 所需工人数
        required_equipment: 所需设备类型（可重复，重复表示需要多台）
        zone: 空间分区
        order: 声明顺序（平局裁决用）
    """

    model_config = ConfigDict(frozen=True)

    step_id: str = Field(min_length=1, description="步骤ID")
    element_id: str = Field(default="", description="所属构件ID")
    task_name: str = Field(description="任务名称")
    phase_id: PhaseId = Field(default=PhaseId.STRUCTURE, description="所属阶段")
    duration: float = Field(gt=0, description="工期（天）")
    predecessors: Tuple[str, ...] = Field(default=(), description="前置步骤ID")
    required_workers: int = Field(default=1, ge=0, description="所需工人数")
    required_equipment: Tuple[str, ...] = Field(default=(), description="所需设备")
    zone: str = Field(default="default", description="空间分区")
    order: int = Field(default=0, ge=0, description="声明顺序")

    @field_validator("predecessors", "required_equipment", mode="before")
    @classmethod
    def _coerce_sequence(cls, value):
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(p.strip() for p in value.split(";") if p.strip())
        return tuple(value)

    @property
    def phase_index(self) -> int:
        return self.phase_id.index

    def get_requirements(self) -> Dict[str, int]:
        """
        汇总资源需求

        Returns:
            资源类型 -> 数量（数量为0的类型不出现）
        """
        requirements: Dict[str, int] = {}
        if self.required_workers > 0:
            requirements[WORKER] = self.required_workers
        for kind in self.required_equipment:
            requirements[kind] = requirements.get(kind, 0) + 1
        return requirements

    def sort_key(self) -> Tuple[int, int]:
        """平局裁决：先阶段目录顺序，再声明顺序"""
        return self.phase_index, self.order

    def with_predecessors(self, predecessors) -> "ConstructionStep":
        """返回追加了前置依赖的新步骤（保持原顺序，去重）"""
        merged = list(self.predecessors)
        for pred in predecessors:
            if pred not in merged:
                merged.append(pred)
        return self.model_copy(update={"predecessors": tuple(merged)})
