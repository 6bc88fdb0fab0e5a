"""
项目模型
定义导入器提供的静态建筑模型（只读输入）

模型:
- GeometryRef: 几何引用（对调度器不透明，仅使用空间分区）
- Element: 单个建筑构件
- ProjectModel: 完整项目
"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from constructsim.exceptions import MalformedProjectError
from constructsim.models.enums import ElementKind


class GeometryRef(BaseModel):
    """
    几何引用

    Attributes:
        ref: 渲染引擎中的对象句柄
        zone: 空间分区ID（结构规则按分区生效）
        level: 楼层
    """

    model_config = ConfigDict(frozen=True)

    ref: str = Field(min_length=1, description="对象句柄")
    zone: str = Field(default="default", min_length=1, description="空间分区")
    level: int = Field(default=0, description="楼层")


class Element(BaseModel):
    """
    建筑构件模型

    项目加载时创建，仿真期间不可变

    Attributes:
        id: 构件ID
        kind: 构件类型（决定步骤模板）
        geometry: 几何引用（必需，缺失时构建依赖图失败）
        depends_on: 显式前置构件ID列表
        label: 显示名称
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1, description="构件ID")
    kind: ElementKind = Field(description="构件类型")
    geometry: Optional[GeometryRef] = Field(
        default=None,
        alias="geometryRef",
        description="几何引用"
    )
    depends_on: List[str] = Field(
        default_factory=list,
        alias="dependsOn",
        description="显式前置构件"
    )
    label: str = Field(default="", description="显示名称")

    @field_validator("geometry", mode="before")
    @classmethod
    def _coerce_geometry(cls, value: Any) -> Any:
        # 允许直接传入句柄字符串
        if isinstance(value, str):
            return {"ref": value} if value.strip() else None
        return value

    @field_validator("depends_on", mode="before")
    @classmethod
    def _coerce_depends_on(cls, value: Any) -> Any:
        # 兼容分号分隔的字符串写法
        if value is None:
            return []
        if isinstance(value, str):
            return [p.strip() for p in value.split(";") if p.strip()]
        return value

    @property
    def zone(self) -> str:
        """构件所在空间分区"""
        return self.geometry.zone if self.geometry else "default"

    @property
    def display_name(self) -> str:
        return self.label or self.id


class ProjectModel(BaseModel):
    """
    项目模型

    Attributes:
        name: 项目名称
        elements: 构件列表（声明顺序参与排程的平局裁决）
    """

    name: str = Field(default="未命名项目", description="项目名称")
    elements: List[Element] = Field(default_factory=list, description="构件列表")

    def get_element_map(self) -> Dict[str, Element]:
        """构件ID -> 构件"""
        return {e.id: e for e in self.elements}

    def get_element(self, element_id: str) -> Optional[Element]:
        return self.get_element_map().get(element_id)

    def get_element_ids(self) -> List[str]:
        return [e.id for e in self.elements]

    def get_zones(self) -> List[str]:
        """按首次出现顺序返回所有空间分区"""
        zones: List[str] = []
        for element in self.elements:
            if element.zone not in zones:
                zones.append(element.zone)
        return zones

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "两层住宅",
                "elements": [
                    {"id": "SITE", "kind": "site", "geometryRef": "terrain"},
                    {"id": "F1", "kind": "footing", "geometryRef": {"ref": "mesh-f1", "zone": "A"}},
                    {"id": "C1", "kind": "column", "geometryRef": {"ref": "mesh-c1", "zone": "A"}},
                    {"id": "W1", "kind": "wall", "dependsOn": ["C1"], "geometryRef": {"ref": "mesh-w1", "zone": "A"}},
                ]
            }
        }
    )


def parse_project(data: Union[ProjectModel, Dict[str, Any]]) -> ProjectModel:
    """
    解析项目数据

    Args:
        data: ProjectModel 或导入器提供的原始字典

    Returns:
        项目模型

    Raises:
        MalformedProjectError: 数据结构或字段无效
    """
    if isinstance(data, ProjectModel):
        return data
    if not isinstance(data, dict):
        raise MalformedProjectError(f"项目数据必须是字典，实际为 {type(data).__name__}")
    try:
        return ProjectModel.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise MalformedProjectError(
            f"项目数据无效（{len(errors)} 处错误）", errors=errors
        ) from e
