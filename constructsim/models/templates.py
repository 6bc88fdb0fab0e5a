"""
施工步骤模板目录
每种构件类型对应一个固定的步骤子链

设计要点:
- 模板集合是封闭的：每个 ElementKind 一个 ElementTemplate 变体
- 新增构件类型只需在 STEP_TEMPLATES 中增加一项，无需修改分发逻辑
- 子链内步骤按阶段目录顺序排列，前后串行
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from constructsim.models.enums import ElementKind, PhaseId, get_element_kind_info
from constructsim.models.project_model import Element
from constructsim.models.step_model import ConstructionStep

# 设备类型
EXCAVATOR = "excavator"
CRANE = "crane"
CONCRETE_MIXER = "concrete_mixer"
SCAFFOLDING = "scaffolding"
COMPACTOR = "compactor"


@dataclass(frozen=True)
class StepTemplate:
    """
    单个步骤模板

    Attributes:
        key: 模板键（构成步骤ID后缀）
        task_name: 任务名称
        phase: 所属阶段
        duration: 标准工期（天）
        workers: 所需工人数
        equipment: 所需设备
    """
    key: str
    task_name: str
    phase: PhaseId
    duration: float
    workers: int = 1
    equipment: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ElementTemplate:
    """
    构件类型模板（步骤子链）

    Attributes:
        kind: 构件类型
        steps: 按执行顺序排列的步骤模板
    """
    kind: ElementKind
    steps: Tuple[StepTemplate, ...] = field(default_factory=tuple)

    def expand(
        self,
        element: Element,
        order_start: int = 0,
        duration_scale: float = 1.0
    ) -> List[ConstructionStep]:
        """
        展开为施工步骤子链

        Args:
            element: 构件
            order_start: 第一个步骤的声明顺序
            duration_scale: 工期缩放系数

        Returns:
            串行的施工步骤列表（后一步依赖前一步）
        """
        steps: List[ConstructionStep] = []
        previous_id = None
        for offset, tpl in enumerate(self.steps):
            step_id = f"{element.id}:{tpl.key}"
            steps.append(ConstructionStep(
                step_id=step_id,
                element_id=element.id,
                task_name=f"{element.display_name} {tpl.task_name}",
                phase_id=tpl.phase,
                duration=tpl.duration * duration_scale,
                predecessors=(previous_id,) if previous_id else (),
                required_workers=tpl.workers,
                required_equipment=tpl.equipment,
                zone=element.zone,
                order=order_start + offset
            ))
            previous_id = step_id
        return steps


def _tpl(kind: ElementKind, *steps: StepTemplate) -> ElementTemplate:
    return ElementTemplate(kind=kind, steps=tuple(steps))


P = PhaseId

STEP_TEMPLATES: Dict[ElementKind, ElementTemplate] = {
    # ---- 场地准备 / 土方 ----
    ElementKind.SITE: _tpl(
        ElementKind.SITE,
        StepTemplate("clear", "场地清理", P.SITE_PREPARATION, 3, 4, (EXCAVATOR,)),
        StepTemplate("level", "场地平整", P.SITE_PREPARATION, 3, 2, (COMPACTOR,)),
        StepTemplate("survey", "测量放线", P.SITE_PREPARATION, 1, 2),
        StepTemplate("setup", "临设搭建", P.SITE_PREPARATION, 4, 4, (CRANE,)),
    ),
    ElementKind.EXCAVATION: _tpl(
        ElementKind.EXCAVATION,
        StepTemplate("dig", "基槽开挖", P.EXCAVATION, 4, 3, (EXCAVATOR,)),
        StepTemplate("haul", "余土外运", P.EXCAVATION, 2, 2, (EXCAVATOR,)),
        StepTemplate("compact", "槽底夯实", P.EXCAVATION, 2, 2, (COMPACTOR,)),
    ),
    # ---- 基础 ----
    ElementKind.FOOTING: _tpl(
        ElementKind.FOOTING,
        StepTemplate("rebar", "绑扎钢筋", P.FOUNDATIONS, 2, 3),
        StepTemplate("formwork", "支设模板", P.FOUNDATIONS, 2, 3),
        StepTemplate("pour", "浇筑混凝土", P.FOUNDATIONS, 1, 4, (CONCRETE_MIXER,)),
        StepTemplate("cure", "混凝土养护", P.FOUNDATIONS, 3, 0),
    ),
    # ---- 主体结构 ----
    ElementKind.COLUMN: _tpl(
        ElementKind.COLUMN,
        StepTemplate("formwork", "支设模板", P.STRUCTURE, 1, 2),
        StepTemplate("rebar", "绑扎钢筋", P.STRUCTURE, 1, 2, (CRANE,)),
        StepTemplate("pour", "浇筑混凝土", P.STRUCTURE, 1, 3, (CONCRETE_MIXER,)),
        StepTemplate("cure", "混凝土养护", P.STRUCTURE, 2, 0),
    ),
    ElementKind.BEAM: _tpl(
        ElementKind.BEAM,
        StepTemplate("formwork", "支设模板", P.STRUCTURE, 2, 3, (CRANE,)),
        StepTemplate("rebar", "绑扎钢筋", P.STRUCTURE, 2, 3),
        StepTemplate("pour", "浇筑混凝土", P.STRUCTURE, 1, 3, (CONCRETE_MIXER,)),
        StepTemplate("strip", "拆除模板", P.STRUCTURE, 1, 2),
    ),
    ElementKind.SLAB: _tpl(
        ElementKind.SLAB,
        StepTemplate("formwork", "支设模板", P.STRUCTURE, 3, 4, (SCAFFOLDING,)),
        StepTemplate("rebar", "绑扎钢筋", P.STRUCTURE, 2, 4),
        StepTemplate("pour", "浇筑混凝土", P.STRUCTURE, 1, 5, (CONCRETE_MIXER,)),
        StepTemplate("cure", "混凝土养护", P.STRUCTURE, 5, 0),
        StepTemplate("strip", "拆除模板", P.STRUCTURE, 1, 2),
    ),
    ElementKind.STAIR: _tpl(
        ElementKind.STAIR,
        StepTemplate("formwork", "支设模板", P.STRUCTURE, 2, 2),
        StepTemplate("rebar", "绑扎钢筋", P.STRUCTURE, 1, 2),
        StepTemplate("pour", "浇筑混凝土", P.STRUCTURE, 1, 3, (CONCRETE_MIXER,)),
        StepTemplate("cure", "混凝土养护", P.STRUCTURE, 3, 0),
    ),
    ElementKind.WALL: _tpl(
        ElementKind.WALL,
        StepTemplate("formwork", "支设模板", P.STRUCTURE, 2, 3),
        StepTemplate("rebar", "绑扎钢筋", P.STRUCTURE, 2, 3),
        StepTemplate("pour", "浇筑混凝土", P.STRUCTURE, 1, 4, (CONCRETE_MIXER,)),
        StepTemplate("cure", "混凝土养护", P.STRUCTURE, 3, 0),
    ),
    # ---- 围护封闭 ----
    ElementKind.MASONRY: _tpl(
        ElementKind.MASONRY,
        StepTemplate("blocks", "砌筑", P.CLOSING, 5, 4, (SCAFFOLDING,)),
        StepTemplate("lintel", "过梁安装", P.CLOSING, 1, 2),
    ),
    ElementKind.OPENING: _tpl(
        ElementKind.OPENING,
        StepTemplate("frame", "安装框料", P.CLOSING, 1, 2),
        StepTemplate("install", "门窗安装", P.CLOSING, 1, 2),
    ),
    ElementKind.ROOF: _tpl(
        ElementKind.ROOF,
        StepTemplate("frame", "屋面结构", P.CLOSING, 4, 4, (CRANE,)),
        StepTemplate("cover", "屋面铺设", P.CLOSING, 3, 3, (SCAFFOLDING,)),
    ),
    ElementKind.WATERPROOFING: _tpl(
        ElementKind.WATERPROOFING,
        StepTemplate("membrane", "铺设防水层", P.CLOSING, 2, 2),
        StepTemplate("test", "闭水试验", P.CLOSING, 1, 1),
    ),
    # ---- 机电安装 ----
    ElementKind.ELECTRICAL: _tpl(
        ElementKind.ELECTRICAL,
        StepTemplate("conduit", "预埋线管", P.INSTALLATIONS, 4, 2),
        StepTemplate("wiring", "穿线接线", P.INSTALLATIONS, 4, 2),
        StepTemplate("panel", "配电箱安装", P.INSTALLATIONS, 1, 1),
    ),
    ElementKind.PLUMBING: _tpl(
        ElementKind.PLUMBING,
        StepTemplate("piping", "管道敷设", P.INSTALLATIONS, 4, 2),
        StepTemplate("test", "压力试验", P.INSTALLATIONS, 1, 1),
    ),
    ElementKind.GAS: _tpl(
        ElementKind.GAS,
        StepTemplate("piping", "燃气管道", P.INSTALLATIONS, 2, 2),
        StepTemplate("test", "气密试验", P.INSTALLATIONS, 1, 1),
    ),
    ElementKind.HVAC: _tpl(
        ElementKind.HVAC,
        StepTemplate("ducts", "风管安装", P.INSTALLATIONS, 4, 3, (SCAFFOLDING,)),
        StepTemplate("units", "机组吊装", P.INSTALLATIONS, 2, 2, (CRANE,)),
    ),
    # ---- 装饰装修 ----
    ElementKind.PLASTER: _tpl(
        ElementKind.PLASTER,
        StepTemplate("scratch", "基层处理", P.FINISHES, 3, 3, (SCAFFOLDING,)),
        StepTemplate("plaster", "抹灰", P.FINISHES, 4, 3, (SCAFFOLDING,)),
    ),
    ElementKind.FLOORING: _tpl(
        ElementKind.FLOORING,
        StepTemplate("screed", "找平层", P.FINISHES, 2, 2),
        StepTemplate("tiles", "铺贴地砖", P.FINISHES, 5, 3),
    ),
    ElementKind.PAINTING: _tpl(
        ElementKind.PAINTING,
        StepTemplate("primer", "底漆", P.FINISHES, 2, 2),
        StepTemplate("finish", "面漆", P.FINISHES, 3, 2),
    ),
    ElementKind.CARPENTRY: _tpl(
        ElementKind.CARPENTRY,
        StepTemplate("install", "木作安装", P.FINISHES, 4, 2),
    ),
    ElementKind.SANITARY: _tpl(
        ElementKind.SANITARY,
        StepTemplate("fixtures", "洁具安装", P.FINISHES, 2, 2),
    ),
    # ---- 收尾交付 ----
    ElementKind.CLEANING: _tpl(
        ElementKind.CLEANING,
        StepTemplate("clean", "竣工保洁", P.FINALIZATION, 2, 4),
    ),
    ElementKind.FURNITURE: _tpl(
        ElementKind.FURNITURE,
        StepTemplate("install", "家具安装", P.FINALIZATION, 3, 3),
    ),
    ElementKind.COMMISSIONING: _tpl(
        ElementKind.COMMISSIONING,
        StepTemplate("tests", "系统调试", P.FINALIZATION, 3, 2),
        StepTemplate("handover", "竣工交付", P.FINALIZATION, 1, 1),
    ),
}


def get_template(kind: ElementKind) -> ElementTemplate:
    """
    获取构件类型模板

    Args:
        kind: 构件类型

    Returns:
        步骤模板

    Raises:
        KeyError: 目录中没有该类型
    """
    return STEP_TEMPLATES[ElementKind(kind)]


def list_element_kinds() -> List[Dict]:
    """列出所有构件类型及其步骤（供接口展示）"""
    kinds = []
    for kind, template in STEP_TEMPLATES.items():
        info = get_element_kind_info(kind)
        kinds.append({
            "kind": kind.value,
            "name": info["zh"],
            "name_en": info["en"],
            "steps": [
                {
                    "key": s.key,
                    "task_name": s.task_name,
                    "phase": s.phase.value,
                    "duration": s.duration,
                    "workers": s.workers,
                    "equipment": list(s.equipment),
                }
                for s in template.steps
            ],
        })
    return kinds
