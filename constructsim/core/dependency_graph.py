"""
依赖图构建器
把项目构件列表转换为带前置约束的施工步骤

功能:
- 按构件类型模板展开步骤子链
- 结构规则：同一空间分区内，后续阶段等待前置阶段完成
- 显式构件依赖：构件首步等待前置构件末步
- 使用NetworkX检测循环依赖

前置边来源:
(a) 构件内部子链顺序
(b) STRUCTURAL_RULES 中的阶段规则（按分区生效）
(c) Element.depends_on
"""

from typing import Dict, List, Optional, Set, Tuple, Union

import networkx as nx

from constructsim.exceptions import CyclicDependencyError, MalformedProjectError
from constructsim.models.config_model import SimulatorConfig
from constructsim.models.enums import ElementKind, PhaseId
from constructsim.models.project_model import Element, ProjectModel, parse_project
from constructsim.models.step_model import ConstructionStep
from constructsim.models.templates import STEP_TEMPLATES, ElementTemplate
from constructsim.utils.logger import get_logger

logger = get_logger(__name__)

# (后续阶段, 前置阶段)：同一分区内后续阶段的构件必须等待前置阶段构件完成
STRUCTURAL_RULES: Tuple[Tuple[PhaseId, PhaseId], ...] = (
    (PhaseId.EXCAVATION, PhaseId.SITE_PREPARATION),
    (PhaseId.FOUNDATIONS, PhaseId.EXCAVATION),
    (PhaseId.STRUCTURE, PhaseId.FOUNDATIONS),
    (PhaseId.CLOSING, PhaseId.STRUCTURE),
)


class DependencyGraphBuilder:
    """
    依赖图构建器

    对每个构件套用其类型模板生成步骤子链，
    再按结构规则与显式依赖连接子链
    """

    def __init__(
        self,
        config: Optional[SimulatorConfig] = None,
        templates: Optional[Dict[ElementKind, ElementTemplate]] = None,
        structural_rules: Tuple[Tuple[PhaseId, PhaseId], ...] = STRUCTURAL_RULES
    ):
        """
        初始化构建器

        Args:
            config: 全局配置（使用其中的模板工期缩放系数）
            templates: 构件类型模板目录
            structural_rules: 结构规则
        """
        self.config = config or SimulatorConfig()
        self.templates = templates if templates is not None else STEP_TEMPLATES
        self.structural_rules = structural_rules

    def build(
        self,
        project: Union[ProjectModel, dict]
    ) -> List[ConstructionStep]:
        """
        构建施工步骤

        Args:
            project: 项目模型或原始字典

        Returns:
            带前置依赖的施工步骤列表（声明顺序）

        Raises:
            MalformedProjectError: 构件数据无效
            CyclicDependencyError: 依赖图存在循环
        """
        project = parse_project(project)
        self.validate_elements(project)

        chains: Dict[str, List[ConstructionStep]] = {}
        order = 0
        for element in project.elements:
            template = self.templates[element.kind]
            chain = template.expand(
                element,
                order_start=order,
                duration_scale=self.config.template_duration_scale
            )
            chains[element.id] = chain
            order += len(chain)

        extra: Dict[str, List[str]] = {}
        self._link_declared_dependencies(project, chains, extra)
        self._link_structural_rules(project, chains, extra)

        steps: List[ConstructionStep] = []
        for element in project.elements:
            for step in chains[element.id]:
                if step.step_id in extra:
                    step = step.with_predecessors(extra[step.step_id])
                steps.append(step)

        self.validate_graph(steps)

        logger.info(
            "项目 '%s'：%d 个构件生成 %d 个施工步骤",
            project.name, len(project.elements), len(steps)
        )
        return steps

    def validate_elements(self, project: ProjectModel):
        """
        验证构件数据

        检查:
        - 项目非空
        - 构件ID唯一
        - 几何引用存在
        - 构件类型有模板
        - 显式依赖指向存在的构件

        Raises:
            MalformedProjectError: 汇总所有错误
        """
        errors: List[str] = []

        if not project.elements:
            raise MalformedProjectError("项目中没有任何构件")

        seen: Set[str] = set()
        for element in project.elements:
            if element.id in seen:
                errors.append(f"重复的构件ID: {element.id}")
            seen.add(element.id)

        for element in project.elements:
            if element.geometry is None or not element.geometry.ref.strip():
                errors.append(f"构件 '{element.id}' 缺少几何引用")
            template = self.templates.get(element.kind)
            if template is None or not template.steps:
                errors.append(f"构件 '{element.id}' 的类型 '{element.kind}' 没有步骤模板")
            for dep in element.depends_on:
                if dep not in seen:
                    errors.append(f"构件 '{element.id}' 的前置构件 '{dep}' 不存在")

        if errors:
            raise MalformedProjectError(
                f"项目数据无效: {errors[0]}" + (f" 等 {len(errors)} 处错误" if len(errors) > 1 else ""),
                errors=errors
            )

    def _link_declared_dependencies(
        self,
        project: ProjectModel,
        chains: Dict[str, List[ConstructionStep]],
        extra: Dict[str, List[str]]
    ):
        """显式依赖：构件首步 <- 前置构件末步"""
        for element in project.elements:
            if not element.depends_on:
                continue
            head = chains[element.id][0].step_id
            for dep in element.depends_on:
                tail = chains[dep][-1].step_id
                extra.setdefault(head, []).append(tail)

    def _link_structural_rules(
        self,
        project: ProjectModel,
        chains: Dict[str, List[ConstructionStep]],
        extra: Dict[str, List[str]]
    ):
        """
        结构规则：同一分区内，构件在后续阶段的首步 <- 前置阶段各构件的末步

        子链是串行的，因此只需连接首尾即可覆盖整段
        """
        # (分区, 阶段) -> 各构件在该阶段的首步/末步
        heads: Dict[Tuple[str, PhaseId], List[str]] = {}
        tails: Dict[Tuple[str, PhaseId], List[str]] = {}
        for element in project.elements:
            per_phase: Dict[PhaseId, List[ConstructionStep]] = {}
            for step in chains[element.id]:
                per_phase.setdefault(step.phase_id, []).append(step)
            for phase_id, members in per_phase.items():
                key = (element.zone, phase_id)
                heads.setdefault(key, []).append(members[0].step_id)
                tails.setdefault(key, []).append(members[-1].step_id)

        for zone in project.get_zones():
            for dependent, prerequisite in self.structural_rules:
                for head in heads.get((zone, dependent), []):
                    for tail in tails.get((zone, prerequisite), []):
                        extra.setdefault(head, []).append(tail)

    def build_graph(self, steps: List[ConstructionStep]) -> nx.DiGraph:
        """
        构建步骤依赖图

        Args:
            steps: 施工步骤

        Returns:
            有向图（边从前置步骤指向后续步骤）
        """
        graph = nx.DiGraph()
        for step in steps:
            graph.add_node(step.step_id, data=step)
        for step in steps:
            for pred_id in step.predecessors:
                graph.add_edge(pred_id, step.step_id)
        return graph

    def validate_graph(self, steps: List[ConstructionStep]):
        """
        验证依赖图

        Raises:
            MalformedProjectError: 前置步骤不存在
            CyclicDependencyError: 存在循环依赖
        """
        check_step_graph(steps)


def check_step_graph(steps: List[ConstructionStep]) -> nx.DiGraph:
    """
    检查步骤依赖图的有效性

    Args:
        steps: 施工步骤

    Returns:
        依赖图

    Raises:
        MalformedProjectError: 重复ID或前置步骤不存在
        CyclicDependencyError: 存在循环依赖
    """
    graph = nx.DiGraph()
    errors: List[str] = []
    for step in steps:
        if step.step_id in graph:
            errors.append(f"重复的步骤ID: {step.step_id}")
        graph.add_node(step.step_id)
    for step in steps:
        for pred_id in step.predecessors:
            if pred_id not in graph:
                errors.append(f"步骤 '{step.step_id}' 的前置步骤 '{pred_id}' 不存在")
                continue
            graph.add_edge(pred_id, step.step_id)
    if errors:
        raise MalformedProjectError(errors[0], errors=errors)

    if not nx.is_directed_acyclic_graph(graph):
        try:
            cycle_edges = nx.find_cycle(graph)
            cycle = [u for u, v in cycle_edges]
            cycle_str = " -> ".join(cycle + [cycle[0]])
        except nx.NetworkXNoCycle:
            cycle, cycle_str = [], ""
        raise CyclicDependencyError(f"施工步骤存在循环依赖: {cycle_str}", cycle=cycle)
    return graph
