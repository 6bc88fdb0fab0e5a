"""
依赖图构建器单元测试
测试DependencyGraphBuilder的核心功能

测试内容:
- 模板子链展开
- 结构规则（按空间分区）
- 显式构件依赖
- 无效构件数据
- 循环依赖检测
"""

import pytest

from constructsim.core.dependency_graph import DependencyGraphBuilder, check_step_graph
from constructsim.exceptions import CyclicDependencyError, MalformedProjectError
from constructsim.models.config_model import SimulatorConfig
from constructsim.models.enums import PhaseId
from constructsim.models.step_model import ConstructionStep


def element(element_id: str, kind: str, zone: str = "A", depends_on=None) -> dict:
    """辅助函数：创建构件字典"""
    data = {
        "id": element_id,
        "kind": kind,
        "geometryRef": {"ref": f"mesh-{element_id}", "zone": zone},
    }
    if depends_on:
        data["dependsOn"] = depends_on
    return data


def build(*elements, config=None):
    builder = DependencyGraphBuilder(config)
    steps = builder.build({"name": "Test", "elements": list(elements)})
    return {s.step_id: s for s in steps}, steps


class TestTemplateExpansion:
    """模板展开测试"""

    def test_wall_chain(self):
        """测试墙体展开为 模板 → 钢筋 → 浇筑 → 养护 子链"""
        by_id, steps = build(element("W1", "wall"))

        assert [s.step_id for s in steps] == [
            "W1:formwork", "W1:rebar", "W1:pour", "W1:cure"
        ]
        assert by_id["W1:formwork"].predecessors == ()
        assert by_id["W1:rebar"].predecessors == ("W1:formwork",)
        assert by_id["W1:cure"].predecessors == ("W1:pour",)
        assert all(s.phase_id == PhaseId.STRUCTURE for s in steps)

    def test_equipment_requirements(self):
        by_id, _ = build(element("W1", "wall"))

        assert by_id["W1:pour"].get_requirements() == {"worker": 4, "concrete_mixer": 1}
        assert by_id["W1:cure"].get_requirements() == {}

    def test_declaration_order(self):
        _, steps = build(element("C1", "column"), element("B1", "beam"))

        assert [s.order for s in steps] == list(range(len(steps)))
        assert steps[0].element_id == "C1"

    def test_duration_scale(self):
        config = SimulatorConfig(template_duration_scale=2.0)
        by_id, _ = build(element("W1", "wall"), config=config)

        assert by_id["W1:formwork"].duration == 4

    def test_label_in_task_name(self):
        data = element("W1", "wall")
        data["label"] = "北侧外墙"
        by_id, _ = build(data)

        assert by_id["W1:pour"].task_name.startswith("北侧外墙")


class TestPrecedenceRules:
    """前置规则测试"""

    def test_structural_rule_same_zone(self):
        """测试同一分区内主体结构等待基础完成"""
        by_id, _ = build(element("F1", "footing", "A"), element("C1", "column", "A"))

        assert "F1:cure" in by_id["C1:formwork"].predecessors

    def test_structural_rule_other_zone(self):
        """测试不同分区之间不连接结构规则"""
        by_id, _ = build(element("F1", "footing", "A"), element("C2", "column", "B"))

        assert "F1:cure" not in by_id["C2:formwork"].predecessors

    def test_declared_dependency(self):
        """测试显式依赖：构件首步等待前置构件末步"""
        by_id, _ = build(
            element("C1", "column"),
            element("W1", "wall", depends_on=["C1"]),
        )

        assert by_id["W1:formwork"].predecessors == ("C1:cure",)

    def test_semicolon_separated_dependencies(self):
        by_id, _ = build(
            element("C1", "column"),
            element("C2", "column"),
            element("W1", "wall", depends_on="C1; C2"),
        )

        assert set(by_id["W1:formwork"].predecessors) == {"C1:cure", "C2:cure"}

    def test_build_graph(self):
        builder = DependencyGraphBuilder()
        steps = builder.build({"elements": [element("F1", "footing"), element("C1", "column")]})
        graph = builder.build_graph(steps)

        assert graph.number_of_nodes() == 8
        assert graph.has_edge("F1:cure", "C1:formwork")


class TestMalformedProjects:
    """无效数据测试"""

    def test_empty_project(self):
        with pytest.raises(MalformedProjectError):
            build()

    def test_missing_geometry(self):
        """测试缺少几何引用"""
        with pytest.raises(MalformedProjectError) as exc_info:
            build({"id": "W1", "kind": "wall"})

        assert any("W1" in err for err in exc_info.value.errors)

    def test_unknown_kind(self):
        with pytest.raises(MalformedProjectError):
            build({"id": "X1", "kind": "spaceship", "geometryRef": "x"})

    def test_duplicate_ids(self):
        with pytest.raises(MalformedProjectError):
            build(element("W1", "wall"), element("W1", "column"))

    def test_unknown_dependency(self):
        with pytest.raises(MalformedProjectError):
            build(element("W1", "wall", depends_on=["NOPE"]))

    def test_collects_all_errors(self):
        with pytest.raises(MalformedProjectError) as exc_info:
            build({"id": "W1", "kind": "wall"}, element("W2", "wall", depends_on=["NOPE"]))

        assert len(exc_info.value.errors) == 2


class TestCycleDetection:
    """循环依赖测试"""

    def test_mutual_dependency(self):
        """测试 X 依赖 Y、Y 依赖 X"""
        with pytest.raises(CyclicDependencyError) as exc_info:
            build(
                element("X", "column", depends_on=["Y"]),
                element("Y", "column", depends_on=["X"]),
            )

        assert exc_info.value.cycle
        assert "->" in str(exc_info.value)

    def test_self_dependency(self):
        with pytest.raises(CyclicDependencyError):
            build(element("X", "column", depends_on=["X"]))

    def test_check_step_graph_unknown_predecessor(self):
        steps = [
            ConstructionStep(step_id="A", task_name="A", duration=1, predecessors=("B",)),
        ]
        with pytest.raises(MalformedProjectError):
            check_step_graph(steps)

    def test_check_step_graph_ok(self):
        steps = [
            ConstructionStep(step_id="A", task_name="A", duration=1),
            ConstructionStep(step_id="B", task_name="B", duration=1, predecessors="A"),
        ]
        graph = check_step_graph(steps)

        assert list(graph.successors("A")) == ["B"]
