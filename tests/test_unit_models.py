"""
Unit tests for the graph model and validation result objects.

Tests cover:
- Tagged-union parsing of canvas node JSON
- Payload aliases and text coercion
- Comparison label resolution
- Immutability of the node kind
- ValidationResult summary, merge and camelCase serialization
"""

import pytest
from pydantic import ValidationError

from ruleflow.domain.enums import ComparisonOperator, NodeKind, ValidationIssueType
from ruleflow.domain.models import (
    ConditionData,
    ConditionNode,
    FlowGraph,
    GroupNode,
    OperatorData,
    RootNode,
)
from ruleflow.domain.results import ValidationIssue, ValidationResult


class TestNodeParsing:
    """Tests for parsing canvas nodes into typed models."""

    def test_type_selects_node_model(self, builder):
        """Test that each node type parses into its own model."""
        builder.root("root", "Comp1")
        builder.group("g1")
        builder.rule_label("r1", "g1")
        builder.action_label("al", "g1")
        builder.condition("c1", "g1")
        builder.operator("op", "g1")
        graph = builder.build()

        kinds = [node.type for node in graph.nodes]
        assert kinds == [
            NodeKind.ROOT,
            NodeKind.GROUP,
            NodeKind.RULE_LABEL,
            NodeKind.ACTION_LABEL,
            NodeKind.CONDITION,
            NodeKind.OPERATOR,
        ]
        assert isinstance(graph.nodes[0], RootNode)
        assert isinstance(graph.nodes[4], ConditionNode)

    def test_unknown_type_rejected(self):
        """Test that an unknown node type fails at the parsing boundary."""
        with pytest.raises(ValidationError):
            FlowGraph.model_validate({"nodes": [{"id": "x", "type": "widget", "data": {}}]})

    def test_parent_id_alias(self, builder):
        """Test that parentId populates parent_id."""
        builder.group("g1")
        builder.condition("c1", "g1")
        graph = builder.build()
        assert graph.nodes[1].parent_id == "g1"
        assert graph.nodes[0].parent_id is None

    def test_node_kind_is_frozen(self, builder):
        """Test that a node's kind cannot change after construction."""
        builder.group("g1")
        node = builder.build().nodes[0]
        with pytest.raises(ValidationError):
            node.type = "condition"

    def test_missing_data_defaults(self):
        """Test that a node without data gets an empty payload."""
        graph = FlowGraph.model_validate({"nodes": [{"id": "g", "type": "resizableGroup"}]})
        assert isinstance(graph.nodes[0], GroupNode)
        assert graph.nodes[0].data.label == ""

    def test_edges_parse_without_id(self):
        """Test that an edge id is optional."""
        graph = FlowGraph.model_validate({"edges": [{"source": "a", "target": "b"}]})
        assert graph.edges[0].id == ""
        assert graph.edges[0].source == "a"


class TestPayloads:
    """Tests for node payload aliases and helpers."""

    def test_condition_aliases(self):
        """Test that canvas and legacy key names are both accepted."""
        canvas = ConditionData.model_validate(
            {"selectedTable": "sales", "selectedField": "Amount", "expression": ">", "value": "1"}
        )
        legacy = ConditionData.model_validate(
            {"table": "sales", "field": "Amount", "selectedExpression": ">", "inputValue": "1"}
        )
        assert canvas.table == legacy.table == "sales"
        assert canvas.operator == legacy.operator == ">"
        assert canvas.value == legacy.value == "1"

    def test_blank_alias_falls_through(self):
        """Test that a blank spelling yields to the next non-blank one."""
        data = ConditionData.model_validate(
            {
                "table": "",
                "selectedTable": "sales",
                "field": None,
                "selectedField": "Amount",
                "expression": ">",
                "value": "1000",
            }
        )
        assert data.table == "sales"
        assert data.field == "Amount"
        assert data.missing_parts() == []

    def test_first_non_blank_alias_wins(self):
        """Test that the first spelling wins when several are filled in."""
        data = ConditionData.model_validate({"expression": "=", "selectedExpression": ">"})
        assert data.operator == "="
        operator = OperatorData.model_validate({"operator": " ", "selectedOperator": "or"})
        assert operator.symbol == "OR"

    def test_is_valid_flag_accepted(self):
        """Test that the canvas completeness flag parses but does not mask missing parts."""
        data = ConditionData.model_validate({"isValid": True, "table": "sales"})
        assert data.is_valid is True
        assert data.missing_parts() == ["field", "operator", "value"]

    def test_values_coerced_to_text(self):
        """Test that numbers and None become text."""
        data = ConditionData.model_validate({"table": None, "value": 1000})
        assert data.table == ""
        assert data.value == "1000"

    def test_missing_parts(self):
        """Test that blank leaf components are listed by name."""
        data = ConditionData.model_validate({"table": "sales", "field": " ", "value": "1"})
        assert data.missing_parts() == ["field", "operator"]

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (">=", ComparisonOperator.GTE),
            ("Greater than", ComparisonOperator.GT),
            ("before", ComparisonOperator.LT),
            ("Starts With", ComparisonOperator.STARTS_WITH),
            ("~", None),
        ],
    )
    def test_comparison_resolution(self, raw, expected):
        """Test that symbols and canvas labels resolve to grammar symbols."""
        assert ConditionData(operator=raw).comparison == expected

    def test_operator_symbol_default(self):
        """Test that an unset operator reads as AND and symbols are upper-cased."""
        assert OperatorData().symbol == "AND"
        assert OperatorData.model_validate({"selectedOperator": "or"}).symbol == "OR"

    def test_action_group_label(self, builder):
        """Test that only the Action Group label marks an action group."""
        builder.group("g1")
        builder.action_group("ag")
        graph = builder.build()
        assert not graph.nodes[0].data.is_action_group
        assert graph.nodes[1].data.is_action_group


class TestValidationResult:
    """Tests for ValidationResult helpers."""

    def _issue(self, issue_type=ValidationIssueType.CYCLE, **kwargs):
        return ValidationIssue(type=issue_type, message="m", **kwargs)

    def test_from_issues_validity(self):
        """Test that validity is derived from the error list only."""
        assert ValidationResult.from_issues().is_valid
        assert ValidationResult.from_issues(warnings=[self._issue()]).is_valid
        assert not ValidationResult.from_issues([self._issue()]).is_valid

    def test_merge(self):
        """Test that merge unions issues and is valid only if every part is."""
        merged = ValidationResult.merge(
            [
                ValidationResult.from_issues(),
                ValidationResult.from_issues([self._issue()], [self._issue()]),
            ]
        )
        assert not merged.is_valid
        assert len(merged.errors) == 1
        assert len(merged.warnings) == 1

    @pytest.mark.parametrize(
        "errors,warnings,expected",
        [
            (0, 0, "All validations passed"),
            (2, 1, "2 error(s) and 1 warning(s) found"),
            (1, 0, "1 error(s) found"),
            (0, 3, "All validations passed"),
        ],
    )
    def test_summary(self, errors, warnings, expected):
        """Test the one-line summary for each combination."""
        result = ValidationResult.from_issues(
            [self._issue() for _ in range(errors)], [self._issue() for _ in range(warnings)]
        )
        assert result.summary() == expected

    @pytest.mark.parametrize(
        "value",
        [
            "connection_missing_handles",
            "grouping_invalid",
            "grouping_operator_direct",
            "delete_rule_name",
            "delete_action_name",
        ],
    )
    def test_canvas_only_issue_types_parse(self, value):
        """Test that issue types raised by the canvas itself are part of the taxonomy."""
        assert ValidationIssue(type=value, message="m").type == ValidationIssueType(value)

    def test_serializes_camel_case(self):
        """Test that results serialize with camelCase keys and no empty pointers."""
        result = ValidationResult.from_issues(
            [self._issue(ValidationIssueType.DISCONNECTED, node_id="n1", rule_group_id="g1")]
        )
        assert result.to_dict() == {
            "isValid": False,
            "errors": [
                {"type": "disconnected", "message": "m", "nodeId": "n1", "ruleGroupId": "g1"}
            ],
            "warnings": [],
        }
