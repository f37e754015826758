"""Unit tests for connection admission."""

from ruleflow.compiler.connections import validate_edge_connection
from ruleflow.domain.enums import ValidationIssueType as IssueType
from ruleflow.domain.models import Connection


def _types(result):
    return [issue.type for issue in result.errors]


class TestEndpoints:
    def test_missing_source(self, and_rule_graph):
        """Test that an unknown endpoint is rejected before any other rule."""
        result = validate_edge_connection({"source": "nope", "target": "g1-a"}, and_rule_graph)
        assert _types(result) == [IssueType.INVALID_CONNECTION]
        assert result.errors[0].message == "Source or target node not found"
        assert result.errors[0].node_id == "nope"

    def test_missing_target(self, and_rule_graph):
        """Test that an unknown target names the target."""
        connection = Connection(source="g1-op", target="nope")
        result = validate_edge_connection(connection, and_rule_graph)
        assert _types(result) == [IssueType.INVALID_CONNECTION]
        assert result.errors[0].node_id == "nope"

    def test_inconsistent_snapshot(self, builder):
        """Test that a dangling existing edge is reported, not raised."""
        builder.group("g1")
        builder.condition("a", "g1")
        builder.operator("op", "g1")
        builder.connect("a", "ghost")
        result = validate_edge_connection({"source": "a", "target": "op"}, builder.build())
        assert _types(result) == [IssueType.INVALID_CONNECTION]
        assert result.errors[0].message.startswith("Connection validation failed:")


class TestTopologyRules:
    def test_condition_to_operator_admitted(self, builder):
        """Test the ordinary condition -> operator edge."""
        builder.group("g1")
        builder.condition("a", "g1")
        builder.operator("op", "g1")
        result = validate_edge_connection({"source": "a", "target": "op"}, builder.build())
        assert result.is_valid

    def test_condition_to_condition_rejected(self, builder):
        """Test that conditions never connect to each other."""
        builder.group("g1")
        builder.condition("a", "g1")
        builder.condition("b", "g1")
        result = validate_edge_connection({"source": "a", "target": "b"}, builder.build())
        assert _types(result) == [IssueType.INVALID_CONNECTION]
        assert "conditions directly" in result.errors[0].message

    def test_operator_to_condition_rejected(self, builder):
        """Test that flow never reverses from an operator to a condition."""
        builder.group("g1")
        builder.condition("a", "g1")
        builder.operator("op", "g1")
        result = validate_edge_connection({"source": "op", "target": "a"}, builder.build())
        assert _types(result) == [IssueType.INVALID_CONNECTION]
        assert "reversed flow" in result.errors[0].message

    def test_all_violations_collected(self, and_rule_graph):
        """Test that every violated rule is reported, not only the first."""
        result = validate_edge_connection({"source": "g1-op", "target": "g1-a"}, and_rule_graph)
        assert _types(result) == [IssueType.INVALID_CONNECTION, IssueType.CYCLE]


class TestFanOut:
    def test_second_outgoing_edge_rejected(self, and_rule_graph):
        """Test that a non-root node may drive only one downstream node."""
        result = validate_edge_connection({"source": "g1-a", "target": "g1-r"}, and_rule_graph)
        assert IssueType.INVALID_CONNECTION in _types(result)
        assert any("Branching out not allowed" in issue.message for issue in result.errors)

    def test_root_exempt(self, builder):
        """Test that the root may feed any number of rule labels."""
        builder.root("root")
        builder.and_rule("g1")
        builder.and_rule("g2")
        builder.and_rule("g3")
        builder.connect("root", "g1-r")
        builder.connect("root", "g2-r")
        result = validate_edge_connection({"source": "root", "target": "g3-r"}, builder.build())
        assert result.is_valid


class TestCycles:
    def test_closing_edge_rejected_as_cycle(self, builder):
        """Test that an edge creating a path back to its source is a cycle."""
        builder.group("g1")
        for node_id in ("a", "b", "c"):
            builder.condition(node_id, "g1")
        builder.operator("op1", "g1")
        builder.operator("op2", "g1")
        builder.connect("a", "op1")
        builder.connect("b", "op1")
        builder.connect("op1", "op2")
        builder.connect("c", "op2")
        result = validate_edge_connection({"source": "op2", "target": "op1"}, builder.build())
        assert _types(result) == [IssueType.CYCLE]
        assert result.errors[0].node_id == "op2"

    def test_self_loop_is_cycle(self, builder):
        """Test that a node connected to itself is a cycle."""
        builder.group("g1")
        builder.operator("op", "g1")
        result = validate_edge_connection({"source": "op", "target": "op"}, builder.build())
        assert _types(result) == [IssueType.CYCLE]

    def test_graph_not_mutated(self, and_rule_graph):
        """Test that admission leaves the snapshot untouched."""
        before = and_rule_graph.model_dump()
        validate_edge_connection({"source": "g1-op", "target": "g1-a"}, and_rule_graph)
        assert and_rule_graph.model_dump() == before
