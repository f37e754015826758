"""
Pytest configuration and shared fixtures for the rule flow tests.

Provides:
- FlowBuilder: fluent builder for canvas-shaped node/edge snapshots
- builder: function-scoped FlowBuilder fixture
- and_rule_graph: root -> rule group with two conditions joined by AND
- isolated_settings: restores mutated settings after a test
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]

# Add ruleflow to path for imports
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402 (import after path setup)

from ruleflow.core.config import settings  # noqa: E402
from ruleflow.domain.models import FlowGraph  # noqa: E402


class FlowBuilder:
    """
    Builds the raw ``{"nodes": [...], "edges": [...]}`` payload the canvas
    sends, then parses it with ``FlowGraph.model_validate``.

    Example:
        >>> b = FlowBuilder()
        >>> b.root("root", "Comp1")
        >>> b.group("g1")
        >>> b.rule_label("r1", "g1", "HighValue")
        >>> b.connect("root", "r1")
        >>> graph = b.build()
    """

    def __init__(self) -> None:
        self.nodes: list[dict[str, Any]] = []
        self.edges: list[dict[str, Any]] = []

    def _add(self, node_id: str, node_type: str, data: dict[str, Any], parent: str | None) -> str:
        node: dict[str, Any] = {
            "id": node_id,
            "type": node_type,
            "position": {"x": 0, "y": 0},
            "data": data,
        }
        if parent is not None:
            node["parentId"] = parent
        self.nodes.append(node)
        return node_id

    def root(
        self, node_id: str = "root", workflow_name: str = "Comp1", description: str = ""
    ) -> str:
        return self._add(
            node_id, "initial", {"workflowName": workflow_name, "description": description}, None
        )

    def group(self, node_id: str, label: str = "Rule Group", parent: str | None = None) -> str:
        return self._add(node_id, "resizableGroup", {"label": label}, parent)

    def action_group(self, node_id: str, parent: str | None = None) -> str:
        return self.group(node_id, "Action Group", parent)

    def rule_label(self, node_id: str, parent: str, rule_name: str = "Rule1") -> str:
        return self._add(node_id, "ruleName", {"ruleName": rule_name}, parent)

    def action_label(
        self,
        node_id: str,
        parent: str,
        action_type: str = "OnSuccess",
        action_name: str = "Bonus",
    ) -> str:
        return self._add(
            node_id,
            "actionName",
            {"actionType": action_type, "actionName": action_name},
            parent,
        )

    def condition(
        self,
        node_id: str,
        parent: str,
        table: str = "sales",
        field: str = "Amount",
        operator: str = ">",
        value: Any = "1000",
    ) -> str:
        return self._add(
            node_id,
            "condition",
            {
                "selectedTable": table,
                "selectedField": field,
                "expression": operator,
                "value": value,
            },
            parent,
        )

    def operator(self, node_id: str, parent: str | None = None, symbol: str = "AND") -> str:
        return self._add(node_id, "conditionalOperator", {"operator": symbol}, parent)

    def connect(self, source: str, target: str, edge_id: str | None = None) -> str:
        edge_id = edge_id or f"e-{source}-{target}"
        self.edges.append({"id": edge_id, "source": source, "target": target})
        return edge_id

    def and_rule(self, group_id: str = "g1", rule_name: str = "HighValueManager") -> str:
        """Rule group with A (sales.Amount > 1000) AND B (user.Designation = Manager)."""
        self.group(group_id)
        self.rule_label(f"{group_id}-r", group_id, rule_name)
        self.condition(f"{group_id}-a", group_id, "sales", "Amount", ">", "1000")
        self.condition(f"{group_id}-b", group_id, "user", "designation", "=", "Manager")
        self.operator(f"{group_id}-op", group_id, "AND")
        self.connect(f"{group_id}-a", f"{group_id}-op")
        self.connect(f"{group_id}-b", f"{group_id}-op")
        return group_id

    def payload(self) -> dict[str, Any]:
        return {"nodes": list(self.nodes), "edges": list(self.edges)}

    def build(self) -> FlowGraph:
        return FlowGraph.model_validate(self.payload())


@pytest.fixture
def builder() -> FlowBuilder:
    return FlowBuilder()


@pytest.fixture
def and_rule_graph(builder: FlowBuilder) -> FlowGraph:
    builder.root("root", "Comp1")
    builder.and_rule()
    builder.connect("root", "g1-r")
    return builder.build()


@pytest.fixture
def isolated_settings():
    """Snapshot settings and restore them after the test."""
    saved = settings.model_dump()
    yield settings
    for key, value in saved.items():
        setattr(settings, key, value)
