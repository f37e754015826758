"""
Graph model for the visual rule builder.

The canvas hands over two arrays, nodes and edges, in its own JSON shape.
Nodes are a tagged union keyed on ``type``; each kind carries its own
payload model. Containment (``parentId``) and logical flow (edges) are
kept as two separate relations and are never merged.

Example:
    >>> graph = FlowGraph.model_validate(
    ...     {
    ...         "nodes": [
    ...             {"id": "g1", "type": "resizableGroup", "data": {"label": "Rule Group"}},
    ...             {
    ...                 "id": "c1",
    ...                 "type": "condition",
    ...                 "parentId": "g1",
    ...                 "data": {"selectedTable": "sales", "selectedField": "Amount",
    ...                          "expression": ">", "value": "1000"},
    ...             },
    ...         ],
    ...         "edges": [],
    ...     }
    ... )
    >>> graph.nodes[1].data.table
    'sales'
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)

from ruleflow.domain.enums import COMPARISON_LABELS, ComparisonOperator, LogicalOperator

ACTION_GROUP_LABEL = "Action Group"


def _to_text(value: Any) -> str:
    """Coerce canvas payload values (None, numbers, strings) to text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


Text = Annotated[str, BeforeValidator(_to_text)]


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def pick_first_non_blank_alias(cls, data: Any) -> Any:
        """
        Resolve fields whose canvas key has several spellings.

        When more than one spelling is present, the first non-blank one wins,
        so ``{"table": "", "selectedTable": "sales"}`` reads as ``sales``.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for info in cls.model_fields.values():
            choices = info.validation_alias
            if not isinstance(choices, AliasChoices):
                continue
            keys = [key for key in choices.choices if isinstance(key, str)]
            present = [key for key in keys if key in data]
            if len(present) < 2:
                continue
            values = [data.pop(key) for key in present]
            data[keys[0]] = next((v for v in values if _to_text(v).strip()), values[0])
        return data


class Position(_Payload):
    x: float = 0.0
    y: float = 0.0


# =============================================================================
# Node payloads
# =============================================================================


class RootData(_Payload):
    workflow_name: Text = Field(
        default="", validation_alias=AliasChoices("workflowName", "workflow_name")
    )
    description: Text = ""


class ConditionData(_Payload):
    """
    Payload of a condition node: ``table.Field <operator> "value"``.

    ``is_valid`` is the canvas form's own completeness flag. It is accepted so
    payloads round-trip, but validation derives completeness from the four
    leaf parts and never reads it.
    """

    table: Text = Field(default="", validation_alias=AliasChoices("table", "selectedTable"))
    field: Text = Field(default="", validation_alias=AliasChoices("field", "selectedField"))
    operator: Text = Field(
        default="",
        validation_alias=AliasChoices("expression", "selectedExpression", "operator"),
    )
    value: Text = Field(default="", validation_alias=AliasChoices("value", "inputValue"))
    is_valid: bool = Field(default=True, validation_alias=AliasChoices("isValid", "is_valid"))

    def missing_parts(self) -> list[str]:
        """Names of the leaf components that are blank."""
        parts = {
            "table": self.table,
            "field": self.field,
            "operator": self.operator,
            "value": self.value,
        }
        return [name for name, text in parts.items() if not text.strip()]

    @property
    def comparison(self) -> ComparisonOperator | None:
        """
        Resolve the comparison to a grammar symbol.

        Accepts either the symbol itself (``">="``) or the canvas label
        (``"Greater than or equal"``). Returns None when neither matches.
        """
        raw = self.operator.strip()
        try:
            return ComparisonOperator(raw)
        except ValueError:
            return COMPARISON_LABELS.get(raw.lower())


class OperatorData(_Payload):
    operator: Text = Field(
        default="", validation_alias=AliasChoices("operator", "selectedOperator")
    )

    @property
    def symbol(self) -> str:
        """Upper-cased operator symbol, AND when unset."""
        return self.operator.strip().upper() or LogicalOperator.AND.value


class GroupData(_Payload):
    label: Text = ""

    @property
    def is_action_group(self) -> bool:
        return self.label.strip() == ACTION_GROUP_LABEL


class RuleLabelData(_Payload):
    rule_name: Text = Field(
        default="", validation_alias=AliasChoices("ruleName", "rule_name", "value")
    )


class ActionLabelData(_Payload):
    action_type: Text = Field(
        default="",
        validation_alias=AliasChoices("actionType", "selectedActionType", "action_type"),
    )
    action_name: Text = Field(
        default="",
        validation_alias=AliasChoices("actionName", "inputActionName", "action_name"),
    )


# =============================================================================
# Nodes
# =============================================================================


class BaseNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    parent_id: str | None = Field(default=None, alias="parentId")
    position: Position | None = None


class RootNode(BaseNode):
    type: Literal["initial"] = Field(default="initial", frozen=True)
    data: RootData = Field(default_factory=RootData)


class ConditionNode(BaseNode):
    type: Literal["condition"] = Field(default="condition", frozen=True)
    data: ConditionData = Field(default_factory=ConditionData)


class OperatorNode(BaseNode):
    type: Literal["conditionalOperator"] = Field(default="conditionalOperator", frozen=True)
    data: OperatorData = Field(default_factory=OperatorData)


class GroupNode(BaseNode):
    type: Literal["resizableGroup"] = Field(default="resizableGroup", frozen=True)
    data: GroupData = Field(default_factory=GroupData)


class RuleLabelNode(BaseNode):
    type: Literal["ruleName"] = Field(default="ruleName", frozen=True)
    data: RuleLabelData = Field(default_factory=RuleLabelData)


class ActionLabelNode(BaseNode):
    type: Literal["actionName"] = Field(default="actionName", frozen=True)
    data: ActionLabelData = Field(default_factory=ActionLabelData)


GraphNode = Annotated[
    Union[RootNode, ConditionNode, OperatorNode, GroupNode, RuleLabelNode, ActionLabelNode],
    Field(discriminator="type"),
]


# =============================================================================
# Edges and the graph snapshot
# =============================================================================


class Connection(BaseModel):
    """A proposed edge, before it has been committed to the graph."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source: str
    target: str


class Edge(Connection):
    id: str = ""


class FlowGraph(BaseModel):
    """Immutable snapshot of the canvas passed to every entry point."""

    model_config = ConfigDict(extra="ignore")

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
