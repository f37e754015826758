"""
Graph compiler for the visual rule builder.

This package validates the canvas graph and compiles it into the workflow
document consumed by the rules engine.

Key Components:
- traversal: Incomer/outgoer queries over one snapshot
- validator: Structural and whole-document validation
- connections: Admission check for a proposed edge
- expression: Boolean expression synthesis for one group
- compiler: Workflow document assembly
- serializer: JSON text helpers for the exported document

Design Principles:
- Purity: Every entry point reads an immutable snapshot and mutates nothing
- Two error regimes: Live validation reports, export fails fast
- Determinism: Output follows snapshot order, so the same graph gives the same text
"""

from ruleflow.compiler.compiler import generate_rule_engine_json
from ruleflow.compiler.connections import validate_edge_connection
from ruleflow.compiler.expression import generate_expression, generate_group_expression
from ruleflow.compiler.serializer import (
    format_json,
    generate_rule_engine_json_string,
    minify_json,
    validate_json,
)
from ruleflow.compiler.traversal import GraphIndex, get_incomers, get_outgoers
from ruleflow.compiler.validator import validate_all, validate_all_rule_groups, validate_rule_group

__all__ = [
    "GraphIndex",
    "get_incomers",
    "get_outgoers",
    "validate_rule_group",
    "validate_all_rule_groups",
    "validate_all",
    "validate_edge_connection",
    "generate_expression",
    "generate_group_expression",
    "generate_rule_engine_json",
    "generate_rule_engine_json_string",
    "format_json",
    "minify_json",
    "validate_json",
]
