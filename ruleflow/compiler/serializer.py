"""
JSON text helpers for the exported workflow document.

Key order of the document is the schema order (WorkflowName, Description,
Rules, ...), so output is never key-sorted.
"""

import json
import logging

from ruleflow.compiler.compiler import generate_rule_engine_json
from ruleflow.core.config import settings
from ruleflow.domain.models import FlowGraph

logger = logging.getLogger(__name__)


def generate_rule_engine_json_string(graph: FlowGraph, indent: int | None = None) -> str:
    """
    Export the graph and serialize the document.

    Args:
        graph: Snapshot of the canvas
        indent: Indentation width (defaults to settings.export_json_indent)

    Raises:
        CompilationError: If the graph cannot be exported
    """
    if indent is None:
        indent = settings.export_json_indent
    return json.dumps(generate_rule_engine_json(graph), indent=indent, ensure_ascii=False)


def validate_json(text: str) -> tuple[bool, str | None]:
    """
    Check that ``text`` parses as JSON.

    Returns:
        (True, None) when it parses, (False, parser message) otherwise
    """
    try:
        json.loads(text)
    except json.JSONDecodeError as exc:
        return False, str(exc)
    return True, None


def format_json(text: str, indent: int = 2) -> str:
    """Re-indent JSON text; non-JSON input is returned unchanged."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("format_json: input is not valid JSON, returning it unchanged")
        return text
    return json.dumps(parsed, indent=indent, ensure_ascii=False)


def minify_json(text: str) -> str:
    """Strip insignificant whitespace; non-JSON input is returned unchanged."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("minify_json: input is not valid JSON, returning it unchanged")
        return text
    return json.dumps(parsed, separators=(",", ":"), ensure_ascii=False)
