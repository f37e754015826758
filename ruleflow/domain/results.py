"""Validation result objects consumed by the canvas panels."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ruleflow.domain.enums import ValidationIssueType


class ValidationIssue(BaseModel):
    """One error or warning, pinned to the offending element where possible."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: ValidationIssueType
    message: str
    node_id: str | None = None
    edge_id: str | None = None
    rule_group_id: str | None = None
    action_group_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ValidationResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_valid: bool = True
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def from_issues(
        cls,
        errors: Iterable[ValidationIssue] = (),
        warnings: Iterable[ValidationIssue] = (),
    ) -> ValidationResult:
        errors = list(errors)
        return cls(is_valid=not errors, errors=errors, warnings=list(warnings))

    @classmethod
    def merge(cls, results: Iterable[ValidationResult]) -> ValidationResult:
        """Union several results; valid only if every part is valid."""
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        for result in results:
            errors.extend(result.errors)
            warnings.extend(result.warnings)
        return cls.from_issues(errors, warnings)

    def issue_types(self) -> list[ValidationIssueType]:
        return [issue.type for issue in self.errors]

    def summary(self) -> str:
        """
        One-line summary for the validation indicator.

        Warnings never block, so a valid result reads as passed even when it
        carries warnings.
        """
        if self.is_valid:
            return "All validations passed"

        error_count = len(self.errors)
        warning_count = len(self.warnings)
        if warning_count:
            return f"{error_count} error(s) and {warning_count} warning(s) found"
        return f"{error_count} error(s) found"

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
