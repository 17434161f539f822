"""
Parameter validation against a model's declared schema.

Runs before anything is submitted so bad input never reaches the network.
Messages are written for display next to the offending form field.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from core.errors import ValidationError

from .catalog import Parameter, ParameterType


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None


@dataclass
class ParameterError:
    parameter: str
    error: str


@dataclass
class ValidationResults:
    valid: bool
    errors: list[ParameterError] = field(default_factory=list)

    def raise_for_errors(self) -> None:
        """Raise ValidationError carrying every collected error."""
        if self.valid:
            return
        summary = "; ".join(e.error for e in self.errors)
        raise ValidationError(f"Invalid parameters: {summary}", errors=self.errors)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def validate_parameter(value: Any, parameter: Parameter) -> ValidationResult:
    """
    Validate a single value against its parameter definition.

    Required parameters reject None and the empty string. Optional
    parameters accept None without further checks.
    """
    name = parameter.name

    if parameter.required and (value is None or value == ""):
        return ValidationResult(False, f"{name} is required")

    if not parameter.required and value is None:
        return ValidationResult(True)

    if parameter.type == ParameterType.STRING:
        if not isinstance(value, str):
            return ValidationResult(False, f"{name} must be a string")
        if parameter.required and value.strip() == "":
            return ValidationResult(False, f"{name} cannot be empty")

    elif parameter.type == ParameterType.NUMBER:
        if not _is_number(value):
            return ValidationResult(False, f"{name} must be a number")
        if parameter.min is not None and value < parameter.min:
            return ValidationResult(False, f"{name} must be at least {_format_bound(parameter.min)}")
        if parameter.max is not None and value > parameter.max:
            return ValidationResult(False, f"{name} must be at most {_format_bound(parameter.max)}")

    elif parameter.type == ParameterType.BOOLEAN:
        if not isinstance(value, bool):
            return ValidationResult(False, f"{name} must be a boolean")

    elif parameter.type == ParameterType.SELECT:
        if not parameter.options:
            return ValidationResult(False, f"{name} has no valid options")
        valid_values = parameter.option_values
        # Exact match: 1 must not satisfy "1", True must not satisfy 1
        if not any(type(value) is type(v) and value == v for v in valid_values):
            joined = ", ".join(str(v) for v in valid_values)
            return ValidationResult(False, f"{name} must be one of: {joined}")

    return ValidationResult(True)


def validate_all_parameters(
    values: dict[str, Any],
    parameters: Sequence[Parameter],
) -> ValidationResults:
    """
    Validate every declared parameter and collect all errors.

    Keys in `values` that no parameter declares are ignored.
    """
    errors = []
    for parameter in parameters:
        result = validate_parameter(values.get(parameter.name), parameter)
        if not result.valid and result.error:
            errors.append(ParameterError(parameter=parameter.name, error=result.error))

    return ValidationResults(valid=not errors, errors=errors)
