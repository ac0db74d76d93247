"""Generic interpreter for :class:`ValidationTarget` rule tables."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, get_type_hints

from pydantic import TypeAdapter, ValidationError

from ..errors import ConstraintViolation
from .rules import ValidationTarget

PRIMITIVE_SHAPES: frozenset[type] = frozenset({str, bool, int, float, list, dict, object})

BODY_FIELD = "body"


def requires_validation(target: ValidationTarget | None) -> bool:
    """Return ``False`` for untyped or primitive targets, which opt out of validation."""
    if target is None or target.shape is None:
        return False
    return target.shape not in PRIMITIVE_SHAPES


@lru_cache(maxsize=None)
def _adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation)


def _coerce_value(annotation: Any, value: Any) -> Any:
    if value is None:
        return None
    try:
        return _adapter(annotation).validate_python(value)
    except ValidationError:
        # leave it raw; the rule table reports on it
        return value


def coerce(target: ValidationTarget, candidate: Mapping[str, Any]) -> Any:
    """Build an instance of ``target.shape`` from the declared fields of ``candidate``."""
    hints = get_type_hints(target.shape)
    values: dict[str, Any] = {}
    for declared in dataclasses.fields(target.shape):
        if not declared.init:
            continue
        if declared.name in candidate:
            values[declared.name] = _coerce_value(hints.get(declared.name, Any), candidate[declared.name])
        elif declared.default is not dataclasses.MISSING:
            values[declared.name] = declared.default
        elif declared.default_factory is not dataclasses.MISSING:
            values[declared.name] = declared.default_factory()
        else:
            values[declared.name] = None
    return target.shape(**values)


def collect_violations(target: ValidationTarget, candidate: Any) -> tuple[Any, dict[str, str]]:
    """Coerce ``candidate`` and evaluate every constraint, returning ``(value, report)``.

    Constraints run in declaration order; a later failure on the same field
    replaces the earlier message, so the report holds one message per field.
    """
    if not requires_validation(target):
        return candidate, {}
    if not isinstance(candidate, Mapping):
        return candidate, {BODY_FIELD: f"{target.name} payload must be an object"}

    instance = coerce(target, candidate)
    report: dict[str, str] = {}
    for field_name, constraints in target.rules.items():
        value = getattr(instance, field_name, None)
        if value is None and field_name in target.optional:
            continue
        for constraint in constraints:
            if not constraint.check(value):
                report[field_name] = constraint.message
    return instance, report


def validate(target: ValidationTarget, candidate: Any) -> Any:
    """Return the coerced value or raise :class:`ConstraintViolation` with the report."""
    instance, report = collect_violations(target, candidate)
    if report:
        raise ConstraintViolation(report)
    return instance
