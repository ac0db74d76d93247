"""Request pre-processing stage that rejects malformed payloads."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Body, Depends

from ..errors import ConstraintViolation, EmptyInput
from .rules import ValidationTarget
from .validator import requires_validation, validate

logger = logging.getLogger(__name__)


class InputGate:
    """Runs the constraint validator over inbound payloads before any business logic."""

    def process(self, raw_value: Any, target: ValidationTarget | None) -> Any:
        """Return the coerced payload or raise a :class:`ValidationFailed` subclass.

        Empty payloads are rejected whatever the target; primitive targets are
        passed through untouched.
        """
        if not raw_value:
            logger.warning("rejected empty payload for %s", target.name if target else "untyped target")
            raise EmptyInput()
        if not requires_validation(target):
            return raw_value
        try:
            return validate(target, raw_value)
        except ConstraintViolation as exc:
            logger.warning("payload for %s failed validation on %s", target.name, sorted(exc.report))
            raise


input_gate = InputGate()


def validated(target: ValidationTarget):
    """FastAPI dependency running the JSON body through the input gate."""

    def dependency(payload: Any = Body(default=None)) -> Any:
        return input_gate.process(payload, target)

    return Depends(dependency)
