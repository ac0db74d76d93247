from __future__ import annotations

from dataclasses import dataclass

import pytest

from auth_service.domain.contracts import (
    REGISTER_TARGET,
    RESET_PASSWORD_TARGET,
    UPDATE_ACCOUNT_TARGET,
    RegisterInput,
    UpdateAccountInput,
)
from auth_service.errors import ConstraintViolation, EmptyInput, ValidationFailed
from auth_service.validation.gate import InputGate
from auth_service.validation.rules import Constraint, ValidationTarget, min_length, not_empty
from auth_service.validation.validator import collect_violations, requires_validation


@dataclass
class Quantity:
    label: str
    amount: int


QUANTITY_TARGET = ValidationTarget(
    name="Quantity",
    shape=Quantity,
    rules={
        "label": [
            Constraint(lambda value: str(value).lower() != "forbidden", "label is reserved"),
            Constraint(lambda value: isinstance(value, str) and value.islower(), "label must be lowercase"),
        ],
        "amount": [Constraint(lambda value: isinstance(value, int) and value > 0, "amount must be positive")],
    },
)


@pytest.fixture
def gate() -> InputGate:
    return InputGate()


@pytest.mark.parametrize("shape", [str, bool, int, float, list, dict, object])
def test_primitive_targets_pass_payload_through(gate, shape):
    target = ValidationTarget(name=shape.__name__, shape=shape, rules={"x": [not_empty("x")]})
    payload = {"anything": "goes", "x": ""}

    assert not requires_validation(target)
    assert gate.process(payload, target) is payload


def test_untyped_target_passes_payload_through(gate):
    assert gate.process("raw", None) == "raw"


@pytest.mark.parametrize("payload", [None, {}, [], ""])
@pytest.mark.parametrize("target", [None, ValidationTarget(name="dict", shape=dict), REGISTER_TARGET])
def test_empty_payload_is_rejected_for_any_target(gate, payload, target):
    with pytest.raises(EmptyInput) as excinfo:
        gate.process(payload, target)

    assert excinfo.value.errors == ["No inputs received"]
    assert excinfo.value.to_response() == {
        "data": {"message": "Input data validation failed", "errors": ["No inputs received"]}
    }


def test_valid_payload_is_coerced_into_shape(gate):
    result = gate.process(
        {"username": "ann", "email": "ann@x.com", "password": "secret123", "role": "admin"},
        REGISTER_TARGET,
    )

    assert result == RegisterInput(username="ann", email="ann@x.com", password="secret123")
    assert not hasattr(result, "role")


def test_report_has_one_message_per_violated_field(gate):
    with pytest.raises(ConstraintViolation) as excinfo:
        gate.process({"username": "ann", "email": "not-an-email", "password": "abc"}, REGISTER_TARGET)

    assert excinfo.value.report == {
        "email": "email must be an email",
        "password": "password must be longer than or equal to 8 characters",
    }
    assert isinstance(excinfo.value, ValidationFailed)


def test_last_failing_constraint_wins():
    _, report = collect_violations(QUANTITY_TARGET, {"label": "forbidden", "amount": 3})
    assert report == {"label": "label is reserved"}

    _, report = collect_violations(QUANTITY_TARGET, {"label": "Forbidden", "amount": 3})
    assert report == {"label": "label must be lowercase"}


def test_missing_required_field_reports_last_declared_message(gate):
    with pytest.raises(ConstraintViolation) as excinfo:
        gate.process({"username": "ann", "email": "ann@x.com"}, REGISTER_TARGET)

    assert excinfo.value.report == {"password": "password should not be empty"}


def test_field_values_are_coerced_to_declared_types():
    instance, report = collect_violations(QUANTITY_TARGET, {"label": "apples", "amount": "7"})

    assert report == {}
    assert instance == Quantity(label="apples", amount=7)


def test_uncoercible_values_are_reported_not_raised():
    instance, report = collect_violations(QUANTITY_TARGET, {"label": "apples", "amount": "seven"})

    assert report == {"amount": "amount must be positive"}
    assert instance.amount == "seven"


def test_optional_fields_are_skipped_when_absent(gate):
    result = gate.process({"first_name": "Ann"}, UPDATE_ACCOUNT_TARGET)

    assert result == UpdateAccountInput(first_name="Ann")


def test_optional_fields_are_checked_when_present(gate):
    with pytest.raises(ConstraintViolation) as excinfo:
        gate.process({"email": "nope", "password": "short"}, UPDATE_ACCOUNT_TARGET)

    assert set(excinfo.value.report) == {"email", "password"}


def test_non_mapping_payload_for_typed_target(gate):
    with pytest.raises(ConstraintViolation) as excinfo:
        gate.process(["ann", "secret123"], REGISTER_TARGET)

    assert excinfo.value.report == {"body": "RegisterInput payload must be an object"}


def test_reset_token_must_be_hex(gate):
    with pytest.raises(ConstraintViolation) as excinfo:
        gate.process({"token": "zz" * 20, "password": "new-secret"}, RESET_PASSWORD_TARGET)

    assert excinfo.value.report == {"token": "token must be a 40 character hexadecimal string"}


def test_validator_is_pure():
    payload = {"label": "Apples", "amount": "2"}
    snapshot = dict(payload)

    first = collect_violations(QUANTITY_TARGET, payload)
    second = collect_violations(QUANTITY_TARGET, payload)

    assert payload == snapshot
    assert first == second


def test_min_length_rejects_non_strings():
    assert not min_length("name", 2).check(None)
    assert not min_length("name", 2).check(12345)
