"""Structural contracts for station telemetry batches.

Envelope and reading validation are driven by the same declarative rule
tables. Every rule is evaluated (no short-circuiting) and failures are
returned as data, never raised, so callers get the complete defect list.
Unknown keys are tolerated and preserved on the validated models.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Callable, Generic, Literal, Mapping, Sequence, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, ValidationError

SCHEMA_TAG = "measurements.v1"
VALUE_TYPES = ("number", "bool", "string", "object")
QUALITY_FLAGS = ("ok", "suspect", "error")

ValueType = Literal["number", "bool", "string", "object"]
Quality = Literal["ok", "suspect", "error"]

T = TypeVar("T")
_MISSING = object()

_TIMESTAMP = TypeAdapter(datetime)
# Calendar dates only; pydantic would otherwise read bare digits as Unix time
_CALENDAR_DATE = re.compile(r"\d{4}-\d{2}-\d{2}(?:[Tt ]|$)")


def parse_timestamp(value: str) -> datetime | None:
    """Parse an RFC3339 timestamp, returning None when invalid."""
    text = value.strip()
    if not _CALENDAR_DATE.match(text):
        return None
    try:
        return _TIMESTAMP.validate_python(text)
    except ValidationError:
        return None


def _integral(value: Any) -> Any:
    # JSON integers written as 1e3 decode to float
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


Count = Annotated[int, BeforeValidator(_integral)]


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_non_negative_int(value: Any) -> bool:
    # bool is an int subclass in Python but never a counter here
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    return isinstance(value, float) and value.is_integer() and value >= 0


def is_timestamp(value: Any) -> bool:
    return is_non_empty_string(value) and parse_timestamp(value) is not None


def is_non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def one_of(*choices: str) -> Callable[[Any], bool]:
    allowed = frozenset(choices)

    def _check(value: Any) -> bool:
        return isinstance(value, str) and value in allowed

    return _check


def equals(expected: str) -> Callable[[Any], bool]:
    def _check(value: Any) -> bool:
        return isinstance(value, str) and value == expected

    return _check


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}

    def render(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


@dataclass(frozen=True, slots=True)
class ValidationResult(Generic[T]):
    """Either ``success`` with ``data`` or a failure carrying ``errors``."""

    success: bool
    data: T | None = None
    errors: tuple[ValidationIssue, ...] = ()

    @classmethod
    def ok(cls, data: T) -> "ValidationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, errors: Sequence[ValidationIssue]) -> "ValidationResult[T]":
        return cls(success=False, errors=tuple(errors))

    def error_dicts(self) -> list[dict[str, str]]:
        return [issue.to_dict() for issue in self.errors]


@dataclass(frozen=True, slots=True)
class FieldRule:
    """One check against a single top-level key.

    Optional rules pass when the key is absent. Nullable rules also pass
    on an explicit null.
    """

    path: str
    check: Callable[[Any], bool]
    message: str
    optional: bool = False
    nullable: bool = False

    def evaluate(self, obj: Mapping[str, Any]) -> ValidationIssue | None:
        value = obj.get(self.path, _MISSING)
        if value is _MISSING:
            if self.optional:
                return None
            value = None
        elif value is None and self.nullable:
            return None
        if self.check(value):
            return None
        return ValidationIssue(self.path, self.message)


class Reading(BaseModel):
    model_config = ConfigDict(extra="allow")

    ts: str
    sensor_key: str
    metric: str
    unit: str
    value: Any = None
    value_type: ValueType | None = None
    window_ms: Count | None = None
    quality: Quality | None = None
    error_code: Any = None

    @property
    def observed_at(self) -> datetime | None:
        return parse_timestamp(self.ts)


class TelemetryBatchEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    schema_tag: Literal["measurements.v1"] = Field(alias="schema")
    device_id: str
    sent_at: str
    seq: Count | None = None
    fw: Any = None
    readings: list[Any]


READING_RULES: tuple[FieldRule, ...] = (
    FieldRule("ts", is_timestamp, "ts must be RFC3339 string"),
    FieldRule("sensor_key", is_non_empty_string, "sensor_key is required"),
    FieldRule("metric", is_non_empty_string, "metric is required"),
    FieldRule("unit", is_non_empty_string, "unit is required"),
    FieldRule("value_type", one_of(*VALUE_TYPES), "invalid value_type", optional=True, nullable=True),
    FieldRule("window_ms", is_non_negative_int, "window_ms must be a non-negative integer", optional=True),
    FieldRule("quality", one_of(*QUALITY_FLAGS), "quality must be ok|suspect|error", optional=True, nullable=True),
)

ENVELOPE_RULES: tuple[FieldRule, ...] = (
    FieldRule("schema", equals(SCHEMA_TAG), f"schema must be {SCHEMA_TAG}"),
    FieldRule("device_id", is_non_empty_string, "device_id is required"),
    FieldRule("sent_at", is_timestamp, "sent_at must be RFC3339 string"),
    FieldRule("seq", is_non_negative_int, "seq must be a non-negative integer", optional=True),
    FieldRule("readings", is_non_empty_list, "readings must be a non-empty array"),
)

M = TypeVar("M", bound=BaseModel)


def check_rules(value: Any, rules: Sequence[FieldRule]) -> list[ValidationIssue]:
    if not isinstance(value, Mapping):
        return [ValidationIssue("", "Expected object")]
    issues: list[ValidationIssue] = []
    for rule in rules:
        issue = rule.evaluate(value)
        if issue is not None:
            issues.append(issue)
    return issues


def _build(model: type[M], value: Mapping[str, Any], rules: Sequence[FieldRule]) -> ValidationResult[M]:
    """Construct ``model`` from rule-checked input, reporting model errors as issues."""
    try:
        return ValidationResult.ok(model.model_validate(dict(value)))
    except ValidationError as exc:
        messages = {rule.path: rule.message for rule in rules}
        issues = []
        for error in exc.errors():
            path = str(error["loc"][0]) if error["loc"] else ""
            issues.append(ValidationIssue(path, messages.get(path, error["msg"])))
        return ValidationResult.fail(issues)


def validate_reading(value: Any) -> ValidationResult[Reading]:
    issues = check_rules(value, READING_RULES)
    if issues:
        return ValidationResult.fail(issues)
    return _build(Reading, value, READING_RULES)


def validate_envelope(value: Any) -> ValidationResult[TelemetryBatchEnvelope]:
    """Validate the batch wrapper only; readings are checked one by one later."""
    issues = check_rules(value, ENVELOPE_RULES)
    if issues:
        return ValidationResult.fail(issues)
    return _build(TelemetryBatchEnvelope, value, ENVELOPE_RULES)


__all__ = [
    "ENVELOPE_RULES",
    "FieldRule",
    "QUALITY_FLAGS",
    "READING_RULES",
    "Reading",
    "SCHEMA_TAG",
    "TelemetryBatchEnvelope",
    "VALUE_TYPES",
    "ValidationIssue",
    "ValidationResult",
    "check_rules",
    "parse_timestamp",
    "validate_envelope",
    "validate_reading",
]
