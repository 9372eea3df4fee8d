from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from services.json_body import InvalidJSONError, decode_json
from services.telemetry_contracts import (
    Reading,
    TelemetryBatchEnvelope,
    ValidationIssue,
    validate_envelope,
    validate_reading,
)

READING_ERROR_TAG = "invalid_reading"


class IngestStatus(str, Enum):
    INVALID_JSON = "invalid_json"
    INVALID_ENVELOPE = "invalid_envelope"
    ALL_INVALID = "all_invalid"
    PARTIAL = "partial"
    ACCEPTED = "accepted"


@dataclass(frozen=True, slots=True)
class ReadingRejection:
    """A reading that failed validation, keyed by its position in the batch."""

    index: int
    message: str
    error: str = READING_ERROR_TAG

    def to_dict(self) -> dict[str, object]:
        return {"index": self.index, "error": self.error, "message": self.message}


@dataclass(slots=True)
class IngestOutcome:
    status: IngestStatus
    envelope: Optional[TelemetryBatchEnvelope] = None
    accepted: list[Reading] = field(default_factory=list)
    rejections: list[ReadingRejection] = field(default_factory=list)
    envelope_errors: list[ValidationIssue] = field(default_factory=list)

    @property
    def ingested(self) -> int:
        return len(self.accepted)

    @property
    def rejected(self) -> int:
        return len(self.rejections)


def _rejection_message(issues: tuple[ValidationIssue, ...]) -> str:
    return "; ".join(issue.render() for issue in issues)


def process_batch(payload: Any) -> IngestOutcome:
    """Validate a decoded batch and partition its readings.

    Envelope failures stop processing before any reading is inspected.
    Readings are validated independently and both partitions keep input order.
    """
    envelope_result = validate_envelope(payload)
    if not envelope_result.success or envelope_result.data is None:
        return IngestOutcome(
            status=IngestStatus.INVALID_ENVELOPE,
            envelope_errors=list(envelope_result.errors),
        )

    envelope = envelope_result.data
    accepted: list[Reading] = []
    rejections: list[ReadingRejection] = []
    for index, candidate in enumerate(envelope.readings):
        result = validate_reading(candidate)
        if result.success and result.data is not None:
            accepted.append(result.data)
        else:
            rejections.append(ReadingRejection(index=index, message=_rejection_message(result.errors)))

    if not accepted:
        status = IngestStatus.ALL_INVALID
    elif rejections:
        status = IngestStatus.PARTIAL
    else:
        status = IngestStatus.ACCEPTED
    # TODO: enforce envelope.seq ordering once batches are persisted per device.
    return IngestOutcome(status=status, envelope=envelope, accepted=accepted, rejections=rejections)


def ingest_body(raw: bytes | str) -> IngestOutcome:
    """Decode a raw request body and run it through :func:`process_batch`."""
    try:
        payload = decode_json(raw)
    except InvalidJSONError:
        return IngestOutcome(status=IngestStatus.INVALID_JSON)
    return process_batch(payload)


__all__ = [
    "IngestOutcome",
    "IngestStatus",
    "READING_ERROR_TAG",
    "ReadingRejection",
    "ingest_body",
    "process_batch",
]
