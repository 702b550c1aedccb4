from __future__ import annotations

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class SubmissionKeys:
    submission_id: str
    idempotency_key: str


def new_submission_keys() -> SubmissionKeys:
    return SubmissionKeys(submission_id=str(uuid.uuid4()), idempotency_key=str(uuid.uuid4()))


def resolve_submission_keys(submission_id: str | None = None, idempotency_key: str | None = None) -> SubmissionKeys:
    if submission_id and idempotency_key:
        return SubmissionKeys(submission_id=submission_id, idempotency_key=idempotency_key)
    generated = new_submission_keys()
    return SubmissionKeys(
        submission_id=submission_id or generated.submission_id,
        idempotency_key=idempotency_key or generated.idempotency_key,
    )


def idempotency_headers(keys: SubmissionKeys) -> dict[str, str]:
    return {"Idempotency-Key": keys.idempotency_key}
