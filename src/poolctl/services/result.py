"""The return type of every service call.

Expected failures (bad input, ineligible client, forbidden transition,
missing record, rolled-back batch) come back as ``ok=False`` with a
:class:`ServiceError`; services do not raise for them. The CLI renders
the result and the admin session collects it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

VALIDATION_FAILED = "VALIDATION_FAILED"  # malformed or out-of-range input
NOT_ELIGIBLE = "NOT_ELIGIBLE"  # a business precondition is not met
INVALID_TRANSITION = "INVALID_TRANSITION"  # status change not allowed from here
NOT_FOUND = "NOT_FOUND"  # referenced record does not exist
COMMIT_FAILED = "COMMIT_FAILED"  # the batch raised and was rolled back

ERROR_CODES = frozenset(
    {VALIDATION_FAILED, NOT_ELIGIBLE, INVALID_TRANSITION, NOT_FOUND, COMMIT_FAILED}
)


class ServiceError(BaseModel):
    """Why an operation failed: a code from :data:`ERROR_CODES` plus context."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @field_validator("code")
    @classmethod
    def _known_code(cls, code: str) -> str:
        if code not in ERROR_CODES:
            msg = f"unknown error code {code!r}"
            raise ValueError(msg)
        return code


class ServiceResult(BaseModel):
    """Outcome of one service operation.

    ``data`` carries the payload on success, ``warnings`` the per-item
    problems that did not stop the operation, and ``meta`` optional
    timing collected under ``--verbose``.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
