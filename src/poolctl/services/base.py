"""BaseService — foundation for all poolctl services.

Every service receives a :class:`Store` at construction time. Services own
their transaction boundaries via ``self._store.transaction()``: every
write of one operation happens inside a single batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from poolctl.domain.lifecycle import is_valid_transition
from poolctl.services._helpers import now_utc
from poolctl.services.result import (
    COMMIT_FAILED,
    INVALID_TRANSITION,
    NOT_FOUND,
    ServiceError,
    ServiceResult,
)

if TYPE_CHECKING:
    from poolctl.infrastructure.store import Store

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class BaseService:
    """Base for all service-layer classes.

    Args:
        store: The repository every read and write goes through.
        clock: Returns the current time; tests pass a fixed one.

    Usage::

        class SettlementService(BaseService):
            def mark_as_paid(self, client_id: str) -> ServiceResult:
                with self._store.transaction() as txn:
                    ...
    """

    def __init__(self, store: Store, *, clock: Clock | None = None) -> None:
        self._store = store
        self._clock: Clock = clock or now_utc

    def _now(self) -> datetime:
        return self._clock()

    def _today(self) -> date:
        return self._clock().date()

    @staticmethod
    def _fail(op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )

    def _not_found(self, op: str, kind: str, record_id: str) -> ServiceResult:
        return self._fail(op, NOT_FOUND, f"No {kind} found with ID: {record_id}", id=record_id)

    def _commit_failed(self, op: str, exc: Exception) -> ServiceResult:
        logger.warning("Batch for %s rolled back", op, exc_info=True)
        return self._fail(op, COMMIT_FAILED, f"Could not save changes: {exc}")

    def _check_transition(
        self,
        op: str,
        current: str,
        target: str,
        transitions: dict[str, list[str]],
    ) -> ServiceResult | None:
        """Failure result when *current* -> *target* is not allowed, else None."""
        if is_valid_transition(current, target, transitions):
            return None
        allowed = transitions.get(current, [])
        return self._fail(
            op,
            INVALID_TRANSITION,
            f"Invalid status transition: {current} -> {target}. Allowed: {allowed}",
            current=current,
            target=target,
        )
