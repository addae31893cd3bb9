"""Date-keyed run markers for the once-per-day automation passes.

Two implementations of :class:`LastRunTracker`:

- :class:`SessionRunTracker` — process-local, forgotten when the session
  ends (one admin session runs a pass at most once per day).
- :class:`StoreRunTracker` — persisted in ``automation_runs`` with a
  unique ``(job, run_date)`` key, so a pass runs at most once per day
  across every session and admin.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError

from poolctl.infrastructure.database.schema import automation_runs

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class LastRunTracker(Protocol):
    """Queried before and updated around each automation pass."""

    def has_run(self, job: str, day: date) -> bool: ...

    def mark_run(self, job: str, day: date) -> bool:
        """Record the run; False if it was already recorded."""
        ...


class SessionRunTracker:
    """In-memory markers scoped to one session."""

    def __init__(self) -> None:
        self._marks: set[tuple[str, str]] = set()

    def has_run(self, job: str, day: date) -> bool:
        return (job, day.isoformat()) in self._marks

    def mark_run(self, job: str, day: date) -> bool:
        key = (job, day.isoformat())
        if key in self._marks:
            return False
        self._marks.add(key)
        return True

    def reset(self) -> None:
        self._marks.clear()


class StoreRunTracker:
    """Markers persisted in the store's ``automation_runs`` ledger."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def has_run(self, job: str, day: date) -> bool:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(automation_runs.c.id).where(
                    automation_runs.c.job == job,
                    automation_runs.c.run_date == day.isoformat(),
                )
            ).first()
        return row is not None

    def mark_run(self, job: str, day: date) -> bool:
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    insert(automation_runs).values(
                        job=job,
                        run_date=day.isoformat(),
                        created=datetime.now(UTC).isoformat(),
                    )
                )
        except IntegrityError:
            return False
        return True
