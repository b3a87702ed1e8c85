"""
Best-effort secondary writes.

A handler has exactly one authoritative write. Everything it does after that
(order bookkeeping, inventory counters, registration mirrors) is a
secondary write: it runs as its own committed step, and a failure is logged
and counted but never turns a successful request into an error.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from myecclesia.core.logging import get_logger
from myecclesia.core.metrics import record_best_effort_failure

logger = get_logger(__name__)


@dataclass
class StepResult:
    step: str
    ok: bool
    rows: Optional[int] = None
    error: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.ok and bool(self.rows)


async def best_effort(
    db: AsyncSession,
    step: str,
    operation: Callable[[], Awaitable[Any]],
    expect_rows: bool = True,
    **context,
) -> StepResult:
    """
    Run `operation` and commit it.

    `operation` may return a CursorResult (rowcount is reported) or any other
    value. Zero rows when `expect_rows` is set is logged as a miss, not a
    failure.
    """
    try:
        outcome = await operation()
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        record_best_effort_failure(step)
        logger.warning("best_effort_write_failed", step=step, error=str(e), **context)
        return StepResult(step=step, ok=False, error=str(e))

    rows = getattr(outcome, "rowcount", None)
    if expect_rows and rows == 0:
        logger.warning("best_effort_write_missed", step=step, **context)
    return StepResult(step=step, ok=True, rows=rows)
