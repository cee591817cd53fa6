"""
Stale Processing Payment Sweeper -- Scheduled Job.

Payments are committed as ``processing`` before the gateway is called. If
the worker dies before recording the gateway's answer, the payment stays in
``processing`` forever. This job marks such payments as ``failed`` once
they are older than ``payment_processing_stale_minutes``, so the client can
create a fresh payment.

Intended to run every few minutes via cron or a similar scheduler.

Usage with a simple cron runner::

    python -m gigbridge.jobs.stalePaymentSweeper
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gigbridge.core.config import settings
from gigbridge.services.escrowLedger import fail_stale_processing_payments

logger = logging.getLogger(__name__)


async def run_stale_payment_sweep(
    db: AsyncSession,
    stale_minutes: Optional[int] = None,
) -> int:
    """Fail stale ``processing`` payments and return how many were swept.

    The caller is responsible for committing the session.
    """
    minutes = stale_minutes if stale_minutes is not None else settings.payment_processing_stale_minutes
    logger.info("Sweeping payments stuck in processing for more than %d minute(s)", minutes)
    swept = await fail_stale_processing_payments(db, timedelta(minutes=minutes))
    logger.info("Stale payment sweep complete: %d payment(s) failed", swept)
    return swept


async def _cli_main() -> None:
    """Entry point for running the sweeper from the command line.

    Creates its own database session via the application session factory.
    """
    from gigbridge.api.deps import async_session_factory

    async with async_session_factory() as session:
        try:
            swept = await run_stale_payment_sweep(session)
            await session.commit()
            print(f"Stale payment sweep completed: {swept} payment(s) failed")  # noqa: T201
        except Exception:
            await session.rollback()
            logger.exception("Stale payment sweep failed")
            raise
        finally:
            await session.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    asyncio.run(_cli_main())
