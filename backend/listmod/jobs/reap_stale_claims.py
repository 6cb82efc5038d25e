from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
import structlog
from listmod.config import settings
from listmod.db import SessionLocal
from listmod.errors import ReviewError
from listmod.services.queue import ReclaimedClaim, reap_stale_claims
from listmod.services.shifts import MissedShift, expire_overdue_shifts

log = structlog.get_logger()


@dataclass
class ReaperRun:
    claims: list[ReclaimedClaim] = field(default_factory=list)
    shifts: list[MissedShift] = field(default_factory=list)


async def run_once(session_factory=SessionLocal) -> ReaperRun:
    timeout = timedelta(minutes=settings.claim_timeout_minutes)
    async with session_factory() as session:
        run = ReaperRun(
            claims=await reap_stale_claims(session, timeout),
            shifts=await expire_overdue_shifts(session),
        )
    if run.claims:
        log.info(
            "missed_claims",
            count=len(run.claims),
            claims=[{"submission_id": str(r.submission_id), "list_id": r.list_id,
                     "reviewer_id": str(r.reviewer_id) if r.reviewer_id else None} for r in run.claims],
        )
    if run.shifts:
        log.info(
            "missed_shifts",
            count=len(run.shifts),
            shifts=[{"shift_id": str(m.shift_id), "user_id": str(m.user_id),
                     "completed": m.completed_count, "target": m.target_count} for m in run.shifts],
        )
    return run


async def run_forever(interval_seconds: int | None = None, session_factory=SessionLocal) -> None:
    # Started from the app lifespan; cancelled on shutdown
    interval = interval_seconds or settings.reaper_interval_seconds
    log.info("reaper_started", interval_seconds=interval, timeout_minutes=settings.claim_timeout_minutes)
    while True:
        try:
            await run_once(session_factory)
        except (ReviewError, OSError) as e:
            # database unavailable; the next tick retries
            log.warning("reaper_failed", error=str(e))
        await asyncio.sleep(interval)


def reap(interval_seconds: int | None = None):
    # Standalone entry point (sync)
    asyncio.run(run_forever(interval_seconds))


if __name__ == "__main__":
    reap()
