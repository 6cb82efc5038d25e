from datetime import datetime, timedelta, timezone
import pytest
from listmod.jobs import reap_stale_claims as reaper_job
from listmod.jobs.reap_stale_claims import run_forever
from listmod.models.shift import Shift
from listmod.services.shifts import create_shift
from sqlalchemy import update
from listmod.jobs.reap_stale_claims import run_once
from listmod.lists import CLASSIC, PLATFORMER
from listmod.models.submission import Submission
from listmod.services import pipeline
from listmod.services.audit import submission_history
from listmod.services.queue import claim_highest_priority, reap_stale_claims

TIMEOUT = timedelta(minutes=120)


async def _claim_aged(seed, session_factory, payload, minutes, lst=CLASSIC, **kw):
    submitter, reviewer = await seed.user(), await seed.reviewer()
    level = await seed.level(list_id=lst.id)
    async with session_factory() as s:
        sub = await pipeline.create_submission(s, lst, submitter.id, payload(level, **kw))
        await claim_highest_priority(s, lst, reviewer.id)
        await s.execute(
            update(Submission).where(Submission.id == sub.id)
            .values(updated_at=datetime.now(timezone.utc) - timedelta(minutes=minutes))
        )
        await s.commit()
    return sub, reviewer


@pytest.mark.asyncio
async def test_stale_claims_return_to_pending(seed, session_factory, payload):
    stale, reviewer = await _claim_aged(seed, session_factory, payload, 180)
    fresh, _ = await _claim_aged(seed, session_factory, payload, 30)
    other_list, _ = await _claim_aged(seed, session_factory, payload, 121, lst=PLATFORMER, completion_time=5000)

    async with session_factory() as s:
        reclaimed = await reap_stale_claims(s, TIMEOUT)
    assert {r.submission_id for r in reclaimed} == {stale.id, other_list.id}
    assert any(r.reviewer_id == reviewer.id for r in reclaimed)

    async with session_factory() as s:
        back = await s.get(Submission, stale.id)
        assert back.status == "Pending" and back.reviewer_id is None
        assert (await s.get(Submission, fresh.id)).status == "Claimed"
        # bulk reset, no audit rows
        assert [h.status for h in await submission_history(s, stale.id)] == ["Claimed", "Pending"]


@pytest.mark.asyncio
async def test_reaper_is_idempotent(seed, session_factory, payload):
    await _claim_aged(seed, session_factory, payload, 500)
    async with session_factory() as s:
        assert len(await reap_stale_claims(s, TIMEOUT)) == 1
        assert await reap_stale_claims(s, TIMEOUT) == []


@pytest.mark.asyncio
async def test_reaped_submission_can_be_claimed_again(seed, session_factory, payload):
    sub, _ = await _claim_aged(seed, session_factory, payload, 240)
    other = await seed.reviewer()
    async with session_factory() as s:
        await reap_stale_claims(s, TIMEOUT)
        again = await claim_highest_priority(s, CLASSIC, other.id)
    assert again.id == sub.id
    assert again.reviewer_id == other.id


@pytest.mark.asyncio
async def test_run_once_uses_configured_timeout(seed, session_factory, payload):
    await _claim_aged(seed, session_factory, payload, 121)
    run = await run_once(session_factory)
    assert len(run.claims) == 1
    assert run.shifts == []
    assert (await run_once(session_factory)).claims == []


@pytest.mark.asyncio
async def test_run_once_expires_overdue_shifts(seed, session_factory):
    late, on_time = await seed.reviewer(), await seed.reviewer()
    now = datetime.now(timezone.utc)
    async with session_factory() as s:
        overdue = await create_shift(s, late.id, 5, now - timedelta(hours=3), now - timedelta(minutes=1))
        running = await create_shift(s, on_time.id, 5, now - timedelta(hours=1), now + timedelta(hours=1))
        await s.commit()

    run = await run_once(session_factory)
    assert [m.shift_id for m in run.shifts] == [overdue.id]
    assert run.shifts[0].user_id == late.id
    assert run.claims == []
    assert (await run_once(session_factory)).shifts == []

    async with session_factory() as s:
        assert (await s.get(Shift, overdue.id)).status == "Expired"
        assert (await s.get(Shift, running.id)).status == "Running"


class _Events:
    def __init__(self):
        self.seen = []

    def info(self, event, **kw):
        self.seen.append(("info", event))

    def warning(self, event, **kw):
        self.seen.append(("warning", event))


class _FlakyFactory:
    """First run cannot connect, second run works, third stops the loop."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls == 1:
            raise ConnectionRefusedError("database is starting up")
        if self.calls == 3:
            raise RuntimeError("stop")
        return self.inner()


@pytest.mark.asyncio
async def test_run_forever_logs_failure_and_keeps_going(seed, session_factory, payload, monkeypatch):
    sub, _ = await _claim_aged(seed, session_factory, payload, 300)
    events = _Events()
    monkeypatch.setattr(reaper_job, "log", events)
    flaky = _FlakyFactory(session_factory)

    with pytest.raises(RuntimeError):
        await run_forever(interval_seconds=0.01, session_factory=flaky)

    assert flaky.calls == 3
    assert ("warning", "reaper_failed") in events.seen
    assert ("info", "missed_claims") in events.seen
    async with session_factory() as s:
        assert (await s.get(Submission, sub.id)).status == "Pending"
