import asyncio
from datetime import datetime, timedelta, timezone
import pytest
from sqlalchemy import select, update
from listmod.errors import AuthorizationError, NotFoundError
from listmod.lists import CLASSIC, PLATFORMER
from listmod.models.history import SubmissionHistory
from listmod.models.submission import Submission
from listmod.services import pipeline
from listmod.services.queue import claim_highest_priority, pending_count, queue_position


async def _submit(session_factory, payload, user, level):
    async with session_factory() as s:
        return await pipeline.create_submission(s, CLASSIC, user.id, payload(level))


async def _age(session_factory, submission, minutes):
    # pin created_at so ordering doesn't depend on clock resolution
    async with session_factory() as s:
        at = datetime.now(timezone.utc) - timedelta(minutes=minutes)
        await s.execute(update(Submission).where(Submission.id == submission.id).values(created_at=at))
        await s.commit()


@pytest.mark.asyncio
async def test_boosted_submission_is_claimed_first(seed, session_factory, payload):
    reviewer = await seed.reviewer()
    plain, boosted = await seed.user(), await seed.user(boosted=True)
    level = await seed.level()

    old = await _submit(session_factory, payload, plain, level)
    new = await _submit(session_factory, payload, boosted, level)
    await _age(session_factory, old, 60)
    await _age(session_factory, new, 1)
    assert (old.priority, new.priority) == (0, 1)

    async with session_factory() as s:
        first = await claim_highest_priority(s, CLASSIC, reviewer.id)
        second = await claim_highest_priority(s, CLASSIC, reviewer.id)
    assert first.id == new.id
    assert second.id == old.id
    assert first.status == "Claimed" and first.reviewer_id == reviewer.id


@pytest.mark.asyncio
async def test_same_tier_is_fifo(seed, session_factory, payload):
    reviewer = await seed.reviewer()
    subs = []
    for minutes in (5, 30, 15):
        u, lvl = await seed.user(), await seed.level()
        sub = await _submit(session_factory, payload, u, lvl)
        await _age(session_factory, sub, minutes)
        subs.append(sub)

    async with session_factory() as s:
        order = [(await claim_highest_priority(s, CLASSIC, reviewer.id)).id for _ in range(3)]
    assert order == [subs[1].id, subs[2].id, subs[0].id]


@pytest.mark.asyncio
async def test_empty_queue_raises_not_found(seed, session):
    reviewer = await seed.reviewer()
    with pytest.raises(NotFoundError):
        await claim_highest_priority(session, CLASSIC, reviewer.id)


@pytest.mark.asyncio
async def test_claim_requires_permission(seed, session_factory, payload):
    submitter, stranger = await seed.user(), await seed.user()
    await _submit(session_factory, payload, submitter, await seed.level())
    async with session_factory() as s:
        with pytest.raises(AuthorizationError):
            await claim_highest_priority(s, CLASSIC, stranger.id)
        assert await pending_count(s, CLASSIC) == 1


@pytest.mark.asyncio
async def test_reviewer_never_claims_own_submission(seed, session_factory, payload):
    reviewer = await seed.reviewer()
    await _submit(session_factory, payload, reviewer, await seed.level())
    async with session_factory() as s:
        with pytest.raises(NotFoundError):
            await claim_highest_priority(s, CLASSIC, reviewer.id)


@pytest.mark.asyncio
async def test_claim_is_scoped_to_list(seed, session_factory, payload):
    reviewer, submitter = await seed.reviewer(), await seed.user()
    await _submit(session_factory, payload, submitter, await seed.level())
    async with session_factory() as s:
        with pytest.raises(NotFoundError):
            await claim_highest_priority(s, PLATFORMER, reviewer.id)


@pytest.mark.asyncio
async def test_concurrent_claims_never_share_a_submission(seed, session_factory, payload):
    reviewers = [await seed.reviewer() for _ in range(4)]
    for _ in range(2):
        await _submit(session_factory, payload, await seed.user(), await seed.level())

    async def claim(reviewer):
        async with session_factory() as s:
            try:
                return (await claim_highest_priority(s, CLASSIC, reviewer.id)).id
            except NotFoundError:
                return None

    results = await asyncio.gather(*(claim(r) for r in reviewers))
    won = [r for r in results if r is not None]
    assert len(won) == 2
    assert len(set(won)) == 2

    async with session_factory() as s:
        claimed = (await s.execute(select(Submission).where(Submission.status == "Claimed"))).scalars().all()
        assert {c.id for c in claimed} == set(won)
        history = (await s.execute(select(SubmissionHistory).where(SubmissionHistory.status == "Claimed"))).scalars().all()
        assert len(history) == 2


@pytest.mark.asyncio
async def test_queue_position_follows_claim_order(seed, session_factory, payload):
    a = await _submit(session_factory, payload, await seed.user(), await seed.level())
    b = await _submit(session_factory, payload, await seed.user(), await seed.level())
    c = await _submit(session_factory, payload, await seed.user(boosted=True), await seed.level())
    await _age(session_factory, a, 30)
    await _age(session_factory, b, 20)
    await _age(session_factory, c, 10)

    async with session_factory() as s:
        assert await queue_position(s, CLASSIC, c.id) == (1, 3)
        assert await queue_position(s, CLASSIC, a.id) == (2, 3)
        assert await queue_position(s, CLASSIC, b.id) == (3, 3)


@pytest.mark.asyncio
async def test_queue_position_of_claimed_submission_is_not_found(seed, session_factory, payload):
    reviewer = await seed.reviewer()
    sub = await _submit(session_factory, payload, await seed.user(), await seed.level())
    async with session_factory() as s:
        await claim_highest_priority(s, CLASSIC, reviewer.id)
        with pytest.raises(NotFoundError):
            await queue_position(s, CLASSIC, sub.id)
