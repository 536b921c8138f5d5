from __future__ import annotations
import pytest
from fitpool.jobs.settle_expired import settle_expired
from fitpool.services import catalog, registrations


async def _issue(session, expire_time, *, athletes=(), winners=()):
    ch = await catalog.issue_distance_challenge(
        session, entry_fee=10, expire_time=expire_time, distance=1_000, activity="swim", issuer="sponsor",
    )
    for aid in athletes:
        await registrations.register_athlete(
            session, "distance", ch.challenge_id, athlete_id=aid, payout_address=f"addr-{aid}", paid_amount=10, now=0,
        )
    for aid in winners:
        await registrations.mark_succeeded(session, "distance", ch.challenge_id, aid)
    await session.commit()
    return ch


@pytest.mark.asyncio
async def test_sweep_settles_only_expired(session, sessionmaker, gateway):
    await _issue(session, 100, athletes=[1, 2], winners=[2])
    await _issue(session, 500, athletes=[3], winners=[3])

    result = await settle_expired(sessionmaker, now=200, gateway=gateway)

    assert result == {"settled": [{"kind": "distance", "challenge_id": 0}], "failed": []}
    assert [(a, amt) for a, amt, _ in gateway.calls] == [("addr-2", 20)]

    async with sessionmaker() as s:
        assert await catalog.is_settled(s, "distance", 0) is True
        assert await catalog.is_settled(s, "distance", 1) is False


@pytest.mark.asyncio
async def test_sweep_reports_failures_and_keeps_going(session, sessionmaker, gateway):
    await _issue(session, 100, athletes=[1], winners=[1])
    await _issue(session, 100, athletes=[2], winners=[2])
    gateway.fail_for = {"addr-1"}

    result = await settle_expired(sessionmaker, now=100, gateway=gateway)

    assert result["failed"] == [{"kind": "distance", "challenge_id": 0, "error": "transfer_failed"}]
    assert result["settled"] == [{"kind": "distance", "challenge_id": 1}]

    # Next sweep picks up the remaining payout
    gateway.fail_for.clear()
    result = await settle_expired(sessionmaker, now=101, gateway=gateway)
    assert result == {"settled": [{"kind": "distance", "challenge_id": 0}], "failed": []}
    assert [a for a, _, _ in gateway.calls] == ["addr-1", "addr-2", "addr-1"]
