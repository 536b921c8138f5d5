from __future__ import annotations
import pytest
import pytest_asyncio
from fitpool.services import catalog, events, registrations
from fitpool.services.errors import (
    ChallengeExpired, AlreadyRegistered, InsufficientPayment, AlreadySettled, NotRegistered, NotFound,
)
from fitpool.services.ledger import snapshot_for_challenge


@pytest_asyncio.fixture
async def distance_challenge(session):
    ch = await catalog.issue_distance_challenge(
        session, entry_fee=100, expire_time=1_000, distance=5_000, activity="run", issuer="sponsor",
    )
    await session.commit()
    return ch


async def _join(session, athlete_id, *, paid=100, now=10, address=None, kind="distance", cid=0):
    reg = await registrations.register_athlete(
        session, kind, cid,
        athlete_id=athlete_id,
        payout_address=address or f"addr-{athlete_id}",
        paid_amount=paid,
        now=now,
    )
    await session.commit()
    return reg


@pytest.mark.asyncio
async def test_register_records_address_and_order(session, distance_challenge):
    for aid in (7, 3, 11):
        await _join(session, aid)

    assert await registrations.athlete_ids(session, "distance", 0) == [7, 3, 11]
    assert await registrations.registered_count(session, "distance", 0) == 3
    assert await registrations.is_registered(session, "distance", 0, 3) is True
    assert await registrations.is_registered(session, "distance", 0, 4) is False
    assert await registrations.payout_address_of(session, "distance", 0, 11) == "addr-11"
    assert await registrations.payout_address_of(session, "distance", 0, 4) is None
    assert await registrations.total_funds(session, "distance", 0) == 300


@pytest.mark.asyncio
async def test_reads_are_repeatable(session, distance_challenge):
    await _join(session, 1)
    await _join(session, 2)
    first = await registrations.athlete_ids(session, "distance", 0)
    assert await registrations.athlete_ids(session, "distance", 0) == first
    assert await registrations.successful_athletes(session, "distance", 0) == []


@pytest.mark.asyncio
async def test_unknown_challenge(session, distance_challenge):
    with pytest.raises(NotFound):
        await _join(session, 1, kind="segment")
    with pytest.raises(NotFound):
        await registrations.athlete_ids(session, "distance", 9)


@pytest.mark.asyncio
async def test_second_registration_is_rejected(session, distance_challenge):
    await _join(session, 1)
    with pytest.raises(AlreadyRegistered):
        await _join(session, 1, address="other")
    await session.rollback()
    assert await registrations.athlete_ids(session, "distance", 0) == [1]
    assert await registrations.payout_address_of(session, "distance", 0, 1) == "addr-1"


@pytest.mark.asyncio
async def test_register_rejected_at_and_after_expiry(session, distance_challenge):
    with pytest.raises(ChallengeExpired):
        await _join(session, 1, now=1_000)
    with pytest.raises(ChallengeExpired):
        await _join(session, 1, now=5_000)
    await session.rollback()
    await _join(session, 1, now=999)
    assert await registrations.registered_count(session, "distance", 0) == 1


@pytest.mark.asyncio
async def test_expiry_checked_before_payment(session, distance_challenge):
    with pytest.raises(ChallengeExpired):
        await _join(session, 1, paid=1, now=1_000)


@pytest.mark.asyncio
async def test_duplicate_checked_before_payment(session, distance_challenge):
    await _join(session, 1)
    with pytest.raises(AlreadyRegistered):
        await _join(session, 1, paid=0)


@pytest.mark.asyncio
async def test_insufficient_payment(session, distance_challenge):
    with pytest.raises(InsufficientPayment):
        await _join(session, 1, paid=99)
    await session.rollback()
    assert await registrations.registered_count(session, "distance", 0) == 0


@pytest.mark.asyncio
async def test_excess_payment_is_retained(session, distance_challenge):
    await _join(session, 1, paid=130)
    snap = await snapshot_for_challenge(session, "distance", 0)
    # Pool only holds the entry fee; the surplus is platform revenue
    assert snap["pool"] == 100
    assert snap["platform_revenue"] == 30
    assert await registrations.total_funds(session, "distance", 0) == 100


@pytest.mark.asyncio
async def test_mark_succeeded(session, distance_challenge):
    await _join(session, 1)
    await _join(session, 2)
    await _join(session, 3)

    await registrations.mark_succeeded(session, "distance", 0, 3)
    await registrations.mark_succeeded(session, "distance", 0, 1)
    await session.commit()

    # Registration order, not attestation order
    assert await registrations.successful_athletes(session, "distance", 0) == [1, 3]


@pytest.mark.asyncio
async def test_mark_succeeded_requires_registration(session, distance_challenge):
    with pytest.raises(NotRegistered):
        await registrations.mark_succeeded(session, "distance", 0, 1)


@pytest.mark.asyncio
async def test_mark_succeeded_twice_re_emits(session, distance_challenge):
    await _join(session, 1)
    await registrations.mark_succeeded(session, "distance", 0, 1)
    await registrations.mark_succeeded(session, "distance", 0, 1)
    await session.commit()

    evs = [e for e in await events.list_events(session) if e.type == "AthleteSucceeded"]
    assert len(evs) == 2
    assert await registrations.successful_athletes(session, "distance", 0) == [1]


@pytest.mark.asyncio
async def test_mark_succeeded_rejected_once_settled(session, distance_challenge):
    await _join(session, 1)
    distance_challenge.settled = True
    await session.commit()
    with pytest.raises(AlreadySettled):
        await registrations.mark_succeeded(session, "distance", 0, 1)


@pytest.mark.asyncio
async def test_join_emits_notification(session, distance_challenge):
    await _join(session, 5, address="acct_5")
    ev = (await events.list_events(session))[-1]
    assert (ev.type, ev.kind, ev.challenge_id, ev.athlete_id, ev.payout_address) == (
        "ChallengeJoined", "distance", 0, 5, "acct_5",
    )


@pytest.mark.asyncio
async def test_mark_succeeded_sees_settlement_from_another_session(session, sessionmaker, distance_challenge):
    await _join(session, 1)
    await _join(session, 2)
    async with sessionmaker() as other:
        ch = await catalog.get_challenge(other, "distance", 0)
        ch.settlement_started = True
        ch.settled = True
        await other.commit()

    # distance_challenge is still held by this session with the old flags
    with pytest.raises(AlreadySettled):
        await registrations.mark_succeeded(session, "distance", 0, 2)
    assert distance_challenge.settled is True
    assert await registrations.successful_athletes(session, "distance", 0) == []
