from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from rq import Queue
from redis import Redis

from fitpool.auth_deps import get_current_principal
from fitpool.config import settings
from fitpool.db import get_session
from fitpool.jobs.settle_expired import settle_expired_challenges
from fitpool.models.challenge import Challenge
from fitpool.models.registration import Registration
from fitpool.schemas.challenge import (
    ChallengeKind, SegmentChallengeCreate, DistanceChallengeCreate, ChallengePublic,
    SegmentCriterion, DistanceCriterion, ChallengeCount, ChallengeExists,
)
from fitpool.schemas.registration import JoinRequest, RegistrationPublic, AthleteIds, SettlementResult
from fitpool.security import is_admin
from fitpool.services import catalog, registrations
from fitpool.services.clock import Clock, get_clock
from fitpool.services.errors import ChallengeError, Forbidden, NotRegistered, TransferFailed
from fitpool.services.payouts import PayoutGateway, get_payout_gateway
from fitpool.services.settlement import settle_challenge

router = APIRouter(prefix="/challenges", tags=["challenges"])

# RQ queue (lazy single instance)
_redis = Redis.from_url(settings.redis_url)
q = Queue("default", connection=_redis)


def _http_error(e: ChallengeError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail={"error": e.code, "message": str(e)})


def _ensure_oracle(ch: Challenge, principal: str) -> None:
    if principal != ch.oracle_id and not is_admin(principal):
        raise Forbidden(f"only the challenge oracle may do this (oracle={ch.oracle_id})")


async def hydrate_public(session: AsyncSession, ch: Challenge, now: int) -> ChallengePublic:
    count = await registrations.registered_count(session, ch.kind, ch.challenge_id)
    if ch.kind == catalog.SEGMENT:
        criterion = SegmentCriterion(time_to_beat=ch.time_to_beat, segment_id=ch.segment_id)
    else:
        criterion = DistanceCriterion(distance=ch.distance)
    return ChallengePublic(
        kind=ch.kind, challenge_id=ch.challenge_id,
        entry_fee=ch.entry_fee, expire_time=ch.expire_time, activity=ch.activity,
        criterion=criterion, oracle_id=ch.oracle_id, settled=ch.settled,
        state=catalog.lifecycle_state(ch, now),
        registered_count=count,
        total_funds=await registrations.total_funds(session, ch.kind, ch.challenge_id),
    )


def to_registration_public(r: Registration) -> RegistrationPublic:
    return RegistrationPublic(
        kind=r.kind, challenge_id=r.challenge_id, athlete_id=r.athlete_id, position=r.position,
        payout_address=r.payout_address, paid_amount=r.paid_amount,
        succeeded=r.succeeded, paid_out=r.paid_out,
    )

# ---------- issue ----------

@router.post("/segment", response_model=ChallengePublic, status_code=201)
async def issue_segment_challenge(
    payload: SegmentChallengeCreate,
    session: AsyncSession = Depends(get_session),
    principal: str = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    ch = await catalog.issue_segment_challenge(
        session,
        entry_fee=payload.entry_fee,
        expire_time=payload.expire_time,
        time_to_beat=payload.time_to_beat,
        segment_id=payload.segment_id,
        activity=payload.activity,
        issuer=principal,
        oracle_id=payload.oracle_id,
    )
    await session.commit()
    return await hydrate_public(session, ch, clock())

@router.post("/distance", response_model=ChallengePublic, status_code=201)
async def issue_distance_challenge(
    payload: DistanceChallengeCreate,
    session: AsyncSession = Depends(get_session),
    principal: str = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    ch = await catalog.issue_distance_challenge(
        session,
        entry_fee=payload.entry_fee,
        expire_time=payload.expire_time,
        distance=payload.distance,
        activity=payload.activity,
        issuer=principal,
        oracle_id=payload.oracle_id,
    )
    await session.commit()
    return await hydrate_public(session, ch, clock())

@router.post("/settle-expired", status_code=202)
async def enqueue_settle_expired(principal: str = Depends(get_current_principal)):
    """Queue a background sweep that settles every expired challenge. Admin only."""
    if not is_admin(principal):
        raise HTTPException(status_code=403, detail="Admin access required")
    job = q.enqueue(settle_expired_challenges)
    return {"job_id": job.id}

# ---------- reads ----------

@router.get("/{kind}", response_model=ChallengeCount)
async def count_challenges(kind: ChallengeKind, session: AsyncSession = Depends(get_session)):
    return ChallengeCount(kind=kind, count=await catalog.challenge_count(session, kind))

@router.get("/{kind}/{challenge_id}", response_model=ChallengePublic)
async def get_challenge(
    kind: ChallengeKind,
    challenge_id: int,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    try:
        ch = await catalog.get_challenge(session, kind, challenge_id)
    except ChallengeError as e:
        raise _http_error(e)
    return await hydrate_public(session, ch, clock())

@router.get("/{kind}/{challenge_id}/exists", response_model=ChallengeExists)
async def challenge_exists(kind: ChallengeKind, challenge_id: int, session: AsyncSession = Depends(get_session)):
    return ChallengeExists(kind=kind, challenge_id=challenge_id, exists=await catalog.challenge_exists(session, kind, challenge_id))

@router.get("/{kind}/{challenge_id}/athletes", response_model=AthleteIds)
async def list_athletes(kind: ChallengeKind, challenge_id: int, session: AsyncSession = Depends(get_session)):
    try:
        ids = await registrations.athlete_ids(session, kind, challenge_id)
    except ChallengeError as e:
        raise _http_error(e)
    return AthleteIds(kind=kind, challenge_id=challenge_id, athlete_ids=ids)

@router.get("/{kind}/{challenge_id}/athletes/successful", response_model=AthleteIds)
async def list_successful_athletes(kind: ChallengeKind, challenge_id: int, session: AsyncSession = Depends(get_session)):
    try:
        ids = await registrations.successful_athletes(session, kind, challenge_id)
    except ChallengeError as e:
        raise _http_error(e)
    return AthleteIds(kind=kind, challenge_id=challenge_id, athlete_ids=ids)

@router.get("/{kind}/{challenge_id}/athletes/{athlete_id}", response_model=RegistrationPublic)
async def get_registration(kind: ChallengeKind, challenge_id: int, athlete_id: int, session: AsyncSession = Depends(get_session)):
    try:
        await catalog.get_challenge(session, kind, challenge_id)
    except ChallengeError as e:
        raise _http_error(e)
    reg = await session.get(Registration, (kind, challenge_id, athlete_id))
    if reg is None:
        raise _http_error(NotRegistered(f"athlete {athlete_id} is not registered"))
    return to_registration_public(reg)

# ---------- mutations ----------

@router.post("/{kind}/{challenge_id}/join", response_model=RegistrationPublic, status_code=201)
async def join_challenge(
    kind: ChallengeKind,
    challenge_id: int,
    payload: JoinRequest,
    session: AsyncSession = Depends(get_session),
    principal: str = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
):
    try:
        reg = await registrations.register_athlete(
            session, kind, challenge_id,
            athlete_id=payload.athlete_id,
            payout_address=payload.payout_address,
            paid_amount=payload.paid_amount,
            now=clock(),
        )
    except ChallengeError as e:
        await session.rollback()
        raise _http_error(e)
    await session.commit()
    return to_registration_public(reg)

@router.post("/{kind}/{challenge_id}/athletes/{athlete_id}/succeeded", response_model=RegistrationPublic)
async def set_athlete_succeeded(
    kind: ChallengeKind,
    challenge_id: int,
    athlete_id: int,
    session: AsyncSession = Depends(get_session),
    principal: str = Depends(get_current_principal),
):
    try:
        _ensure_oracle(await catalog.get_challenge(session, kind, challenge_id), principal)
        reg = await registrations.mark_succeeded(session, kind, challenge_id, athlete_id)
    except ChallengeError as e:
        await session.rollback()
        raise _http_error(e)
    await session.commit()
    return to_registration_public(reg)

@router.post("/{kind}/{challenge_id}/settle", response_model=SettlementResult)
async def settle(
    kind: ChallengeKind,
    challenge_id: int,
    session: AsyncSession = Depends(get_session),
    principal: str = Depends(get_current_principal),
    clock: Clock = Depends(get_clock),
    gateway: PayoutGateway = Depends(get_payout_gateway),
):
    try:
        _ensure_oracle(await catalog.get_challenge(session, kind, challenge_id), principal)
        result = await settle_challenge(session, kind, challenge_id, now=clock(), gateway=gateway)
    except TransferFailed as e:
        # Keep the payouts that went through; a retry only pays the rest
        await session.commit()
        raise HTTPException(status_code=e.status_code, detail={
            "error": e.code, "message": str(e), "athlete_id": e.athlete_id, "paid": e.paid,
        })
    except ChallengeError as e:
        await session.rollback()
        raise _http_error(e)
    await session.commit()
    return SettlementResult(kind=kind, challenge_id=challenge_id, **result)
