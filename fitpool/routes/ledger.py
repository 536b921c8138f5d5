from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fitpool.db import get_session
from fitpool.schemas.challenge import ChallengeKind
from fitpool.schemas.ledger import LedgerSnapshot
from fitpool.services.catalog import challenge_exists
from fitpool.services.ledger import snapshot_for_challenge

router = APIRouter(tags=["ledger"])

@router.get("/ledger", response_model=LedgerSnapshot)
async def get_ledger(
    kind: ChallengeKind = Query(...),
    challenge_id: int = Query(..., alias="challengeId"),
    session: AsyncSession = Depends(get_session),
):
    if not await challenge_exists(session, kind, challenge_id):
        raise HTTPException(status_code=404, detail="Challenge not found")
    snap = await snapshot_for_challenge(session, kind, challenge_id)
    return {"kind": kind, "challenge_id": challenge_id, **snap}
