from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fitpool.db import get_session
from fitpool.schemas.event import EventPublic
from fitpool.services.events import list_events

router = APIRouter(tags=["events"])

@router.get("/events", response_model=list[EventPublic])
async def get_events(
    after: int = Query(default=0, ge=0, description="Return events with seq greater than this"),
    limit: int = Query(default=100, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
):
    """Ordered notification stream; consumers page with the last seen seq."""
    rows = await list_events(session, after=after, limit=limit)
    return [EventPublic.model_validate(r) for r in rows]
