"""Milestones API: dated points on product roadmaps."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.deps import Caller, get_current_caller
from roadmap.database import get_db
from roadmap.schemas.milestone import MilestoneCreate, MilestoneResponse, MilestoneUpdate
from roadmap.services import milestone_service

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.post("", response_model=MilestoneResponse, status_code=201)
async def create_milestone(
    body: MilestoneCreate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    ms = await milestone_service.create_milestone(db, body, caller.id, caller.role)
    return MilestoneResponse.model_validate(ms)


@router.get("/{milestone_id}", response_model=MilestoneResponse)
async def get_milestone(
    milestone_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _caller: Caller = Depends(get_current_caller),
):
    ms = await milestone_service.get_milestone(db, milestone_id)
    return MilestoneResponse.model_validate(ms)


@router.patch("/{milestone_id}", response_model=MilestoneResponse)
async def update_milestone(
    milestone_id: uuid.UUID,
    body: MilestoneUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    """Partial update; dependents are rescheduled in the background."""
    ms = await milestone_service.update_milestone(db, milestone_id, body, caller.id, caller.role)
    return MilestoneResponse.model_validate(ms)


@router.delete("/{milestone_id}", status_code=204)
async def delete_milestone(
    milestone_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    await milestone_service.delete_milestone(db, milestone_id, caller.id, caller.role)
