"""Product-scoped roadmap endpoints."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.deps import Caller, get_current_caller
from roadmap.database import get_db
from roadmap.schemas.milestone import MilestoneResponse
from roadmap.schemas.product import ProductLifecycleUpdate, ProductRead
from roadmap.services import milestone_service, product_service
from roadmap.services.permission_service import PermissionService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/{product_id}/milestones", response_model=list[MilestoneResponse])
async def list_product_milestones(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _caller: Caller = Depends(get_current_caller),
):
    """Milestones of a product ordered by start date."""
    await PermissionService.get_product(db, product_id)
    milestones = await milestone_service.list_milestones_for_product(db, product_id)
    return [MilestoneResponse.model_validate(ms) for ms in milestones]


@router.patch("/{product_id}/lifecycle", response_model=ProductRead)
async def update_product_lifecycle(
    product_id: uuid.UUID,
    body: ProductLifecycleUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    product = await product_service.update_lifecycle_status(
        db, product_id, body.lifecycle_status, caller.id, caller.role
    )
    return ProductRead.model_validate(product)
