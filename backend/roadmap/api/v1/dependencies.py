"""Dependencies API: typed FS/SS/FF edges between milestones."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.deps import Caller, get_current_caller
from roadmap.database import get_db
from roadmap.schemas.dependency import DependencyCreate, DependencyRead
from roadmap.services import dependency_service

router = APIRouter(prefix="/dependencies", tags=["dependencies"])


@router.get("", response_model=list[DependencyRead])
async def list_dependencies(
    db: AsyncSession = Depends(get_db),
    _caller: Caller = Depends(get_current_caller),
    product_id: uuid.UUID | None = Query(None),
):
    """List all edges, or only those touching a milestone of *product_id*."""
    if product_id is not None:
        deps = await dependency_service.list_dependencies_for_product(db, product_id)
    else:
        deps = await dependency_service.list_dependencies(db)
    return [DependencyRead.model_validate(d) for d in deps]


@router.post("", response_model=DependencyRead, status_code=201)
async def create_dependency(
    body: DependencyCreate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    dep = await dependency_service.create_dependency(db, body, caller.id, caller.role)
    return DependencyRead.model_validate(dep)


@router.get("/{dependency_id}", response_model=DependencyRead)
async def get_dependency(
    dependency_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _caller: Caller = Depends(get_current_caller),
):
    dep = await dependency_service.get_dependency(db, dependency_id)
    return DependencyRead.model_validate(dep)


@router.delete("/{dependency_id}", status_code=204)
async def delete_dependency(
    dependency_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    await dependency_service.delete_dependency(db, dependency_id, caller.id, caller.role)
