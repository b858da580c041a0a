"""Caller-role / product-lifecycle gate applied before every roadmap mutation."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.core.exceptions import ForbiddenError, NotFoundError
from roadmap.core.permissions import Role, is_elevated
from roadmap.models.product import LifecycleStatus, Product

logger = logging.getLogger(__name__)


class PermissionService:
    """Centralized mutation gate. All scheduling services should use this."""

    @staticmethod
    async def get_product(db: AsyncSession, product_id: UUID) -> Product:
        result = await db.execute(select(Product).where(Product.id == product_id))
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError("Product not found")
        return product

    @staticmethod
    def can_mutate_product(product: Product, caller_id: UUID, caller_role: str | Role) -> bool:
        """Elevated callers always pass; everyone else must own an active product."""
        if is_elevated(caller_role):
            return True
        if product.lifecycle_status != LifecycleStatus.ACTIVE.value:
            return False
        return product.owner_id is not None and product.owner_id == caller_id

    @staticmethod
    def require_product_mutation(product: Product, caller_id: UUID, caller_role: str | Role) -> None:
        """Raise ForbiddenError if the caller may not change this product's roadmap."""
        if not PermissionService.can_mutate_product(product, caller_id, caller_role):
            logger.info(
                "Mutation denied for caller %s (role=%s) on product %s",
                caller_id,
                caller_role.value if isinstance(caller_role, Role) else caller_role,
                product.id,
            )
            raise ForbiddenError()

    @staticmethod
    async def require_product_mutation_by_id(
        db: AsyncSession, product_id: UUID, caller_id: UUID, caller_role: str | Role
    ) -> Product:
        product = await PermissionService.get_product(db, product_id)
        PermissionService.require_product_mutation(product, caller_id, caller_role)
        return product
