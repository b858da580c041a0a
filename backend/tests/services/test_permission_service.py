"""Tests for the product mutation gate (PermissionService)."""

from __future__ import annotations

import uuid

import pytest

from roadmap.core.exceptions import ForbiddenError, NotFoundError
from roadmap.core.permissions import Role
from roadmap.models.product import Product
from roadmap.services.permission_service import PermissionService
from tests.conftest import create_product


def _product(owner_id=None, lifecycle_status="active"):
    return Product(id=uuid.uuid4(), name="P", owner_id=owner_id, lifecycle_status=lifecycle_status)


# ---------------------------------------------------------------------------
# can_mutate_product
# ---------------------------------------------------------------------------


class TestCanMutateProduct:
    @pytest.mark.parametrize("role", ["admin", "superadmin", "Admin ", Role.SUPERADMIN])
    @pytest.mark.parametrize("lifecycle", ["active", "not_active", "suspend", "end_of_roadmap"])
    def test_elevated_roles_always_pass(self, role, lifecycle):
        product = _product(owner_id=uuid.uuid4(), lifecycle_status=lifecycle)
        assert PermissionService.can_mutate_product(product, uuid.uuid4(), role) is True

    def test_owner_of_active_product(self):
        owner = uuid.uuid4()
        assert PermissionService.can_mutate_product(_product(owner), owner, "owner") is True

    def test_owner_of_other_product(self):
        assert PermissionService.can_mutate_product(_product(uuid.uuid4()), uuid.uuid4(), "owner") is False

    @pytest.mark.parametrize("lifecycle", ["not_active", "suspend", "end_of_roadmap"])
    def test_owner_of_inactive_product(self, lifecycle):
        owner = uuid.uuid4()
        product = _product(owner, lifecycle_status=lifecycle)
        assert PermissionService.can_mutate_product(product, owner, "owner") is False

    def test_plain_user_who_owns_product(self):
        owner = uuid.uuid4()
        assert PermissionService.can_mutate_product(_product(owner), owner, "user") is True

    def test_unowned_product_rejects_non_admin(self):
        assert PermissionService.can_mutate_product(_product(None), uuid.uuid4(), "owner") is False


# ---------------------------------------------------------------------------
# require_product_mutation
# ---------------------------------------------------------------------------


class TestRequireProductMutation:
    def test_raises_403(self):
        with pytest.raises(ForbiddenError) as exc_info:
            PermissionService.require_product_mutation(_product(uuid.uuid4()), uuid.uuid4(), "owner")
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Only the product owner can edit an active product"

    def test_passes_for_owner(self):
        owner = uuid.uuid4()
        # Should NOT raise
        PermissionService.require_product_mutation(_product(owner), owner, Role.OWNER)


# ---------------------------------------------------------------------------
# Database lookups
# ---------------------------------------------------------------------------


class TestProductLookup:
    async def test_get_product(self, db, product):
        found = await PermissionService.get_product(db, product.id)
        assert found.id == product.id

    async def test_get_unknown_product(self, db):
        with pytest.raises(NotFoundError):
            await PermissionService.get_product(db, uuid.uuid4())

    async def test_require_by_id_returns_product(self, db, owner_id):
        product = await create_product(db, owner_id=owner_id)
        found = await PermissionService.require_product_mutation_by_id(db, product.id, owner_id, "owner")
        assert found.id == product.id

    async def test_require_by_id_forbidden(self, db, owner_id):
        product = await create_product(db, owner_id=owner_id, lifecycle_status="suspend")
        with pytest.raises(ForbiddenError):
            await PermissionService.require_product_mutation_by_id(db, product.id, owner_id, "owner")
