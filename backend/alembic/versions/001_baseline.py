"""baseline – products, versions, milestones and dependencies

Revision ID: 001
Revises: None
Create Date: 2026-10-19

Creates the schema that create_all builds from the models. A database
created by create_all is stamped at this revision instead of running it.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("lifecycle_status", sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_products_owner_id", "products", ["owner_id"])

    op.create_table(
        "product_versions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("version", sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_product_versions_product_id", "product_versions", ["product_id"])
    op.create_index("ix_product_versions_version", "product_versions", ["version"])

    op.create_table(
        "milestones",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("product_version_id", sa.Uuid(), nullable=True),
        sa.Column("label", sa.String(length=500), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("color", sa.String(length=50), nullable=False),
        sa.Column("extra", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_version_id"], ["product_versions.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_milestones_product_id", "milestones", ["product_id"])
    op.create_index("ix_milestones_product_version_id", "milestones", ["product_version_id"])
    op.create_index("ix_milestones_start_date", "milestones", ["start_date"])
    op.create_index("ix_milestones_product_version", "milestones", ["product_id", "product_version_id"])

    # Edges carry no FKs so they outlive the milestones they reference
    op.create_table(
        "dependencies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "type",
            sa.Enum("FS", "SS", "FF", name="dependency_type", native_enum=False, length=5),
            nullable=False,
        ),
        sa.Column("source_milestone_id", sa.Uuid(), nullable=False),
        sa.Column("target_milestone_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_dependencies_source_milestone_id", "dependencies", ["source_milestone_id"])
    op.create_index("ix_dependencies_target_milestone_id", "dependencies", ["target_milestone_id"])
    op.create_index(
        "ix_dependencies_source_target", "dependencies", ["source_milestone_id", "target_milestone_id"]
    )


def downgrade() -> None:
    op.drop_table("dependencies")
    op.drop_table("milestones")
    op.drop_table("product_versions")
    op.drop_table("products")
