from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Fields that may be omitted from an update but never explicitly cleared
_NON_NULLABLE_UPDATE_FIELDS = ("label", "start_date", "type", "color")


class MilestoneCreate(BaseModel):
    product_id: uuid.UUID
    product_version_id: uuid.UUID | None = None
    label: str = Field(min_length=1, max_length=500)
    start_date: date
    end_date: date | None = None
    type: str = ""
    color: str = ""
    extra: dict | None = None


class MilestoneUpdate(BaseModel):
    """Partial update.

    Only fields present in the request are applied; presence is tracked by
    ``model_fields_set``, so an omitted ``end_date`` is left alone while an
    explicit ``"end_date": null`` clears it.
    """

    label: str | None = Field(default=None, min_length=1, max_length=500)
    start_date: date | None = None
    end_date: date | None = None
    type: str | None = None
    color: str | None = None
    extra: dict | None = None

    @model_validator(mode="after")
    def _reject_null_required_fields(self) -> MilestoneUpdate:
        for name in _NON_NULLABLE_UPDATE_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def present_fields(self) -> dict:
        return self.model_dump(exclude_unset=True)


class MilestoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    product_version_id: uuid.UUID | None = None
    label: str
    start_date: date
    end_date: date | None = None
    type: str = ""
    color: str = ""
    extra: dict | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
