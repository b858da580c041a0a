import uuid

from pydantic import BaseModel, ConfigDict

from roadmap.models.product import LifecycleStatus


class ProductLifecycleUpdate(BaseModel):
    lifecycle_status: LifecycleStatus


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    owner_id: uuid.UUID | None = None
    status: str
    lifecycle_status: str
