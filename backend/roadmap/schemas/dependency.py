import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from roadmap.models.dependency import DependencyType


class DependencyBase(BaseModel):
    source_milestone_id: uuid.UUID
    target_milestone_id: uuid.UUID
    type: DependencyType


class DependencyCreate(DependencyBase):
    pass


class DependencyRead(DependencyBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
