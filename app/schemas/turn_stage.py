from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class TurnStageCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    key: str
    name: str
    sequence: int = 0
    color: Optional[str] = "#6B7280"
    description: Optional[str] = None
    is_active: bool = True
    is_default: bool = False
    is_final: bool = False
    requires_approval: bool = False
    requires_vendor: bool = False
    requires_amount: bool = False
    requires_lock_box: bool = False
    auto_status: Optional[str] = None  # DRAFT/PENDING/IN_PROGRESS/ON_HOLD/COMPLETED/CANCELLED

    @field_validator('key', 'name', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('key')
    @classmethod
    def key_not_empty(cls, v):
        if not v:
            raise ValueError('key cannot be empty')
        return v


class TurnStageOut(BaseModel):
    id: str
    key: str
    name: str
    sequence: int
    color: Optional[str]
    description: Optional[str]
    is_active: bool
    is_default: bool
    is_final: bool
    requires_approval: bool
    requires_vendor: bool
    requires_amount: bool
    requires_lock_box: bool
    auto_status: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
