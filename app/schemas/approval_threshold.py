from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from decimal import Decimal
from typing import Optional


class ApprovalThresholdCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None  # null = no upper limit
    approval_type: Optional[str] = None   # dfo / ho
    requires_sequential: bool = False

    @field_validator('name', 'approval_type', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class ApprovalThresholdUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    approval_type: Optional[str] = None
    requires_sequential: Optional[bool] = None
    is_active: Optional[bool] = None


class ApprovalThresholdOut(BaseModel):
    id: int
    name: str
    min_amount: Decimal
    max_amount: Optional[Decimal]
    approval_type: str
    requires_sequential: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
