from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional
from decimal import Decimal

class ApprovalCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Optional so the route can answer a missing field with 400
    turn_id: Optional[str] = None
    amount: Optional[Decimal] = None
    notes: Optional[str] = None

    @field_validator('turn_id', 'notes', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

class ApprovalDecision(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    action: Optional[str] = None        # approve / reject
    rejection_reason: Optional[str] = None

    @field_validator('action', mode='before')
    @classmethod
    def normalize_action(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

class ApprovalOut(BaseModel):
    id: str
    turn_id: str
    type: str
    status: str
    requested_by: str
    amount: Decimal
    notes: Optional[str]
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    rejected_by: Optional[str]
    rejected_at: Optional[datetime]
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

class MessageOut(BaseModel):
    message: str
