from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.schemas.property import PropertySummaryOut
from app.schemas.turn_stage import TurnStageOut


class TurnCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    property_id: int  # REQUIRED - every turn belongs to a property
    stage_id: Optional[str] = None  # defaults to the configured default stage
    priority: str = "medium"
    estimated_cost: Optional[Decimal] = None
    vendor_id: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('estimated_cost')
    @classmethod
    def cost_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('estimated_cost cannot be negative')
        return v


class StageTransitionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Optional here so a missing value is answered with 400, not 422
    to_stage_id: Optional[str] = None
    reason: Optional[str] = None

    @field_validator('to_stage_id', 'reason', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class TurnOut(BaseModel):
    id: str
    turn_number: str
    property_id: int
    property: Optional[PropertySummaryOut] = None
    vendor_id: Optional[str]
    stage_id: Optional[str]
    status: str
    priority: str
    estimated_cost: Optional[Decimal]
    actual_cost: Optional[Decimal]
    needs_dfo_approval: bool
    needs_ho_approval: bool
    dfo_approved_by: Optional[str]
    dfo_approved_at: Optional[int]
    ho_approved_by: Optional[str]
    ho_approved_at: Optional[int]
    rejection_reason: Optional[str]
    notes: Optional[str]
    stage_entered_at: Optional[int]  # epoch ms
    created_at: int
    updated_at: int

    class Config:
        from_attributes = True


class StageHistoryOut(BaseModel):
    id: int
    turn_id: str
    from_stage_id: Optional[str]
    to_stage_id: str
    transitioned_by: str
    transition_reason: Optional[str]
    duration_in_stage: Optional[int]  # ms
    created_at: datetime

    class Config:
        from_attributes = True


class TransitionSummaryOut(BaseModel):
    from_stage_id: Optional[str]
    to_stage_id: str
    duration_in_previous_stage: Optional[int]


class StageTransitionOut(BaseModel):
    turn: TurnOut
    stage: TurnStageOut
    transition_history: TransitionSummaryOut
