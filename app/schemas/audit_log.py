from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AuditLogOut(BaseModel):
    id: int
    table_name: str
    record_id: str
    action: str
    user_id: str
    user_email: Optional[str] = None
    user_role: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changed_fields: Optional[List[str]] = None
    property_id: Optional[int] = None
    turn_id: Optional[str] = None
    vendor_id: Optional[str] = None
    context: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
