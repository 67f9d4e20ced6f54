from pydantic import BaseModel
from typing import Optional


class PropertySummaryOut(BaseModel):
    """Property fields shown alongside a turn."""
    id: int
    name: str
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None

    class Config:
        from_attributes = True
