from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.sql import func
from app.core.database import Base


class AppUser(Base):
    """Local profile of an auth user; used to find approvers and requesters to email."""
    __tablename__ = "app_users"

    # Same value as the JWT "sub" claim
    id = Column(String, primary_key=True, index=True)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="PROPERTY_MANAGER", index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def display_name(self) -> str:
        return self.name or self.email
