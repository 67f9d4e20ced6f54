from sqlalchemy import Column, String, DateTime, BigInteger, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Property(Base):
    __tablename__ = "properties"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)

    name = Column(String, nullable=False)
    address = Column(String, nullable=False)

    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    zip = Column(String, nullable=True)

    turns = relationship("Turn", back_populates="property")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def full_address(self) -> str:
        parts = [self.address, self.city, self.state]
        line = ", ".join(p for p in parts if p)
        return f"{line} {self.zip}".strip() if self.zip else line
