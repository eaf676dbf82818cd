from sqlalchemy.orm import relationship
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from app.db import Base
from app.utils.validation_helpers import new_id, utcnow


class Space(Base):
    __tablename__ = "spaces"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String, nullable=True)
    capacity = Column(Integer, nullable=False)
    amenities = Column(JSON, nullable=False, default=list)
    # Ordered list of {"type": ..., "rate": ...}; the first rule is the hourly rate
    pricing_rules = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="spaces")
    reservations = relationship(
        "Reservation", back_populates="space", cascade="all, delete-orphan"
    )

    @property
    def hourly_rate(self):
        rules = self.pricing_rules or []
        if rules:
            return rules[0].get("rate")
        return None
