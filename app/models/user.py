from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from app.db import Base
from app.utils.validation_helpers import new_id, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default="consumer")
    created_at = Column(DateTime, default=utcnow, nullable=False)

    spaces = relationship("Space", back_populates="owner")
    reservations = relationship("Reservation", back_populates="user")
