# medireminder/db/models/medicament.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medireminder.db.base import Base
from medireminder.db.types import ImageRefType


class MedicamentModel(Base):
    __tablename__ = "medicaments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    dose = Column(String(255), nullable=False)
    time = Column(String(255), nullable=False)  # free text, e.g. "08:00" or "after lunch"
    image = Column("image_url", ImageRefType(), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("UserModel", back_populates="medicaments")
