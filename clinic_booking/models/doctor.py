from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)

    # Personal information
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)

    # Placement
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    speciality_id = Column(Integer, ForeignKey("specialities.id"), nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    clinic = relationship("Clinic", back_populates="doctors")
    speciality = relationship("Speciality", back_populates="doctors")
    appointments = relationship("Appointment", back_populates="doctor")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.first_name} {self.last_name}', clinic_id={self.clinic_id})>"
