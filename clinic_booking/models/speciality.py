from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from ..core.database import Base

class Speciality(Base):
    __tablename__ = "specialities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)

    doctors = relationship("Doctor", back_populates="speciality")

    def __repr__(self):
        return f"<Speciality(id={self.id}, name='{self.name}')>"
