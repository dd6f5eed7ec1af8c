from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from app.database import Base


class CrewMember(Base):
    """Field technician as listed in a contractor's crew directory."""

    __tablename__ = "crew_members"

    id = Column(String(36), primary_key=True, index=True)
    contractor_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255))
    phone = Column(String(20))
    color = Column(String(7), default="#64748B")
    is_active = Column(Boolean, default=True)

    # Weekday name -> {"enabled": bool, "start": "HH:MM", "end": "HH:MM"}
    working_hours = Column(JSON, default=dict)

    # Skills (stored as JSON array)
    skills = Column(JSON, default=list)

    max_jobs_per_day = Column(Integer, default=4)
    seniority_level = Column(String(30), default="technician")

    # [{"start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD", "type": "vacation"}]
    time_off = Column(JSON, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<CrewMember {self.name}>"
