from sqlalchemy import Column, Integer, String, DateTime, Text, Float, JSON
from sqlalchemy.sql import func
from app.database import Base


class Job(Base):
    """Scheduled field job with its crew and live execution state."""

    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, index=True)
    contractor_id = Column(String(36), nullable=False, index=True)

    # Job details
    title = Column(String(255))
    category = Column(String(100))
    complexity = Column(String(20))  # explicit label overrides duration-derived value
    notes = Column(Text)

    # Scheduling
    estimated_duration_minutes = Column(Integer)
    scheduled_start = Column(DateTime)
    multi_day_schedule = Column(JSON)  # derived; segments are the canonical copy
    required_crew_size = Column(Integer)
    preferred_tech_id = Column(String(36))

    # Service location (pre-geocoded)
    site_latitude = Column(Float)
    site_longitude = Column(Float)

    # Crew (list of CrewAssignment dicts)
    assigned_crew = Column(JSON)
    crew_size = Column(Integer, default=0)
    assigned_by = Column(String(20))  # manual | suggestion
    assigned_at = Column(DateTime(timezone=True))

    # Legacy single-technician fields, mirrored from the crew lead
    assigned_tech_id = Column(String(36), index=True)
    assigned_tech_name = Column(String(200))
    assigned_vehicle_id = Column(String(36))
    assigned_vehicle_name = Column(String(100))

    # Field execution
    field_status = Column(String(20), default="scheduled", nullable=False)
    field_status_history = Column(JSON, default=dict)
    live_eta = Column(JSON)
    en_route_at = Column(DateTime(timezone=True))
    arrived_at = Column(DateTime(timezone=True))
    work_started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))

    # Optimistic concurrency: every write must match the version it read
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Job {self.id} - {self.field_status}>"
