"""
GPS Tracking Models
Latest technician position plus accepted-sample history
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Index
from sqlalchemy.sql import func
from app.database import Base


class TechnicianLocation(Base):
    """
    Latest GPS sample per technician.
    Only the newest sample (by device capture time) is authoritative.
    """

    __tablename__ = "technician_locations"

    technician_id = Column(String(36), primary_key=True)
    contractor_id = Column(String(36), nullable=False, index=True)

    # GPS coordinates
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)  # GPS accuracy in meters

    # Movement data
    speed = Column(Float, nullable=True)
    heading = Column(Float, nullable=True)  # Compass heading 0-360

    # Status
    is_online = Column(Boolean, default=True)
    current_job_id = Column(String(36), nullable=True)

    # Timestamps
    captured_at = Column(DateTime, nullable=False)  # When the GPS was captured on device
    received_at = Column(DateTime, default=func.now())  # When server received it

    __table_args__ = (
        Index("idx_tech_location_coords", "latitude", "longitude"),
    )


class LocationHistory(Base):
    """
    Every accepted sample, kept for route review.
    Not authoritative for dispatch decisions.
    """

    __tablename__ = "location_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    technician_id = Column(String(36), nullable=False)
    job_id = Column(String(36), nullable=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    heading = Column(Float, nullable=True)

    distance_from_previous = Column(Float, nullable=True)  # Meters from last point

    captured_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_location_history_tech_time", "technician_id", "captured_at"),
    )
