from app.models.job import Job
from app.models.technician import CrewMember
from app.models.availability_block import AvailabilityBlock
from app.models.gps_tracking import TechnicianLocation, LocationHistory

__all__ = [
    "Job",
    "CrewMember",
    "AvailabilityBlock",
    "TechnicianLocation",
    "LocationHistory",
]
