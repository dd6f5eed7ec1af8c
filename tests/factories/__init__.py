"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .crew_member import (
    CrewMemberFactory,
    SeniorCrewMemberFactory,
    InactiveCrewMemberFactory,
    weekday_hours,
)
from .job import JobFactory, EnRouteJobFactory, SITE_LATITUDE, SITE_LONGITUDE

__all__ = [
    "CrewMemberFactory",
    "SeniorCrewMemberFactory",
    "InactiveCrewMemberFactory",
    "weekday_hours",
    "JobFactory",
    "EnRouteJobFactory",
    "SITE_LATITUDE",
    "SITE_LONGITUDE",
]
