"""
Crew member test factory.

Generates crew directory entries for testing. Output is a plain dict that
validates as CrewMemberCreate / CrewMemberResponse.
"""

import factory
from faker import Faker

fake = Faker()

CREW_COLORS = ["#10B981", "#3B82F6", "#8B5CF6", "#F59E0B", "#EF4444", "#64748B"]


def weekday_hours(start: str = "08:00", end: str = "17:00", weekends: bool = False) -> dict:
    """Standing hours Monday-Friday (optionally weekends too)."""
    days = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
    return {
        day: {
            "enabled": weekends or day not in ("saturday", "sunday"),
            "start": start,
            "end": end,
        }
        for day in days
    }


class CrewMemberFactory(factory.Factory):
    """
    Factory for generating crew member test data.

    Usage:
        member = CrewMemberFactory()
        member = CrewMemberFactory(skills=["HVAC"], seniority_level="senior")
        members = CrewMemberFactory.create_batch(3)
    """

    class Meta:
        model = dict

    id = factory.Sequence(lambda n: f"tech-{n:03d}")
    contractor_id = "contractor-1"
    name = factory.LazyFunction(fake.name)
    email = factory.LazyFunction(lambda: fake.email().lower())
    phone = factory.LazyFunction(lambda: fake.numerify("555-###-####"))
    color = factory.LazyFunction(lambda: fake.random_element(CREW_COLORS))
    is_active = True
    working_hours = factory.LazyFunction(weekday_hours)
    skills = factory.LazyFunction(list)
    max_jobs_per_day = 4
    seniority_level = "technician"
    time_off = factory.LazyFunction(list)


class SeniorCrewMemberFactory(CrewMemberFactory):
    """Factory for senior technicians."""

    seniority_level = "senior"


class InactiveCrewMemberFactory(CrewMemberFactory):
    """Factory for crew members no longer dispatched."""

    is_active = False
