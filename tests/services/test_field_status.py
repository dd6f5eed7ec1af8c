"""
Tests for the field status state machine.
"""

import logging

import pytest
from datetime import datetime, timezone

from app.schemas.gps_tracking import GeofenceAdvisory
from app.schemas.job import FieldStatus, JobResponse
from app.services.field_status import ACTIONS, FieldStatusMachine

from factories import EnRouteJobFactory, JobFactory, SITE_LATITUDE, SITE_LONGITUDE

NOW = datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)

# Meters per degree of latitude on the haversine sphere
METERS_PER_DEGREE = 6371e3 * 3.141592653589793 / 180


def north_of_site(meters: float) -> tuple[float, float]:
    return SITE_LATITUDE + meters / METERS_PER_DEGREE, SITE_LONGITUDE


@pytest.fixture
def machine(config):
    return FieldStatusMachine(config)


class TestTransition:
    """Tests for transition records and column updates."""

    def test_start_en_route(self, machine):
        job = JobResponse(**JobFactory())

        record, updates = machine.apply_action(job, "start_en_route", location={"lat": 30.0, "lng": -97.0}, now=NOW)

        assert record.from_status == FieldStatus.SCHEDULED
        assert record.to_status == FieldStatus.EN_ROUTE
        assert record.automatic is False
        assert updates["field_status"] == "en_route"
        assert updates["en_route_at"] == NOW
        entry = updates["field_status_history"]["en_route"]
        assert entry["from_status"] == "scheduled"
        assert entry["timestamp"] == NOW.isoformat()
        assert entry["location"] == {"lat": 30.0, "lng": -97.0}

    def test_leaving_en_route_clears_eta(self, machine):
        job = JobResponse(**EnRouteJobFactory())

        _, updates = machine.mark_arrived(job)

        assert updates["field_status"] == "arrived"
        assert updates["live_eta"] is None
        assert "arrived_at" in updates

    def test_history_keeps_earlier_entries(self, machine):
        job = JobResponse(**EnRouteJobFactory(field_status_history={"en_route": {"timestamp": "earlier"}}))

        _, updates = machine.start_working(job)

        assert set(updates["field_status_history"]) == {"en_route", "working"}
        assert "work_started_at" in updates

    def test_pause_and_resume(self, machine):
        working = JobResponse(**JobFactory(field_status="working"))

        _, paused = machine.pause_work(working, notes="Waiting on parts")
        resumed_job = JobResponse(**JobFactory(field_status="paused"))
        _, resumed = machine.resume_work(resumed_job)

        assert paused["field_status"] == "paused"
        assert paused["field_status_history"]["paused"]["notes"] == "Waiting on parts"
        assert resumed["field_status"] == "working"

    def test_wrap_up_and_complete(self, machine):
        job = JobResponse(**JobFactory(field_status="wrapping_up"))

        _, updates = machine.complete_job(job)

        assert updates["field_status"] == "completed"
        assert "completed_at" in updates

    def test_cancel_from_any_status(self, machine):
        job = JobResponse(**JobFactory(field_status="working"))

        _, updates = machine.cancel_job(job)

        assert updates["field_status"] == "cancelled"
        assert "cancelled_at" in updates

    def test_leaving_terminal_status_is_logged(self, machine, caplog):
        job = JobResponse(**JobFactory(field_status="completed"))

        with caplog.at_level(logging.WARNING, logger="app.services.field_status"):
            _, updates = machine.start_working(job)

        assert updates["field_status"] == "working"
        assert "terminal status completed" in caplog.text

    def test_unknown_action(self, machine):
        with pytest.raises(ValueError):
            machine.apply_action(JobResponse(**JobFactory()), "teleport")

    def test_action_table(self):
        assert ACTIONS["resume_work"] == FieldStatus.WORKING
        assert ACTIONS["start_wrap_up"] == FieldStatus.WRAPPING_UP


class TestEvaluateLocation:
    """Tests for geofence signals against the job site."""

    def test_arrival_inside_radius(self, machine):
        job = JobResponse(**EnRouteJobFactory())

        signal = machine.evaluate_location(job, *north_of_site(90))

        assert signal.auto_transition == FieldStatus.ARRIVED
        assert signal.distance_meters == pytest.approx(90, abs=0.5)

    def test_almost_there(self, machine):
        job = JobResponse(**EnRouteJobFactory())

        signal = machine.evaluate_location(job, *north_of_site(300))

        assert signal.auto_transition is None
        assert signal.advisory == GeofenceAdvisory.almost_there

    def test_left_site_is_advisory_only(self, machine):
        job = JobResponse(**JobFactory(field_status="working"))

        signal = machine.evaluate_location(job, *north_of_site(250))

        assert signal.auto_transition is None
        assert signal.advisory == GeofenceAdvisory.left_site

    def test_scheduled_job_not_tracked(self, machine):
        job = JobResponse(**JobFactory())

        assert machine.evaluate_location(job, *north_of_site(10)) is None

    def test_job_without_site(self, machine):
        job = JobResponse(**EnRouteJobFactory(site_latitude=None, site_longitude=None))

        assert machine.evaluate_location(job, 30.0, -97.0) is None
