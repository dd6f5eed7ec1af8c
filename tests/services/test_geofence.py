"""
Tests for geofence classification and ETA estimates.
"""

import pytest
from datetime import datetime, timedelta, timezone

from app.core.dispatch_config import DispatchConfig, GeofenceRadius
from app.schemas.gps_tracking import GeofenceAdvisory, GeofenceZone
from app.schemas.job import FieldStatus
from app.services.geofence import GeofenceCalculator, haversine_distance_meters

SITE = (30.2672, -97.7431)
METERS_PER_DEGREE = 6371e3 * 3.141592653589793 / 180


def north_of_site(meters: float) -> tuple[float, float]:
    return SITE[0] + meters / METERS_PER_DEGREE, SITE[1]


@pytest.fixture
def geofence(config):
    return GeofenceCalculator(config)


class TestDistance:
    """Tests for haversine distance."""

    def test_same_point(self):
        assert haversine_distance_meters(*SITE, *SITE) == 0

    def test_one_thousandth_degree_latitude(self):
        assert haversine_distance_meters(30.0, -97.0, 30.001, -97.0) == pytest.approx(111.19, abs=0.01)

    def test_symmetric(self):
        a = haversine_distance_meters(30.2672, -97.7431, 29.7604, -95.3698)
        b = haversine_distance_meters(29.7604, -95.3698, 30.2672, -97.7431)

        assert a == pytest.approx(b)
        # Austin to Houston is roughly 235 km as the crow flies
        assert 230_000 < a < 240_000


class TestCheckGeofence:
    """Tests for zone classification."""

    @pytest.mark.parametrize(
        "meters,zone",
        [
            (50, GeofenceZone.at_site),
            (150, GeofenceZone.near_site),
            (300, GeofenceZone.approaching),
            (1000, GeofenceZone.away),
        ],
    )
    def test_zones(self, geofence, meters, zone):
        check = geofence.check_geofence(*north_of_site(meters), *SITE)

        assert check.zone == zone
        assert check.distance_meters == pytest.approx(meters, abs=0.1)

    def test_flags(self, geofence):
        check = geofence.check_geofence(*north_of_site(150), *SITE)

        assert check.within_arrival is False
        assert check.within_departure is True
        assert check.within_nearby is True


class TestArrivalDeparture:
    """Tests for status + distance signals."""

    def test_en_route_inside_arrival_radius(self, geofence):
        signal = geofence.detect_arrival_departure(FieldStatus.EN_ROUTE, 90)

        assert signal.auto_transition == FieldStatus.ARRIVED
        assert signal.advisory is None

    def test_arrival_radius_is_inclusive(self, geofence):
        assert geofence.detect_arrival_departure(FieldStatus.EN_ROUTE, 100).auto_transition == FieldStatus.ARRIVED

    def test_en_route_nearby(self, geofence):
        signal = geofence.detect_arrival_departure(FieldStatus.EN_ROUTE, 300)

        assert signal.auto_transition is None
        assert signal.advisory == GeofenceAdvisory.almost_there

    def test_en_route_far_away(self, geofence):
        signal = geofence.detect_arrival_departure(FieldStatus.EN_ROUTE, 5000)

        assert signal.auto_transition is None
        assert signal.advisory is None

    @pytest.mark.parametrize("status", [FieldStatus.ARRIVED, FieldStatus.WORKING, FieldStatus.PAUSED])
    def test_left_site(self, geofence, status):
        signal = geofence.detect_arrival_departure(status, 250)

        assert signal.auto_transition is None
        assert signal.advisory == GeofenceAdvisory.left_site

    def test_on_site_within_departure_radius(self, geofence):
        signal = geofence.detect_arrival_departure(FieldStatus.WORKING, 150)

        assert signal.advisory is None

    def test_arrived_never_re_arrives(self, geofence):
        assert geofence.detect_arrival_departure(FieldStatus.ARRIVED, 10).auto_transition is None

    def test_custom_radii(self):
        geofence = GeofenceCalculator(DispatchConfig(radius=GeofenceRadius(arrival=50, departure=75, nearby=400)))

        assert geofence.detect_arrival_departure(FieldStatus.EN_ROUTE, 60).auto_transition is None

    def test_radius_order_enforced(self):
        with pytest.raises(ValueError):
            GeofenceRadius(arrival=300, departure=200, nearby=500)


class TestEstimateEta:
    """Tests for the straight-line ETA."""

    def test_five_miles_at_25_mph(self, geofence):
        now = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
        lat, lng = north_of_site(5 * 1609.34)

        eta = geofence.estimate_eta(lat, lng, *SITE, now=now)

        assert eta.eta_minutes == 12
        assert eta.distance_miles == 5.0
        assert eta.eta_time == now + timedelta(minutes=12)
        assert eta.calculated_at == now
        assert eta.has_traffic_data is False

    def test_at_site(self, geofence):
        eta = geofence.estimate_eta(*SITE, *SITE)

        assert eta.eta_minutes == 0

    def test_slower_assumed_speed(self):
        geofence = GeofenceCalculator(DispatchConfig(assumed_speed_mph=10))
        lat, lng = north_of_site(5 * 1609.34)

        assert geofence.estimate_eta(lat, lng, *SITE).eta_minutes == 30

    def test_eta_only_while_en_route(self, geofence):
        assert geofence.needs_eta(FieldStatus.EN_ROUTE) is True
        assert geofence.needs_eta(FieldStatus.ARRIVED) is False
