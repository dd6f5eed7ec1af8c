"""
Geofence & ETA calculator.

Straight-line geometry only: haversine distance to a job site, radius
classification and a fixed-speed ETA. No routing or traffic data.
"""
import math
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.core.dispatch_config import DispatchConfig
from app.schemas.gps_tracking import (
    GeofenceAdvisory,
    GeofenceCheck,
    GeofenceSignal,
    GeofenceZone,
)
from app.schemas.job import ACTIVE_FIELD_STATUSES, FieldStatus, LiveETA

logger = logging.getLogger(__name__)

ON_SITE_STATUSES = (FieldStatus.ARRIVED, FieldStatus.WORKING, FieldStatus.PAUSED)


def haversine_distance_meters(
    lat1: float, lon1: float, lat2: float, lon2: float, radius: float = 6371e3
) -> float:
    """Great-circle distance in meters between two lat/lon points."""
    lat1_rad, lat2_rad = math.radians(lat1), math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius * c


class GeofenceCalculator:
    """Distance, zone and ETA math against the configured radii"""

    def __init__(self, config: DispatchConfig):
        self.config = config

    def distance_meters(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        return haversine_distance_meters(lat1, lon1, lat2, lon2, self.config.earth_radius_meters)

    def meters_to_miles(self, meters: float) -> float:
        return meters / self.config.meters_per_mile

    def check_geofence(
        self, lat: float, lng: float, site_lat: float, site_lng: float
    ) -> GeofenceCheck:
        """Classify a point against ARRIVAL < DEPARTURE < NEARBY radii."""
        radius = self.config.radius
        distance = self.distance_meters(lat, lng, site_lat, site_lng)

        if distance <= radius.arrival:
            zone = GeofenceZone.at_site
        elif distance <= radius.departure:
            zone = GeofenceZone.near_site
        elif distance <= radius.nearby:
            zone = GeofenceZone.approaching
        else:
            zone = GeofenceZone.away

        return GeofenceCheck(
            distance_meters=round(distance, 1),
            distance_miles=round(self.meters_to_miles(distance), 2),
            zone=zone,
            within_arrival=distance <= radius.arrival,
            within_departure=distance <= radius.departure,
            within_nearby=distance <= radius.nearby,
        )

    def estimate_eta(
        self,
        lat: float,
        lng: float,
        site_lat: float,
        site_lng: float,
        now: Optional[datetime] = None,
    ) -> LiveETA:
        """ETA at the assumed average speed, rounded to whole minutes."""
        now = now or datetime.now(timezone.utc)
        miles = self.meters_to_miles(self.distance_meters(lat, lng, site_lat, site_lng))
        minutes = round(miles / self.config.assumed_speed_mph * 60)
        return LiveETA(
            eta_minutes=minutes,
            eta_time=now + timedelta(minutes=minutes),
            distance_miles=round(miles, 1),
            has_traffic_data=False,
            calculated_at=now,
        )

    def detect_arrival_departure(
        self, status: FieldStatus, distance_meters: float
    ) -> GeofenceSignal:
        """
        Map current field status + distance to site into a signal.

        Only arrival is ever auto-applied. "Almost there" and "left site"
        are advisories for the dispatcher and never change the status.
        """
        radius = self.config.radius
        signal = GeofenceSignal(distance_meters=round(distance_meters, 1))

        if status == FieldStatus.EN_ROUTE:
            if distance_meters <= radius.arrival:
                signal.auto_transition = FieldStatus.ARRIVED
                signal.message = "Arrived at job site"
            elif distance_meters <= radius.nearby:
                signal.advisory = GeofenceAdvisory.almost_there
                signal.message = "Almost there"
        elif status in ON_SITE_STATUSES and distance_meters > radius.departure:
            signal.advisory = GeofenceAdvisory.left_site
            signal.message = "Technician appears to have left the job site"

        return signal

    def needs_eta(self, status: FieldStatus) -> bool:
        return status == FieldStatus.EN_ROUTE

    def is_tracked(self, status: FieldStatus) -> bool:
        return status in ACTIVE_FIELD_STATUSES
