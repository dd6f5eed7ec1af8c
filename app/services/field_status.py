"""
Field status state machine.

scheduled -> en_route -> arrived -> working <-> paused -> wrapping_up -> completed,
with cancelled reachable by explicit action. Explicit actions are not guarded:
the status is overwritten whatever the current value. Only arrival is ever
applied automatically, from a geofence signal.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from app.core.dispatch_config import DispatchConfig
from app.schemas.gps_tracking import GeofenceSignal
from app.schemas.job import FieldStatus, JobResponse, StatusTransition
from app.services.geofence import GeofenceCalculator

logger = logging.getLogger(__name__)

# Job column stamped when a status is entered
MILESTONES = {
    FieldStatus.EN_ROUTE: "en_route_at",
    FieldStatus.ARRIVED: "arrived_at",
    FieldStatus.WORKING: "work_started_at",
    FieldStatus.COMPLETED: "completed_at",
    FieldStatus.CANCELLED: "cancelled_at",
}

ACTIONS = {
    "start_en_route": FieldStatus.EN_ROUTE,
    "mark_arrived": FieldStatus.ARRIVED,
    "start_working": FieldStatus.WORKING,
    "pause_work": FieldStatus.PAUSED,
    "resume_work": FieldStatus.WORKING,
    "start_wrap_up": FieldStatus.WRAPPING_UP,
    "complete_job": FieldStatus.COMPLETED,
    "cancel_job": FieldStatus.CANCELLED,
}


class FieldStatusMachine:
    """Builds the job field updates for a status change"""

    def __init__(self, config: DispatchConfig, geofence: Optional[GeofenceCalculator] = None):
        self.config = config
        self.geofence = geofence or GeofenceCalculator(config)

    def transition(
        self,
        job: JobResponse,
        to_status: FieldStatus,
        location: Optional[dict] = None,
        notes: str = "",
        automatic: bool = False,
        now: Optional[datetime] = None,
    ) -> tuple[StatusTransition, dict]:
        """Return the transition record and the column updates that apply it."""
        now = now or datetime.now(timezone.utc)
        record = StatusTransition(
            from_status=job.field_status,
            to_status=to_status,
            at=now,
            automatic=automatic,
            location=location,
            notes=notes,
        )

        history = dict(job.field_status_history or {})
        history[to_status.value] = {
            "timestamp": now.isoformat(),
            "from_status": job.field_status.value,
            "location": location,
            "notes": notes,
            "automatic": automatic,
        }
        updates = {"field_status": to_status.value, "field_status_history": history}

        milestone = MILESTONES.get(to_status)
        if milestone:
            updates[milestone] = now
        if to_status != FieldStatus.EN_ROUTE and job.field_status == FieldStatus.EN_ROUTE:
            # live ETA only exists while en route
            updates["live_eta"] = None

        if job.field_status in (FieldStatus.COMPLETED, FieldStatus.CANCELLED):
            logger.warning(
                f"Job {job.id} moved out of terminal status {job.field_status.value} to {to_status.value}"
            )
        return record, updates

    def apply_action(
        self,
        job: JobResponse,
        action: str,
        location: Optional[dict] = None,
        notes: str = "",
        now: Optional[datetime] = None,
    ) -> tuple[StatusTransition, dict]:
        try:
            target = ACTIONS[action]
        except KeyError:
            raise ValueError(f"Unknown field status action '{action}'")
        return self.transition(job, target, location=location, notes=notes, now=now)

    def start_en_route(self, job: JobResponse, location: Optional[dict] = None, notes: str = ""):
        return self.apply_action(job, "start_en_route", location, notes)

    def mark_arrived(self, job: JobResponse, location: Optional[dict] = None, notes: str = ""):
        return self.apply_action(job, "mark_arrived", location, notes)

    def start_working(self, job: JobResponse, location: Optional[dict] = None, notes: str = ""):
        return self.apply_action(job, "start_working", location, notes)

    def pause_work(self, job: JobResponse, notes: str = ""):
        return self.apply_action(job, "pause_work", None, notes)

    def resume_work(self, job: JobResponse, notes: str = ""):
        return self.apply_action(job, "resume_work", None, notes)

    def start_wrap_up(self, job: JobResponse, location: Optional[dict] = None, notes: str = ""):
        return self.apply_action(job, "start_wrap_up", location, notes)

    def complete_job(self, job: JobResponse, location: Optional[dict] = None, notes: str = ""):
        return self.apply_action(job, "complete_job", location, notes)

    def cancel_job(self, job: JobResponse, notes: str = ""):
        return self.apply_action(job, "cancel_job", None, notes)

    def evaluate_location(self, job: JobResponse, lat: float, lng: float) -> Optional[GeofenceSignal]:
        """Geofence signal for a sample against the job site; None when the job has no site or is not active."""
        if job.site_latitude is None or job.site_longitude is None:
            return None
        if not self.geofence.is_tracked(job.field_status):
            return None
        distance = self.geofence.distance_meters(lat, lng, job.site_latitude, job.site_longitude)
        return self.geofence.detect_arrival_departure(job.field_status, distance)
