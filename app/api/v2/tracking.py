"""
Tracking API

Location sample ingestion, latest positions, tracking sessions, geofence
checks and the dispatcher WebSocket feed.

WebSocket: ws://host/api/v2/tracking/ws/{contractor_id}
"""

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from datetime import datetime, timezone
import json
import logging

from app.api.deps import Config, DbSession, Publisher, Tracker
from app.exceptions import GEOLOCATION_ERRORS, NotFoundError, ValidationError
from app.schemas.gps_tracking import (
    GeofenceCheck,
    GeolocationErrorReport,
    LocationSample,
    TechnicianLocationResponse,
    TrackingResult,
    TrackingSessionStart,
    TrackingSessionStatus,
)
from app.services.geofence import GeofenceCalculator
from app.services.job_store import LocationStore
from app.services.location_tracking import DevicePositionFeed, LocationTracker

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/locations", response_model=TrackingResult)
async def submit_location(sample: LocationSample, tracker: Tracker):
    """
    Submit a location sample.

    Samples for one technician are applied in arrival order; a sample
    older than the stored one comes back with outcome "stale".
    """
    return await tracker.submit(sample)


@router.get("/locations", response_model=list[TechnicianLocationResponse])
async def list_locations(db: DbSession, contractor_id: str = Query(..., min_length=1)):
    return await LocationStore(db).list_for_contractor(contractor_id)


@router.get("/locations/{tech_id}", response_model=TechnicianLocationResponse)
async def get_location(tech_id: str, db: DbSession):
    location = await LocationStore(db).get_latest(tech_id)
    if location is None:
        raise NotFoundError("Technician location", tech_id)
    return location


def _device_feed(tracker: LocationTracker, tech_id: str) -> DevicePositionFeed:
    session = tracker.get_session(tech_id)
    if session is None or not session.active or not isinstance(session.provider, DevicePositionFeed):
        raise NotFoundError("Tracking session", tech_id)
    return session.provider


@router.post("/sessions/{tech_id}", response_model=TrackingSessionStatus, status_code=201)
async def start_session(tech_id: str, body: TrackingSessionStart, tracker: Tracker):
    """
    Start a device-fed tracking session.

    Fixes and geolocation failures posted to the session are applied in
    order until it is stopped. Starting an active session returns it as is.
    """
    session = tracker.start_tracking(tech_id, body.contractor_id, DevicePositionFeed(), interval=0)
    return session.to_status()


@router.post("/sessions/{tech_id}/positions", response_model=TrackingSessionStatus, status_code=202)
async def push_position(tech_id: str, sample: LocationSample, tracker: Tracker):
    if sample.tech_id != tech_id:
        raise ValidationError(
            "Sample belongs to another technician",
            errors=[{"field": "tech_id", "message": f"Expected {tech_id}"}],
        )
    await _device_feed(tracker, tech_id).push(sample)
    return tracker.get_session(tech_id).to_status()


@router.post("/sessions/{tech_id}/errors", response_model=TrackingSessionStatus, status_code=202)
async def report_geolocation_error(tech_id: str, report: GeolocationErrorReport, tracker: Tracker):
    """The device could not get a fix; the session pauses until the next one."""
    await _device_feed(tracker, tech_id).fail(GEOLOCATION_ERRORS[report.reason]())
    return tracker.get_session(tech_id).to_status()


@router.get("/sessions/{tech_id}", response_model=TrackingSessionStatus)
async def get_session(tech_id: str, tracker: Tracker):
    session = tracker.get_session(tech_id)
    if session is None:
        raise NotFoundError("Tracking session", tech_id)
    return session.to_status()


@router.delete("/sessions/{tech_id}", response_model=TrackingSessionStatus)
async def stop_session(tech_id: str, tracker: Tracker, db: DbSession):
    """Stop tracking; queued samples are still applied, then the tech shows offline."""
    result = await tracker.stop_tracking(tech_id)
    if result is None:
        raise NotFoundError("Tracking session", tech_id)
    await LocationStore(db).mark_offline(tech_id)
    return result


@router.get("/geofence", response_model=GeofenceCheck)
async def check_geofence(
    config: Config,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    site_lat: float = Query(..., ge=-90, le=90),
    site_lng: float = Query(..., ge=-180, le=180),
):
    return GeofenceCalculator(config).check_geofence(lat, lng, site_lat, site_lng)


@router.get("/ws/stats")
async def get_websocket_stats(publisher: Publisher):
    return publisher.get_connection_stats()


@router.websocket("/ws/{contractor_id}")
async def tracking_feed(websocket: WebSocket, contractor_id: str):
    """
    Dispatcher feed of location.updated, job.status_changed,
    job.eta_updated and job.crew_assigned events for one contractor.

    Client messages:
    - {"type": "ping"} -> {"type": "pong"}
    """
    publisher = websocket.app.state.publisher
    await publisher.connect(websocket, contractor_id)

    try:
        await websocket.send_json(
            {
                "type": "connected",
                "contractor_id": contractor_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

        while True:
            try:
                data = await websocket.receive_json()
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON format"})
                continue

            message_type = data.get("type")
            if message_type == "ping":
                await websocket.send_json(
                    {"type": "pong", "timestamp": datetime.now(timezone.utc).isoformat()}
                )
            else:
                await websocket.send_json(
                    {"type": "error", "message": f"Unknown message type: {message_type}"}
                )

    except WebSocketDisconnect:
        logger.info(f"Tracking feed disconnected: contractor_id={contractor_id}")
    finally:
        publisher.disconnect(websocket, contractor_id)
