# Services module
from app.services.websocket_manager import LocationPublisher
from app.services.geofence import GeofenceCalculator
from app.services.day_segmenter import DaySegmenter
from app.services.availability_service import AvailabilityResolver
from app.services.crew_suggestion_service import CrewSuggestionScorer
from app.services.conflict_detector import ConflictDetector
from app.services.field_status import FieldStatusMachine
from app.services.dispatch_service import DispatchService
from app.services.location_tracking import LocationTracker

__all__ = [
    "LocationPublisher",
    # Scheduling & dispatch engine
    "GeofenceCalculator",
    "DaySegmenter",
    "AvailabilityResolver",
    "CrewSuggestionScorer",
    "ConflictDetector",
    "FieldStatusMachine",
    "DispatchService",
    "LocationTracker",
]
