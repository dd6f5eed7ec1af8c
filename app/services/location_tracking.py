"""
Location tracking loop.

Each tracked technician gets a producer task that polls a position source
and a consumer task that applies samples in arrival order through a
per-technician asyncio.Queue. Samples for different technicians are
processed independently.

Stopping tracking cancels the producer; samples already queued are still
processed and in-flight writes complete.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Protocol

from app.core.dispatch_config import DispatchConfig
from app.exceptions import GeolocationUnavailable
from app.schemas.gps_tracking import LocationSample, TrackingOutcome, TrackingResult, TrackingSessionStatus
from app.schemas.job import FieldStatus
from app.services.dispatch_service import DispatchService

logger = logging.getLogger(__name__)

SampleProcessor = Callable[[LocationSample], Awaitable[TrackingResult]]

ON_SITE = (FieldStatus.ARRIVED, FieldStatus.WORKING, FieldStatus.PAUSED, FieldStatus.WRAPPING_UP)


class PositionProvider(Protocol):
    """Upstream position source. Raises a GeolocationUnavailable subclass when no fix is available."""

    async def get_position(self) -> LocationSample:
        ...


class DevicePositionFeed:
    """
    Position source fed by the device itself.

    Fixes and reported geolocation failures are handed to the producer in
    the order they were pushed. A full feed makes the pusher wait.
    """

    def __init__(self, maxsize: int = 100):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    async def push(self, sample: LocationSample) -> None:
        await self._queue.put(sample)

    async def fail(self, error: GeolocationUnavailable) -> None:
        await self._queue.put(error)

    async def get_position(self) -> LocationSample:
        item = await self._queue.get()
        if isinstance(item, GeolocationUnavailable):
            raise item
        return item


@dataclass
class TrackingSession:
    tech_id: str
    contractor_id: str
    active: bool = True
    paused: bool = False
    pause_reason: Optional[str] = None
    message: Optional[str] = None
    samples_submitted: int = 0
    samples_accepted: int = 0
    samples_stale: int = 0
    last_status: Optional[FieldStatus] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    producer: Optional[asyncio.Task] = field(default=None, repr=False)
    provider: Optional[PositionProvider] = field(default=None, repr=False)

    def pause(self, error: GeolocationUnavailable) -> None:
        self.paused = True
        self.pause_reason = error.reason
        self.message = error.user_message

    def resume(self) -> None:
        self.paused = False
        self.pause_reason = None
        self.message = None

    def to_status(self) -> TrackingSessionStatus:
        return TrackingSessionStatus(
            tech_id=self.tech_id,
            contractor_id=self.contractor_id,
            active=self.active,
            paused=self.paused,
            pause_reason=self.pause_reason,
            message=self.message,
            samples_submitted=self.samples_submitted,
            samples_accepted=self.samples_accepted,
            samples_stale=self.samples_stale,
        )


class LocationTracker:
    """Per-technician ordered sample processing plus cancellable polling sessions"""

    def __init__(self, processor: SampleProcessor, config: DispatchConfig):
        self.processor = processor
        self.config = config
        self._queues: Dict[str, asyncio.Queue] = {}
        self._consumers: Dict[str, asyncio.Task] = {}
        self._sessions: Dict[str, TrackingSession] = {}

    # ==================== Ordered processing ====================

    def _ensure_consumer(self, tech_id: str) -> asyncio.Queue:
        queue = self._queues.get(tech_id)
        consumer = self._consumers.get(tech_id)
        if queue is None or consumer is None or consumer.done():
            queue = queue or asyncio.Queue()
            self._queues[tech_id] = queue
            self._consumers[tech_id] = asyncio.create_task(
                self._consume(tech_id, queue), name=f"location-consumer-{tech_id}"
            )
        return queue

    async def _consume(self, tech_id: str, queue: asyncio.Queue) -> None:
        while True:
            item = await queue.get()
            try:
                if item is None:
                    return
                sample, future = item
                try:
                    result = await self.processor(sample)
                except Exception as e:
                    logger.error(f"Processing sample from {tech_id} failed: {e}")
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
            finally:
                queue.task_done()

    async def submit(self, sample: LocationSample) -> TrackingResult:
        """Queue a sample behind any earlier ones for the same tech and wait for its result."""
        queue = self._ensure_consumer(sample.tech_id)
        future = asyncio.get_running_loop().create_future()
        await queue.put((sample, future))
        result = await future

        session = self._sessions.get(sample.tech_id)
        if session is not None:
            session.samples_submitted += 1
            if result.outcome == TrackingOutcome.stale:
                session.samples_stale += 1
            else:
                session.samples_accepted += 1
                session.last_status = result.field_status
        return result

    # ==================== Sessions ====================

    def interval_for(self, status: Optional[FieldStatus]) -> int:
        intervals = self.config.intervals
        if status == FieldStatus.EN_ROUTE:
            return intervals.en_route
        if status in ON_SITE:
            return intervals.working
        return intervals.idle

    async def _produce(self, session: TrackingSession, provider: PositionProvider, interval: Optional[float]) -> None:
        while True:
            try:
                sample = await provider.get_position()
            except GeolocationUnavailable as e:
                if not session.paused:
                    logger.warning(f"Tracking paused for {session.tech_id}: {e.reason}")
                session.pause(e)
            else:
                if session.paused:
                    logger.info(f"Tracking resumed for {session.tech_id}")
                    session.resume()
                try:
                    await self.submit(sample)
                except Exception as e:
                    logger.error(f"Tracking sample for {session.tech_id} was not applied: {e}")
            await asyncio.sleep(interval if interval is not None else self.interval_for(session.last_status))

    def start_tracking(
        self,
        tech_id: str,
        contractor_id: str,
        provider: PositionProvider,
        interval: Optional[float] = None,
    ) -> TrackingSession:
        """Start polling `provider`; an existing session for the tech is returned unchanged."""
        existing = self._sessions.get(tech_id)
        if existing is not None and existing.active:
            return existing

        session = TrackingSession(tech_id=tech_id, contractor_id=contractor_id, provider=provider)
        session.producer = asyncio.create_task(
            self._produce(session, provider, interval), name=f"location-producer-{tech_id}"
        )
        self._sessions[tech_id] = session
        logger.info(f"Started tracking {tech_id}")
        return session

    async def stop_tracking(self, tech_id: str) -> Optional[TrackingSessionStatus]:
        """Cancel the producer, drain queued samples, then stop the consumer."""
        session = self._sessions.get(tech_id)
        if session is not None and session.producer is not None:
            session.producer.cancel()
            try:
                await session.producer
            except asyncio.CancelledError:
                pass
            session.active = False

        queue = self._queues.pop(tech_id, None)
        consumer = self._consumers.pop(tech_id, None)
        if queue is not None and consumer is not None and not consumer.done():
            await queue.join()
            await queue.put(None)
            await consumer

        if session is None:
            return None
        logger.info(f"Stopped tracking {tech_id}")
        return session.to_status()

    def get_session(self, tech_id: str) -> Optional[TrackingSession]:
        return self._sessions.get(tech_id)

    async def shutdown(self) -> None:
        for tech_id in list(set(self._sessions) | set(self._consumers)):
            await self.stop_tracking(tech_id)


def make_sample_processor(session_factory, config: DispatchConfig, publisher=None) -> SampleProcessor:
    """Processor that handles each sample in its own database session."""
    async def process(sample: LocationSample) -> TrackingResult:
        async with session_factory() as db:
            return await DispatchService(db, config, publisher).process_location_sample(sample)

    return process
