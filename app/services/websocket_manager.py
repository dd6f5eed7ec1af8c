"""
Location Publisher

Per-contractor broadcast channel for dispatcher-facing views.
Events:
- location.updated
- job.status_changed
- job.eta_updated
- job.crew_assigned

Delivered to WebSocket connections and to in-process subscriber queues.
"""

from fastapi import WebSocket
from typing import Dict, Set, Optional
from datetime import datetime, timezone
import logging
import asyncio

logger = logging.getLogger(__name__)


class LocationPublisher:
    """
    Manages dispatcher WebSocket connections and event fan-out.

    Connections and queues are grouped by contractor_id; an event is only
    ever delivered to subscribers of the contractor it belongs to.
    """

    def __init__(self, queue_size: int = 100):
        # Maps contractor_id to set of WebSocket connections
        self._connections: Dict[str, Set[WebSocket]] = {}
        # Maps contractor_id to in-process subscriber queues
        self._queues: Dict[str, Set[asyncio.Queue]] = {}
        self._queue_size = queue_size
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, contractor_id: str) -> None:
        """Accept a WebSocket connection and register it."""
        await websocket.accept()

        async with self._lock:
            self._connections.setdefault(contractor_id, set()).add(websocket)

        logger.info(
            f"WebSocket connected: contractor_id={contractor_id}, "
            f"total_connections={self.total_connections}"
        )

    def disconnect(self, websocket: WebSocket, contractor_id: str) -> None:
        """Remove a WebSocket connection."""
        if contractor_id in self._connections:
            self._connections[contractor_id].discard(websocket)
            if not self._connections[contractor_id]:
                del self._connections[contractor_id]

        logger.info(
            f"WebSocket disconnected: contractor_id={contractor_id}, "
            f"total_connections={self.total_connections}"
        )

    def subscribe(self, contractor_id: str) -> asyncio.Queue:
        """In-process subscription; the queue receives every event for the contractor."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._queues.setdefault(contractor_id, set()).add(queue)
        return queue

    def unsubscribe(self, contractor_id: str, queue: asyncio.Queue) -> None:
        if contractor_id in self._queues:
            self._queues[contractor_id].discard(queue)
            if not self._queues[contractor_id]:
                del self._queues[contractor_id]

    @property
    def total_connections(self) -> int:
        return sum(len(conns) for conns in self._connections.values())

    async def publish(self, contractor_id: str, event_type: str, data: dict) -> int:
        """
        Broadcast a typed event to one contractor's subscribers.

        Returns:
            Number of connections and queues the event was delivered to
        """
        message = {
            "type": event_type,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        sent_count = 0
        dead_connections = []
        for websocket in list(self._connections.get(contractor_id, ())):
            try:
                await websocket.send_json(message)
                sent_count += 1
            except Exception as e:
                logger.warning(f"Failed to send to contractor {contractor_id}: {e}")
                dead_connections.append(websocket)

        for ws in dead_connections:
            self.disconnect(ws, contractor_id)

        for queue in list(self._queues.get(contractor_id, ())):
            if queue.full():
                # Slow consumer: drop its oldest event
                queue.get_nowait()
            queue.put_nowait(message)
            sent_count += 1

        logger.debug(f"{event_type} sent to {sent_count} subscribers of {contractor_id}")
        return sent_count

    def get_connection_stats(self) -> dict:
        return {
            "total_connections": self.total_connections,
            "contractors": len(self._connections),
            "queue_subscribers": sum(len(q) for q in self._queues.values()),
        }
