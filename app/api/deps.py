"""
FastAPI Dependencies

Provides dependency injection for database sessions and the dispatch
engine. The engine registry, publisher and location tracker are created
once in the application lifespan and live on app.state.
"""

from typing import Annotated
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.core.dispatch_config import DispatchConfig
from app.database import get_db
from app.services.dispatch_service import DispatchService
from app.services.location_tracking import LocationTracker
from app.services.websocket_manager import LocationPublisher

logger = logging.getLogger(__name__)


def get_dispatch_config(request: Request) -> DispatchConfig:
    return request.app.state.dispatch_config


def get_publisher(request: Request) -> LocationPublisher:
    return request.app.state.publisher


def get_tracker(request: Request) -> LocationTracker:
    return request.app.state.tracker


# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
Config = Annotated[DispatchConfig, Depends(get_dispatch_config)]
Publisher = Annotated[LocationPublisher, Depends(get_publisher)]
Tracker = Annotated[LocationTracker, Depends(get_tracker)]


async def get_dispatch_service(db: DbSession, config: Config, publisher: Publisher) -> DispatchService:
    return DispatchService(db, config, publisher)


Dispatch = Annotated[DispatchService, Depends(get_dispatch_service)]
