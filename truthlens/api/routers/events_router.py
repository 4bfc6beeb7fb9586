"""Event schedule API routes"""

import logging
from dataclasses import asdict
from datetime import datetime

import asyncpg
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from truthlens.api.core.dependencies import (
    get_event_schedule_service,
    get_optional_db_pool,
    require_admin,
)
from truthlens.api.services import EventScheduleService
from truthlens.shared.models.event_config import SystemSettings
from truthlens.shared.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

NO_STORE_HEADERS = {"Cache-Control": "no-store, max-age=0"}


# ============================================
# Request / Response Models
# ============================================


class EventConfigBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    event_id: str
    is_active_global: bool = False
    celebration_music_start: str | None = None
    celebration_music_end: str | None = None


class EventScheduleUpdate(BaseModel):
    events: list[EventConfigBody]


class GlobalEffectsBody(BaseModel):
    snow: bool = False
    rain: bool = False
    leaves: bool = False
    confetti: bool = False
    christmas: bool = False


class EventSettingsResponse(BaseModel):
    event_schedule: list[dict]
    event_manager: dict | None = None
    global_effects: GlobalEffectsBody
    updated_at: datetime | None = None


def _settings_response(settings: SystemSettings) -> EventSettingsResponse:
    return EventSettingsResponse(
        event_schedule=[cfg.to_dict() for cfg in settings.event_schedule],
        event_manager=settings.event_manager.to_dict() if settings.event_manager else None,
        global_effects=GlobalEffectsBody(**asdict(settings.global_effects)),
        updated_at=settings.updated_at,
    )


# ============================================
# Public Endpoint
# ============================================


@router.get("/api/v1/event_config")
async def get_event_config(
    pool: asyncpg.Pool | None = Depends(get_optional_db_pool),
) -> JSONResponse:
    """Currently active event (if any), global effects and server time. Never cached."""
    if pool is None:
        return JSONResponse(
            status_code=503, content={"detail": "Database not ready"}, headers=NO_STORE_HEADERS
        )
    try:
        data = await EventScheduleService(pool).get_public_config()
    except Exception as e:
        logger.exception(f"Failed to fetch event config: {e}")
        return JSONResponse(
            status_code=500, content={"detail": "Internal Server Error"}, headers=NO_STORE_HEADERS
        )
    return JSONResponse(content=data, headers=NO_STORE_HEADERS)


# ============================================
# Admin Endpoints
# ============================================


@router.get("/api/admin/events/settings", response_model=EventSettingsResponse)
async def get_event_settings(
    admin: User = Depends(require_admin),
    service: EventScheduleService = Depends(get_event_schedule_service),
) -> EventSettingsResponse:
    """Full schedule, legacy config and effect switches for the settings editor."""
    try:
        settings = await service.get_settings()
    except Exception as e:
        logger.exception(f"Failed to get event settings: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch event settings") from None
    return _settings_response(settings)


@router.put("/api/admin/events/schedule", response_model=EventSettingsResponse)
async def update_event_schedule(
    body: EventScheduleUpdate,
    admin: User = Depends(require_admin),
    service: EventScheduleService = Depends(get_event_schedule_service),
) -> EventSettingsResponse:
    """Replace the whole event schedule."""
    try:
        settings = await service.replace_schedule([e.model_dump() for e in body.events])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to update event schedule: {e}")
        raise HTTPException(status_code=500, detail="Failed to update event schedule") from None
    logger.info(f"Admin {admin.email} updated the event schedule")
    return _settings_response(settings)


@router.put("/api/admin/events/global-effects", response_model=EventSettingsResponse)
async def update_global_effects(
    body: GlobalEffectsBody,
    admin: User = Depends(require_admin),
    service: EventScheduleService = Depends(get_event_schedule_service),
) -> EventSettingsResponse:
    """Switch site-wide visual effects on or off."""
    try:
        settings = await service.update_global_effects(body.model_dump())
    except Exception as e:
        logger.exception(f"Failed to update global effects: {e}")
        raise HTTPException(status_code=500, detail="Failed to update global effects") from None
    logger.info(f"Admin {admin.email} updated global effects")
    return _settings_response(settings)
