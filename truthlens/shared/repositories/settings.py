"""Repository for the system_settings table."""

from __future__ import annotations

import json
import logging
from typing import Any

import asyncpg

from truthlens.shared.models.event_config import EventConfig, GlobalEffects, SystemSettings

logger = logging.getLogger(__name__)

SETTINGS_ID = "settings"

_SELECT_COLS = "event_schedule, event_manager, global_effects, updated_at"


def _load_json(value: Any) -> Any:
    """asyncpg hands JSONB back as text unless a codec is registered."""
    if isinstance(value, str):
        return json.loads(value)
    return value


def _row_to_settings(row: asyncpg.Record) -> SystemSettings:
    schedule_raw = _load_json(row["event_schedule"]) or []
    if not isinstance(schedule_raw, list):
        logger.warning("event_schedule is not a list, ignoring it")
        schedule_raw = []

    schedule = []
    for entry in schedule_raw:
        if isinstance(entry, dict):
            schedule.append(EventConfig.from_dict(entry))
        else:
            logger.warning(f"Skipping malformed event_schedule entry: {entry!r}")

    legacy_raw = _load_json(row["event_manager"])
    legacy = EventConfig.from_dict(legacy_raw) if isinstance(legacy_raw, dict) else None

    return SystemSettings(
        event_schedule=schedule,
        event_manager=legacy,
        global_effects=GlobalEffects.from_dict(_load_json(row["global_effects"])),
        updated_at=row["updated_at"],
    )


class SettingsRepository:
    """Pure SQL operations for the single system settings row.

    Reads are never cached: the active event depends on the current time and
    admins expect edits to show up on the next request.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_settings(self) -> SystemSettings | None:
        """Return the settings row, or None if it was never written."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_SELECT_COLS} FROM system_settings WHERE id = $1",
                SETTINGS_ID,
            )
            if not row:
                return None
            return _row_to_settings(row)

    async def save_event_schedule(self, schedule: list[EventConfig]) -> SystemSettings:
        """Replace the event schedule list."""
        payload = json.dumps([cfg.to_dict() for cfg in schedule])
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO system_settings (id, event_schedule)
                VALUES ($1, $2::jsonb)
                ON CONFLICT (id) DO UPDATE SET
                    event_schedule = EXCLUDED.event_schedule,
                    updated_at     = NOW()
                RETURNING {_SELECT_COLS}
                """,
                SETTINGS_ID,
                payload,
            )
            return _row_to_settings(row)

    async def save_global_effects(self, effects: GlobalEffects) -> SystemSettings:
        """Replace the global effect switches."""
        payload = json.dumps(
            {
                "snow": effects.snow,
                "rain": effects.rain,
                "leaves": effects.leaves,
                "confetti": effects.confetti,
                "christmas": effects.christmas,
            }
        )
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO system_settings (id, global_effects)
                VALUES ($1, $2::jsonb)
                ON CONFLICT (id) DO UPDATE SET
                    global_effects = EXCLUDED.global_effects,
                    updated_at     = NOW()
                RETURNING {_SELECT_COLS}
                """,
                SETTINGS_ID,
                payload,
            )
            return _row_to_settings(row)
