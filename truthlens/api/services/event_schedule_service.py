"""Event schedule service: active event resolution and schedule edits."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

import asyncpg

from truthlens.shared.models.event_config import EventConfig, GlobalEffects, SystemSettings
from truthlens.shared.repositories.settings import SettingsRepository

logger = logging.getLogger(__name__)


def parse_instant(value: Any) -> datetime | None:
    """Parse a stored window bound into an aware UTC datetime.

    Accepts ISO 8601 strings (``Z`` or offset; naive means UTC), datetimes and
    epoch milliseconds. Anything else, including unparseable strings, is None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, int | float):
        try:
            parsed = datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def collect_candidates(settings: SystemSettings | None) -> list[EventConfig]:
    """Candidate pool: the schedule, or the legacy single event if the schedule is empty."""
    if settings is None:
        return []
    if settings.event_schedule:
        return list(settings.event_schedule)
    if settings.event_manager is not None:
        return [settings.event_manager]
    return []


def resolve_active_event(candidates: list[EventConfig], now: datetime) -> EventConfig | None:
    """Pick the event whose celebration window contains *now*.

    Only globally enabled events with both bounds parseable qualify; the window
    is inclusive on both ends. Among overlapping events the latest start wins,
    and equal starts keep list order.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    best: EventConfig | None = None
    best_start: datetime | None = None

    for event in candidates:
        if not event.is_active_global:
            continue
        start = parse_instant(event.celebration_music_start)
        end = parse_instant(event.celebration_music_end)
        if start is None or end is None:
            continue
        if not start <= now <= end:
            continue
        if best_start is None or start > best_start:
            best, best_start = event, start

    return best


def format_server_time(now: datetime) -> str:
    """ISO 8601 UTC with milliseconds and a ``Z`` suffix."""
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EventScheduleService:
    """API-facing event schedule operations."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool
        self.repo = SettingsRepository(pool)

    async def get_public_config(self, now: datetime | None = None) -> dict:
        """Build the public event payload for the current instant."""
        now = now or datetime.now(UTC)
        settings = await self.repo.get_settings()

        active = resolve_active_event(collect_candidates(settings), now)
        effects = settings.global_effects if settings else GlobalEffects()

        if active is not None:
            logger.debug(f"Active event: {active.event_id}")

        return {
            "config": active.to_dict() if active else None,
            "globalEffects": asdict(effects),
            "server_time": format_server_time(now),
        }

    async def get_settings(self) -> SystemSettings:
        return await self.repo.get_settings() or SystemSettings()

    async def replace_schedule(self, entries: list[dict[str, Any]]) -> SystemSettings:
        """Validate and store a new schedule list."""
        schedule = [EventConfig.from_dict(entry) for entry in entries]

        seen: set[str] = set()
        for cfg in schedule:
            if not cfg.event_id:
                raise ValueError("Every scheduled event needs an event_id")
            if cfg.event_id in seen:
                raise ValueError(f"Duplicate event_id: {cfg.event_id}")
            seen.add(cfg.event_id)

            start = parse_instant(cfg.celebration_music_start)
            end = parse_instant(cfg.celebration_music_end)
            if start is not None and end is not None and end < start:
                raise ValueError(f"Event {cfg.event_id} ends before it starts")

        settings = await self.repo.save_event_schedule(schedule)
        logger.info(f"Event schedule replaced ({len(schedule)} events)")
        return settings

    async def update_global_effects(self, effects: dict[str, Any]) -> SystemSettings:
        settings = await self.repo.save_global_effects(GlobalEffects.from_dict(effects))
        logger.info(f"Global effects updated: {asdict(settings.global_effects)}")
        return settings
