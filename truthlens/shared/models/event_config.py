"""Data models for the system settings row and its event schedule."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any


@dataclass
class EventConfig:
    """Scheduled promotional event.

    Window bounds are kept as stored (ISO 8601 strings); parsing happens at
    resolve time so a malformed value only disqualifies its own event.
    """

    event_id: str = ""
    is_active_global: bool = False
    celebration_music_start: str | None = None
    celebration_music_end: str | None = None
    celebration_climax_start: str | None = None
    countdown_seconds: int = 10
    celebration_message: str = ""
    climax_message_start: str | None = None
    climax_message_end: str | None = None
    special_message: str | None = None
    special_message_color: str | None = None
    special_message_image_url: str | None = None
    special_message_start: str | None = None
    special_message_end: str | None = None
    music_file_url: str = ""
    climax_effect: str = "none"
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventConfig:
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        kwargs["is_active_global"] = bool(kwargs.get("is_active_global", False))
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        """Flatten back to the stored JSON shape, unknown keys included."""
        data = asdict(self)
        extra = data.pop("extra")
        return {**extra, **data}


@dataclass
class GlobalEffects:
    """Manual site-wide visual effect switches."""

    snow: bool = False
    rain: bool = False
    leaves: bool = False
    confetti: bool = False
    christmas: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalEffects:
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: bool(v) for k, v in data.items() if k in known})


@dataclass
class SystemSettings:
    """The single ``system_settings`` row."""

    event_schedule: list[EventConfig] = field(default_factory=list)
    event_manager: EventConfig | None = None  # legacy single event
    global_effects: GlobalEffects = field(default_factory=GlobalEffects)
    updated_at: datetime | None = None
