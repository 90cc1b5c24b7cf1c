"""
Progression analytics events.

The orchestrator reports what happened (drill_assigned, session_start,
xp_awarded, streak_extended, session_complete) to an EventSink. The default
sink writes structured records through loguru; deployments can forward them
to an analytics pipeline instead.
"""
from __future__ import annotations

from typing import Any, Protocol

from loguru import logger

DRILL_ASSIGNED = "drill_assigned"
SESSION_START = "session_start"
XP_AWARDED = "xp_awarded"
STREAK_EXTENDED = "streak_extended"
SESSION_COMPLETE = "session_complete"


class EventSink(Protocol):
    def track(self, name: str, properties: dict[str, Any], user_id: str) -> None: ...


class LoguruEventSink:
    """Emit events as bound loguru records at INFO level."""

    def track(self, name: str, properties: dict[str, Any], user_id: str) -> None:
        logger.bind(event=name, user_id=user_id, **properties).info(
            f"event={name} user={user_id} {properties}"
        )
