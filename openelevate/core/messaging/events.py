"""Event Bus for the OpenElevate platform

Domain events are published to a single Redis stream. Each entry carries the
user the event is about, the event type and any extra fields:

- contribution_verified: a reviewer closed out a contribution
- project_created: the user started a project
- skill_updated / profile_updated: profile changes
- mentorship_accepted: the user took on a mentee
- github_synced: repository analytics were refreshed

Badge awards are derived by the GamificationEventProcessor from these events,
not emitted directly.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

import redis.asyncio as redis

from openelevate.config import settings

logger = logging.getLogger(__name__)


class EventBus:
    """Event Bus for the OpenElevate platform"""

    def __init__(self, redis_client=None):
        self.redis = redis_client or redis.from_url(settings.REDIS_URL)
        self.stream_name = settings.EVENT_STREAM_NAME

    def _encode_event_data(self, event_data: dict[str, Any]) -> dict[str, str]:
        """Encode event data to JSON strings for Redis compatibility"""
        encoded_data = {}
        for key, value in event_data.items():
            if value is None:
                encoded_data[key] = json.dumps(None)
            elif isinstance(value, (bool, int, float, list, dict)):
                encoded_data[key] = json.dumps(value)
            else:
                # For strings and other types, convert to string
                encoded_data[key] = str(value)
        return encoded_data

    async def emit_domain_event(
        self,
        event_type: str,
        user_id: str,
        event_data: dict[str, Any] | None = None,
    ) -> None:
        """Emit a domain event

        Args:
            event_type: The event type (e.g., "contribution_verified")
            user_id: The user whose state changed
            event_data: Additional event data to include
        """
        enriched_event = {
            "user_id": user_id,
            "event_type": event_type,
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            **(event_data or {}),
        }

        encoded_event = self._encode_event_data(enriched_event)
        await self.redis.xadd(
            self.stream_name, encoded_event, maxlen=settings.EVENT_BUFFER_SIZE
        )
        logger.debug(
            "Emitted %s for user %s to %s", event_type, user_id, self.stream_name
        )


# Global Event Bus Instance
event_bus = EventBus()
