"""Realtime Service - Publishes ride and membership events on Redis pub/sub."""

import json
import logging
from typing import Any, Dict, Optional

from redis.exceptions import RedisError

from hopper.config import settings
from hopper.database import get_redis
from hopper.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Channel Naming Convention
# =============================================================================
#
# - hopper:rides            - ride inserts and ride status changes (feed)
# - hopper:ride:{ride_id}   - membership events for one ride (host + members)
#
# =============================================================================


class RealtimeChannels:
    """Channel name builders."""

    @staticmethod
    def rides_feed() -> str:
        return "hopper:rides"

    @staticmethod
    def ride(ride_id: str) -> str:
        return f"hopper:ride:{ride_id}"


class RealtimeService:
    """
    Fire-and-forget publisher for the realtime feed.

    Subscribers are presentation layers; a failed publish never fails
    the action that produced the event.
    """

    async def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> bool:
        """Publish an event. Returns True if it reached Redis."""
        if not settings.realtime_enabled:
            return False

        message = json.dumps(
            {"event": event, "payload": payload, "sent_at": utc_now().isoformat()},
            default=str,
        )
        try:
            await get_redis().publish(channel, message)
            return True
        except (RedisError, RuntimeError) as e:
            logger.warning(f"Failed to publish {event} on {channel}: {e}")
            return False

    async def ride_created(self, payload: Dict[str, Any]) -> bool:
        return await self.publish(RealtimeChannels.rides_feed(), "ride_created", payload)

    async def ride_status_changed(self, ride_id: str, status: str) -> bool:
        return await self.publish(
            RealtimeChannels.rides_feed(),
            "ride_status_changed",
            {"ride_id": ride_id, "status": status},
        )

    async def membership_event(
        self, event: str, ride_id: str, membership_id: str, user_id: str,
        status: Optional[str] = None
    ) -> bool:
        return await self.publish(
            RealtimeChannels.ride(ride_id),
            event,
            {
                "ride_id": ride_id,
                "membership_id": membership_id,
                "user_id": user_id,
                "status": status,
            },
        )
