"""Gamification Event Processor
Background task that consumes domain events from the Redis stream and runs
the badge engine for the user each event is about.
"""

import asyncio
import json
import logging
import os
import socket
from typing import Any

import redis.asyncio as redis
from sqlalchemy.orm import Session

from openelevate.config import settings
from openelevate.core.data.database import SessionLocal
from openelevate.gamification.errors import NotFoundError
from openelevate.gamification.processor.badge_service import (
    BadgeService,
    get_badge_service,
)

logger = logging.getLogger(__name__)


# Processor Config
READ_COUNT = 10
READ_BLOCK_MS = 5000
ERROR_BACKOFF_SECONDS = 5
STALE_CLAIM_TIMEOUT_MS = 30_000  # claim messages pending > 30 seconds
MAX_RETRIES = 3  # deliveries before a failing message is dropped
PENDING_CHECK_INTERVAL = 10  # check for stale pending messages every N batches


class GamificationEventProcessor:
    """
    Processes domain events from the Redis stream.

    Responsibilities:
    - Subscribe to the event stream (consumer group for horizontal scaling)
    - Decode events written by EventBus
    - Run the badge engine for the event's user
    - Acknowledge handled messages; failed ones stay pending and are
      reclaimed and retried until MAX_RETRIES deliveries
    """

    CONSUMER_GROUP = "gamification-processor"

    def __init__(self, redis_client=None, badge_service: BadgeService | None = None):
        self.redis = redis_client
        self.stream = settings.EVENT_STREAM_NAME
        self.consumer_name = f"gamification-{socket.gethostname()}-{os.getpid()}"
        self.badge_service = badge_service or get_badge_service()
        self.stale_claim_timeout_ms = STALE_CLAIM_TIMEOUT_MS
        self._running = False
        self._batch_count = 0

    async def start_async(self):
        """Start the event processor as an async task"""
        if self.redis is None:
            logger.warning("Redis client not configured, event processor disabled")
            return
        logger.info(
            "Starting gamification event processor (consumer: %s)", self.consumer_name
        )
        await self._ensure_consumer_group()
        self._running = True
        while self._running:
            try:
                await self._process_batch()
            except asyncio.CancelledError:
                logger.info("Gamification processor task cancelled")
                break
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error("Error in gamification processor loop: %s", e)
                await asyncio.sleep(ERROR_BACKOFF_SECONDS)

    def stop(self):
        """Stop the processor"""
        self._running = False
        logger.info("Gamification event processor stopped")

    async def _ensure_consumer_group(self):
        """Create the consumer group if it doesn't exist"""
        try:
            await self.redis.xgroup_create(
                self.stream, self.CONSUMER_GROUP, id="0", mkstream=True
            )
            logger.info(
                "Created consumer group %s on %s", self.CONSUMER_GROUP, self.stream
            )
        except redis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise
            logger.debug("Consumer group %s already exists", self.CONSUMER_GROUP)

    async def _process_batch(self):
        """Read and process one batch of new messages"""
        self._batch_count += 1
        if self._batch_count % PENDING_CHECK_INTERVAL == 0:
            await self._recover_pending_messages()

        results = await self.redis.xreadgroup(
            self.CONSUMER_GROUP,
            self.consumer_name,
            {self.stream: ">"},
            count=READ_COUNT,
            block=READ_BLOCK_MS,
        )
        if results:
            await self._process_messages(results)

    async def _recover_pending_messages(self):
        """Claim and retry messages left pending longer than the claim timeout"""
        # XAUTOCLAIM returns [next_start_id, [[msg_id, data], ...], [deleted_ids]]
        result = await self.redis.xautoclaim(
            self.stream,
            self.CONSUMER_GROUP,
            self.consumer_name,
            min_idle_time=self.stale_claim_timeout_ms,
            start_id="0-0",
            count=READ_COUNT,
        )
        if not result or len(result) < 2 or not result[1]:
            return

        claimed = result[1]
        logger.info(
            "Claimed %d stale pending messages from %s", len(claimed), self.stream
        )
        await self._process_messages([(self.stream, claimed)])

    async def _process_messages(self, results: list):
        """Process messages returned by XREADGROUP or XAUTOCLAIM"""
        db = SessionLocal()
        processed = 0
        try:
            for _, messages in results:
                for message_id, data in messages:
                    if await self._process_single_message(message_id, data, db):
                        processed += 1
        finally:
            db.close()
            if processed:
                logger.info("Gamification processor handled %d events", processed)

    async def _process_single_message(
        self, message_id: bytes | str, data: dict, db: Session
    ) -> bool:
        """Handle one message; True when it was acknowledged"""
        msg_id_str = (
            message_id.decode() if isinstance(message_id, bytes) else message_id
        )
        event = self._decode_event(data)

        try:
            self.handle_event(event, db)
        except NotFoundError as e:
            # the user is gone, retrying cannot help
            logger.warning("Dropping event %s: %s", msg_id_str, e)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error processing message %s: %s", msg_id_str, e)
            db.rollback()
            if await self._delivery_count(msg_id_str) < MAX_RETRIES:
                # stays pending for the next recovery cycle
                return False
            logger.warning(
                "Message %s exceeded max retries (%d), dropping",
                msg_id_str,
                MAX_RETRIES,
            )

        await self.redis.xack(self.stream, self.CONSUMER_GROUP, message_id)
        return True

    async def _delivery_count(self, msg_id_str: str) -> int:
        """How many times the group has delivered a pending message"""
        pending = await self.redis.xpending_range(
            self.stream, self.CONSUMER_GROUP, msg_id_str, msg_id_str, count=1
        )
        if not pending:
            return 0
        return pending[0].get("times_delivered", 0)

    def handle_event(self, event: dict[str, Any], db: Session) -> list:
        """Run the badge engine for a decoded event"""
        user_id = event.get("user_id")
        event_type = event.get("event_type")
        if not user_id or not event_type:
            logger.warning("Ignoring event without user_id or event_type: %s", event)
            return []

        awarded = self.badge_service.process_event(
            str(user_id), str(event_type), db, event_data=event
        )
        if awarded:
            logger.info(
                "Badges awarded to %s after %s: %s",
                user_id,
                event_type,
                [award.badge_id for award in awarded],
            )
        return awarded

    def _decode_event(self, data: dict) -> dict[str, Any]:
        """Decode event from Redis stream format.

        Events are encoded by EventBus._encode_event_data() which JSON-encodes
        non-string values; every value is tried as JSON and kept as a string
        when that fails.
        """
        decoded = {}
        for key, value in data.items():
            key_str = key.decode() if isinstance(key, bytes) else key
            value_str = value.decode() if isinstance(value, bytes) else value
            try:
                decoded[key_str] = json.loads(value_str)
            except (json.JSONDecodeError, TypeError):
                decoded[key_str] = value_str
        return decoded

    def reload_definitions(self):
        """Drop cached evaluators after the badge catalog changed"""
        self.badge_service.clear_cache()
        logger.info("Gamification processor caches cleared")


# Singleton instance
_processor: GamificationEventProcessor | None = None


def get_processor() -> GamificationEventProcessor:
    """Get singleton processor instance"""
    global _processor  # pylint: disable=global-statement
    if _processor is None:
        _processor = GamificationEventProcessor(
            redis_client=redis.from_url(settings.REDIS_URL)
        )
    return _processor


def start_processor_task() -> asyncio.Task:
    """Start processor as an asyncio background task"""
    processor = get_processor()
    task = asyncio.create_task(processor.start_async())
    logger.info("Gamification processor task started")
    return task
