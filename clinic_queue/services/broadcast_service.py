"""Queue snapshot publishing."""

import asyncio
from collections.abc import Iterable
from uuid import UUID

import structlog

from clinic_queue.config import settings
from clinic_queue.core.broadcast import QueueBroadcastClient
from clinic_queue.schemas.rooms import QueueFilters, QueueUpdateMessage
from clinic_queue.services.queue_service import QueueService

logger = structlog.get_logger(__name__)


class QueueBroadcastPublisher:
    """
    Publishes full clinic queue snapshots after committed mutations.

    Publishing is best effort: every failure is logged and reported through
    the boolean return value, never raised to the caller.
    """

    def __init__(
        self,
        client: QueueBroadcastClient | None,
        queue_service: QueueService,
        topic_template: str | None = None,
    ):
        """Initialize publisher with a broadcast client and a queue composer."""
        self.client = client
        self.queue_service = queue_service
        self.topic_template = topic_template or settings.queue_topic_template

    def topic_for(self, clinic_id: UUID) -> str:
        """Topic carrying a clinic's queue updates."""
        return self.topic_template.format(clinic_id=clinic_id)

    async def publish_queue_update(
        self,
        clinic_id: UUID,
        room_ids: Iterable[UUID | None],
    ) -> bool:
        """
        Recompute and publish the clinic snapshot if any room was affected.

        Args:
            clinic_id: Clinic whose queues changed
            room_ids: Rooms touched by the mutation (None entries are ignored)

        Returns:
            True if a snapshot was handed to the broker
        """
        affected = {room_id for room_id in room_ids if room_id is not None}
        if not affected:
            return False

        if self.client is None or not self.client.enabled:
            logger.debug("queue_broadcast_skipped", clinic_id=str(clinic_id))
            return False

        topic = self.topic_for(clinic_id)

        try:
            result = await self.queue_service.get_queue(clinic_id, QueueFilters())
            if not result.ok:
                logger.warning(
                    "queue_broadcast_recompute_failed",
                    clinic_id=str(clinic_id),
                    error=result.error.message,  # type: ignore[union-attr]
                )
                return False

            message = QueueUpdateMessage(data=result.value).model_dump(mode="json")
            receivers = await asyncio.to_thread(self.client.publish, topic, message)
        except Exception as e:
            # Log error but don't fail the request
            logger.warning(
                "queue_broadcast_failed",
                clinic_id=str(clinic_id),
                topic=topic,
                error=str(e),
            )
            return False

        logger.info(
            "queue_broadcast_published",
            clinic_id=str(clinic_id),
            topic=topic,
            rooms=sorted(str(room_id) for room_id in affected),
            receivers=receivers,
        )
        return True
