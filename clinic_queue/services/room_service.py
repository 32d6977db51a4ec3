"""Room status management."""

from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinic_queue.core.results import ErrorKind, Result
from clinic_queue.repositories.room_repository import RoomRepository
from clinic_queue.schemas.rooms import RoomStatus, RoomStatusUpdateResponse
from clinic_queue.services.broadcast_service import QueueBroadcastPublisher

logger = structlog.get_logger(__name__)


class RoomService:
    """Service for toggling room availability."""

    def __init__(self, room_repo: RoomRepository, publisher: QueueBroadcastPublisher | None = None):
        """Initialize service with room repository and optional publisher."""
        self.room_repo = room_repo
        self.publisher = publisher

    async def update_room_status(
        self,
        room_id: UUID,
        clinic_id: UUID,
        status: RoomStatus,
        actor_id: UUID | None = None,
    ) -> Result[RoomStatusUpdateResponse]:
        """
        Change a room's status.

        Setting the current status again is a no-op reported with
        `updated=False`; nothing is written or published.

        Args:
            room_id: Room ID
            clinic_id: Tenant key
            status: New room status
            actor_id: User performing the change (logged)

        Returns:
            Result holding previous and new status, or NOT_FOUND
        """
        room = await self.room_repo.find_by_id(room_id, clinic_id)
        if room is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Room not found")

        previous = RoomStatus(room["status"])
        if previous == status:
            return Result.success(
                RoomStatusUpdateResponse(
                    room_id=room_id,
                    clinic_id=clinic_id,
                    previous_status=previous,
                    new_status=status,
                    updated=False,
                )
            )

        try:
            updated = await self.room_repo.update(room_id, clinic_id, {"status": status.value})
        except SQLAlchemyError as e:
            logger.error("room_persistence_failed", room_id=str(room_id), error=str(e))
            raise

        if updated is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Room not found")

        logger.info(
            "room_status_changed",
            room_id=str(room_id),
            clinic_id=str(clinic_id),
            previous_status=previous.value,
            new_status=status.value,
            actor_id=str(actor_id) if actor_id else None,
        )

        if self.publisher is not None:
            await self.publisher.publish_queue_update(clinic_id, [room_id])

        return Result.success(
            RoomStatusUpdateResponse(
                room_id=room_id,
                clinic_id=clinic_id,
                previous_status=previous,
                new_status=status,
                updated=True,
            )
        )
