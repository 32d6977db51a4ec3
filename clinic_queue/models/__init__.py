"""Database models."""

from sqlalchemy import MetaData

from clinic_queue.models.appointments import appointments
from clinic_queue.models.appointments import metadata as appointments_metadata
from clinic_queue.models.rooms import metadata as rooms_metadata
from clinic_queue.models.rooms import rooms
from clinic_queue.models.user_clinic_roles import metadata as user_clinic_roles_metadata
from clinic_queue.models.user_clinic_roles import user_clinic_roles


def combined_metadata() -> MetaData:
    """Collect every model table into one MetaData (for create_all and migrations)."""
    metadata = MetaData()
    for source in (appointments_metadata, rooms_metadata, user_clinic_roles_metadata):
        for table in source.tables.values():
            table.to_metadata(metadata)
    return metadata


__all__ = [
    "appointments",
    "combined_metadata",
    "rooms",
    "user_clinic_roles",
]
