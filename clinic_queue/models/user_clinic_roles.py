"""User-clinic role assignments using SQLAlchemy Core.

Source of truth for authorization: a user may hold a different role in each
clinic. A row with role ``ADMIN`` makes the user a global administrator.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Uuid,
    func,
)

metadata = MetaData()

user_clinic_roles = Table(
    "user_clinic_roles",
    metadata,
    Column("user_id", Uuid, nullable=False),
    Column("clinic_id", Uuid, nullable=False),
    Column("role", String(20), nullable=False, server_default="STAFF"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    PrimaryKeyConstraint("user_id", "clinic_id", name="user_clinic_roles_pkey"),
    CheckConstraint(
        "role IN ('ADMIN', 'CLINIC_ADMIN', 'DOCTOR', 'NURSE', 'RECEPTIONIST', 'STAFF')",
        name="user_clinic_roles_role_check",
    ),
)

Index("idx_user_clinic_roles_clinic_id", user_clinic_roles.c.clinic_id)
Index("idx_user_clinic_roles_role", user_clinic_roles.c.role)
