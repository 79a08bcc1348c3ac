"""Column types and projection table shapes shared by the service stores."""

from datetime import timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.types import TypeDecorator

from shared.domain.timestamps import parse_timestamp


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend, SQLite included."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        value = parse_timestamp(value)
        if value is not None and dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def tombstone():
    return Column("deleted_at", UTCDateTime(), nullable=True)


def user_directory_table(metadata: MetaData, name: str = "user_directory") -> Table:
    return Table(
        name,
        metadata,
        Column("id", String(64), primary_key=True),
        Column("role", String(32)),
        Column("name", String(255)),
        Column("email", String(255)),
        tombstone(),
    )


def patient_profiles_table(metadata: MetaData, name: str = "patient_profiles") -> Table:
    table = Table(
        name,
        metadata,
        Column("id", String(64), primary_key=True),
        Column("user_id", String(64), nullable=False),
        Column("name", String(255)),
        Column("dob", String(32)),
        Column("conditions", JSON, nullable=False, default=list),
        tombstone(),
    )
    Index(f"{name}_user_idx", table.c.user_id)
    return table


def assignment_table(metadata: MetaData, name: str = "doctor_patient_map") -> Table:
    """
    Doctor/patient assignments.

    One row per pair for the whole history (rows are reactivated, never
    duplicated) and at most one active row per patient.
    """
    table = Table(
        name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("doctor_id", String(64), nullable=False),
        Column("patient_id", String(64), nullable=False),
        Column("assigned_at", UTCDateTime()),
        tombstone(),
        UniqueConstraint("doctor_id", "patient_id", name=f"{name}_pair_unique"),
    )
    Index(
        f"{name}_patient_active_unique",
        table.c.patient_id,
        unique=True,
        postgresql_where=table.c.deleted_at.is_(None),
        sqlite_where=table.c.deleted_at.is_(None),
    )
    Index(f"{name}_doctor_idx", table.c.doctor_id)
    return table


def appointments_table(metadata: MetaData, name: str = "appointments", with_time_columns: bool = True) -> Table:
    """Appointments; legacy stores have only (date, slot) and no time columns."""
    columns = [
        Column("id", String(64), primary_key=True),
        Column("patient_user_id", String(64)),
        Column("doctor_user_id", String(64)),
        Column("date", String(10)),
        Column("slot", String(5)),
        Column("status", String(16)),
    ]
    if with_time_columns:
        columns += [
            Column("start_time", UTCDateTime()),
            Column("end_time", UTCDateTime()),
        ]
    table = Table(name, metadata, *columns, tombstone())
    Index(
        f"{name}_doctor_active_idx",
        table.c.doctor_user_id,
        postgresql_where=table.c.deleted_at.is_(None),
        sqlite_where=table.c.deleted_at.is_(None),
    )
    return table


def prescription_requests_table(metadata: MetaData, name: str = "prescription_requests") -> Table:
    table = Table(
        name,
        metadata,
        Column("id", String(64), primary_key=True),
        Column("patient_id", String(64)),
        Column("medication", String(255)),
        Column("notes", String(2000)),
        Column("status", String(16)),
        tombstone(),
    )
    Index(f"{name}_patient_idx", table.c.patient_id)
    return table
