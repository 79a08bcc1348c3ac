import logging

from sqlalchemy import Index, MetaData

from shared.adapters.orm import patient_profiles_table, prescription_requests_table

logger = logging.getLogger(__name__)

metadata = MetaData()

patients = patient_profiles_table(metadata, "patients")

# One active profile per user account
Index(
    "patients_user_active_unique",
    patients.c.user_id,
    unique=True,
    postgresql_where=patients.c.deleted_at.is_(None),
    sqlite_where=patients.c.deleted_at.is_(None),
)

prescription_requests = prescription_requests_table(metadata)


def create_tables(engine):
    logger.info("Creating patient-service tables")
    metadata.create_all(engine)
