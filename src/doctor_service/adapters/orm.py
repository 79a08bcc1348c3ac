import logging

from sqlalchemy import Column, MetaData, String, Table

from shared.adapters.orm import (
    assignment_table,
    patient_profiles_table,
    tombstone,
    user_directory_table,
)

logger = logging.getLogger(__name__)

metadata = MetaData()

user_directory = user_directory_table(metadata)

# One row per doctor-role user; specialty is local to this service
doctors = Table(
    "doctors",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("specialty", String(255)),
    tombstone(),
)

patient_profiles = patient_profiles_table(metadata)

doctor_patient_map = assignment_table(metadata)


def create_tables(engine):
    logger.info("Creating doctor-service tables")
    metadata.create_all(engine)
