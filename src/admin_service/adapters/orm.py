import logging

from sqlalchemy import MetaData

from shared.adapters.orm import (
    appointments_table,
    assignment_table,
    patient_profiles_table,
    prescription_requests_table,
    user_directory_table,
)

logger = logging.getLogger(__name__)

# Read models over every other service's data; nothing here is owned by admin
metadata = MetaData()

users = user_directory_table(metadata, "users")
patients = patient_profiles_table(metadata, "patients")
doctor_patient_map = assignment_table(metadata)
appointments = appointments_table(metadata)
prescription_requests = prescription_requests_table(metadata)


def create_tables(engine):
    logger.info("Creating admin-service tables")
    metadata.create_all(engine)
