import logging

from sqlalchemy import Index, MetaData

from shared.adapters.orm import appointments_table, patient_profiles_table, user_directory_table

logger = logging.getLogger(__name__)

metadata = MetaData()

appointments = appointments_table(metadata)
Index("appointments_patient_active_idx", appointments.c.patient_user_id,
      postgresql_where=appointments.c.deleted_at.is_(None),
      sqlite_where=appointments.c.deleted_at.is_(None))

user_directory = user_directory_table(metadata)

patient_profiles = patient_profiles_table(metadata)


def create_tables(engine):
    logger.info("Creating appointment-service tables")
    metadata.create_all(engine)
