"""Redis event consumer for appointment service - keeps user and patient projections up to date."""

import sys

from appointment_service.adapters import orm
from appointment_service.service_layer import messagebus
from appointment_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.domain.topics import APPOINTMENT_SERVICE
from shared.entrypoints import projection_consumer


def main():
    return projection_consumer.run(APPOINTMENT_SERVICE, messagebus.handle, SqlAlchemyUnitOfWork, orm.create_tables)


if __name__ == "__main__":
    sys.exit(main())
