"""Redis event consumer for doctor service - keeps its projections up to date."""

import sys

from doctor_service.adapters import orm
from doctor_service.service_layer import messagebus
from doctor_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.domain.topics import DOCTOR_SERVICE
from shared.entrypoints import projection_consumer


def main():
    return projection_consumer.run(DOCTOR_SERVICE, messagebus.handle, SqlAlchemyUnitOfWork, orm.create_tables)


if __name__ == "__main__":
    sys.exit(main())
