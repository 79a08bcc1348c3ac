"""Redis event consumer for admin service - mirrors every topic into the admin read models."""

import sys

from admin_service.adapters import orm
from admin_service.service_layer import messagebus
from admin_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.domain.topics import ADMIN_SERVICE
from shared.entrypoints import projection_consumer


def main():
    return projection_consumer.run(ADMIN_SERVICE, messagebus.handle, SqlAlchemyUnitOfWork, orm.create_tables)


if __name__ == "__main__":
    sys.exit(main())
