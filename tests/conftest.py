# pylint: disable=redefined-outer-name
import fakeredis
import pytest
from sqlalchemy import MetaData, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def sqlite_session_factory(*metadatas):
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    for metadata in metadatas:
        metadata.create_all(engine)
    return sessionmaker(bind=engine)


class FakePublisher:
    """Collects events the message bus flushes instead of sending them."""

    def __init__(self):
        self.published = []

    def publish_event(self, event, key=None):
        self.published.append(event)

    @property
    def types(self):
        return [event.TYPE for event in self.published]

    def of_type(self, event_type):
        return [event for event in self.published if event.TYPE == event_type]


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def fake_redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client_factory(fake_redis_server):
    """Stands in for redis.Redis(...): every client talks to the same fake server."""
    def factory(**kwargs):
        return fakeredis.FakeRedis(server=fake_redis_server, decode_responses=True)
    return factory


@pytest.fixture
def doctor_session_factory():
    from doctor_service.adapters import orm
    return sqlite_session_factory(orm.metadata)


@pytest.fixture
def appointment_session_factory():
    from appointment_service.adapters import orm
    return sqlite_session_factory(orm.metadata)


@pytest.fixture
def legacy_appointment_session_factory():
    """Appointment store from before start/end columns existed."""
    from shared.adapters.orm import appointments_table, patient_profiles_table, user_directory_table
    legacy = MetaData()
    appointments_table(legacy, with_time_columns=False)
    user_directory_table(legacy)
    patient_profiles_table(legacy)
    return sqlite_session_factory(legacy)


@pytest.fixture
def admin_session_factory():
    from admin_service.adapters import orm
    return sqlite_session_factory(orm.metadata)


@pytest.fixture
def patient_session_factory():
    from patient_service.adapters import orm
    return sqlite_session_factory(orm.metadata)


@pytest.fixture
def doctor_uow(doctor_session_factory):
    from doctor_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
    return lambda: SqlAlchemyUnitOfWork(doctor_session_factory)


@pytest.fixture
def admin_uow(admin_session_factory):
    from admin_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
    return lambda: SqlAlchemyUnitOfWork(admin_session_factory)


@pytest.fixture
def patient_uow(patient_session_factory):
    from patient_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
    return lambda: SqlAlchemyUnitOfWork(patient_session_factory)


@pytest.fixture
def booking_guard():
    from appointment_service.service_layer.booking_guard import BookingConflictGuard
    return BookingConflictGuard()


@pytest.fixture
def appointment_uow(appointment_session_factory, booking_guard):
    from appointment_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
    return lambda: SqlAlchemyUnitOfWork(appointment_session_factory, booking_guard=booking_guard)
