"""Unit tests for the projection consumer entrypoint and applier."""
from unittest.mock import Mock, patch

from shared.domain import events
from shared.domain.topics import CONSUMES, DOCTOR_SERVICE, USER_EVENTS_TOPIC
from shared.entrypoints import projection_consumer
from shared.service_layer.projections import ProjectionApplier


class TestProjectionApplier:
    def test_resolves_payload_and_dispatches(self):
        """Known events reach the service bus with a fresh unit of work."""
        handle = Mock(return_value=["ok"])
        uow = Mock()
        publisher = Mock()
        applier = ProjectionApplier(handle, lambda: uow, publisher)

        assert applier(USER_EVENTS_TOPIC, {"type": "USER_CREATED", "id": "u1", "role": "doctor"}) == ["ok"]

        event, passed_uow, passed_publisher = handle.call_args[0]
        assert event == events.UserCreated(id="u1", role="doctor")
        assert passed_uow is uow
        assert passed_publisher is publisher

    def test_unknown_type_is_dropped(self):
        handle = Mock()
        applier = ProjectionApplier(handle, Mock())
        assert applier(USER_EVENTS_TOPIC, {"type": "USER_RENAMED", "id": "u1"}) is None
        handle.assert_not_called()


class TestStartProjections:
    def test_subscribes_service_group_to_its_topics(self):
        bus = Mock()
        projection_consumer.start_projections(DOCTOR_SERVICE, Mock(), Mock(), bus, autostart=False)

        group, topics, applier = bus.consume.call_args[0]
        assert group == "doctor-service-projections"
        assert topics == CONSUMES[DOCTOR_SERVICE]
        assert isinstance(applier, ProjectionApplier)
        assert bus.consume.call_args[1] == {"autostart": False}


class TestRun:
    @patch("shared.entrypoints.projection_consumer.MessageBusClient")
    @patch("shared.entrypoints.projection_consumer.create_engine")
    def test_exits_when_bus_is_unreachable(self, mock_engine, mock_client):
        """Without a broker the standalone consumer has nothing to do."""
        mock_client.return_value.consume.return_value = None
        create_tables = Mock()

        assert projection_consumer.run(DOCTOR_SERVICE, Mock(), Mock(), create_tables) == 1
        create_tables.assert_called_once_with(mock_engine.return_value)
        mock_client.return_value.close.assert_called_once()

    @patch("shared.entrypoints.projection_consumer.signal")
    @patch("shared.entrypoints.projection_consumer.MessageBusClient")
    @patch("shared.entrypoints.projection_consumer.create_engine")
    def test_runs_consumer_in_foreground(self, mock_engine, mock_client, mock_signal):
        consumer = Mock(topics=CONSUMES[DOCTOR_SERVICE])
        mock_client.return_value.consume.return_value = consumer

        assert projection_consumer.run(DOCTOR_SERVICE, Mock(), Mock(), Mock()) == 0
        consumer.run.assert_called_once()
        mock_client.return_value.close.assert_called_once()
