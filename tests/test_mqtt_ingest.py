"""Tests de ingesta MQTT de dataloggers.

Tests obligatorios:
1. Handler: topic → outcome → stats → reporte
2. Handler: ningún error escapa al loop de paho
3. Cliente MQTT: delegación de mensajes y callbacks de conexión
4. Reporter: diagnóstico con topic, payload y causa
5. Receptor: wiring desde Settings

Ejecutar:
    pytest tests/test_mqtt_ingest.py -v
"""

import logging
import os
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from common.config import Settings, get_settings
from datalogger_ingest.core.classification import classify
from datalogger_ingest.core.domain import (
    DataHandled,
    DecodeFailed,
    LogRow,
    MetadataHandled,
    TopicIdentity,
    Unclassified,
)
from datalogger_ingest.core.monitoring import DiagnosticReporter, Stats
from datalogger_ingest.core.pipeline import RecordDispatcher
from datalogger_ingest.core.receiver import DatalogReceiver
from datalogger_ingest.core.transport import MessageHandler, MQTTClient
from datalogger_ingest.infrastructure.persistence import TabularLogWriter
from datalogger_ingest.main import apply_overrides, build_parser


DATA_TOPIC = "cs/v1/data/CR310/12345/Table1"
METADATA_TOPIC = "cs/v1/metadata/CR310/12345/Table1"
DATA_PAYLOAD = (
    b'{"head":{"fields":[{"name":"BattV"},{"name":"PTemp"}]},'
    b'"data":[{"time":"2024-01-01T00:00:00Z","vals":[12.3,4.5]}]}'
)
METADATA_PAYLOAD = b'{"fields":{"key":[],"definitions":{"BattV":["Volts"]}}}'


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def table_path(tmp_path):
    return tmp_path / "Datalog" / "datalog.csv"


@pytest.fixture
def dispatcher(table_path) -> RecordDispatcher:
    return RecordDispatcher(TabularLogWriter(table_path))


@pytest.fixture
def reporter() -> MagicMock:
    return MagicMock(spec=DiagnosticReporter)


@pytest.fixture
def handler(dispatcher, reporter) -> MessageHandler:
    return MessageHandler(dispatcher, reporter)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        mqtt_broker_host="broker.local",
        mqtt_broker_port=8884,
        mqtt_transport="websockets",
        mqtt_ws_path="/mqtt",
        mqtt_use_tls=True,
        mqtt_username="subscriber",
        mqtt_password="secret",
        mqtt_topic="cs/v1/#",
        mqtt_qos=1,
        mqtt_client_id="test-subscriber",
        output_folder=str(tmp_path / "Datalog"),
        output_file="datalog.csv",
        log_level="INFO",
        stats_log_every=100,
    )


def _mqtt_message(topic: str, payload: bytes) -> MagicMock:
    msg = MagicMock()
    msg.topic = topic
    msg.payload = payload
    return msg


# =============================================================================
# TEST 1: HANDLER
# =============================================================================

class TestMessageHandler:

    def test_data_message(self, handler, reporter, table_path):
        outcome = handler.handle(DATA_TOPIC, DATA_PAYLOAD)

        assert isinstance(outcome, DataHandled)
        reporter.report.assert_called_once_with(outcome)
        assert table_path.exists()
        assert handler.stats.received == 1
        assert handler.stats.processed == 1
        assert handler.stats.data_records == 1

    def test_metadata_message(self, handler, reporter):
        outcome = handler.handle(METADATA_TOPIC, METADATA_PAYLOAD)

        assert isinstance(outcome, MetadataHandled)
        assert handler.stats.metadata_records == 1

    def test_unknown_message(self, handler, table_path):
        outcome = handler.handle("cs/v1/state/CR310/12345/statusInfo", b'{"x":1}')

        assert isinstance(outcome, Unclassified)
        assert outcome.topic == "cs/v1/state/CR310/12345/statusInfo"
        assert handler.stats.unclassified == 1
        assert not table_path.exists()

    def test_decode_failure_counts_as_failed(self, handler):
        outcome = handler.handle(DATA_TOPIC, b'{"data":[]}')

        assert isinstance(outcome, DecodeFailed)
        assert handler.stats.failed == 1
        assert handler.stats.decode_errors == 1

    def test_out_of_range_timestamp_is_reported(self, handler, reporter, table_path):
        payload = (
            b'{"head":{"fields":[{"name":"BattV"}]},'
            b'"data":[{"time":"9999-12-31T23:59:59-05:00","vals":[1]}]}'
        )

        outcome = handler.handle(DATA_TOPIC, payload)

        assert isinstance(outcome, DecodeFailed)
        assert outcome.raw_payload == payload.decode()
        reporter.report.assert_called_once_with(outcome)
        assert handler.stats.decode_errors == 1
        assert not table_path.exists()

    def test_messages_processed_in_order(self, handler, table_path):
        for _ in range(3):
            handler.handle(DATA_TOPIC, DATA_PAYLOAD)
        handler.handle(DATA_TOPIC, b"bad")
        handler.handle(DATA_TOPIC, DATA_PAYLOAD)

        with open(table_path, encoding="utf-8", newline="") as fh:
            lines = fh.read().split(os.linesep)[:-1]
        assert [line.split(",")[0] for line in lines[1:]] == ["1", "2", "3", "5"]
        assert handler.stats.received == 5


# =============================================================================
# TEST 2: AISLAMIENTO DE ERRORES
# =============================================================================

class TestErrorIsolation:

    def test_unexpected_error_does_not_escape(self, reporter):
        dispatcher = MagicMock()
        dispatcher.dispatch.side_effect = RuntimeError("boom")
        handler = MessageHandler(dispatcher, reporter)

        result = handler.handle(DATA_TOPIC, DATA_PAYLOAD)

        assert result is None
        assert handler.stats.failed == 1
        reporter.report.assert_not_called()

    def test_reporter_error_does_not_escape(self, dispatcher, reporter):
        reporter.report.side_effect = ValueError("render failed")
        handler = MessageHandler(dispatcher, reporter)

        assert handler.handle(DATA_TOPIC, DATA_PAYLOAD) is None
        assert handler.handle("other/topic", b"") is None
        assert handler.stats.received == 2

    def test_periodic_stats_log(self, dispatcher, reporter, caplog):
        handler = MessageHandler(dispatcher, reporter, stats_log_every=2)

        with caplog.at_level(logging.INFO):
            handler.handle("a", b"")
            handler.handle("b", b"")

        assert "[HANDLER] Stats: received=2" in caplog.text


# =============================================================================
# TEST 3: CLIENTE MQTT
# =============================================================================

class TestMQTTClient:

    def test_on_message_delegates_topic_and_payload(self):
        client = MQTTClient()
        callback = MagicMock()
        client.set_message_handler(callback)

        client._on_message(None, None, _mqtt_message(DATA_TOPIC, DATA_PAYLOAD))

        callback.assert_called_once_with(DATA_TOPIC, DATA_PAYLOAD)

    def test_on_message_without_handler(self):
        client = MQTTClient()

        client._on_message(None, None, _mqtt_message(DATA_TOPIC, DATA_PAYLOAD))

    def test_on_connect_subscribes_to_topic(self):
        client = MQTTClient(topic="cs/v1/#", qos=0)
        paho_client = MagicMock()

        client._on_connect(paho_client, None, {}, 0)

        assert client.is_connected is True
        paho_client.subscribe.assert_called_once_with("cs/v1/#", qos=0)

    def test_on_connect_failure(self):
        client = MQTTClient()
        paho_client = MagicMock()

        client._on_connect(paho_client, None, {}, 5)

        assert client.is_connected is False
        paho_client.subscribe.assert_not_called()

    def test_on_disconnect(self):
        client = MQTTClient()
        client._on_connect(MagicMock(), None, {}, 0)

        client._on_disconnect(None, None, {}, 0)

        assert client.is_connected is False

    def test_websocket_tls_client_options(self):
        client = MQTTClient(
            username="user",
            password="pw",
            transport="websockets",
            ws_path="/mqtt",
            use_tls=True,
        )

        with patch("datalogger_ingest.core.transport.mqtt_client.mqtt.Client") as factory:
            paho_client = client._create_client()

        assert factory.call_args.kwargs["transport"] == "websockets"
        paho_client.ws_set_options.assert_called_once_with(path="/mqtt")
        paho_client.tls_set.assert_called_once_with()
        paho_client.username_pw_set.assert_called_once_with("user", "pw")

    def test_connect_failure_returns_false(self):
        client = MQTTClient()

        with patch("datalogger_ingest.core.transport.mqtt_client.mqtt.Client") as factory:
            factory.return_value.connect.side_effect = OSError("refused")
            assert client.connect() is False


# =============================================================================
# TEST 4: REPORTER
# =============================================================================

class TestDiagnosticReporter:

    def test_data_report(self, dispatcher, caplog):
        outcome = dispatcher.dispatch(classify(DATA_TOPIC), DATA_PAYLOAD)

        with caplog.at_level(logging.INFO, logger="datalogger_ingest.report"):
            DiagnosticReporter().report(outcome)

        assert "[Data] Model: CR310, Serial: 12345, Table: Table1" in caplog.text
        assert "RecordNo: 1" in caplog.text
        assert "BattV: 12.3" in caplog.text
        assert "PTemp: 4.5" in caplog.text
        assert "Data successfully written" in caplog.text

    def test_metadata_report(self, caplog):
        outcome = MetadataHandled(
            identity=TopicIdentity.unknown(), definitions={"BattV": "Volts"}
        )

        with caplog.at_level(logging.INFO, logger="datalogger_ingest.report"):
            DiagnosticReporter().report(outcome)

        assert "Field: BattV (Type: Volts)" in caplog.text

    def test_unclassified_report_includes_topic_and_payload(self, caplog):
        outcome = Unclassified(topic="cs/v1/status/foo", raw_payload='{"up":true}')

        with caplog.at_level(logging.INFO, logger="datalogger_ingest.report"):
            DiagnosticReporter().report(outcome)

        assert "Unknown Message Received" in caplog.text
        assert "cs/v1/status/foo" in caplog.text
        assert '{"up":true}' in caplog.text

    def test_decode_failed_report_includes_cause_and_raw_payload(self, caplog):
        outcome = DecodeFailed(
            identity=TopicIdentity.unknown(),
            cause="JSON Parse Error (Data): head: Field required",
            raw_payload='{"data":[]}',
        )

        with caplog.at_level(logging.INFO, logger="datalogger_ingest.report"):
            DiagnosticReporter().report(outcome)

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert any("head: Field required" in r.getMessage() for r in errors)
        assert any('Raw Payload: {"data":[]}' in r.getMessage() for r in errors)

    def test_write_error_report(self, caplog):
        outcome = DataHandled(
            identity=classify(DATA_TOPIC),
            field_names=("BattV",),
            row=LogRow(9, datetime(2024, 1, 1), (12.5,)),
            write_error="CSV Write Error: denied",
        )

        with caplog.at_level(logging.INFO, logger="datalogger_ingest.report"):
            DiagnosticReporter().report(outcome)

        assert "CSV Write Error: denied" in caplog.text


# =============================================================================
# TEST 5: RECEPTOR / CONFIG / CLI
# =============================================================================

class TestReceiver:

    def test_build_handler_writes_to_configured_path(self, settings):
        receiver = DatalogReceiver(settings)
        handler = receiver.build_handler()

        handler.handle(DATA_TOPIC, DATA_PAYLOAD)

        assert settings.output_path.exists()
        assert receiver.stats["data_records"] == 1
        assert receiver.stats["output_path"] == str(settings.output_path)

    def test_start_configures_mqtt_client(self, settings):
        receiver = DatalogReceiver(settings)

        with patch("datalogger_ingest.core.receiver.MQTTClient") as client_cls:
            client_cls.return_value.connect.return_value = True
            assert receiver.start() is True

        kwargs = client_cls.call_args.kwargs
        assert kwargs["broker_host"] == "broker.local"
        assert kwargs["broker_port"] == 8884
        assert kwargs["transport"] == "websockets"
        assert kwargs["use_tls"] is True
        assert kwargs["topic"] == "cs/v1/#"
        client_cls.return_value.set_message_handler.assert_called_once()
        assert receiver.is_running is True

        receiver.stop()
        client_cls.return_value.disconnect.assert_called_once()
        assert receiver.is_running is False

    def test_start_fails_when_mqtt_does_not_connect(self, settings):
        receiver = DatalogReceiver(settings)

        with patch("datalogger_ingest.core.receiver.MQTTClient") as client_cls:
            client_cls.return_value.connect.return_value = False
            assert receiver.start() is False

        assert receiver.is_running is False

    def test_health_check_not_initialized(self, settings):
        assert DatalogReceiver(settings).health_check()["healthy"] is False


class TestConfig:

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MQTT_BROKER_HOST", "hivemq.example")
        monkeypatch.setenv("MQTT_BROKER_PORT", "8884")
        monkeypatch.setenv("MQTT_TRANSPORT", "WebSockets")
        monkeypatch.setenv("MQTT_USE_TLS", "true")
        monkeypatch.setenv("DATALOG_OUTPUT_FOLDER", "out")

        settings = get_settings(str(tmp_path / "missing.env"))

        assert settings.mqtt_broker_host == "hivemq.example"
        assert settings.mqtt_broker_port == 8884
        assert settings.mqtt_transport == "websockets"
        assert settings.mqtt_use_tls is True
        assert str(settings.output_path) == os.path.join("out", "datalog.csv")

    def test_env_file_is_loaded(self, monkeypatch, tmp_path):
        monkeypatch.delenv("MQTT_TOPIC", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("MQTT_TOPIC=cs/v1/data/#\n", encoding="utf-8")

        try:
            settings = get_settings(str(env_file))
        finally:
            os.environ.pop("MQTT_TOPIC", None)

        assert settings.mqtt_topic == "cs/v1/data/#"

    def test_defaults(self, monkeypatch, tmp_path):
        for name in ("MQTT_TOPIC", "DATALOG_OUTPUT_FOLDER", "DATALOG_OUTPUT_FILE", "MQTT_USERNAME"):
            monkeypatch.delenv(name, raising=False)

        settings = get_settings(str(tmp_path / "missing.env"))

        assert settings.mqtt_topic == "#"
        assert settings.output_folder == "Datalog"
        assert settings.output_file == "datalog.csv"
        assert settings.mqtt_username is None


class TestCli:

    def test_overrides(self, settings):
        args = build_parser().parse_args(
            ["--output-folder", "x", "--topic", "cs/#", "--log-level", "debug"]
        )

        result = apply_overrides(settings, args)

        assert result.output_folder == "x"
        assert result.output_file == "datalog.csv"
        assert result.mqtt_topic == "cs/#"
        assert result.log_level == "DEBUG"

    def test_no_overrides_keeps_settings(self, settings):
        args = build_parser().parse_args([])

        assert apply_overrides(settings, args) == settings


class TestStats:

    def test_success_rate(self):
        stats = Stats(processed=3, failed=1)

        assert stats.to_dict()["success_rate"] == 0.75

    def test_reset(self):
        stats = Stats(received=4, processed=2, failed=2, decode_errors=2)
        stats.reset()

        assert stats.to_dict()["received"] == 0
        assert stats.decode_errors == 0
