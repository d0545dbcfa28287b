from unittest.mock import MagicMock

import pytest
import socks

import iot_pubsub.protocols.mqtt.mqtt_protocol as mqtt_mod
from iot_pubsub.common.exception import (
    ProtocolConnectionError,
    ProtocolError,
    ProtocolTimeoutError,
    ProtocolValidationError,
)
from iot_pubsub.protocols.mqtt.mqtt_protocol import BrokerConfig, ClientConfig, MQTTProtocol, TLSConfig


def reason(is_failure=False, text="Success"):
    """paho ReasonCode 대용"""
    code = MagicMock(is_failure=is_failure)
    code.__str__.return_value = text
    return code


@pytest.fixture
def protocol_factory(monkeypatch):
    """
    BrokerConfig 인자와 client side_effect를 받아 MQTTProtocol을 만드는 팩토리 함수입니다.
    """

    def _factory(client_customizer=None, **broker_kwargs):
        mock_client = MagicMock()
        if client_customizer:
            client_customizer(mock_client)
        monkeypatch.setattr(mqtt_mod, "Client", lambda *a, **k: mock_client)
        broker_kwargs.setdefault("broker_address", "example-ats.iot.eu-central-1.amazonaws.com")
        broker_kwargs.setdefault("connect_timeout", 0.05)
        cfg = BrokerConfig(**broker_kwargs)
        return MQTTProtocol(cfg, ClientConfig(client_id="test-1")), mock_client

    return _factory


@pytest.fixture
def connected(protocol_factory):
    """CONNACK 을 즉시 돌려주는 연결된 프로토콜"""
    protocol, client = protocol_factory()
    client.loop_start.side_effect = lambda: protocol._on_connect(
        client, protocol.handler, MagicMock(session_present=False), reason(), None
    )
    protocol.connect()
    return protocol, client


def suback(protocol, client, *codes):
    """client.subscribe 호출 시 SUBACK 을 즉시 전달하도록 설정"""

    def _subscribe(topic, qos):
        protocol._on_subscribe(client, protocol.handler, 7, list(codes), None)
        return 0, 7

    client.subscribe.side_effect = _subscribe


@pytest.mark.unit
def test_client_creation_error(monkeypatch):
    """
    클라이언트 생성 실패 테스트
    """

    def mock_client_error(*args, **kwargs):
        raise ValueError("bad client id")

    monkeypatch.setattr(mqtt_mod, "Client", mock_client_error)

    with pytest.raises(ProtocolError):
        MQTTProtocol(BrokerConfig(broker_address="localhost"), ClientConfig())


@pytest.mark.unit
def test_client_created_with_session_options(monkeypatch):
    created = {}

    def capture(*args, **kwargs):
        created.update(kwargs, args=args)
        return MagicMock()

    monkeypatch.setattr(mqtt_mod, "Client", capture)
    protocol = MQTTProtocol(
        BrokerConfig(broker_address="localhost", transport="websockets"),
        ClientConfig(client_id="test-42", clean_session=False),
    )

    assert created["args"] == (mqtt_mod.CallbackAPIVersion.VERSION2,)
    assert created["client_id"] == "test-42"
    assert created["clean_session"] is False
    assert created["transport"] == "websockets"
    assert created["userdata"] is protocol.handler


@pytest.mark.unit
def test_mtls_configuration(protocol_factory):
    """
    TLS 설정이 paho tls_set 으로 전달되는지 확인합니다.
    """
    tls = TLSConfig(ca_file="root-CA.crt", cert="device.pem.crt", key="private.pem.key")
    _, client = protocol_factory(tls=tls)

    client.tls_set.assert_called_once_with(
        ca_certs="root-CA.crt", certfile="device.pem.crt", keyfile="private.pem.key"
    )
    client.ws_set_options.assert_not_called()
    client.proxy_set.assert_not_called()


@pytest.mark.unit
def test_plain_connection_skips_tls(protocol_factory):
    _, client = protocol_factory(tls=None)

    client.tls_set.assert_not_called()


@pytest.mark.unit
def test_websocket_and_proxy_configuration(protocol_factory):
    _, client = protocol_factory(
        tls=TLSConfig(),
        transport="websockets",
        websocket_path="/mqtt?X-Amz-Signature=abc",
        proxy_host="proxy.local",
        proxy_port=3128,
    )

    client.ws_set_options.assert_called_once_with(path="/mqtt?X-Amz-Signature=abc")
    client.proxy_set.assert_called_once_with(proxy_type=socks.HTTP, proxy_addr="proxy.local", proxy_port=3128)


@pytest.mark.unit
def test_tls_error(protocol_factory):
    """
    인증서 파일 오류 등 TLS 설정 실패 시 ProtocolError 가 발생하는지 확인합니다.
    """

    def customizer(client):
        client.tls_set.side_effect = FileNotFoundError("device.pem.crt")

    with pytest.raises(ProtocolError):
        protocol_factory(client_customizer=customizer, tls=TLSConfig(cert="device.pem.crt", key="k"))


@pytest.mark.unit
def test_enable_logger(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(mqtt_mod, "Client", lambda *a, **k: client)

    MQTTProtocol(BrokerConfig(broker_address="localhost"), ClientConfig(enable_logger=True))

    client.enable_logger.assert_called_once()


@pytest.mark.unit
def test_connect_success(connected):
    """
    연결 성공 테스트
    """
    protocol, client = connected

    assert protocol.is_connected is True
    client.connect.assert_called_once_with(
        host="example-ats.iot.eu-central-1.amazonaws.com", port=8883, keepalive=60, bind_address=""
    )
    client.loop_start.assert_called_once()


@pytest.mark.unit
def test_connect_socket_failure(protocol_factory):
    """
    소켓/TLS 오류로 연결에 실패하는 경우
    """
    protocol, client = protocol_factory()
    client.connect.side_effect = OSError("connection refused")

    with pytest.raises(ProtocolConnectionError):
        protocol.connect()
    client.loop_start.assert_not_called()


@pytest.mark.unit
def test_connect_refused_by_broker(protocol_factory):
    """
    브로커가 CONNACK 으로 연결을 거부하는 경우
    """
    protocol, client = protocol_factory()
    client.loop_start.side_effect = lambda: protocol._on_connect(
        client, protocol.handler, MagicMock(session_present=False), reason(True, "Not authorized"), None
    )

    with pytest.raises(ProtocolConnectionError, match="Not authorized"):
        protocol.connect()
    assert protocol.is_connected is False
    client.loop_stop.assert_called_once()
    client.disconnect.assert_called_once()


@pytest.mark.unit
def test_connect_timeout(protocol_factory):
    """
    CONNACK 이 오지 않으면 시간 초과로 실패하는지 확인합니다.
    """
    protocol, client = protocol_factory()

    with pytest.raises(ProtocolConnectionError, match="시간 초과"):
        protocol.connect()
    client.loop_stop.assert_called_once()
    client.disconnect.assert_called_once()


@pytest.mark.unit
def test_disconnect(connected):
    protocol, client = connected

    protocol.disconnect()

    client.disconnect.assert_called_once()
    client.loop_stop.assert_called_once()
    assert protocol.is_connected is False


@pytest.mark.unit
def test_disconnect_error_still_stops_loop(connected):
    protocol, client = connected
    client.disconnect.side_effect = RuntimeError("socket closed")

    protocol.disconnect()

    client.loop_stop.assert_called_once()


@pytest.mark.unit
def test_on_disconnect_updates_state(connected):
    protocol, client = connected

    protocol._on_disconnect(client, protocol.handler, MagicMock(), 0, None)

    assert protocol.is_connected is False


@pytest.mark.unit
def test_subscribe_success(connected):
    """
    SUBACK 수신 후 구독이 완료되는지 확인합니다.
    """
    protocol, client = connected
    suback(protocol, client, reason())
    callback = MagicMock()

    assert protocol.subscribe("test/topic", callback, qos=1) is True
    client.subscribe.assert_called_once_with("test/topic", 1)
    assert protocol._subscriptions == {"test/topic": [callback]}
    assert protocol._suback_results == {}


@pytest.mark.unit
def test_subscribe_rejected_by_broker(connected):
    protocol, client = connected
    suback(protocol, client, reason(True, "Unspecified error"))

    with pytest.raises(ProtocolValidationError):
        protocol.subscribe("test/topic", MagicMock(), qos=1)
    assert "test/topic" not in protocol._subscriptions


@pytest.mark.unit
def test_subscribe_request_failure(connected):
    protocol, client = connected
    client.subscribe.return_value = (4, None)

    with pytest.raises(ProtocolValidationError):
        protocol.subscribe("test/topic", MagicMock(), qos=1)
    assert protocol._subscriptions == {}


@pytest.mark.unit
def test_subscribe_invalid_topic(connected):
    protocol, client = connected
    client.subscribe.side_effect = ValueError("Invalid subscription filter")

    with pytest.raises(ProtocolValidationError):
        protocol.subscribe("bad/#/topic", MagicMock(), qos=1)
    assert protocol._subscriptions == {}


@pytest.mark.unit
def test_subscribe_timeout(connected):
    protocol, client = connected
    client.subscribe.return_value = (0, 3)

    with pytest.raises(ProtocolTimeoutError):
        protocol.subscribe("test/topic", MagicMock(), qos=1)
    assert protocol._subscriptions == {}


@pytest.mark.unit
def test_message_dispatch_with_wildcards(connected):
    """
    토픽 필터가 일치하는 콜백만 호출되는지 확인합니다.
    """
    protocol, client = connected
    suback(protocol, client, reason())
    exact, wildcard, other = MagicMock(), MagicMock(), MagicMock()
    protocol.subscribe("test/topic", exact)
    protocol.subscribe("test/#", wildcard)
    protocol.subscribe("other/topic", other)

    protocol._on_message(client, protocol.handler, MagicMock(topic="test/topic", payload=b"{}"))

    exact.assert_called_once_with("test/topic", b"{}")
    wildcard.assert_called_once_with("test/topic", b"{}")
    other.assert_not_called()


@pytest.mark.unit
def test_callback_error_does_not_stop_dispatch(connected):
    protocol, client = connected
    suback(protocol, client, reason())
    failing = MagicMock(side_effect=RuntimeError("boom"))
    second = MagicMock()
    protocol.subscribe("test/topic", failing)
    protocol.subscribe("test/topic", second)

    protocol._on_message(client, protocol.handler, MagicMock(topic="test/topic", payload=b"x"))

    second.assert_called_once_with("test/topic", b"x")


@pytest.mark.unit
def test_publish_success(connected):
    protocol, client = connected
    client.publish.return_value = MagicMock(rc=0, mid=1)

    assert protocol.publish("test/topic", b'{"sequence": 1}', qos=1) is True
    client.publish.assert_called_once_with("test/topic", b'{"sequence": 1}', 1, False)


@pytest.mark.unit
def test_publish_failure_code(connected):
    """
    paho 가 실패 코드를 반환하면 ProtocolError 가 발생하는지 확인합니다.
    """
    protocol, client = connected
    client.publish.return_value = MagicMock(rc=4, mid=1)

    with pytest.raises(ProtocolError):
        protocol.publish("test/topic", b"x", qos=1)


@pytest.mark.unit
def test_publish_exception(connected):
    protocol, client = connected
    client.publish.side_effect = ValueError("Invalid topic.")

    with pytest.raises(ProtocolError):
        protocol.publish("test/+", b"x", qos=1)
