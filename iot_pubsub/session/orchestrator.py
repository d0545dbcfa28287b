import logging
import threading
import time
from enum import Enum
from typing import Optional

from iot_pubsub.common.exception import ProtocolDecodeError
from iot_pubsub.common.logger import is_trace
from iot_pubsub.interfaces.protocol import PubSubProtocol
from iot_pubsub.protocols.mqtt.mqtt_protocol import BrokerConfig, ClientConfig, MQTTProtocol, TLSConfig
from iot_pubsub.protocols.mqtt.websocket import load_credentials, presign_path
from iot_pubsub.session.completion import CompletionSignal
from iot_pubsub.session.config import SessionConfig
from iot_pubsub.session.message import Message

QOS_AT_LEAST_ONCE = 1


class SessionState(Enum):
    CONNECTING = "connecting"
    SUBSCRIBING = "subscribing"
    PUBLISHING = "publishing"
    TERMINATING = "terminating"


def create_protocol(config: SessionConfig) -> MQTTProtocol:
    """
    세션 설정으로부터 MQTT 연결 객체를 생성합니다. (네트워크 동작 없음)

    - use_websocket=False: cert/key 기반 mTLS
    - use_websocket=True: SigV4 서명 웹소켓 + 선택적 HTTP 프록시
    """
    tls = TLSConfig(ca_file=config.ca_file)
    broker_config = BrokerConfig(
        broker_address=config.endpoint,
        port=config.broker_port,
        connect_timeout=config.connect_timeout,
        tls=tls,
    )

    if config.use_websocket:
        credentials = load_credentials()
        broker_config.transport = "websockets"
        broker_config.websocket_path = presign_path(config.endpoint, config.signing_region, credentials)
        if config.use_proxy:
            broker_config.proxy_host = config.proxy_host
            broker_config.proxy_port = config.proxy_port
    else:
        tls.cert = config.cert
        tls.key = config.key

    client_config = ClientConfig(
        client_id=config.client_id,
        clean_session=config.clean_session,
        enable_logger=is_trace(config.verbosity),
    )
    return MQTTProtocol(broker_config, client_config)


class SessionOrchestrator:
    """
    연결 -> 구독 -> 주기 발행/수신 -> 종료 순서로 한 번의 세션을 실행합니다.

    발행은 하나의 발행 스레드가 루프 진입 시점을 기준으로 sequence 마다
    (sequence - 1) * interval 초 뒤에 수행하며, 이전 발행이 늦어져도 이후 발행
    시점은 밀리지 않습니다.
    sequence == count 인 메시지를 수신하면 세션이 성공으로 완료됩니다.
    """

    def __init__(self, config: SessionConfig, protocol: PubSubProtocol):
        self.config = config
        self.protocol = protocol
        self.signal = CompletionSignal()
        self.state: Optional[SessionState] = None
        self.published: list[int] = []
        self.received: list[Message] = []
        self._publisher: Optional[threading.Thread] = None
        self._connected = False

    def run(self) -> None:
        """
        세션을 실행하고 완료될 때까지 대기합니다.

        Raises:
            ProtocolConnectionError: 연결 실패
            ProtocolValidationError: 구독 실패
            ProtocolDecodeError: 수신 페이로드 디코딩 실패
            ProtocolTimeoutError: 제한 시간 안에 마지막 에코를 받지 못한 경우
            ProtocolError: 발행 실패
        """
        try:
            self.state = SessionState.CONNECTING
            self.protocol.connect()
            self._connected = True

            self.state = SessionState.SUBSCRIBING
            self.protocol.subscribe(self.config.topic, self._handle_message, qos=QOS_AT_LEAST_ONCE)

            self.state = SessionState.PUBLISHING
            if self.config.count == 0:
                # 에코로 완료될 수 없으므로 구독 직후 종료
                logging.info("발행할 메시지가 없어 세션을 종료합니다.")
                self.signal.resolve()
            else:
                self._schedule_publishes()
        except Exception as e:
            logging.error(f"세션 실패 ({self.state.value}): {e}")
            self.signal.reject(e)

        try:
            self.signal.wait(self.config.wait_timeout)
        finally:
            self._terminate()

    def _schedule_publishes(self):
        self._publisher = threading.Thread(
            target=self._publish_loop, args=(time.monotonic(),), name="session-publisher", daemon=True
        )
        self._publisher.start()
        logging.debug(f"{self.config.count}개의 발행 예약 완료")

    def _publish_loop(self, start: float):
        for sequence in range(1, self.config.count + 1):
            # 이전 발행 완료 시점이 아닌 루프 진입 시점 기준 오프셋
            delay = start + (sequence - 1) * self.config.interval - time.monotonic()
            if delay > 0 and self.signal.wait_for_set(delay):
                return
            self._publish(sequence)

    def _publish(self, sequence: int):
        if self.signal.is_set:
            return

        message = Message(message=self.config.message, sequence=sequence)
        try:
            self.protocol.publish(self.config.topic, message.to_bytes(), qos=QOS_AT_LEAST_ONCE)
        except Exception as e:
            logging.error(f"발행 실패 (sequence={sequence}): {e}")
            self.signal.reject(e)
            return

        self.published.append(sequence)
        logging.info(f"발행 완료: {self.config.topic} (sequence={sequence})")

    def _handle_message(self, topic: str, payload: bytes):
        print(f"Publish received on topic {topic}")
        print(payload.decode("utf-8", errors="replace"))

        try:
            message = Message.from_bytes(payload)
        except ProtocolDecodeError as e:
            logging.error(f"수신 메시지 디코딩 실패 - {topic}: {e}")
            self.signal.reject(e)
            return

        self.received.append(message)
        if message.sequence == self.config.count:
            if self.signal.resolve():
                logging.info(f"마지막 메시지 수신 (sequence={message.sequence}), 세션 완료")

    def _terminate(self):
        self.state = SessionState.TERMINATING
        # 실행 중인 발행이 끝난 뒤에 연결을 해제
        if self._publisher is not None:
            self._publisher.join(self.config.connect_timeout)

        if self._connected:
            self.protocol.disconnect()
            self._connected = False


def execute_session(config: SessionConfig, protocol: Optional[PubSubProtocol] = None) -> SessionOrchestrator:
    """
    세션을 한 번 실행합니다.

    Args:
        config: 검증된 세션 설정
        protocol: 사용할 연결 객체 (None 이면 설정으로부터 MQTT 연결 생성)
    Returns:
        SessionOrchestrator: 완료된 세션 (발행/수신 기록 포함)
    Raises:
        ProtocolError: 세션 실패 원인
    """
    if protocol is None:
        protocol = create_protocol(config)

    session = SessionOrchestrator(config, protocol)
    session.run()
    return session
