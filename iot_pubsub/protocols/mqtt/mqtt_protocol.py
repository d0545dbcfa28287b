from paho.mqtt.client import Client, CallbackAPIVersion, MQTT_ERR_SUCCESS, error_string, topic_matches_sub
from uuid import uuid4
from dataclasses import dataclass, field

import threading
from typing import Optional, Callable
import logging
import socks

from iot_pubsub.interfaces.protocol import PubSubProtocol
from iot_pubsub.common.exception import (
    ProtocolConnectionError,
    ProtocolValidationError,
    ProtocolTimeoutError,
    ProtocolError,
)


@dataclass
class TLSConfig:
    """
    TLS 설정

    Attributes:
        ca_file (Optional[str]): CA 인증서 경로 (None 이면 시스템 기본 CA)
        cert (Optional[str]): 클라이언트 인증서 경로 (mTLS)
        key (Optional[str]): 클라이언트 개인 키 경로 (mTLS)
    """

    ca_file: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None


@dataclass
class BrokerConfig:
    """
    MQTT 브로커 설정

    Attributes:
        broker_address (str): MQTT 브로커 주소
        port (int): 포트 번호 (기본값: 8883)
        keepalive (int): Keepalive 시간 (기본값: 60초)
        bind_address (Optional[str]): 로컬 바인드 주소
        connect_timeout (float): CONNACK/SUBACK 대기 시간 (기본값: 10초)
        transport (str): "tcp" 또는 "websockets"
        websocket_path (Optional[str]): 웹소켓 요청 경로 (서명 포함)
        tls (Optional[TLSConfig]): TLS 설정 (None 이면 평문 연결)
        proxy_host (Optional[str]): HTTP 프록시 호스트
        proxy_port (int): HTTP 프록시 포트
    """

    broker_address: str
    port: int = 8883
    keepalive: int = 60
    bind_address: Optional[str] = None
    connect_timeout: float = 10.0
    transport: str = "tcp"
    websocket_path: Optional[str] = None
    tls: Optional[TLSConfig] = None
    proxy_host: Optional[str] = None
    proxy_port: int = 8080


@dataclass
class ClientConfig:
    """
    MQTT 클라이언트 설정

    Attributes:
        client_id (str): 클라이언트 ID (기본값: 자동 생성)
        clean_session (bool): 클린 세션 여부 (기본값: False)
        enable_logger (bool): paho 내부 로그 출력 여부 (기본값: False)
    """

    client_id: str = field(default_factory=lambda: f"mqtt-{uuid4().hex}")
    clean_session: bool = False
    enable_logger: bool = False


class MQTTProtocol(PubSubProtocol):
    """paho-mqtt 기반 MQTT 프로토콜 구현"""

    def __init__(self, broker_config: BrokerConfig, client_config: ClientConfig):
        self.broker_config = broker_config
        self.client_config = client_config
        self.handler = self.MQTTHandler(parent=self, client_id=self.client_config.client_id)

        try:
            self.client = Client(
                CallbackAPIVersion.VERSION2,
                client_id=self.client_config.client_id,
                clean_session=self.client_config.clean_session,
                userdata=self.handler,
                transport=self.broker_config.transport,
            )
        except Exception as e:
            logging.error(f"MQTT 클라이언트 생성 실패: {e}")
            raise ProtocolError(f"MQTT 클라이언트 생성 실패: {e}") from e

        # 구독 정보 저장용 딕셔너리 - 토픽 필터별 콜백 리스트
        self._subscriptions: dict[str, list[Callable]] = {}
        self._subscriptions_lock = threading.Lock()

        self._configure_transport()

        if self.client_config.enable_logger:
            self.client.enable_logger(logging.getLogger("paho.mqtt"))

        # 콜백 설정
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message
        self.client.on_subscribe = self._on_subscribe

        # 연결 상태 플래그
        self._is_connected = False
        self._connected_event = threading.Event()
        self._connect_error: Optional[str] = None
        self._loop_started = False

        # SUBACK 결과 (mid -> reason code 리스트)
        self._suback_results: dict[int, list] = {}
        self._suback_cond = threading.Condition()

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._is_connected

    def _configure_transport(self):
        """TLS, 웹소켓 경로, 프록시 설정"""
        config = self.broker_config
        try:
            if config.tls is not None:
                self.client.tls_set(
                    ca_certs=config.tls.ca_file,
                    certfile=config.tls.cert,
                    keyfile=config.tls.key,
                )
            if config.transport == "websockets" and config.websocket_path:
                self.client.ws_set_options(path=config.websocket_path)
            if config.proxy_host:
                self.client.proxy_set(
                    proxy_type=socks.HTTP,
                    proxy_addr=config.proxy_host,
                    proxy_port=config.proxy_port,
                )
        except Exception as e:
            logging.error(f"[{self.client_config.client_id}] 전송 계층 설정 실패: {e}")
            raise ProtocolError(f"전송 계층 설정 실패: {e}") from e

    class MQTTHandler:
        """
        MQTT 핸들러 클래스
        - 연결, 메시지 수신, 구독 응답 처리를 담당
        """

        def __init__(self, client_id: str, parent: "MQTTProtocol"):
            self.parent = parent
            self.client_id = client_id

        def handle_connect(self, session_present: bool):
            """
            연결 이벤트 핸들링
            Args:
                session_present: 브로커에 기존 세션이 남아 있었는지 여부
            """
            self.parent._is_connected = True
            self.parent._connect_error = None
            logging.info(f"[{self.client_id}] MQTT 연결 성공")

            if session_present:
                logging.info(f"[{self.client_id}] 기존 세션 복원되었습니다.")
            else:
                logging.info(f"[{self.client_id}] 새로운 세션으로 연결되었습니다.")
            self.parent._connected_event.set()

        def handle_connect_failure(self, reason: str):
            """
            연결 거부 시 핸들링
            Args:
                reason: CONNACK 거부 사유
            """
            self.parent._is_connected = False
            self.parent._connect_error = reason
            logging.error(f"[{self.client_id}] MQTT 연결 실패 ({reason})")
            self.parent._connected_event.set()

        def handle_disconnect(self, reason_code):
            """
            연결 해제 이벤트 핸들링
            Args:
                reason_code: 연결 해제 사유 코드 (0 이면 정상 종료)
            """
            self.parent._is_connected = False
            if reason_code == 0:
                logging.info(f"[{self.client_id}] 정상적으로 연결이 종료되었습니다.")
            else:
                logging.warning(f"[{self.client_id}] 예기치 않은 연결 종료 ({reason_code})")

        def handle_message(self, topic: str, payload: bytes):
            """
            메시지 수신 시 토픽 필터가 일치하는 콜백을 호출

            Args:
                topic (str): 수신한 메시지의 토픽
                payload (bytes): 수신한 메시지의 페이로드
            """
            with self.parent._subscriptions_lock:
                callbacks = [
                    callback
                    for topic_filter, registered in self.parent._subscriptions.items()
                    if topic_matches_sub(topic_filter, topic)
                    for callback in registered
                ]

            for callback in callbacks:
                try:
                    callback(topic, payload)
                except Exception as e:
                    logging.error(f"[{self.client_id}] {topic} 콜백 실행 중 오류 발생: {e}")

        def handle_subscribe(self, mid: int, reason_codes: list):
            """
            구독 응답(SUBACK) 결과 저장
            Args:
                mid: 구독 요청 메시지 ID
                reason_codes: 토픽별 부여 QoS 또는 거부 코드
            """
            logging.debug(f"[{self.client_id}] SUBACK 수신 (mid={mid}, {reason_codes})")
            with self.parent._suback_cond:
                self.parent._suback_results[mid] = list(reason_codes)
                self.parent._suback_cond.notify_all()

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            userdata.handle_connect_failure(reason=str(reason_code))
        else:
            userdata.handle_connect(session_present=flags.session_present)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        userdata.handle_disconnect(reason_code=reason_code)

    def _on_message(self, client, userdata, msg):
        userdata.handle_message(topic=msg.topic, payload=msg.payload)

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties):
        userdata.handle_subscribe(mid=mid, reason_codes=reason_code_list)

    def connect(self) -> bool:
        """
        MQTT 브로커 연결
        CONNACK 을 받을 때까지 connect_timeout 만큼 대기합니다.

        Returns:
            bool: 연결 성공 여부
        Raises:
            ProtocolConnectionError: 소켓/TLS 오류, 연결 거부, 시간 초과
        """
        client_id = self.client_config.client_id
        self._connected_event.clear()
        self._connect_error = None

        logging.info(
            f"[{client_id}] 브로커 연결 시도: {self.broker_config.broker_address}:{self.broker_config.port} "
            f"({self.broker_config.transport})"
        )
        try:
            self.client.connect(
                host=self.broker_config.broker_address,
                port=self.broker_config.port,
                keepalive=self.broker_config.keepalive,
                bind_address=self.broker_config.bind_address or "",
            )
        except Exception as e:
            raise ProtocolConnectionError(f"브로커 연결 실패: {e}") from e

        self.client.loop_start()
        self._loop_started = True

        if not self._connected_event.wait(self.broker_config.connect_timeout):
            self._abort_connect()
            raise ProtocolConnectionError("연결 시간 초과")

        if self._connect_error is not None:
            self._abort_connect()
            raise ProtocolConnectionError(f"브로커가 연결을 거부했습니다: {self._connect_error}")

        return True

    def disconnect(self):
        """
        MQTT 브로커 연결 해제 및 네트워크 루프 종료
        """
        try:
            self.client.disconnect()
        except Exception as e:
            logging.warning(f"[{self.client_config.client_id}] 연결 해제 중 오류: {e}")
        finally:
            self._stop_loop()
            self._is_connected = False

    def _abort_connect(self):
        """CONNACK 대기 실패 시 열린 소켓을 닫고 네트워크 루프를 종료"""
        try:
            self.client.disconnect()
        except Exception as e:
            logging.debug(f"[{self.client_config.client_id}] 연결 중단 중 오류: {e}")
        finally:
            self._stop_loop()
            self._is_connected = False

    def _stop_loop(self):
        if self._loop_started:
            self.client.loop_stop()
            self._loop_started = False

    def publish(self, topic: str, message: bytes, qos: int = 0, retain: bool = False) -> bool:
        """
        메시지 발행

        Args:
            topic (str): 발행할 토픽
            message (bytes | str): 발행할 메시지
            qos (int): QoS 레벨 (0, 1, 2)
            retain (bool): Retain 플래그
        Returns:
            bool: 발행 요청이 큐에 들어가면 True
        Raises:
            ProtocolError: 발행 요청이 거부된 경우
        """
        try:
            result = self.client.publish(topic, message, qos, retain)
        except Exception as e:
            raise ProtocolError(f"[{self.client_config.client_id}] 발행 오류 - {topic}: {e}") from e

        if result.rc != MQTT_ERR_SUCCESS:
            raise ProtocolError(
                f"[{self.client_config.client_id}] 발행 실패 - {topic}: {error_string(result.rc)}"
            )
        logging.debug(f"[{self.client_config.client_id}] 발행 요청 완료 - {topic} (mid={result.mid})")
        return True

    def subscribe(self, topic: str, callback: Callable[[str, bytes], None], qos: int = 0) -> bool:
        """
        토픽 구독
        SUBACK 을 받을 때까지 connect_timeout 만큼 대기합니다.

        Raises:
            ProtocolValidationError: 구독 요청 실패 또는 브로커 거부
            ProtocolTimeoutError: SUBACK 대기 시간 초과
        """
        client_id = self.client_config.client_id
        with self._subscriptions_lock:
            self._subscriptions.setdefault(topic, []).append(callback)

        try:
            result, mid = self.client.subscribe(topic, qos)
            if result != MQTT_ERR_SUCCESS:
                raise ProtocolValidationError(f"[{client_id}] 구독 실패: {error_string(result)}")

            with self._suback_cond:
                received = self._suback_cond.wait_for(
                    lambda: mid in self._suback_results, self.broker_config.connect_timeout
                )
                reason_codes = self._suback_results.pop(mid, [])
            if not received:
                raise ProtocolTimeoutError(f"[{client_id}] 구독 응답 시간 초과: {topic}")

            rejected = [code for code in reason_codes if code.is_failure]
            if rejected:
                raise ProtocolValidationError(f"[{client_id}] 브로커가 구독을 거부했습니다: {rejected}")
        except ProtocolError:
            # 실패 시 콜백 제거
            self._remove_callback(topic, callback)
            raise
        except Exception as e:
            self._remove_callback(topic, callback)
            raise ProtocolValidationError(f"[{client_id}] 구독 오류: {e}") from e

        logging.info(f"[{client_id}] 구독 완료: {topic} (QoS {qos})")
        return True

    def _remove_callback(self, topic: str, callback: Callable[[str, bytes], None]):
        with self._subscriptions_lock:
            callbacks = self._subscriptions.get(topic)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscriptions[topic]
