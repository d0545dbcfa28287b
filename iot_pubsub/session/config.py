import random
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from iot_pubsub.common.exception import ProtocolConfigurationError
from iot_pubsub.common.logger import VERBOSITY_LEVELS

DEFAULT_TOPIC = "test/topic"
DEFAULT_COUNT = 10
DEFAULT_MESSAGE = "Hello World!"
DEFAULT_SIGNING_REGION = "us-east-1"
DEFAULT_PROXY_PORT = 8080
DEFAULT_TIMEOUT = 60.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_INTERVAL = 1.0

MTLS_PORT = 8883
WEBSOCKET_PORT = 443


def random_client_id() -> str:
    """브로커 측 ID 충돌을 피하기 위한 임의 클라이언트 ID (test-<n>)"""
    return f"test-{random.randrange(100000000)}"


@dataclass(frozen=True)
class SessionConfig:
    """
    세션 실행 설정 (생성 이후 변경 불가)

    Attributes:
        endpoint (str): 브로커 엔드포인트 주소
        ca_file (Optional[str]): CA 인증서 경로
        cert (Optional[str]): 클라이언트 인증서 경로 (mTLS)
        key (Optional[str]): 클라이언트 개인 키 경로 (mTLS)
        client_id (str): 클라이언트 ID (기본값: test-<난수>)
        topic (str): 발행/구독 토픽
        count (int): 발행할 메시지 수
        use_websocket (bool): mTLS 대신 SigV4 서명 웹소켓 사용 여부
        signing_region (str): SigV4 서명 리전
        proxy_host (Optional[str]): HTTP 프록시 호스트 (웹소켓 전용)
        proxy_port (int): HTTP 프록시 포트
        message (str): 발행할 메시지 본문
        verbosity (str): 로그 레벨
        port (Optional[int]): 브로커 포트 (None 이면 8883 또는 443)
        timeout (float): 마지막 발행 이후 최종 에코 대기 시간(초)
        connect_timeout (float): 연결/구독 응답 대기 시간(초)
        interval (float): 발행 간격(초)
        clean_session (bool): 클린 세션 여부
    """

    endpoint: str
    ca_file: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None
    client_id: str = field(default_factory=random_client_id)
    topic: str = DEFAULT_TOPIC
    count: int = DEFAULT_COUNT
    use_websocket: bool = False
    signing_region: str = DEFAULT_SIGNING_REGION
    proxy_host: Optional[str] = None
    proxy_port: int = DEFAULT_PROXY_PORT
    message: str = DEFAULT_MESSAGE
    verbosity: str = "none"
    port: Optional[int] = None
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    interval: float = DEFAULT_INTERVAL
    clean_session: bool = False

    def __post_init__(self):
        validate(self)

    @property
    def broker_port(self) -> int:
        """실제 접속 포트"""
        if self.port is not None:
            return self.port
        return WEBSOCKET_PORT if self.use_websocket else MTLS_PORT

    @property
    def use_proxy(self) -> bool:
        return self.use_websocket and bool(self.proxy_host)

    @property
    def wait_timeout(self) -> float:
        """마지막 발행 시점까지의 시간 + 최종 에코 대기 시간"""
        return max(self.count - 1, 0) * self.interval + self.timeout


def _require_positive(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ProtocolConfigurationError(f"{name} 값은 양수여야 합니다: {value!r}")


def validate(config: SessionConfig) -> None:
    """
    세션 설정의 유효성을 검사합니다. 네트워크 동작은 하지 않습니다.

    Args:
        config (SessionConfig): 검사할 설정
    Raises:
        ProtocolConfigurationError: 설정이 올바르지 않은 경우
    """
    if not config.endpoint or not config.endpoint.strip():
        raise ProtocolConfigurationError("endpoint 는 필수입니다.")

    if not config.use_websocket:
        missing = [name for name in ("cert", "key") if not getattr(config, name)]
        if missing:
            raise ProtocolConfigurationError(
                f"웹소켓을 사용하지 않는 경우 {', '.join(missing)} 경로가 필요합니다."
            )
    elif not config.signing_region:
        raise ProtocolConfigurationError("웹소켓 사용 시 signing_region 이 필요합니다.")

    if isinstance(config.count, bool) or not isinstance(config.count, int) or config.count < 0:
        raise ProtocolConfigurationError(f"count 는 0 이상의 정수여야 합니다: {config.count!r}")

    if not config.client_id:
        raise ProtocolConfigurationError("client_id 가 비어 있습니다.")

    if not config.topic:
        raise ProtocolConfigurationError("topic 이 비어 있습니다.")

    if config.verbosity not in VERBOSITY_LEVELS:
        raise ProtocolConfigurationError(f"지원하지 않는 verbosity 값입니다: {config.verbosity}")

    if not 0 < config.proxy_port < 65536:
        raise ProtocolConfigurationError(f"proxy_port 범위 오류: {config.proxy_port}")

    if config.port is not None and not 0 < config.port < 65536:
        raise ProtocolConfigurationError(f"port 범위 오류: {config.port}")

    _require_positive("timeout", config.timeout)
    _require_positive("connect_timeout", config.connect_timeout)
    _require_positive("interval", config.interval)


def build_config(options: Mapping[str, Any]) -> SessionConfig:
    """
    파싱된 인자(dict-like)로부터 세션 설정을 생성합니다.
    값이 None 인 항목은 기본값을 사용합니다.

    Args:
        options: argparse Namespace 의 vars() 결과 등
    Returns:
        SessionConfig: 검증이 끝난 설정
    Raises:
        ProtocolConfigurationError: 설정이 올바르지 않은 경우
    """
    known = SessionConfig.__dataclass_fields__.keys()
    kwargs = {k: v for k, v in options.items() if k in known and v is not None}
    if "endpoint" not in kwargs:
        raise ProtocolConfigurationError("endpoint 는 필수입니다.")
    return SessionConfig(**kwargs)
