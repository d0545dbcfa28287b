"""
IoT Pub/Sub Session

관리형 MQTT 브로커에 연결하여 토픽을 구독하고, JSON 메시지를 순차 발행한 뒤
마지막 에코를 수신하면 종료하는 명령행 도구
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"
__description__ = "MQTT 발행/구독 에코 세션 CLI"

from iot_pubsub.common.exception import (
    ProtocolAuthenticationError,
    ProtocolConfigurationError,
    ProtocolConnectionError,
    ProtocolDecodeError,
    ProtocolError,
    ProtocolTimeoutError,
    ProtocolValidationError,
)
from iot_pubsub.interfaces.protocol import BaseProtocol, PubSubProtocol

__all__ = [
    "BaseProtocol",
    "PubSubProtocol",
    "ProtocolError",
    "ProtocolConnectionError",
    "ProtocolValidationError",
    "ProtocolTimeoutError",
    "ProtocolDecodeError",
    "ProtocolAuthenticationError",
    "ProtocolConfigurationError",
    "__version__",
    "__license__",
    "__description__",
]
