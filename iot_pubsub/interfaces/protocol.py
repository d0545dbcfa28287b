from typing import Callable
from abc import ABC, abstractmethod


class BaseProtocol(ABC):
    """통신 프로토콜의 공통 동작(connect/disconnect)을 정의한 추상 기반 클래스입니다."""

    @abstractmethod
    def connect(self) -> bool:
        """브로커와의 네트워크 연결을 시도합니다.

        연결이 완료(CONNACK 수신)될 때까지 블록되며, 이 메서드가 반환되기
        전에는 publish/subscribe 호출이 발생하지 않아야 합니다.

        Returns:
            bool: 연결에 성공하면 True를 반환합니다.

        Raises:
            ProtocolConnectionError: 연결에 실패한 경우
        """
        pass

    @abstractmethod
    def disconnect(self):
        """현재 활성화된 연결을 종료합니다."""
        pass


class PubSubProtocol(BaseProtocol):
    """발행/구독(Pub/Sub) 기반 통신 프로토콜을 위한 추상 인터페이스입니다.

    세션 오케스트레이터는 이 인터페이스만을 사용하며, 프레이밍, 재전송,
    TLS 등의 세부 사항은 구현체에 위임됩니다. 수신 콜백은 연결이 유지되는
    동안 발행 작업과 동시에 0회 이상 호출될 수 있습니다.
    """

    @abstractmethod
    def publish(self, topic: str, message: bytes, qos: int = 0, retain: bool = False) -> bool:
        """특정 토픽에 메시지를 발행(Publish)합니다.

        Args:
            topic (str): 발행할 토픽 이름
            message (bytes): 전송할 메시지
            qos (int, optional): 메시지 전송 보장 수준 (0, 1, 2 중 선택)
            retain (bool, optional): Retain 플래그 (기본값: False)

        Returns:
            bool: 발행 성공 시 True

        Raises:
            ProtocolError: 발행 요청이 거부된 경우
        """
        pass

    @abstractmethod
    def subscribe(self, topic: str, callback: Callable[[str, bytes], None], qos: int = 0) -> bool:
        """지정된 토픽을 구독하고, 메시지 수신 시 콜백 함수를 호출합니다.

        구독 응답(SUBACK)을 받을 때까지 블록됩니다.

        Args:
            topic (str): 구독 대상 토픽 이름
            callback (Callable[[str, bytes], None]):
                - 메시지 수신 시 호출될 함수
                - 인자: 수신된 토픽(str), 메시지(bytes)
            qos (int, optional): 요청할 QoS 레벨

        Raises:
            ProtocolValidationError: 구독이 거부된 경우
        """
        pass
