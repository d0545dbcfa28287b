import json
from dataclasses import dataclass

from iot_pubsub.common.exception import ProtocolDecodeError


@dataclass(frozen=True)
class Message:
    """
    토픽으로 주고받는 세션 메시지

    Attributes:
        message (str): 메시지 본문
        sequence (int): 발행 순번 (1부터 시작)
    """

    message: str
    sequence: int

    def to_json(self) -> str:
        """JSON 문자열로 직렬화"""
        return json.dumps({"message": self.message, "sequence": self.sequence})

    def to_bytes(self) -> bytes:
        """UTF-8 JSON 바이트로 직렬화"""
        return self.to_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Message":
        """
        수신 페이로드를 메시지로 역직렬화합니다.

        Args:
            data (bytes): UTF-8 JSON 페이로드
        Returns:
            Message: 디코딩된 메시지
        Raises:
            ProtocolDecodeError: UTF-8, JSON 또는 필드 형식이 올바르지 않은 경우
        """
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolDecodeError(f"UTF-8 디코딩 실패: {e}") from e
        return cls.from_json(text)

    @classmethod
    def from_json(cls, text: str) -> "Message":
        try:
            body = json.loads(text)
        except json.JSONDecodeError as e:
            raise ProtocolDecodeError(f"JSON 파싱 실패: {e}") from e

        if not isinstance(body, dict):
            raise ProtocolDecodeError(f"JSON 객체가 아닙니다: {text!r}")

        message = body.get("message")
        sequence = body.get("sequence")
        if not isinstance(message, str):
            raise ProtocolDecodeError(f"message 필드가 문자열이 아닙니다: {message!r}")
        # bool 은 int 의 하위 타입이므로 별도로 제외
        if not isinstance(sequence, int) or isinstance(sequence, bool):
            raise ProtocolDecodeError(f"sequence 필드가 정수가 아닙니다: {sequence!r}")

        return cls(message=message, sequence=sequence)
