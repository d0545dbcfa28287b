import logging
import threading
from typing import Optional

from iot_pubsub.common.exception import ProtocolTimeoutError


class CompletionSignal:
    """
    세션 종료를 알리는 단발성 신호

    - resolve(): 성공으로 완료
    - reject(error): 실패 원인과 함께 완료
    - 최초 한 번의 완료만 유효하며, 이후 호출은 무시됩니다.
      (QoS 1 중복 수신으로 마지막 에코가 두 번 도착하는 경우 등)
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None

    @property
    def is_set(self) -> bool:
        """완료 여부"""
        return self._event.is_set()

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def resolve(self) -> bool:
        """
        성공으로 완료합니다.

        Returns:
            bool: 이번 호출로 완료되었으면 True, 이미 완료된 상태였으면 False
        """
        return self._settle(None)

    def reject(self, error: BaseException) -> bool:
        """
        실패 원인과 함께 완료합니다.

        Args:
            error: 실패 원인 예외
        Returns:
            bool: 이번 호출로 완료되었으면 True, 이미 완료된 상태였으면 False
        """
        return self._settle(error)

    def _settle(self, error: Optional[BaseException]) -> bool:
        with self._lock:
            if self._event.is_set():
                logging.debug(f"이미 완료된 신호입니다. 무시합니다: {error!r}")
                return False
            self._error = error
            self._event.set()
            return True

    def wait_for_set(self, timeout: Optional[float] = None) -> bool:
        """
        완료 여부만 대기합니다. (예외를 발생시키지 않음)

        Returns:
            bool: 제한 시간 안에 완료되었으면 True
        """
        return self._event.wait(timeout)

    def wait(self, timeout: Optional[float] = None) -> None:
        """
        신호가 완료될 때까지 대기합니다.

        Args:
            timeout: 최대 대기 시간(초), None 이면 무기한
        Raises:
            ProtocolTimeoutError: 제한 시간 안에 완료되지 않은 경우
            Exception: reject() 로 전달된 실패 원인
        """
        if not self._event.wait(timeout):
            # 타임아웃도 하나의 완료로 취급하여 이후 resolve 를 무시
            self.reject(ProtocolTimeoutError(f"{timeout}초 안에 세션이 완료되지 않았습니다."))

        if self._error is not None:
            raise self._error
