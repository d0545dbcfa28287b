class ProtocolError(Exception):
    """
    모든 프로토콜 관련 예외의 최상위 클래스입니다.
    세션 처리 중 발생하는 일반적인 오류 상황에 사용됩니다.
    """

    def __init__(self, message="프로토콜 처리 중 오류가 발생했습니다."):
        super().__init__(message)


class ProtocolConnectionError(ProtocolError):
    """
    브로커 연결 실패 시 발생하는 예외입니다.
    TLS 핸드셰이크 실패, 네트워크 오류, CONNACK 거부 등에 사용됩니다.
    """

    def __init__(self, message="프로토콜 연결에 실패했습니다."):
        super().__init__(message)


class ProtocolTimeoutError(ProtocolError):
    """
    동작이 제한 시간 내에 완료되지 않을 때 발생하는 예외입니다.
    연결 대기, 구독 응답 대기, 최종 에코 대기 등에 사용됩니다.
    """

    def __init__(self, message="프로토콜 응답 시간이 초과되었습니다."):
        super().__init__(message)


class ProtocolDecodeError(ProtocolError):
    """
    수신된 페이로드를 메시지로 디코딩하지 못했을 때 발생하는 예외입니다.
    UTF-8 오류, JSON 형식 오류, 필드 누락 등에 사용됩니다.
    """

    def __init__(self, message="수신 데이터를 디코딩하는 데 실패했습니다."):
        super().__init__(message)


class ProtocolValidationError(ProtocolError):
    """
    브로커가 요청을 거부했거나 요청 값이 유효하지 않을 때 발생하는 예외입니다.
    """

    def __init__(self, message="프로토콜 패킷 유효성 검사에 실패했습니다."):
        super().__init__(message)


class ProtocolAuthenticationError(ProtocolError):
    """
    인증 정보를 확보하지 못했을 때 발생하는 예외입니다.
    웹소켓 서명에 필요한 AWS 자격 증명이 없는 경우에 사용됩니다.
    """

    def __init__(self, message="프로토콜 패킷 인증에 실패했습니다."):
        super().__init__(message)


class ProtocolConfigurationError(ProtocolError):
    """
    세션 설정이 올바르지 않을 때 발생하는 예외입니다.
    네트워크 동작 이전에 검출되며, 필수 인자 누락이나 범위 위반에 사용됩니다.
    """

    def __init__(self, message="세션 설정이 올바르지 않습니다."):
        super().__init__(message)
