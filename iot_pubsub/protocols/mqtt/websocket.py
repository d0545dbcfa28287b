import logging
from typing import Optional
from urllib.parse import quote, urlsplit

from botocore.auth import SigV4QueryAuth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from botocore.session import Session

from iot_pubsub.common.exception import ProtocolAuthenticationError

SIGNING_SERVICE = "iotdevicegateway"
WEBSOCKET_PATH = "/mqtt"
SIGNATURE_EXPIRES = 86400


def load_credentials(session: Optional[Session] = None) -> Credentials:
    """
    기본 자격 증명 체인(환경 변수, 프로파일, 인스턴스 메타데이터 등)에서
    AWS 자격 증명을 가져옵니다.

    Raises:
        ProtocolAuthenticationError: 자격 증명을 찾지 못한 경우
    """
    session = session or Session()
    credentials = session.get_credentials()
    if credentials is None:
        raise ProtocolAuthenticationError("웹소켓 서명에 사용할 AWS 자격 증명을 찾을 수 없습니다.")
    return credentials.get_frozen_credentials()


def presign_path(endpoint: str, region: str, credentials: Credentials) -> str:
    """
    SigV4 쿼리 서명이 포함된 웹소켓 경로(/mqtt?X-Amz-...)를 생성합니다.

    세션 토큰은 서명 대상에서 제외한 뒤 마지막에 붙입니다.

    Args:
        endpoint (str): 브로커 엔드포인트 호스트명
        region (str): 서명 리전
        credentials: frozen 자격 증명 (access_key, secret_key, token)
    Returns:
        str: paho ws_set_options(path=...) 에 전달할 경로
    """
    request = AWSRequest(method="GET", url=f"wss://{endpoint}{WEBSOCKET_PATH}")
    signing_credentials = Credentials(credentials.access_key, credentials.secret_key)
    SigV4QueryAuth(signing_credentials, SIGNING_SERVICE, region, expires=SIGNATURE_EXPIRES).add_auth(
        request
    )

    parts = urlsplit(request.url)
    path = f"{parts.path}?{parts.query}"
    if credentials.token:
        path += f"&X-Amz-Security-Token={quote(credentials.token, safe='')}"

    logging.debug(f"웹소켓 서명 경로 생성 완료 (region={region})")
    return path
