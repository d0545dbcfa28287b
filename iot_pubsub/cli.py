import argparse
import sys
from typing import List, Optional

from iot_pubsub import __version__
from iot_pubsub.common.exception import ProtocolConfigurationError, ProtocolError
from iot_pubsub.common.logger import VERBOSITY_LEVELS, configure_logging
from iot_pubsub.session import config as defaults
from iot_pubsub.session.config import build_config
from iot_pubsub.session.orchestrator import execute_session

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """CLI 파서 생성"""
    parser = argparse.ArgumentParser(
        prog="iot-pubsub",
        description="MQTT publish/subscribe echo session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
            Examples:
            iot-pubsub -e <endpoint> -c cert.pem -k private.key -r root-CA.crt
            iot-pubsub -e <endpoint> -W -s eu-central-1 -n 3
            iot-pubsub -e <endpoint> -W -H proxy.local -P 3128 -r proxy-ca.pem
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument("-e", "--endpoint", required=True, help="브로커 엔드포인트 (예: xxxx-ats.iot.<region>.amazonaws.com)")
    parser.add_argument("-r", "--ca_file", help="CA 인증서 파일 경로")
    parser.add_argument("-c", "--cert", help="클라이언트 인증서 경로 (웹소켓 미사용 시 필수)")
    parser.add_argument("-k", "--key", help="클라이언트 개인 키 경로 (웹소켓 미사용 시 필수)")
    parser.add_argument("-C", "--client_id", help="클라이언트 ID (기본값: test-<난수>)")
    parser.add_argument("-t", "--topic", default=defaults.DEFAULT_TOPIC, help="대상 토픽 (기본값: %(default)s)")
    parser.add_argument(
        "-n", "--count", type=int, default=defaults.DEFAULT_COUNT, help="발행할 메시지 수 (기본값: %(default)s)"
    )
    parser.add_argument(
        "-W",
        "--use_websocket",
        action="store_true",
        help="mTLS 대신 SigV4 서명 웹소켓으로 연결합니다. 서명 리전이 필요하며 프록시를 사용할 수 있습니다.",
    )
    parser.add_argument(
        "-s",
        "--signing_region",
        default=defaults.DEFAULT_SIGNING_REGION,
        help="웹소켓 SigV4 서명 리전 (기본값: %(default)s)",
    )
    parser.add_argument(
        "-H", "--proxy_host", help="프록시 호스트. 사용 시 --ca_file 에 프록시 CA 를 지정해야 할 수 있습니다."
    )
    parser.add_argument(
        "-P", "--proxy_port", type=int, default=defaults.DEFAULT_PROXY_PORT, help="프록시 포트 (기본값: %(default)s)"
    )
    parser.add_argument("-M", "--message", default=defaults.DEFAULT_MESSAGE, help="발행할 메시지 (기본값: %(default)s)")
    parser.add_argument(
        "-v",
        "--verbosity",
        default="none",
        choices=list(VERBOSITY_LEVELS),
        help="로그 레벨 (기본값: %(default)s)",
    )
    parser.add_argument("-p", "--port", type=int, help="브로커 포트 (기본값: mTLS 8883, 웹소켓 443)")
    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults.DEFAULT_TIMEOUT,
        help="마지막 발행 이후 최종 에코를 기다리는 시간(초) (기본값: %(default)s)",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """메인 CLI 진입점"""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(vars(args))
    except ProtocolConfigurationError as e:
        print(f"설정 오류: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(config.verbosity)

    try:
        session = execute_session(config)
        print(f"세션 완료: {len(session.published)}개 발행, {len(session.received)}개 수신")
        return EXIT_OK

    except KeyboardInterrupt:
        print("\n중단되었습니다.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except ProtocolError as e:
        print(f"세션 실패: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except Exception as e:
        print(f"예상치 못한 오류: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
