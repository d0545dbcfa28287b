import logging

# 명령행 verbosity 값 -> logging 레벨 (none 은 로깅 비활성화)
VERBOSITY_LEVELS = {
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
    "none": None,
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(verbosity: str = "none") -> None:
    """
    verbosity 값에 따라 로깅을 설정합니다.

    Args:
        verbosity (str): fatal, error, warn, info, debug, trace, none 중 하나
    Raises:
        ValueError: 지원하지 않는 verbosity 값인 경우
    """
    if verbosity not in VERBOSITY_LEVELS:
        raise ValueError(f"지원하지 않는 verbosity 값입니다: {verbosity}")

    level = VERBOSITY_LEVELS[verbosity]
    if level is None:
        logging.disable(logging.CRITICAL)
        return

    logging.disable(logging.NOTSET)
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def is_trace(verbosity: str) -> bool:
    """paho 클라이언트 내부 로그까지 출력해야 하는지 여부"""
    return verbosity == "trace"
