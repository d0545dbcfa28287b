from iot_pubsub.session.completion import CompletionSignal
from iot_pubsub.session.config import SessionConfig, build_config, random_client_id
from iot_pubsub.session.message import Message
from iot_pubsub.session.orchestrator import SessionOrchestrator, SessionState, create_protocol, execute_session

__all__ = [
    "CompletionSignal",
    "Message",
    "SessionConfig",
    "SessionOrchestrator",
    "SessionState",
    "build_config",
    "create_protocol",
    "execute_session",
    "random_client_id",
]
