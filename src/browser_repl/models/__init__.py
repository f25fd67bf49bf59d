from .messages import (
    Envelope,
    ExecuteMessage,
    MessageType,
    RegisteredMessage,
    RegisterMessage,
    ResultMessage,
    Role,
    parse_envelope,
)

__all__ = [
    "Envelope",
    "ExecuteMessage",
    "MessageType",
    "RegisteredMessage",
    "RegisterMessage",
    "ResultMessage",
    "Role",
    "parse_envelope",
]
