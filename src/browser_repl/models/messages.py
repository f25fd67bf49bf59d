import time
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    TARGET = "target"
    DRIVER = "driver"

    @classmethod
    def parse(cls, value: Any) -> "Role | None":
        """Map a wire role (including legacy names) to a Role, or None."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return ROLE_ALIASES.get(value)

    @property
    def counterpart(self) -> "Role":
        return Role.DRIVER if self is Role.TARGET else Role.TARGET


# Older peers announce themselves as browser / cli / mcp
ROLE_ALIASES: dict[str, Role] = {
    "browser": Role.TARGET,
    "cli": Role.DRIVER,
    "mcp": Role.DRIVER,
}


class MessageType(str, Enum):
    REGISTER = "register"
    REGISTERED = "registered"
    EXECUTE = "execute"
    RESULT = "result"


def now_ms() -> int:
    return int(time.time() * 1000)


class Envelope(BaseModel):
    """Common shape of every relay frame."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    session_id: str | None = Field(default=None, alias="sessionId")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class RegisterMessage(Envelope):
    type: Literal["register"] = "register"
    role: str | None = None
    timestamp: int | float | None = None


class RegisteredMessage(Envelope):
    type: Literal["registered"] = "registered"
    role: Role
    timestamp: int = Field(default_factory=now_ms)


class ExecuteMessage(Envelope):
    type: Literal["execute"] = "execute"
    code: Any = None
    request_id: Any = Field(default=None, alias="requestId")


class ResultMessage(Envelope):
    type: Literal["result"] = "result"
    result: Any = None
    error: Any = None
    request_id: Any = Field(default=None, alias="requestId")

    @property
    def failed(self) -> bool:
        return self.error is not None


MESSAGE_MODELS: dict[str, type[Envelope]] = {
    MessageType.REGISTER.value: RegisterMessage,
    MessageType.REGISTERED.value: RegisteredMessage,
    MessageType.EXECUTE.value: ExecuteMessage,
    MessageType.RESULT.value: ResultMessage,
}


def parse_envelope(frame: dict[str, Any]) -> Envelope | None:
    """Validate a decoded frame into its envelope model.

    Returns None for frames whose ``type`` is unknown. Raises
    ``pydantic.ValidationError`` when a known type carries invalid fields.
    """
    msg_type = frame.get("type")
    if not isinstance(msg_type, str):
        return None
    model = MESSAGE_MODELS.get(msg_type)
    if model is None:
        return None
    return model.model_validate(frame)
