"""Wire envelope model, supported actions and handler results."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field

from ..exceptions import ConnectError

REQUEST = "request"
RESPONSE = "response"


class Action(str, Enum):
    """Actions understood by the connector."""
    PING = "ping"
    CHANGE_PUBLIC_KEYS = "change-public-keys"
    GET_DATABASE_HASH = "get-databasehash"


class Envelope(BaseModel):
    """Outer wire message.

    Fields are read only under the peer's camelCase names and are left
    untyped: each handler checks the fields it uses, so a stray value in an
    unused field never fails the request.
    """

    kw_connect: Any = Field(default=None, alias="kwConnect")
    action: Any = None
    client_id: Any = Field(default=None, alias="clientID")
    public_key: Any = Field(default=None, alias="publicKey")
    nonce: Any = None
    message: Any = None
    data: Any = None

    model_config = {"extra": "allow"}


@dataclass(frozen=True)
class Ok:
    """Successful handler result; ``payload`` is sent back as-is."""
    payload: dict


@dataclass(frozen=True)
class Err:
    """Failed handler result; ``error`` is reported as ``{error: message}``."""
    error: ConnectError

    @property
    def message(self) -> str:
        return str(self.error) or "Unknown error"


HandlerResult = Union[Ok, Err]
