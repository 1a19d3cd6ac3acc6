"""
Protocol Dispatcher — routes request envelopes to action handlers.

Every handler returns an ``Ok`` or ``Err`` result; ``dispatch`` turns it into
the response dict and never raises, so one bad request cannot affect the
transport or any other session.
"""
import logging
from collections.abc import Callable, Mapping
from functools import wraps
from typing import Any, Optional

from ..exceptions import (
    ConnectError,
    MissingFieldError,
    UnknownActionError,
)
from ..version import __version__
from .crypto import (
    b64decode,
    check_action,
    decrypt,
    deserialize_payload,
    encrypt,
    serialize_payload,
)
from .models import RESPONSE, Action, Envelope, Err, HandlerResult, Ok
from .registry import SessionRegistry, require_client_id

logger = logging.getLogger("vault_connect.dispatcher")

# Until the vault exposes a real database hash.
DATABASE_HASH_PLACEHOLDER = "TODO"

Handler = Callable[["Dispatcher", Envelope], HandlerResult]


def handler(func: Callable[["Dispatcher", Envelope], dict]) -> Handler:
    """Wrap a payload-returning function into a result-returning handler."""
    @wraps(func)
    def wrapper(dispatcher: "Dispatcher", envelope: Envelope) -> HandlerResult:
        try:
            return Ok(func(dispatcher, envelope))
        except ConnectError as err:
            return Err(err)
    return wrapper


# ---------------------------------------------------------------------------
# Encrypted envelope helpers
# ---------------------------------------------------------------------------

def decrypt_request(registry: SessionRegistry, envelope: Envelope) -> dict:
    """Open the envelope's message and check its inner action.

    Raises:
        MissingIdentifierError, UnknownClientError: No usable session.
        MissingFieldError: nonce or message absent.
        AuthenticationError: The message does not open.
        ProtocolError: Inner action differs from the envelope's.
    """
    session = registry.lookup(envelope.client_id)
    if not envelope.nonce:
        raise MissingFieldError("Empty nonce")
    if not envelope.message:
        raise MissingFieldError("Empty message")
    plaintext = decrypt(session, envelope.nonce, envelope.message)
    payload = deserialize_payload(plaintext)
    check_action(payload, envelope.action)
    return payload


def encrypt_response(
    registry: SessionRegistry, envelope: Envelope, payload: dict
) -> dict:
    """Seal ``payload`` under the incremented request nonce."""
    session = registry.lookup(envelope.client_id)
    nonce, message = encrypt(
        session, b64decode(envelope.nonce), serialize_payload(payload)
    )
    return {
        "action": envelope.action,
        "clientID": envelope.client_id,
        "nonce": nonce,
        "message": message,
    }


# ---------------------------------------------------------------------------
# Built-in handlers
# ---------------------------------------------------------------------------

@handler
def ping(dispatcher: "Dispatcher", envelope: Envelope) -> dict:
    return {"data": envelope.data}


@handler
def change_public_keys(dispatcher: "Dispatcher", envelope: Envelope) -> dict:
    client_id = require_client_id(envelope.client_id)
    if not envelope.public_key:
        raise MissingFieldError("Empty publicKey")
    public_key = dispatcher.registry.handshake(client_id, envelope.public_key)
    return {
        "action": Action.CHANGE_PUBLIC_KEYS.value,
        "version": __version__,
        "publicKey": public_key,
        "success": "true",
    }


@handler
def get_database_hash(dispatcher: "Dispatcher", envelope: Envelope) -> dict:
    decrypt_request(dispatcher.registry, envelope)
    return encrypt_response(dispatcher.registry, envelope, {
        "action": "hash",
        "version": __version__,
        "hash": dispatcher.hash_provider(),
    })


BUILTIN_HANDLERS: dict[Action, Handler] = {
    Action.PING: ping,
    Action.CHANGE_PUBLIC_KEYS: change_public_keys,
    Action.GET_DATABASE_HASH: get_database_hash,
}


class Dispatcher:
    """Resolves an envelope's action and runs its handler.

    Args:
        registry: Session registry shared with the transport.
        handlers: Optional overrides for built-in handlers.
        hash_provider: Returns the current database hash.

    Raises:
        ValueError: If the handler table does not cover every Action.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        handlers: Optional[Mapping[Action, Handler]] = None,
        hash_provider: Optional[Callable[[], str]] = None,
    ):
        self.registry = registry
        self.hash_provider = hash_provider or (lambda: DATABASE_HASH_PLACEHOLDER)
        table = dict(BUILTIN_HANDLERS)
        if handlers:
            table.update(handlers)
        self._handlers = self._validate(table)

    @staticmethod
    def _validate(table: dict) -> dict[Action, Handler]:
        unknown = [key for key in table if not isinstance(key, Action)]
        if unknown:
            raise ValueError(f"Handlers registered for unknown actions: {unknown}")
        missing = [action.value for action in Action if action not in table]
        if missing:
            raise ValueError(f"No handler registered for actions: {missing}")
        not_callable = [key.value for key, fn in table.items() if not callable(fn)]
        if not_callable:
            raise ValueError(f"Handlers are not callable: {not_callable}")
        return table

    def resolve(self, action: Any) -> Handler:
        """Return the handler for ``action``.

        Raises:
            UnknownActionError: If action is not a supported Action.
        """
        try:
            return self._handlers[Action(action)]
        except (ValueError, TypeError):
            raise UnknownActionError(f"Handler not found: {action}") from None

    def _run(self, fields: dict) -> HandlerResult:
        envelope = Envelope.model_validate(fields)
        try:
            fn = self.resolve(envelope.action)
        except UnknownActionError as err:
            return Err(err)
        return fn(self, envelope)

    def dispatch(self, request: Mapping[str, Any]) -> dict:
        """Handle one request envelope and build its response.

        A request that is not a mapping is handled as one without fields.

        Returns:
            Action-specific payload or ``{"error": message}``, always tagged
            with ``kwConnect: "response"``.
        """
        fields = dict(request) if isinstance(request, Mapping) else {}
        try:
            result = self._run(fields)
            if not isinstance(result, (Ok, Err)):
                raise TypeError(
                    f"Handler returned {type(result).__name__}, expected Ok or Err"
                )
        except Exception:
            logger.exception(
                "Unhandled error for action=%r", fields.get("action")
            )
            result = Err(ConnectError("Unknown error"))

        if isinstance(result, Ok):
            response = dict(result.payload)
        else:
            logger.debug(
                "Request action=%r failed: %s",
                fields.get("action"), type(result.error).__name__,
            )
            response = {"error": result.message}
        response["kwConnect"] = RESPONSE
        return response
