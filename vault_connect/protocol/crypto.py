"""
Connector Crypto Core — Box sealing/opening and wire encoding.

Every encrypted exchange uses the NaCl box construction
(Curve25519 + XSalsa20 + Poly1305) keyed by the client's long-term public key
and the session's ephemeral secret key:

    request:  box(plaintext, nonce,                peer_public, local_secret)
    response: box(plaintext, increment(nonce),     peer_public, local_secret)

Wire layout matches tweetnacl's ``nacl.box``: the ciphertext carries the
16-byte Poly1305 tag followed by the encrypted bytes; the nonce travels in its
own field. Both are base64 encoded.

Security Note:
    Never log plaintext, ciphertext, nonces or keys.
    Every failure while opening a message raises the same AuthenticationError
    so the peer learns nothing about which check failed.
"""
import base64
import binascii
import logging
from typing import Any, TYPE_CHECKING

import orjson
from nacl.public import Box, PublicKey
from nacl.exceptions import CryptoError

from ..exceptions import AuthenticationError, DecodeError, ProtocolError
from .nonce import increment

if TYPE_CHECKING:
    from .registry import ClientSession

logger = logging.getLogger("vault_connect.crypto")

NONCE_SIZE = Box.NONCE_SIZE  # 24 bytes
KEY_SIZE = PublicKey.SIZE  # 32 bytes

_DECRYPT_FAILED = "Failed to decrypt message"


# ---------------------------------------------------------------------------
# Base64 wire encoding
# ---------------------------------------------------------------------------

def b64encode(data: bytes) -> str:
    """Encode bytes as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def b64decode(value: Any) -> bytes:
    """Decode strict standard base64 text.

    Raises:
        DecodeError: If value is not a string or not valid base64.
    """
    if not isinstance(value, str):
        raise DecodeError("Expected a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise DecodeError("Invalid base64 data") from err


def load_public_key(value: Any) -> PublicKey:
    """Decode a base64 Curve25519 public key.

    Raises:
        DecodeError: If the value is not base64 or not exactly 32 bytes.
    """
    raw = b64decode(value)
    if len(raw) != KEY_SIZE:
        raise DecodeError(
            f"Public key must be {KEY_SIZE} bytes, got {len(raw)}"
        )
    return PublicKey(raw)


# ---------------------------------------------------------------------------
# Box encryption
# ---------------------------------------------------------------------------

def _box(session: "ClientSession") -> Box:
    return Box(session.local_keypair, session.peer_public_key)


def encrypt(
    session: "ClientSession", nonce: bytes, plaintext: bytes
) -> tuple[str, str]:
    """Seal a response for the session's peer.

    The response nonce is ``increment(nonce)``, so it never equals the
    request nonce under the same session key.

    Args:
        session: Established client session.
        nonce: Raw request nonce (NONCE_SIZE bytes).
        plaintext: Serialized response payload.

    Returns:
        Tuple of (response_nonce_b64, ciphertext_b64).
    """
    response_nonce = increment(nonce)
    sealed = _box(session).encrypt(plaintext, response_nonce)
    return b64encode(response_nonce), b64encode(sealed.ciphertext)


def decrypt(
    session: "ClientSession", nonce_b64: Any, ciphertext_b64: Any
) -> bytes:
    """Open a request sealed by the session's peer.

    Raises:
        AuthenticationError: On malformed base64, a nonce of the wrong size
            or a failed authentication tag. The message is identical for
            every cause.
    """
    try:
        nonce = b64decode(nonce_b64)
        ciphertext = b64decode(ciphertext_b64)
        if len(nonce) != NONCE_SIZE:
            raise DecodeError("Invalid nonce length")
        return _box(session).decrypt(ciphertext, nonce)
    except (DecodeError, CryptoError, ValueError, TypeError) as err:
        logger.debug("Failed to open message for client=%r", session.client_id)
        raise AuthenticationError(_DECRYPT_FAILED) from err


# ---------------------------------------------------------------------------
# Payload serialization
# ---------------------------------------------------------------------------

def serialize_payload(payload: dict) -> bytes:
    """Serialize a plaintext payload to UTF-8 JSON bytes."""
    return orjson.dumps(payload)


def deserialize_payload(data: bytes) -> dict:
    """Parse an opened plaintext payload.

    Plaintext that is not a JSON object is reported as a failed open.

    Raises:
        AuthenticationError: If data is not a UTF-8 JSON object.
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise AuthenticationError(_DECRYPT_FAILED) from err
    if not isinstance(parsed, dict):
        raise AuthenticationError(_DECRYPT_FAILED)
    return parsed


def check_action(payload: dict, action: str) -> None:
    """Ensure the decrypted payload was produced for this envelope's action.

    Raises:
        ProtocolError: If the inner ``action`` differs from ``action``.
    """
    if payload.get("action") != action:
        raise ProtocolError("Bad action in decrypted payload")
