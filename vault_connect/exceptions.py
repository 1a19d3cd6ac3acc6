"""Errors raised while handling a single connector request.

The exception message is the ``error`` string returned to the peer, so it
must never carry key material or plaintext.
"""


class ConnectError(Exception):
    """Base class for every protocol-level failure."""


class MissingIdentifierError(ConnectError):
    """The request carries no ``clientID``."""


class UnknownClientError(ConnectError):
    """No handshake has been completed for the ``clientID``."""


class MissingFieldError(ConnectError):
    """A field required by the action (nonce, message, publicKey) is absent."""


class DecodeError(ConnectError):
    """Malformed base64 or key bytes."""


class AuthenticationError(DecodeError):
    """Box open failed.

    Raised for tampered ciphertext, wrong keys and bad nonces alike, so a
    peer cannot tell those cases apart.
    """


class ProtocolError(ConnectError):
    """The request is well formed but violates the protocol."""


class UnknownActionError(ConnectError):
    """No handler is registered for the requested action."""
