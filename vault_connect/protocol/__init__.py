"""Connector protocol — handshake, box envelopes and action dispatch.

Security Note (Threat Model):
    The transport only proves that a message came from the expected origin on
    this machine. Peer identity is established solely by the key exchange;
    every later request must open under the session keys or it is rejected.
"""

from .nonce import increment
from .crypto import encrypt, decrypt
from .registry import ClientSession, SessionRegistry
from .models import Action, Envelope, Ok, Err
from .dispatcher import Dispatcher, handler

__all__ = [
    "increment",
    "encrypt",
    "decrypt",
    "ClientSession",
    "SessionRegistry",
    "Action",
    "Envelope",
    "Ok",
    "Err",
    "Dispatcher",
    "handler",
]
