"""Shared fixtures: a registry, a dispatcher and a simulated extension peer."""
from typing import Optional

import orjson
import pytest
from nacl.public import Box, PrivateKey, PublicKey
from nacl.utils import random

from vault_connect.protocol.crypto import NONCE_SIZE, b64decode, b64encode
from vault_connect.protocol.dispatcher import Dispatcher
from vault_connect.protocol.registry import SessionRegistry


class ExtensionPeer:
    """Extension side of the protocol, built directly on PyNaCl."""

    def __init__(self, client_id: str = "abc"):
        self.client_id = client_id
        self.keypair = PrivateKey.generate()
        self.server_key: Optional[PublicKey] = None

    @property
    def public_key_b64(self) -> str:
        return b64encode(bytes(self.keypair.public_key))

    def handshake_request(self) -> dict:
        return {
            "kwConnect": "request",
            "action": "change-public-keys",
            "clientID": self.client_id,
            "publicKey": self.public_key_b64,
        }

    def accept(self, response: dict) -> None:
        self.server_key = PublicKey(b64decode(response["publicKey"]))

    def box(self) -> Box:
        return Box(self.keypair, self.server_key)

    def encrypted_request(
        self, action: str, payload: Optional[dict] = None, nonce: Optional[bytes] = None
    ) -> dict:
        nonce = nonce or random(NONCE_SIZE)
        body = {"action": action} if payload is None else payload
        sealed = self.box().encrypt(orjson.dumps(body), nonce)
        return {
            "kwConnect": "request",
            "action": action,
            "clientID": self.client_id,
            "nonce": b64encode(nonce),
            "message": b64encode(sealed.ciphertext),
        }

    def open_response(self, response: dict) -> dict:
        plaintext = self.box().decrypt(
            b64decode(response["message"]), b64decode(response["nonce"])
        )
        return orjson.loads(plaintext)


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def dispatcher(registry):
    return Dispatcher(registry)


@pytest.fixture
def make_peer():
    """Factory for extension peers with a given client id."""
    return ExtensionPeer


@pytest.fixture
def peer(dispatcher):
    """A peer that has completed the handshake as client ``abc``."""
    p = ExtensionPeer("abc")
    p.accept(dispatcher.dispatch(p.handshake_request()))
    return p
