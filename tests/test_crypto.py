"""
Tests for the box envelope.

Tests cover:
- encrypt/decrypt under the same session keys
- Response nonce derivation
- Interoperability with an independent PyNaCl peer
- Tamper and malformed-input handling (single AuthenticationError)
- Payload serialization and inner action checks
"""
import orjson
import pytest
from nacl.utils import random

from vault_connect.exceptions import AuthenticationError, DecodeError, ProtocolError
from vault_connect.protocol.crypto import (
    NONCE_SIZE,
    b64decode,
    b64encode,
    check_action,
    decrypt,
    deserialize_payload,
    encrypt,
    load_public_key,
    serialize_payload,
)
from vault_connect.protocol.nonce import increment


@pytest.fixture
def session(registry, make_peer):
    p = make_peer("abc")
    registry.handshake(p.client_id, p.public_key_b64)
    return registry.lookup("abc")


def _flip(b64_value: str, index: int = 0) -> str:
    raw = bytearray(b64decode(b64_value))
    raw[index] ^= 0x01
    return b64encode(bytes(raw))


class TestEncrypt:
    """Tests for encrypt()."""

    def test_roundtrip(self, session):
        """Test a sealed response opens under the same session."""
        nonce = random(NONCE_SIZE)
        plaintext = b'{"action":"hash","hash":"TODO"}'
        nonce_b64, message_b64 = encrypt(session, nonce, plaintext)
        assert decrypt(session, nonce_b64, message_b64) == plaintext

    def test_response_nonce_is_incremented(self, session):
        nonce = random(NONCE_SIZE)
        nonce_b64, _ = encrypt(session, nonce, b"{}")
        assert b64decode(nonce_b64) == increment(nonce)
        assert b64decode(nonce_b64) != nonce

    def test_ciphertext_excludes_nonce(self, session):
        """Test the wire layout is tag + ciphertext only."""
        _, message_b64 = encrypt(session, random(NONCE_SIZE), b"abcd")
        assert len(b64decode(message_b64)) == 4 + 16

    def test_peer_can_open_response(self, registry, make_peer):
        """Test an independent PyNaCl box on the peer side opens the response."""
        p = make_peer("peer")
        server_key = registry.handshake(p.client_id, p.public_key_b64)
        p.accept({"publicKey": server_key})
        session = registry.lookup("peer")

        nonce = random(NONCE_SIZE)
        nonce_b64, message_b64 = encrypt(session, nonce, b"secret")
        opened = p.box().decrypt(b64decode(message_b64), b64decode(nonce_b64))
        assert opened == b"secret"


class TestDecrypt:
    """Tests for decrypt()."""

    def test_opens_peer_message(self, registry, make_peer):
        p = make_peer("peer")
        p.accept({"publicKey": registry.handshake(p.client_id, p.public_key_b64)})
        request = p.encrypted_request("get-databasehash")
        plaintext = decrypt(
            registry.lookup("peer"), request["nonce"], request["message"]
        )
        assert orjson.loads(plaintext) == {"action": "get-databasehash"}

    def test_tampered_message(self, session):
        nonce_b64, message_b64 = encrypt(session, random(NONCE_SIZE), b"payload")
        for index in (0, 15, 16, -1):
            with pytest.raises(AuthenticationError):
                decrypt(session, nonce_b64, _flip(message_b64, index))

    def test_tampered_nonce(self, session):
        nonce_b64, message_b64 = encrypt(session, random(NONCE_SIZE), b"payload")
        with pytest.raises(AuthenticationError):
            decrypt(session, _flip(nonce_b64, 3), message_b64)

    def test_wrong_session_keys(self, registry, session, make_peer):
        other = make_peer("other")
        registry.handshake(other.client_id, other.public_key_b64)
        nonce_b64, message_b64 = encrypt(session, random(NONCE_SIZE), b"payload")
        with pytest.raises(AuthenticationError):
            decrypt(registry.lookup("other"), nonce_b64, message_b64)

    def test_malformed_inputs_share_one_message(self, session):
        """Test every failure cause is reported identically."""
        nonce_b64, message_b64 = encrypt(session, random(NONCE_SIZE), b"payload")
        cases = [
            ("%%%", message_b64),
            (nonce_b64, "not base64!"),
            (b64encode(b"short"), message_b64),
            (nonce_b64, b64encode(b"\x00" * 4)),
            (None, message_b64),
            (nonce_b64, _flip(message_b64)),
        ]
        messages = set()
        for nonce_value, message_value in cases:
            with pytest.raises(AuthenticationError) as exc:
                decrypt(session, nonce_value, message_value)
            messages.add(str(exc.value))
        assert messages == {"Failed to decrypt message"}


class TestEncoding:
    """Tests for base64 and key decoding."""

    def test_b64_roundtrip(self):
        assert b64decode(b64encode(b"\x00\xff\x10")) == b"\x00\xff\x10"

    def test_b64decode_rejects_garbage(self):
        with pytest.raises(DecodeError):
            b64decode("abc$")

    def test_b64decode_rejects_non_string(self):
        with pytest.raises(DecodeError):
            b64decode(1234)

    def test_load_public_key(self, make_peer):
        p = make_peer()
        key = load_public_key(p.public_key_b64)
        assert bytes(key) == bytes(p.keypair.public_key)

    def test_load_public_key_wrong_length(self):
        with pytest.raises(DecodeError):
            load_public_key(b64encode(b"\x01" * 31))


class TestPayload:
    """Tests for payload serialization and action checks."""

    def test_serialize_payload(self):
        payload = {"action": "hash", "version": "1", "hash": "TODO"}
        assert deserialize_payload(serialize_payload(payload)) == payload

    @pytest.mark.parametrize("data", [b"[]", b'"text"', b"\xff\xfe", b""])
    def test_non_object_plaintext(self, data):
        with pytest.raises(AuthenticationError):
            deserialize_payload(data)

    def test_check_action_match(self):
        check_action({"action": "get-databasehash"}, "get-databasehash")

    def test_check_action_mismatch(self):
        with pytest.raises(ProtocolError, match="Bad action in decrypted payload"):
            check_action({"action": "ping"}, "get-databasehash")

    def test_check_action_missing(self):
        with pytest.raises(ProtocolError):
            check_action({}, "get-databasehash")
