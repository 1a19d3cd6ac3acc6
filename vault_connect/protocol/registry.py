"""
Session Registry — per-client key material established by the handshake.

Known limitation:
    Sessions are never evicted and ``client_id`` is chosen by the peer, so the
    registry grows for the lifetime of the process. This is acceptable for a
    single trusted same-machine peer and must be revisited before the
    endpoint is exposed any further.
"""
import logging
from dataclasses import dataclass
from typing import Any

from nacl.public import PrivateKey, PublicKey

from ..exceptions import DecodeError, MissingIdentifierError, UnknownClientError
from .crypto import b64encode, load_public_key

logger = logging.getLogger("vault_connect.registry")


def require_client_id(value: Any) -> str:
    """Validate a peer-supplied client id.

    Raises:
        MissingIdentifierError: If value is None or empty.
        DecodeError: If value is not a string.
    """
    if value is None or value == "":
        raise MissingIdentifierError("Empty clientID")
    if not isinstance(value, str):
        raise DecodeError("Invalid clientID")
    return value


@dataclass(frozen=True)
class ClientSession:
    """Key material for one connected extension instance."""
    client_id: str
    peer_public_key: PublicKey
    local_keypair: PrivateKey

    @property
    def local_public_key(self) -> PublicKey:
        return self.local_keypair.public_key

    def __repr__(self) -> str:
        return f"<ClientSession client_id={self.client_id!r}>"


class SessionRegistry:
    """Owns every ClientSession, keyed by client id.

    A repeated handshake replaces the session wholesale, so messages sealed
    for the previous ephemeral key no longer open.

    Not thread-safe: handshake and lookup must run on the same event loop.
    """

    def __init__(self):
        self._sessions: dict[str, ClientSession] = {}

    def handshake(self, client_id: str, peer_public_key_b64: str) -> str:
        """Create or replace the session for ``client_id``.

        Args:
            client_id: Peer-chosen identifier.
            peer_public_key_b64: Peer's base64 Curve25519 public key.

        Returns:
            Base64 public half of the fresh ephemeral keypair.

        Raises:
            DecodeError: If the peer key is not a valid base64 32-byte key.
        """
        peer_key = load_public_key(peer_public_key_b64)
        keypair = PrivateKey.generate()
        replaced = client_id in self._sessions
        self._sessions[client_id] = ClientSession(
            client_id=client_id,
            peer_public_key=peer_key,
            local_keypair=keypair,
        )
        logger.debug(
            "Handshake completed for client=%r (replaced=%s, sessions=%d)",
            client_id, replaced, len(self._sessions),
        )
        return b64encode(bytes(keypair.public_key))

    def lookup(self, client_id: Any) -> ClientSession:
        """Return the session established for ``client_id``.

        Raises:
            MissingIdentifierError: If client_id is empty or None.
            DecodeError: If client_id is not a string.
            UnknownClientError: If no handshake was completed for client_id.
        """
        client_id = require_client_id(client_id)
        try:
            return self._sessions[client_id]
        except KeyError:
            raise UnknownClientError(
                f"Client not connected: {client_id}"
            ) from None

    def clients(self) -> list[str]:
        """List client ids with an established session."""
        return list(self._sessions.keys())

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
