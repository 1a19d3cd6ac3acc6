"""Vault Connect — encrypted local RPC between a vault and browser extensions.

Security Note (Threat Model):
    Sessions live in process memory for the lifetime of the connector and are
    never evicted. Client ids are chosen by the peer, so the endpoint must
    stay bound to loopback and restricted to a single trusted origin.
"""
from .version import __version__
from .config import ConnectorConfig
from .connector import BrowserExtensionConnector
from .protocol import Action, Dispatcher, SessionRegistry

__all__ = [
    "__version__",
    "ConnectorConfig",
    "BrowserExtensionConnector",
    "Action",
    "Dispatcher",
    "SessionRegistry",
]
