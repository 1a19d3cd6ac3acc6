"""Vault Connect Meta information.
   Vault Connect lets a browser extension talk to a running vault
   over an encrypted local channel.
"""
__title__ = 'vault_connect'
__description__ = (
   'Vault Connect exposes vault operations to browser extensions '
   'over an encrypted local channel.'
)
__version__ = '0.3.0'
__license__ = 'Apache-2.0'
