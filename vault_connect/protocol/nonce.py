"""Nonce counter used to derive response nonces from request nonces."""


def increment(nonce: bytes) -> bytes:
    """Return ``nonce`` incremented by one as a little-endian counter.

    Same algorithm as libsodium's ``sodium_increment``: the carry starts at 1
    and is propagated from byte 0 upwards. The counter wraps silently, so an
    all-``0xff`` nonce becomes all zeros.

    Args:
        nonce: Fixed-length byte string (bytes, bytearray or memoryview).

    Returns:
        A new ``bytes`` object of the same length.
    """
    counter = bytearray(nonce)
    carry = 1
    for i, byte in enumerate(counter):
        carry += byte
        counter[i] = carry & 0xFF
        carry >>= 8
    return bytes(counter)
