"""Hexadecimal conversion and key length helpers."""

from __future__ import annotations

import binascii


def bytes_to_hex(data: bytes) -> str:
    """Return the lower-case hexadecimal form of ``data``."""
    return bytes(data).hex()


def hex_to_bytes(text: str) -> bytes:
    """Decode a hexadecimal string.

    Raises ValueError for odd-length input or non-hexadecimal characters.
    """
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, TypeError) as exc:
        raise ValueError(f"invalid hexadecimal string: {text!r}") from exc


def validate_key_length(key: bytes, expected_len: int) -> bool:
    """Return True when ``key`` is exactly ``expected_len`` bytes long."""
    return len(key) == expected_len