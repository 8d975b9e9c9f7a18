"""Tezos base58check hashes.

Only the three kinds this package needs: contract addresses (``KT1…``),
chain ids (``Net…``) and script-expression hashes (``expr…``), the latter
being how a node addresses big-map values.
"""

from __future__ import annotations

import hashlib

import base58

KT1_PREFIX = bytes([2, 90, 121])
CHAIN_ID_PREFIX = bytes([87, 82, 0])
SCRIPT_EXPR_PREFIX = bytes([13, 44, 64, 27])


def _check_b58(text: str, prefix: bytes, payload_size: int, kind: str) -> bytes:
    try:
        decoded = base58.b58decode_check(text)
    except ValueError as exc:
        raise ValueError(f"Invalid {kind} {text!r}: {exc}") from exc
    if not decoded.startswith(prefix):
        raise ValueError(f"Invalid {kind} {text!r}: wrong prefix")
    payload = decoded[len(prefix):]
    if len(payload) != payload_size:
        raise ValueError(
            f"Invalid {kind} {text!r}: payload is {len(payload)} bytes, "
            f"expected {payload_size}"
        )
    return payload


def check_b58_kt1_hash(text: str) -> bytes:
    """Return the 20-byte payload of a ``KT1`` address or raise ``ValueError``."""
    return _check_b58(text, KT1_PREFIX, 20, "KT1 address")


def check_b58_chain_id_hash(text: str) -> bytes:
    """Return the 4-byte payload of a chain id or raise ``ValueError``."""
    return _check_b58(text, CHAIN_ID_PREFIX, 4, "chain id")


def pack_michelson_string(value: str) -> bytes:
    """Binary ``PACK`` of a Michelson string literal."""
    data = value.encode("utf-8")
    return b"\x05\x01" + len(data).to_bytes(4, "big") + data


def b58_script_id_hash_of_michelson_string(value: str) -> str:
    """``expr…`` hash under which a node serves the big-map value at *value*."""
    digest = hashlib.blake2b(pack_michelson_string(value), digest_size=32).digest()
    return base58.b58encode_check(SCRIPT_EXPR_PREFIX + digest).decode("ascii")
