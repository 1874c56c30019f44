from __future__ import annotations

import json
import os
import re
import time
import uuid
from typing import Any, Mapping, Optional

_NUMERIC_KEY = re.compile(r"^\d+$")


def normalize_address(address: str) -> str:
    """Lower-case an account address and strip its 0x prefix."""
    return address.strip().lower().removeprefix("0x")


def get_object_named_properties(obj: Mapping[Any, Any]) -> dict[str, Any]:
    """Drop positional (purely numeric) keys, keep named ones."""
    return {key: value for key, value in obj.items() if not _NUMERIC_KEY.match(str(key))}


def get_transaction_hash(tx: Any) -> str:
    if not tx:
        return ""
    if isinstance(tx, str):
        return tx
    if isinstance(tx, Mapping):
        if "transactionHash" in tx:
            return tx["transactionHash"]
        return json.dumps(tx, sort_keys=True, default=str)
    return str(tx)


def to_condensed(value: Optional[str], begin: int, end: Optional[int] = None) -> Optional[str]:
    if not value:
        return value
    if len(value) <= begin + (end or 0):
        return value
    if end:
        return f"{value[:begin]}...{value[-end:]}"
    return f"{value[:begin]}..."


def from_ascii(value: str, padding: Optional[int] = None) -> str:
    """Hex-encode ``value`` right-padded with zero bytes to ``padding`` bytes."""
    if value.startswith("0x") or not padding:
        return value
    hexed = "".join(f"{ord(char):02x}" for char in value[:padding])
    return "0x" + hexed.ljust(padding * 2, "0")


def to_ascii(hex_value: str) -> str:
    raw = bytes.fromhex(hex_value.removeprefix("0x"))
    return "".join(chr(code) for code in raw if code != 0)


def unique_id() -> str:
    """Time-ordered UUIDv7 string, used as the JSON-RPC request id."""
    value = (int(time.time() * 1000) & ((1 << 48) - 1)) << 80
    value |= int.from_bytes(os.urandom(10), "big")
    # version 7 in bits 76-79, RFC 4122 variant in bits 62-63
    value = (value & ~(0xF << 76)) | (0x7 << 76)
    value = (value & ~(0x3 << 62)) | (0x2 << 62)
    return str(uuid.UUID(int=value))
