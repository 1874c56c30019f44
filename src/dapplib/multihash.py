"""
Multihash codec.

A multihash is ``<hash-function id><digest length><digest>``; IPFS CIDv0
strings are the base-58 (Bitcoin alphabet) rendering of one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import base58

from .errors import DecodeError

SHA2_256 = 0x12


@dataclass(frozen=True)
class MultihashDecomposition:
    digest: str
    hash_function: int
    digest_length: int

    def to_dict(self) -> dict[str, object]:
        return {
            "digest": self.digest,
            "hashFunction": self.hash_function,
            "digestLength": self.digest_length,
        }


def decode(multihash: str) -> MultihashDecomposition:
    """
    Split a base-58 multihash into its parts.

    Raises:
        DecodeError: If the input is not base-58 or decodes to fewer than
            two bytes.
    """
    if not isinstance(multihash, str):
        raise DecodeError(f"Multihash must be a string, got {type(multihash).__name__}")
    try:
        decoded = base58.b58decode(multihash)
    except ValueError as exc:
        raise DecodeError(f"Invalid base-58 multihash {multihash!r}: {exc}") from exc

    if len(decoded) < 2:
        raise DecodeError(f"Multihash {multihash!r} is too short ({len(decoded)} bytes)")

    return MultihashDecomposition(
        digest=decoded[2:].hex(),
        hash_function=decoded[0],
        digest_length=decoded[1],
    )


def encode(digest: bytes | str, hash_function: int = SHA2_256, digest_length: Optional[int] = None) -> str:
    if isinstance(digest, str):
        digest = bytes.fromhex(digest.removeprefix("0x"))
    if digest_length is None:
        digest_length = len(digest)
    return base58.b58encode(bytes([hash_function, digest_length]) + digest).decode("ascii")
