"""
Request signing for transaction roles.

Each role account whose private key is configured signs the RFC 8785
canonical form of the transaction request (without ``signatures``) using
EIP-191 personal_sign.  Roles without a local key are left for the access
node to sign (emulator accounts).
"""

from __future__ import annotations

import copy
import secrets
from typing import Any, Optional

import rfc8785
from eth_account import Account
from eth_account.messages import encode_defunct

from ..config import DappConfig
from ..errors import GatewayError
from .gateway import Roles

SIGNATURE_ALG = "ecdsa_secp256k1_eip191"
PAYLOAD_ALG = "rfc8785_jcs_without_signatures_utf8"


def generate_key() -> tuple[str, str]:
    """
    Generate a secp256k1 keypair.

    Returns:
        Tuple of (private_key_hex, signing_address)
    """
    private_key = "0x" + secrets.token_hex(32)
    return private_key, Account.from_key(private_key).address


def canonicalize_request(request: dict[str, Any]) -> bytes:
    payload = copy.deepcopy(request)
    payload.pop("signatures", None)
    return rfc8785.dumps(payload)


def sign_request(request: dict[str, Any], role_address: str, private_key: str) -> dict[str, str]:
    account = Account.from_key(private_key)
    signable = encode_defunct(primitive=canonicalize_request(request))
    signed = account.sign_message(signable)
    return {
        "address": role_address,
        "alg": SIGNATURE_ALG,
        "payload_alg": PAYLOAD_ALG,
        "signer": account.address,
        "sig": signed.signature.hex(),
    }


def recover_signer(request: dict[str, Any], signature: dict[str, str]) -> str:
    """Recover the signing address of one entry of ``request['signatures']``."""
    signable = encode_defunct(primitive=canonicalize_request(request))
    return Account.recover_message(signable, signature=bytes.fromhex(signature["sig"].removeprefix("0x")))


def resolve_signers(config: DappConfig, roles: Roles) -> list[tuple[str, Optional[str]]]:
    """
    Pair every role account with its configured key (or None).

    Raises:
        GatewayError: If there is no proposer or a role account is not part
            of the configured account directory.
    """
    if not roles.proposer:
        raise GatewayError("Transaction requires a proposer")
    resolved = []
    for address in roles.signers():
        if not config.knows(address):
            raise GatewayError(f"Unknown signer account: {address}")
        resolved.append((address, config.key_for(address)))
    return resolved
