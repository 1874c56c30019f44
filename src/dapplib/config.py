"""
DappLib configuration.

A ``DappConfig`` is an immutable value built from ``dapp-config.json`` and
the environment, and is passed explicitly into every operation.  Tests build
their own value (see ``with_test_accounts``) instead of patching a global.

Signer keys never live in the JSON file; they are read from ``DAPP_KEY_<address>``
variables, optionally loaded from ``~/.dapplib/.env``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence

from dotenv import load_dotenv

from .errors import ConfigError
from .schemas import CONFIG_SCHEMA, SchemaValidationError, load_json, validate
from .utils import normalize_address

DAPPLIB_DIR = Path.home() / ".dapplib"
DAPPLIB_ENV = DAPPLIB_DIR / ".env"
DEFAULT_CONFIG_PATH = Path("dapp-config.json")

DEFAULT_ACCESS_NODE = "http://localhost:8080"
KEY_PREFIX = "DAPP_KEY_"


@dataclass(frozen=True)
class IpfsConfig:
    host: str = "ipfs.infura.io"
    protocol: str = "https"
    port: int = 5001
    timeout: float = 30.0

    @property
    def api_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}/api/v0"

    def gateway_url(self, cid: str) -> str:
        return f"{self.protocol}://{self.host}/ipfs/{cid}"


@dataclass(frozen=True)
class DappConfig:
    endpoint: str = DEFAULT_ACCESS_NODE
    accounts: tuple[str, ...] = ()
    owner: Optional[str] = None
    admins: tuple[str, ...] = ()
    users: tuple[str, ...] = ()
    ipfs: IpfsConfig = field(default_factory=IpfsConfig)
    keys: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    timeout: float = 30.0
    seal_timeout: float = 120.0
    poll_interval: float = 2.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "admins", tuple(self.admins))
        object.__setattr__(self, "users", tuple(self.users))
        object.__setattr__(
            self,
            "keys",
            MappingProxyType({normalize_address(a): k for a, k in self.keys.items()}),
        )

    def knows(self, address: str) -> bool:
        wanted = normalize_address(address)
        return any(normalize_address(a) == wanted for a in self.accounts)

    def key_for(self, address: str) -> Optional[str]:
        return self.keys.get(normalize_address(address))

    def with_test_accounts(self, accounts: Sequence[str]) -> "DappConfig":
        """Return a copy wired to a fresh set of test accounts."""
        accounts = tuple(accounts)
        return replace(
            self,
            accounts=accounts,
            owner=accounts[0] if accounts else None,
            admins=accounts[1:4],
            users=accounts[4:9],
        )

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "DappConfig":
        try:
            validate(payload, CONFIG_SCHEMA)
        except SchemaValidationError as exc:
            raise ConfigError(f"{exc} {'; '.join(exc.errors)}") from exc

        accounts = tuple(payload["accounts"])
        ipfs = IpfsConfig(**payload.get("ipfs", {}))
        return cls(
            endpoint=payload["httpUri"],
            accounts=accounts,
            owner=payload.get("owner", accounts[0] if accounts else None),
            admins=tuple(payload.get("admins", accounts[1:4])),
            users=tuple(payload.get("users", accounts[4:9])),
            ipfs=ipfs,
            timeout=payload.get("timeout", 30.0),
            seal_timeout=payload.get("sealTimeout", 120.0),
            poll_interval=payload.get("pollInterval", 2.0),
        )


def load_signer_keys(env_path: Optional[Path] = None) -> dict[str, str]:
    """
    Collect ``DAPP_KEY_<address>`` private keys from the environment.

    Args:
        env_path: Optional .env file loaded first (default: ~/.dapplib/.env)

    Returns:
        Mapping of normalized address to 0x-prefixed private key
    """
    env_path = env_path or DAPPLIB_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)

    keys = {}
    for name, value in os.environ.items():
        if not name.startswith(KEY_PREFIX) or not value:
            continue
        address = normalize_address(name[len(KEY_PREFIX):])
        keys[address] = value if value.startswith("0x") else "0x" + value
    return keys


def load_config(path: Optional[Path] = None, env_path: Optional[Path] = None) -> DappConfig:
    """
    Load ``dapp-config.json`` and overlay the environment.

    Raises:
        ConfigError: If the file is missing, unreadable or fails validation.
    """
    path = path or Path(os.environ.get("DAPP_CONFIG", DEFAULT_CONFIG_PATH))
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        payload = load_json(path)
    except ValueError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc

    config = DappConfig.from_dict(payload)
    keys = load_signer_keys(env_path)

    ipfs = config.ipfs
    overrides = {
        "host": os.environ.get("DAPP_IPFS_HOST"),
        "protocol": os.environ.get("DAPP_IPFS_PROTOCOL"),
        "port": os.environ.get("DAPP_IPFS_PORT"),
    }
    overrides = {k: v for k, v in overrides.items() if v}
    if "port" in overrides:
        try:
            overrides["port"] = int(overrides["port"])
        except ValueError as exc:
            raise ConfigError(f"DAPP_IPFS_PORT must be an integer: {overrides['port']}") from exc
    if overrides:
        ipfs = replace(ipfs, **overrides)

    return replace(
        config,
        endpoint=os.environ.get("DAPP_ACCESS_NODE", config.endpoint),
        ipfs=ipfs,
        keys=keys,
    )
