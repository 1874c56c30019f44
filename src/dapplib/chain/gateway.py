from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Union

from ..config import DappConfig
from .types import Argument

# Called with (payload, None) on delivery or (None, error) on failure.
EventCallback = Callable[
    [Optional[Mapping[str, Any]], Optional[BaseException]],
    Union[None, Awaitable[None]],
]


@dataclass(frozen=True)
class Roles:
    proposer: Optional[str] = None
    authorizers: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "authorizers", tuple(self.authorizers))

    def signers(self) -> list[str]:
        """Distinct role accounts, proposer first."""
        ordered: list[str] = []
        for address in (self.proposer, *self.authorizers):
            if address and address not in ordered:
                ordered.append(address)
        return ordered


@dataclass(frozen=True)
class RequestDescriptor:
    config: DappConfig
    imports: Mapping[str, str] = field(default_factory=dict)
    roles: Roles = field(default_factory=Roles)

    def __post_init__(self) -> None:
        object.__setattr__(self, "imports", MappingProxyType(dict(self.imports)))


@dataclass(frozen=True)
class CallResult:
    call_data: Any


@dataclass(frozen=True)
class TransactionReceipt:
    transaction_id: str
    status: str = "SEALED"
    status_code: int = 0
    error_message: str = ""
    events: tuple[Mapping[str, Any], ...] = ()


class Subscription(Protocol):
    event: str

    @property
    def active(self) -> bool:
        ...

    async def cancel(self) -> None:
        ...


class ChainGateway(Protocol):
    async def get_account(self, config: DappConfig, address: str) -> dict[str, Any]:
        ...

    async def query(
        self,
        descriptor: RequestDescriptor,
        operation: str,
        args: Optional[Mapping[str, Argument]] = None,
    ) -> CallResult:
        ...

    async def submit(
        self,
        descriptor: RequestDescriptor,
        operation: str,
        args: Optional[Mapping[str, Argument]] = None,
    ) -> TransactionReceipt:
        ...

    async def subscribe(
        self,
        config: DappConfig,
        event: str,
        callback: EventCallback,
        contract: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Subscription:
        ...
