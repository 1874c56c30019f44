"""Shared fixtures: a test configuration and in-memory gateways."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping, Optional, Sequence

import pytest

from dapplib.chain.gateway import CallResult, EventCallback, RequestDescriptor, TransactionReceipt
from dapplib.chain.types import Argument
from dapplib.config import DappConfig, IpfsConfig
from dapplib.dispatch import DappContext
from dapplib.errors import GatewayError
from dapplib.store.ipfs import AddedEntry, UploadFile

TEST_ACCOUNTS = [
    "01cf0e2f2f715450",
    "179b6b1cb6755e31",
    "f3fcd2c1a78f5eee",
    "e03daebed8ca0615",
    "045a1763c93006ca",
    "120e725050340cab",
]


class FakeSubscription:
    def __init__(self, event: str) -> None:
        self.event = event
        self.cancelled = False

    @property
    def active(self) -> bool:
        return not self.cancelled

    async def cancel(self) -> None:
        self.cancelled = True


class FakeChainGateway:
    """Records every call; encodes arguments so type mismatches surface."""

    def __init__(self, call_data: Any = None, transaction_id: str = "a1b2c3d4e5f60718293a4b5c6d7e8f90") -> None:
        self.call_data = call_data
        self.transaction_id = transaction_id
        self.account: dict[str, Any] = {}
        self.submit_error: Optional[Exception] = None
        self.calls: list[tuple[str, Any, str, dict[str, Any]]] = []
        self.subscriptions: list[tuple[str, EventCallback, FakeSubscription]] = []

    async def get_account(self, config: DappConfig, address: str) -> dict[str, Any]:
        self.calls.append(("get_account", config, address, {}))
        return self.account

    async def query(
        self,
        descriptor: RequestDescriptor,
        operation: str,
        args: Optional[Mapping[str, Argument]] = None,
    ) -> CallResult:
        encoded = {name: arg.encode() for name, arg in (args or {}).items()}
        self.calls.append(("query", descriptor, operation, encoded))
        return CallResult(call_data=self.call_data)

    async def submit(
        self,
        descriptor: RequestDescriptor,
        operation: str,
        args: Optional[Mapping[str, Argument]] = None,
    ) -> TransactionReceipt:
        encoded = {name: arg.encode() for name, arg in (args or {}).items()}
        self.calls.append(("submit", descriptor, operation, encoded))
        if self.submit_error is not None:
            raise self.submit_error
        return TransactionReceipt(transaction_id=self.transaction_id)

    async def subscribe(
        self,
        config: DappConfig,
        event: str,
        callback: EventCallback,
        contract: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> FakeSubscription:
        subscription = FakeSubscription(event)
        self.subscriptions.append((event, callback, subscription))
        return subscription

    async def emit(self, payload: Optional[Mapping[str, Any]], error: Optional[BaseException] = None) -> None:
        for _, callback, subscription in self.subscriptions:
            if subscription.active:
                outcome = callback(payload, error)
                if inspect.isawaitable(outcome):
                    await outcome


@dataclass
class FakeContentStore:
    entries: list[AddedEntry] = field(default_factory=list)
    fail: bool = False
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def add(
        self,
        files: Sequence[UploadFile],
        wrap_with_directory: bool = False,
        pin: bool = True,
        progress: Any = None,
    ) -> AsyncIterator[AddedEntry]:
        self.calls.append({"files": list(files), "wrap_with_directory": wrap_with_directory, "pin": pin})
        if self.fail:
            raise GatewayError("IPFS add failed: connection refused")
        for entry in self.entries:
            if progress is not None:
                progress(entry.size, entry.path)
            yield entry


@pytest.fixture()
def config() -> DappConfig:
    return DappConfig(
        endpoint="http://access.test",
        ipfs=IpfsConfig(host="ipfs.test", protocol="http", port=5001),
        timeout=5.0,
        seal_timeout=5.0,
        poll_interval=0.0,
    ).with_test_accounts(TEST_ACCOUNTS)


@pytest.fixture()
def chain() -> FakeChainGateway:
    return FakeChainGateway()


@pytest.fixture()
def store() -> FakeContentStore:
    return FakeContentStore()


@pytest.fixture()
def ctx(config: DappConfig, chain: FakeChainGateway, store: FakeContentStore) -> DappContext:
    return DappContext(config=config, chain=chain, store=store)
