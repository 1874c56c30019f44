"""
Chain Gateway - ledger access for DappLib.

``ChainGateway`` is the contract the dispatcher depends on;
``HttpChainGateway`` is the JSON-RPC implementation built on httpx.
Typed arguments live in ``dapplib.chain.types``.
"""

from .gateway import (
    CallResult,
    ChainGateway,
    EventCallback,
    RequestDescriptor,
    Roles,
    Subscription,
    TransactionReceipt,
)
from .rpc import HttpChainGateway, PollingSubscription
from .types import Argument

__all__ = [
    "Argument",
    "CallResult",
    "ChainGateway",
    "EventCallback",
    "HttpChainGateway",
    "PollingSubscription",
    "RequestDescriptor",
    "Roles",
    "Subscription",
    "TransactionReceipt",
]
