"""
Operation Dispatcher.

Every operation assembles a request (config, imports, signer roles, typed
arguments), hands it to the chain or content store gateway and wraps the
reply in a ``ResultEnvelope``.  Gateway errors are not caught here; they
propagate to the caller.

initialize_proposals is upload-then-submit: if the upload fails nothing is
submitted, and if the submission fails the uploaded files stay pinned.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

import structlog

from .chain import types as t
from .chain.gateway import ChainGateway, RequestDescriptor, Roles, Subscription, TransactionReceipt
from .chain.types import Argument
from .config import DappConfig
from .envelope import ResultEnvelope
from .errors import EventDeliveryError, GatewayError
from .multihash import MultihashDecomposition, decode
from .store.ipfs import ContentStore, ProgressCallback, UploadFile
from .utils import get_object_named_properties, normalize_address

logger = structlog.get_logger()

EnvelopeCallback = Callable[[ResultEnvelope], Union[None, Awaitable[None]]]

INITIALIZE_ACCOUNT_EVENT = "DappState.InitializeAccount"


@dataclass(frozen=True)
class DappContext:
    config: DappConfig
    chain: ChainGateway
    store: Optional[ContentStore] = None

    def descriptor(self, imports: Mapping[str, str], proposer: Optional[str] = None, authorizers: Sequence[str] = ()) -> RequestDescriptor:
        return RequestDescriptor(
            config=self.config,
            imports=imports,
            roles=Roles(proposer=proposer, authorizers=tuple(authorizers)),
        )


@dataclass(frozen=True)
class UploadedFile:
    path: str
    cid: str
    size: int
    multihash: MultihashDecomposition

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "cid": self.cid, "size": self.size, **self.multihash.to_dict()}


def _transaction_envelope(receipt: TransactionReceipt) -> ResultEnvelope:
    if not receipt.transaction_id:
        raise GatewayError("Submission returned an empty transaction id")
    return ResultEnvelope.transaction_hash(receipt.transaction_id)


# ============ NFT: basic ============


async def get_account_info(ctx: DappContext, account: str) -> ResultEnvelope:
    address = normalize_address(account)
    result = await ctx.chain.get_account(ctx.config, address)
    keys = result.get("keys") or [{}]
    data = {"address": result.get("address"), "balance": result.get("balance"), **keys[0]}
    return ResultEnvelope.object(data, "Account Information")


async def initialize_account(ctx: DappContext, account: str) -> ResultEnvelope:
    receipt = await ctx.chain.submit(
        ctx.descriptor({"DappState": account}, proposer=account),
        "basic_nft_initializeAccount",
    )
    return _transaction_envelope(receipt)


async def get_ids(ctx: DappContext, account: str) -> ResultEnvelope:
    result = await ctx.chain.query(
        ctx.descriptor({"DappState": account}, proposer=account),
        "basic_nft_getIDs",
        {"account": Argument("0x" + normalize_address(account), t.Address)},
    )
    return ResultEnvelope.array(result.call_data or [], "NFT IDs")


async def on_initialize_account(ctx: DappContext, callback: EnvelopeCallback) -> Subscription:
    return await add_event_handler(ctx, None, INITIALIZE_ACCOUNT_EVENT, {}, callback)


# ============ Voting: ballot ============


async def initialize_proposals(
    ctx: DappContext,
    admin: str,
    files: Sequence[UploadFile],
    progress: Optional[ProgressCallback] = None,
) -> ResultEnvelope:
    if ctx.store is None:
        raise GatewayError("initialize_proposals needs a content store")

    uploaded = await ipfs_upload(ctx.store, files, True, progress)
    proposals = [item.cid for item in uploaded]
    logger.info("Proposals uploaded", admin=admin, count=len(proposals))

    receipt = await ctx.chain.submit(
        ctx.descriptor({"DappState": admin}, proposer=admin),
        "ballot_initializeProposals",
        {"proposals": Argument(proposals, t.Array(t.String))},
    )
    return _transaction_envelope(receipt)


async def issue_ballot(ctx: DappContext, admin: str, voter: str) -> ResultEnvelope:
    receipt = await ctx.chain.submit(
        ctx.descriptor({"DappState": admin}, proposer=admin, authorizers=(admin, voter)),
        "ballot_issueBallot",
    )
    return _transaction_envelope(receipt)


async def vote(ctx: DappContext, voter: str, proposal_index: int) -> ResultEnvelope:
    receipt = await ctx.chain.submit(
        ctx.descriptor({"DappState": voter}, proposer=voter),
        "ballot_vote",
        {"proposalVotes": Argument([proposal_index], t.Array(t.UInt64))},
    )
    return _transaction_envelope(receipt)


async def get_proposal_list(ctx: DappContext, ballot_owner: str) -> ResultEnvelope:
    result = await ctx.chain.query(
        ctx.descriptor({"DappState": ballot_owner}),
        "ballot_proposalList",
    )
    return ResultEnvelope.array(result.call_data, "Proposals", formatter=["Text-20-5"])


# ============ Content store ============


async def ipfs_upload(
    store: ContentStore,
    files: Sequence[UploadFile],
    wrap_with_directory: bool,
    progress: Optional[ProgressCallback] = None,
) -> list[UploadedFile]:
    """
    Upload ``files`` (pinned) and decode each returned CID.

    Results come back in the order the store finishes them.  The directory
    wrapper entry, which has an empty path, is left out.
    """
    results: list[UploadedFile] = []
    if not files:
        return results

    async for entry in store.add(files, wrap_with_directory=wrap_with_directory, pin=True, progress=progress):
        if wrap_with_directory and entry.path == "":
            continue
        results.append(
            UploadedFile(path=entry.path, cid=entry.cid, size=entry.size, multihash=decode(entry.cid))
        )
    return results


# ============ Events ============


async def add_event_handler(
    ctx: DappContext,
    contract: Optional[str],
    event: str,
    params: Optional[Mapping[str, Any]],
    callback: EnvelopeCallback,
) -> Subscription:
    """
    Subscribe ``callback`` to a fully qualified event.

    The callback receives an ``object`` envelope of the event's named
    properties, or an ``error`` envelope if delivery fails.  Cancel through
    the returned handle.
    """

    async def handle(payload: Optional[Mapping[str, Any]], error: Optional[BaseException]) -> None:
        if error is not None:
            envelope = ResultEnvelope.error(EventDeliveryError(event, error), event=event)
        else:
            envelope = ResultEnvelope.object(
                get_object_named_properties(payload or {}), f"Event {event}", event=event
            )
        outcome = callback(envelope)
        if inspect.isawaitable(outcome):
            await outcome

    return await ctx.chain.subscribe(ctx.config, event, handle, contract=contract, params=params or {})
