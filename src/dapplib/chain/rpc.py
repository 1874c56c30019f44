"""
JSON-RPC Chain Gateway.

Talks to a ledger access node over HTTP with httpx.  Operation names are
resolved by the node's own script/transaction registry; this client only
ships the request (imports, roles, JSON-Cadence arguments, signatures) and
maps the reply back.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Mapping, Optional

import httpx
import structlog

from ..config import DappConfig
from ..errors import GatewayError
from ..utils import normalize_address, unique_id
from .gateway import CallResult, EventCallback, RequestDescriptor, TransactionReceipt
from .signer import resolve_signers, sign_request
from .types import Argument, decode_value

logger = structlog.get_logger()

SEALED = "SEALED"
EXPIRED = "EXPIRED"


def _encode_arguments(args: Optional[Mapping[str, Argument]]) -> list[dict[str, Any]]:
    # Raises ArgumentTypeError (a GatewayError) on a value/type mismatch.
    return [{"name": name, **argument.encode()} for name, argument in (args or {}).items()]


class HttpChainGateway:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.transport = transport

    async def _rpc_call(self, config: DappConfig, method: str, params: Any) -> Any:
        """
        Make a JSON-RPC call against the configured access node.

        Raises:
            GatewayError: On transport failure, HTTP error status or an RPC
                error object in the reply.
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": unique_id(),
        }
        try:
            async with httpx.AsyncClient(timeout=config.timeout, transport=self.transport) as client:
                response = await client.post(config.endpoint, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise GatewayError(f"{method} failed: {exc}") from exc
        except ValueError as exc:
            raise GatewayError(f"{method} returned a malformed response: {exc}") from exc

        if not isinstance(data, dict):
            raise GatewayError(f"{method} returned a malformed response: {data!r}")
        if "error" in data:
            raise GatewayError(f"RPC error: {data['error']}")
        return data.get("result")

    async def get_account(self, config: DappConfig, address: str) -> dict[str, Any]:
        result = await self._rpc_call(config, "dapp_getAccount", ["0x" + normalize_address(address)])
        if not isinstance(result, dict):
            raise GatewayError(f"Account {address} not found")
        return result

    async def query(
        self,
        descriptor: RequestDescriptor,
        operation: str,
        args: Optional[Mapping[str, Argument]] = None,
    ) -> CallResult:
        params = {
            "operation": operation,
            "imports": dict(descriptor.imports),
            "arguments": _encode_arguments(args),
        }
        raw = await self._rpc_call(descriptor.config, "dapp_executeScript", params)
        return CallResult(call_data=decode_value(raw))

    async def submit(
        self,
        descriptor: RequestDescriptor,
        operation: str,
        args: Optional[Mapping[str, Argument]] = None,
    ) -> TransactionReceipt:
        config = descriptor.config
        signers = resolve_signers(config, descriptor.roles)
        request: dict[str, Any] = {
            "operation": operation,
            "imports": dict(descriptor.imports),
            "arguments": _encode_arguments(args),
            "proposer": descriptor.roles.proposer,
            "payer": descriptor.roles.proposer,
            "authorizers": list(descriptor.roles.authorizers) or [descriptor.roles.proposer],
        }
        request["signatures"] = [
            sign_request(request, address, key) for address, key in signers if key is not None
        ]

        transaction_id = await self._rpc_call(config, "dapp_sendTransaction", request)
        if not transaction_id:
            raise GatewayError(f"{operation}: access node returned no transaction id")
        logger.info("Transaction submitted", operation=operation, transaction_id=transaction_id)

        return await self.wait_for_seal(config, transaction_id)

    async def wait_for_seal(self, config: DappConfig, transaction_id: str) -> TransactionReceipt:
        """
        Poll the transaction result until it is sealed.

        Raises:
            GatewayError: If execution failed, the transaction expired or it
                was not sealed within ``config.seal_timeout``.
        """
        start = time.monotonic()
        while time.monotonic() - start < config.seal_timeout:
            result = await self._rpc_call(config, "dapp_getTransactionResult", [transaction_id])
            result = result or {}
            if not isinstance(result, dict):
                raise GatewayError(f"Transaction {transaction_id}: malformed result {result!r}")
            status = result.get("status", "UNKNOWN")
            error_message = result.get("errorMessage") or ""
            try:
                status_code = int(result.get("statusCode") or 0)
            except (TypeError, ValueError) as exc:
                raise GatewayError(f"Transaction {transaction_id}: malformed status code") from exc
            if error_message or status_code:
                raise GatewayError(f"Transaction {transaction_id} failed: {error_message}")
            if status == EXPIRED:
                raise GatewayError(f"Transaction {transaction_id} expired")
            if status == SEALED:
                logger.info("Transaction sealed", transaction_id=transaction_id)
                try:
                    events = tuple(decode_value(e.get("payload", e)) for e in result.get("events") or [])
                except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as exc:
                    raise GatewayError(f"Transaction {transaction_id}: malformed events: {exc}") from exc
                return TransactionReceipt(
                    transaction_id=transaction_id,
                    status=status,
                    status_code=0,
                    events=events,
                )
            await asyncio.sleep(config.poll_interval)

        raise GatewayError(f"Transaction {transaction_id} not sealed within {config.seal_timeout}s")

    async def subscribe(
        self,
        config: DappConfig,
        event: str,
        callback: EventCallback,
        contract: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> "PollingSubscription":
        subscription = PollingSubscription(self, config, event, callback, contract, params)
        subscription.start()
        return subscription


class PollingSubscription:
    """
    Polls ``dapp_getEvents`` for one event type until cancelled.

    A gateway failure or a malformed page is handed to the callback once and
    ends the subscription; there is no retry. A callback that raises is
    logged and also ends the subscription.
    """

    def __init__(
        self,
        gateway: HttpChainGateway,
        config: DappConfig,
        event: str,
        callback: EventCallback,
        contract: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.gateway = gateway
        self.config = config
        self.event = event
        self.callback = callback
        self.contract = contract
        self.params = dict(params or {})
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def cancel(self) -> None:
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _deliver(self, payload: Optional[Mapping[str, Any]], error: Optional[BaseException]) -> bool:
        """Hand one delivery to the callback; False when the callback raised."""
        try:
            outcome = self.callback(payload, error)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Event callback raised", event_type=self.event)
            return False
        return True

    async def _run(self) -> None:
        start_height = self.params.get("startHeight")
        while True:
            query = {"type": self.event, "contract": self.contract, "startHeight": start_height}
            try:
                page = await self.gateway._rpc_call(self.config, "dapp_getEvents", query)
                payloads, height = _read_events_page(page)
            except GatewayError as exc:
                logger.warning("Event subscription failed", event_type=self.event, error=str(exc))
                await self._deliver(None, exc)
                return

            for payload in payloads:
                if not await self._deliver(payload, None):
                    return
            if height is not None:
                start_height = height + 1
            await asyncio.sleep(self.config.poll_interval)


def _read_events_page(page: Any) -> tuple[list[Mapping[str, Any]], Optional[int]]:
    """
    Decode one ``dapp_getEvents`` reply into event payloads and its height.

    Raises:
        GatewayError: If the page or any event in it is malformed, or events
            arrive without a height to resume from.
    """
    if page is None:
        return [], None
    if not isinstance(page, dict):
        raise GatewayError(f"dapp_getEvents returned a malformed page: {page!r}")
    try:
        payloads = [
            decode_value(item.get("payload", item)) for item in page.get("events") or []
        ]
        height = None if page.get("height") is None else int(page["height"])
    except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as exc:
        raise GatewayError(f"dapp_getEvents returned a malformed event: {exc}") from exc

    for payload in payloads:
        if not isinstance(payload, Mapping):
            raise GatewayError(f"dapp_getEvents returned a malformed event: {payload!r}")
    if payloads and height is None:
        raise GatewayError("dapp_getEvents returned events without a height")
    return payloads, height
