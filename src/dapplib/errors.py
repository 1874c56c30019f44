"""Error taxonomy shared by the dispatcher, the gateways and the CLI."""

from __future__ import annotations


class DappError(RuntimeError):
    exit_code: int = 1


class ConfigError(DappError):
    exit_code = 2


class GatewayError(DappError):
    """A chain or content store call failed (network, consensus or validation)."""

    exit_code = 3


class ArgumentTypeError(GatewayError):
    """A typed argument does not match its declared ledger type."""


class DecodeError(DappError, ValueError):
    exit_code = 4


class EventDeliveryError(DappError):
    exit_code = 5

    def __init__(self, event: str, cause: BaseException | str) -> None:
        super().__init__(f"Event {event} delivery failed: {cause}")
        self.event = event
        self.cause = cause
