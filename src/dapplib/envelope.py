"""
Result Envelope - the uniform shape every dispatcher operation returns.

The ``type`` tag is drawn from a closed set; the presentation layer picks a
rendering from it and, for arrays, from the ``formatter`` column names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence


class ResultType(str, Enum):
    TRANSACTION_HASH = "transaction-hash"
    ACCOUNT = "account"
    ARRAY = "array"
    OBJECT = "object"
    ERROR = "error"
    BIG_NUMBER = "big-number"
    IPFS_HASH_ARRAY = "ipfs-hash-array"
    SIA_HASH_ARRAY = "sia-hash-array"


class FormatterKind(str, Enum):
    NUMBER = "Number"
    ACCOUNT = "Account"
    TX_HASH = "TxHash"
    IPFS_HASH = "IpfsHash"
    SIA_HASH = "SiaHash"
    BOOLEAN = "Boolean"
    TEXT = "Text"
    STRONG = "Strong"
    PLAIN = "Plain"


@dataclass(frozen=True)
class Formatter:
    """A parsed column formatter such as ``Text-20-5``."""

    kind: FormatterKind
    begin: Optional[int] = None
    end: Optional[int] = None

    @classmethod
    def parse(cls, name: str) -> "Formatter":
        head, *sizes = name.split("-")
        try:
            kind = FormatterKind(head)
        except ValueError:
            raise ValueError(f"Unknown formatter: {name!r}") from None
        if sizes and kind is not FormatterKind.TEXT:
            raise ValueError(f"Only Text formatters take sizes: {name!r}")
        if len(sizes) > 2:
            raise ValueError(f"Malformed formatter: {name!r}")
        try:
            numbers = [int(size) for size in sizes]
        except ValueError:
            raise ValueError(f"Malformed formatter: {name!r}") from None
        return cls(
            kind=kind,
            begin=numbers[0] if numbers else None,
            end=numbers[1] if len(numbers) > 1 else None,
        )


DEFAULT_ARRAY_FORMATTER = ("Text",)


def _freeze(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    if isinstance(value, Mapping):
        return MappingProxyType(dict(value))
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    return value


@dataclass(frozen=True)
class ResultEnvelope:
    type: ResultType
    label: str
    result: Any = None
    formatter: Optional[tuple[str, ...]] = None
    hint: Optional[str] = None
    event: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        # ResultType("bogus") raises ValueError, which keeps the set closed.
        object.__setattr__(self, "type", ResultType(self.type))

        result = self.result
        formatter = self.formatter
        if self.type is ResultType.ARRAY:
            if result is None:
                result = ()
            if not formatter:
                formatter = DEFAULT_ARRAY_FORMATTER
        if formatter is not None:
            formatter = tuple(formatter)
            for name in formatter:
                Formatter.parse(name)

        object.__setattr__(self, "result", _freeze(result))
        object.__setattr__(self, "formatter", formatter)

    # ---- constructors ----

    @classmethod
    def transaction_hash(cls, transaction_id: str, label: str = "Transaction Hash") -> "ResultEnvelope":
        return cls(ResultType.TRANSACTION_HASH, label, transaction_id)

    @classmethod
    def array(
        cls,
        items: Optional[Sequence[Any]],
        label: str,
        formatter: Optional[Sequence[str]] = None,
    ) -> "ResultEnvelope":
        return cls(ResultType.ARRAY, label, items, formatter=formatter)

    @classmethod
    def object(cls, data: Mapping[str, Any], label: str, event: Optional[str] = None) -> "ResultEnvelope":
        return cls(ResultType.OBJECT, label, data, event=event)

    @classmethod
    def account(cls, address: str, label: str = "Account") -> "ResultEnvelope":
        return cls(ResultType.ACCOUNT, label, address)

    @classmethod
    def big_number(cls, value: int, label: str) -> "ResultEnvelope":
        return cls(ResultType.BIG_NUMBER, label, value)

    @classmethod
    def error(cls, exc: BaseException | str, label: str = "Error Message", event: Optional[str] = None) -> "ResultEnvelope":
        return cls(ResultType.ERROR, label, str(exc), event=event)

    @property
    def is_error(self) -> bool:
        return self.type is ResultType.ERROR

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type.value,
            "label": self.label,
            "result": _thaw(self.result),
        }
        if self.formatter is not None:
            payload["formatter"] = list(self.formatter)
        if self.hint is not None:
            payload["hint"] = self.hint
        if self.event is not None:
            payload["event"] = self.event
        return payload
