"""
Ledger argument types.

Arguments are bound as ``Argument(value, type)`` pairs and encoded to the
JSON-Cadence interchange format by the gateway.  Encoding checks the value
against its declared type; a mismatch raises ``ArgumentTypeError`` rather than
coercing.

    from dapplib.chain import types as t
    Argument([1], t.Array(t.UInt64))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from ..errors import ArgumentTypeError

_ADDRESS = re.compile(r"^(0x)?[0-9a-fA-F]{1,16}$")


class CadenceType:
    name: str = ""

    def encode(self, value: Any) -> dict[str, Any]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.name

    def _mismatch(self, value: Any) -> ArgumentTypeError:
        return ArgumentTypeError(f"Value {value!r} does not match type {self!r}")


class _StringType(CadenceType):
    name = "String"

    def encode(self, value: Any) -> dict[str, Any]:
        if not isinstance(value, str):
            raise self._mismatch(value)
        return {"type": self.name, "value": value}


class _BoolType(CadenceType):
    name = "Bool"

    def encode(self, value: Any) -> dict[str, Any]:
        if not isinstance(value, bool):
            raise self._mismatch(value)
        return {"type": self.name, "value": value}


class _AddressType(CadenceType):
    name = "Address"

    def encode(self, value: Any) -> dict[str, Any]:
        if not isinstance(value, str) or not _ADDRESS.match(value):
            raise self._mismatch(value)
        return {"type": self.name, "value": "0x" + value.lower().removeprefix("0x").rjust(16, "0")}


class _IntegerType(CadenceType):
    def __init__(self, name: str, bits: int | None = None, signed: bool = False) -> None:
        self.name = name
        self.bits = bits
        self.signed = signed

    def encode(self, value: Any) -> dict[str, Any]:
        # bool is an int subclass; a flag is never a number here.
        if isinstance(value, bool) or not isinstance(value, int):
            raise self._mismatch(value)
        if self.bits is not None:
            if self.signed:
                low, high = -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1
            else:
                low, high = 0, (1 << self.bits) - 1
            if not low <= value <= high:
                raise ArgumentTypeError(f"Value {value} is out of range for {self.name}")
        elif not self.signed and value < 0:
            raise ArgumentTypeError(f"Value {value} is out of range for {self.name}")
        return {"type": self.name, "value": str(value)}


class _UFix64Type(CadenceType):
    name = "UFix64"

    def encode(self, value: Any) -> dict[str, Any]:
        if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
            raise self._mismatch(value)
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            raise self._mismatch(value) from None
        if not number.is_finite() or number < 0:
            raise ArgumentTypeError(f"Value {value} is out of range for {self.name}")
        return {"type": self.name, "value": f"{number:.8f}"}


@dataclass(frozen=True, repr=False)
class Array(CadenceType):
    of: CadenceType

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"[{self.of!r}]"

    def encode(self, value: Any) -> dict[str, Any]:
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
            raise self._mismatch(value)
        return {"type": "Array", "value": [self.of.encode(item) for item in value]}


@dataclass(frozen=True, repr=False)
class Optional(CadenceType):
    of: CadenceType

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"{self.of!r}?"

    def encode(self, value: Any) -> dict[str, Any]:
        return {"type": "Optional", "value": None if value is None else self.of.encode(value)}


String = _StringType()
Bool = _BoolType()
Address = _AddressType()
UInt8 = _IntegerType("UInt8", 8)
UInt16 = _IntegerType("UInt16", 16)
UInt32 = _IntegerType("UInt32", 32)
UInt64 = _IntegerType("UInt64", 64)
Int = _IntegerType("Int", signed=True)
Int64 = _IntegerType("Int64", 64, signed=True)
UFix64 = _UFix64Type()


@dataclass(frozen=True)
class Argument:
    value: Any
    type: CadenceType

    def encode(self) -> dict[str, Any]:
        return self.type.encode(self.value)


_INTEGER_TYPES = {
    "Int", "Int8", "Int16", "Int32", "Int64", "Int128", "Int256",
    "UInt", "UInt8", "UInt16", "UInt32", "UInt64", "UInt128", "UInt256",
    "Word8", "Word16", "Word32", "Word64",
}


def decode_value(payload: Any) -> Any:
    """Convert a JSON-Cadence value into plain Python data."""
    if not isinstance(payload, dict) or "type" not in payload:
        return payload

    kind = payload["type"]
    value = payload.get("value")
    if kind in _INTEGER_TYPES:
        return int(value)
    if kind in ("UFix64", "Fix64"):
        return Decimal(value)
    if kind == "Optional":
        return None if value is None else decode_value(value)
    if kind == "Void":
        return None
    if kind == "Array":
        return [decode_value(item) for item in value]
    if kind == "Dictionary":
        return {decode_value(item["key"]): decode_value(item["value"]) for item in value}
    if kind in ("Struct", "Resource", "Event", "Contract", "Enum"):
        fields = {f["name"]: decode_value(f["value"]) for f in value.get("fields", [])}
        if kind == "Event" and "id" in value:
            fields.setdefault("id", value["id"])
        return fields
    return value
