"""
ABI type grammar & host type bindings
=====================================

Wire types in an artifact are plain strings (``"uint256"``, ``"address[2][]"``,
``"tuple"`` plus a ``components`` list). This module parses them once, with a
small recursive-descent parser, into a structured `SolidityType` tree; all
later stages work on that tree and never look at raw strings again.

Grammar (lowercase, no whitespace)::

    type     := base suffix*
    base     := "(" [type ("," type)*] ")"
              | ("uint" | "int") [bits] | "bytes" [size] | "byte"
              | "address" | "bool" | "string" | "tuple"
    suffix   := "[" [length] "]"

Array suffixes compose left-to-right, innermost first: ``uint256[2][]`` is a
dynamic array whose elements are fixed arrays of two ``uint256``.

`bind_type` then maps a `SolidityType` onto an abstract `HostType` plus the
identifier of the codec that encodes/decodes it. Integers take the smallest
native host width that holds their range and fall back to an
arbitrary-precision integer above 128 bits; values are never truncated.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import UnsupportedTypeError

__all__ = [
    "Primitive",
    "FixedBytes",
    "DynamicBytes",
    "String",
    "FixedArray",
    "DynamicArray",
    "TupleType",
    "SolidityType",
    "HostType",
    "TypeBinding",
    "parse_type",
    "bind_type",
]


# -----------------
# Core type system
# -----------------

@dataclass(frozen=True)
class Primitive:
    """Scalar word type: ``uint<N>``, ``int<N>``, ``address`` or ``bool``."""

    kind: str
    bits: Optional[int] = None

    def canonical(self) -> str:
        if self.kind in ("uint", "int"):
            return f"{self.kind}{self.bits}"
        return self.kind

    def is_dynamic(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "bits": self.bits}


@dataclass(frozen=True)
class FixedBytes:
    size: int

    def canonical(self) -> str:
        return f"bytes{self.size}"

    def is_dynamic(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "fixed_bytes", "size": self.size}


@dataclass(frozen=True)
class DynamicBytes:
    def canonical(self) -> str:
        return "bytes"

    def is_dynamic(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "bytes"}


@dataclass(frozen=True)
class String:
    def canonical(self) -> str:
        return "string"

    def is_dynamic(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "string"}


@dataclass(frozen=True)
class FixedArray:
    item: "SolidityType"
    length: int

    def canonical(self) -> str:
        return f"{self.item.canonical()}[{self.length}]"

    def is_dynamic(self) -> bool:
        return self.item.is_dynamic()

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "fixed_array", "length": self.length, "item": self.item.to_dict()}


@dataclass(frozen=True)
class DynamicArray:
    item: "SolidityType"

    def canonical(self) -> str:
        return f"{self.item.canonical()}[]"

    def is_dynamic(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "array", "item": self.item.to_dict()}


@dataclass(frozen=True)
class TupleType:
    """Ordered, optionally named components (Solidity structs)."""

    components: Tuple[Tuple[str, "SolidityType"], ...] = ()

    @property
    def types(self) -> Tuple["SolidityType", ...]:
        return tuple(ty for _name, ty in self.components)

    def canonical(self) -> str:
        return "(" + ",".join(ty.canonical() for ty in self.types) + ")"

    def is_dynamic(self) -> bool:
        return any(ty.is_dynamic() for ty in self.types)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "tuple",
            "components": [{"name": name, "type": ty.to_dict()} for name, ty in self.components],
        }


SolidityType = Union[Primitive, FixedBytes, DynamicBytes, String, FixedArray, DynamicArray, TupleType]


# ---------------
# Parsing
# ---------------

_LOWER = frozenset(string.ascii_lowercase)
_DIGITS = frozenset(string.digits)

# Valid in Solidity sources and some ABIs, but outside what the bindings support.
_UNSUPPORTED_BASES = {
    "fixed": "fixed-point types are not supported",
    "ufixed": "fixed-point types are not supported",
    "function": "function-pointer types are not supported",
}


class _TypeParser:
    """Single-use recursive-descent parser over one type string."""

    def __init__(self, text: str, components: Any, path: Optional[str]) -> None:
        self.text = text
        self.components = components
        self.path = path
        self.pos = 0

    def fail(self, detail: str) -> UnsupportedTypeError:
        return UnsupportedTypeError(self.text, self.path, detail)

    def parse(self) -> SolidityType:
        ty = self._type(self.components)
        if self.pos != len(self.text):
            raise self.fail(f"unexpected {self.text[self.pos]!r} at offset {self.pos}")
        return ty

    # -- scanning --

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _take(self, charset: frozenset) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in charset:
            self.pos += 1
        return self.text[start:self.pos]

    def _expect(self, ch: str) -> None:
        if self._peek() != ch:
            found = repr(self._peek()) if self._peek() else "end of input"
            raise self.fail(f"expected {ch!r}, found {found}")
        self.pos += 1

    def _number(self, label: str) -> Optional[int]:
        digits = self._take(_DIGITS)
        if not digits:
            return None
        if len(digits) > 1 and digits[0] == "0":
            raise self.fail(f"{label} has leading zeros")
        return int(digits)

    # -- productions --

    def _type(self, components: Any) -> SolidityType:
        ty = self._base(components)
        while self._peek() == "[":
            self.pos += 1
            length = self._number("array length")
            self._expect("]")
            if length is None:
                ty = DynamicArray(ty)
            elif length == 0:
                raise self.fail("fixed array length must be positive")
            else:
                ty = FixedArray(ty, length)
        return ty

    def _base(self, components: Any) -> SolidityType:
        if self._peek() == "(":
            return self._inline_tuple()

        word = self._take(_LOWER)
        if not word:
            found = repr(self._peek()) if self._peek() else "end of input"
            raise self.fail(f"expected a type name, found {found}")
        if word in _UNSUPPORTED_BASES:
            raise self.fail(_UNSUPPORTED_BASES[word])
        width = self._number("width")

        if word in ("uint", "int"):
            bits = 256 if width is None else width
            if bits % 8 != 0 or not 8 <= bits <= 256:
                raise self.fail("integer width must be a multiple of 8 in 8..256")
            return Primitive(word, bits)

        if word == "bytes":
            if width is None:
                return DynamicBytes()
            if not 1 <= width <= 32:
                raise self.fail("fixed bytes size must be in 1..32")
            return FixedBytes(width)

        if width is not None:
            raise self.fail(f"{word!r} does not take a width")

        if word == "address":
            return Primitive("address", 160)
        if word == "bool":
            return Primitive("bool")
        if word == "string":
            return String()
        if word == "byte":
            return FixedBytes(1)
        if word == "tuple":
            return self._components(components)
        raise self.fail(f"unknown type {word!r}")

    def _inline_tuple(self) -> TupleType:
        self._expect("(")
        items: List[Tuple[str, SolidityType]] = []
        if self._peek() != ")":
            items.append(("", self._type(None)))
            while self._peek() == ",":
                self.pos += 1
                items.append(("", self._type(None)))
        self._expect(")")
        return TupleType(tuple(items))

    def _components(self, components: Any) -> TupleType:
        if components is None:
            raise self.fail("tuple requires a components list")
        if not isinstance(components, Sequence) or isinstance(components, (str, bytes)):
            raise self.fail("components must be a list")
        items: List[Tuple[str, SolidityType]] = []
        for i, comp in enumerate(components):
            sub_path = f"{self.path or '$'}.components[{i}]"
            if not isinstance(comp, Mapping) or not isinstance(comp.get("type"), str):
                raise UnsupportedTypeError(self.text, sub_path, "component must be an object with a string 'type'")
            name = comp.get("name") or ""
            if not isinstance(name, str):
                raise UnsupportedTypeError(self.text, sub_path, "component name must be a string")
            items.append((name, parse_type(comp["type"], comp.get("components"), path=f"{sub_path}.type")))
        return TupleType(tuple(items))


def parse_type(
    type_string: str,
    components: Optional[Sequence[Mapping[str, Any]]] = None,
    *,
    path: Optional[str] = None,
) -> SolidityType:
    """
    Parse a wire type string into a `SolidityType`.

    Args:
        type_string: e.g. ``"uint256"``, ``"bytes32[]"``, ``"tuple[2]"``.
        components: the ABI ``components`` list accompanying a ``tuple`` type.
        path: artifact location reported in errors.

    Raises:
        UnsupportedTypeError: the string is outside the grammar.
    """
    if not isinstance(type_string, str):
        raise UnsupportedTypeError(repr(type_string), path, "type must be a string")
    return _TypeParser(type_string.strip(), components, path).parse()


# ---------------
# Host bindings
# ---------------

@dataclass(frozen=True)
class HostType:
    """
    Abstract host type reference, independent of any emitter.

    ``name`` is one of: ``UInt8..UInt128``, ``Int8..Int128``, ``BigUInt``,
    ``BigInt``, ``Bool``, ``Address``, ``FixedBytes`` (``size``), ``Bytes``,
    ``Text``, ``FixedArray`` (``size`` + one param), ``List`` (one param),
    ``Record`` (one param per component).
    """

    name: str
    size: Optional[int] = None
    params: Tuple["HostType", ...] = ()

    def describe(self) -> str:
        if self.name in ("FixedBytes",):
            return f"{self.name}<{self.size}>"
        if self.name == "FixedArray":
            return f"FixedArray<{self.params[0].describe()}, {self.size}>"
        if self.params:
            return f"{self.name}<{', '.join(p.describe() for p in self.params)}>"
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name}
        if self.size is not None:
            out["size"] = self.size
        if self.params:
            out["params"] = [p.to_dict() for p in self.params]
        return out


@dataclass(frozen=True)
class TypeBinding:
    """A host type plus the codec strategy that moves values across the wire."""

    host_type: HostType
    codec: str
    elements: Tuple["TypeBinding", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"host": self.host_type.describe(), "codec": self.codec}
        if self.elements:
            out["elements"] = [e.to_dict() for e in self.elements]
        return out


# Native host integer widths, smallest first.
_NATIVE_INT_WIDTHS = (8, 16, 32, 64, 128)

ADDRESS_SIZE = 20


def _int_host(kind: str, bits: int) -> HostType:
    prefix = "UInt" if kind == "uint" else "Int"
    for width in _NATIVE_INT_WIDTHS:
        if bits <= width:
            return HostType(f"{prefix}{width}")
    return HostType(f"Big{prefix}")


def bind_type(ty: SolidityType, memo: Optional[Dict[SolidityType, TypeBinding]] = None) -> TypeBinding:
    """
    Resolve the host binding for a parsed type.

    `memo` maps shapes to bindings already built by the caller (one per
    `assemble` call), so equal shapes share a single `TypeBinding`.
    """
    if memo is None:
        memo = {}
    binding = memo.get(ty)
    if binding is None:
        binding = _bind(ty, memo)
        memo[ty] = binding
    return binding


def _bind(ty: SolidityType, memo: Dict[SolidityType, TypeBinding]) -> TypeBinding:
    if isinstance(ty, Primitive):
        if ty.kind in ("uint", "int"):
            return TypeBinding(_int_host(ty.kind, ty.bits or 256), ty.canonical())
        if ty.kind == "address":
            return TypeBinding(HostType("Address", size=ADDRESS_SIZE), "address")
        if ty.kind == "bool":
            return TypeBinding(HostType("Bool"), "bool")
    elif isinstance(ty, FixedBytes):
        return TypeBinding(HostType("FixedBytes", size=ty.size), ty.canonical())
    elif isinstance(ty, DynamicBytes):
        return TypeBinding(HostType("Bytes"), "bytes")
    elif isinstance(ty, String):
        return TypeBinding(HostType("Text"), "string")
    elif isinstance(ty, FixedArray):
        inner = bind_type(ty.item, memo)
        return TypeBinding(
            HostType("FixedArray", size=ty.length, params=(inner.host_type,)),
            f"array[{ty.length}]",
            (inner,),
        )
    elif isinstance(ty, DynamicArray):
        inner = bind_type(ty.item, memo)
        return TypeBinding(HostType("List", params=(inner.host_type,)), "array[]", (inner,))
    elif isinstance(ty, TupleType):
        elems = tuple(bind_type(t, memo) for t in ty.types)
        return TypeBinding(HostType("Record", params=tuple(e.host_type for e in elems)), "tuple", elems)
    # Only reachable with a hand-built value outside the SolidityType union.
    raise UnsupportedTypeError(repr(ty), None, "not a SolidityType")
