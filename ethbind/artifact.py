"""
Artifact loading & validation
=============================

Turns raw artifact data (already-parsed JSON) into an immutable
`ContractArtifact`. It performs:

- Schema validation against the bundled ``schemas/artifact.schema.json``
  (top level first, then each ABI entry against the sub-schema picked by
  its ``type`` discriminator), so errors point at ``abi[3].inputs[0].type``
  rather than at a whole ``oneOf``.
- Type parsing of every parameter via `ethbind.types.parse_type`; an
  unparseable type string stops loading with `UnsupportedTypeError`.
- Bytecode scanning for library-link placeholders (reported, never resolved).
- Deployment address checks for the ``networks`` map.

Unknown or extra fields are ignored for forward compatibility. Apart from
`read_artifact` (the thin file shim) nothing here touches the filesystem.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import jsonschema
from jsonschema.exceptions import best_match

from .errors import ArtifactNotFound, ArtifactParseError, IoError
from .types import SolidityType, parse_type

log = logging.getLogger(__name__)

__all__ = [
    "Parameter",
    "ConstructorEntry",
    "FunctionEntry",
    "EventEntry",
    "ErrorEntry",
    "FallbackEntry",
    "ReceiveEntry",
    "AbiEntry",
    "LinkRef",
    "Bytecode",
    "ContractArtifact",
    "load_artifact",
    "read_artifact",
    "parse_bytecode",
]


# ---------------
# Data model
# ---------------

@dataclass(frozen=True)
class Parameter:
    name: str
    type: SolidityType
    # Only meaningful for event inputs.
    indexed: bool = False
    internal_type: Optional[str] = None


@dataclass(frozen=True)
class ConstructorEntry:
    inputs: Tuple[Parameter, ...] = ()
    mutability: str = "nonpayable"
    index: int = -1


@dataclass(frozen=True)
class FunctionEntry:
    name: str
    inputs: Tuple[Parameter, ...] = ()
    outputs: Tuple[Parameter, ...] = ()
    mutability: str = "nonpayable"  # "pure" | "view" | "nonpayable" | "payable"
    index: int = -1


@dataclass(frozen=True)
class EventEntry:
    name: str
    inputs: Tuple[Parameter, ...] = ()
    anonymous: bool = False
    index: int = -1


@dataclass(frozen=True)
class ErrorEntry:
    name: str
    inputs: Tuple[Parameter, ...] = ()
    index: int = -1


@dataclass(frozen=True)
class FallbackEntry:
    mutability: str = "nonpayable"
    index: int = -1


@dataclass(frozen=True)
class ReceiveEntry:
    index: int = -1


AbiEntry = Union[ConstructorEntry, FunctionEntry, EventEntry, ErrorEntry, FallbackEntry, ReceiveEntry]


@dataclass(frozen=True)
class LinkRef:
    """
    An unresolved library reference inside creation bytecode.

    ``placeholder`` is the literal 40-character marker, ``library`` the name
    (Truffle style) or ``$hash$`` (solc >= 0.5 style) it stands for, and
    ``offsets`` the byte positions where the 20-byte address must go.
    """

    placeholder: str
    library: str
    offsets: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"placeholder": self.placeholder, "library": self.library, "offsets": list(self.offsets)}


@dataclass(frozen=True)
class Bytecode:
    hex: str  # 0x-prefixed, placeholders left in place
    link_refs: Tuple[LinkRef, ...] = ()

    @property
    def is_linked(self) -> bool:
        return not self.link_refs


@dataclass(frozen=True)
class ContractArtifact:
    name: str
    abi: Tuple[AbiEntry, ...]
    bytecode: Optional[Bytecode] = None
    deployments: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def constructor(self) -> Optional[ConstructorEntry]:
        for entry in self.abi:
            if isinstance(entry, ConstructorEntry):
                return entry
        return None

    @property
    def functions(self) -> Tuple[FunctionEntry, ...]:
        return tuple(e for e in self.abi if isinstance(e, FunctionEntry))

    @property
    def events(self) -> Tuple[EventEntry, ...]:
        return tuple(e for e in self.abi if isinstance(e, EventEntry))

    @property
    def errors(self) -> Tuple[ErrorEntry, ...]:
        return tuple(e for e in self.abi if isinstance(e, ErrorEntry))

    @property
    def fallback(self) -> Optional[FallbackEntry]:
        return next((e for e in self.abi if isinstance(e, FallbackEntry)), None)

    @property
    def receive(self) -> Optional[ReceiveEntry]:
        return next((e for e in self.abi if isinstance(e, ReceiveEntry)), None)


# ---------------
# Schema
# ---------------

def _load_schema() -> Dict[str, Any]:
    text = resources.files("ethbind").joinpath("schemas/artifact.schema.json").read_text(encoding="utf-8")
    return json.loads(text)


_SCHEMA: Dict[str, Any] = _load_schema()
_ENTRY_KINDS = ("function", "constructor", "event", "error", "fallback", "receive")

_ARTIFACT_VALIDATOR = jsonschema.Draft202012Validator(_SCHEMA)
# Sub-schemas carry the shared $defs so that "#/$defs/param" still resolves.
_ENTRY_VALIDATORS = {
    kind: jsonschema.Draft202012Validator({**_SCHEMA["$defs"][kind], "$defs": _SCHEMA["$defs"]})
    for kind in _ENTRY_KINDS
}


def _format_path(prefix: str, parts: Iterable[Any]) -> str:
    out = prefix
    for part in parts:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out = f"{out}.{part}" if out else str(part)
    return out or "$"


def _check(validator: jsonschema.Draft202012Validator, instance: Any, prefix: str) -> None:
    err = best_match(validator.iter_errors(instance))
    if err is not None:
        raise ArtifactParseError(_format_path(prefix, err.absolute_path), err.message)


def _check_text(value: Any, parts: Tuple[Any, ...] = ()) -> None:
    """Reject strings that cannot be encoded as UTF-8 (lone surrogates from ``\\ud800`` escapes)."""
    if isinstance(value, str):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ArtifactParseError(_format_path("", parts), "text is not valid UTF-8") from e
    elif isinstance(value, Mapping):
        for key, item in value.items():
            _check_text(item, parts + (key,))
    elif isinstance(value, list):
        for i, item in enumerate(value):
            _check_text(item, parts + (i,))


# ---------------
# Bytecode
# ---------------

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_PLACEHOLDER_LEN = 40


def parse_bytecode(raw: str, *, path: str = "bytecode") -> Optional[Bytecode]:
    """
    Validate creation bytecode and collect its library-link placeholders.

    Returns None for an empty string or a bare ``0x`` (abstract contracts and
    interfaces have no bytecode).
    """
    code = raw.strip()
    if code[:2] in ("0x", "0X"):
        code = code[2:]
    if not code:
        return None

    offsets: Dict[str, List[int]] = {}
    pos = 0
    while True:
        start = code.find("__", pos)
        segment = code[pos:] if start < 0 else code[pos:start]
        if not _HEX_RE.match(segment):
            raise ArtifactParseError(path, "bytecode is not valid hex")
        if start < 0:
            break
        placeholder = code[start:start + _PLACEHOLDER_LEN]
        if len(placeholder) != _PLACEHOLDER_LEN or not placeholder.endswith("__"):
            raise ArtifactParseError(path, f"malformed link placeholder at hex offset {start}")
        if start % 2:
            raise ArtifactParseError(path, f"misaligned link placeholder at hex offset {start}")
        offsets.setdefault(placeholder, []).append(start // 2)
        pos = start + _PLACEHOLDER_LEN

    if len(code) % 2:
        raise ArtifactParseError(path, "bytecode has an odd number of hex digits")

    refs = tuple(
        LinkRef(placeholder=ph, library=ph.strip("_"), offsets=tuple(offs))
        for ph, offs in offsets.items()
    )
    if refs:
        log.debug("bytecode references %d unlinked librar%s", len(refs), "y" if len(refs) == 1 else "ies")
    return Bytecode(hex="0x" + code, link_refs=refs)


# ---------------
# Entries
# ---------------

def _params(items: Optional[List[Dict[str, Any]]], path: str, *, allow_indexed: bool = False) -> Tuple[Parameter, ...]:
    out: List[Parameter] = []
    for i, p in enumerate(items or []):
        out.append(
            Parameter(
                name=p.get("name") or "",
                type=parse_type(p["type"], p.get("components"), path=f"{path}[{i}].type"),
                indexed=bool(p.get("indexed", False)) if allow_indexed else False,
                internal_type=p.get("internalType"),
            )
        )
    return tuple(out)


def _function_mutability(item: Mapping[str, Any]) -> str:
    if "stateMutability" in item:
        return str(item["stateMutability"])
    # Pre-0.4.16 artifacts only carry the boolean flags.
    if item.get("constant"):
        return "view"
    if item.get("payable"):
        return "payable"
    return "nonpayable"


def _entry(item: Dict[str, Any], index: int) -> AbiEntry:
    path = f"abi[{index}]"
    kind = item.get("type", "function")
    if kind not in _ENTRY_KINDS:
        raise ArtifactParseError(f"{path}.type", f"unrecognized entry type {kind!r}")
    _check(_ENTRY_VALIDATORS[kind], item, path)

    if kind == "function":
        return FunctionEntry(
            name=item["name"],
            inputs=_params(item.get("inputs"), f"{path}.inputs"),
            outputs=_params(item.get("outputs"), f"{path}.outputs"),
            mutability=_function_mutability(item),
            index=index,
        )
    if kind == "event":
        return EventEntry(
            name=item["name"],
            inputs=_params(item.get("inputs"), f"{path}.inputs", allow_indexed=True),
            anonymous=bool(item.get("anonymous", False)),
            index=index,
        )
    if kind == "error":
        return ErrorEntry(name=item["name"], inputs=_params(item.get("inputs"), f"{path}.inputs"), index=index)
    if kind == "constructor":
        return ConstructorEntry(
            inputs=_params(item.get("inputs"), f"{path}.inputs"),
            mutability=_function_mutability(item),
            index=index,
        )
    if kind == "fallback":
        return FallbackEntry(mutability=_function_mutability(item), index=index)
    return ReceiveEntry(index=index)


def _deployments(networks: Optional[Mapping[str, Any]]) -> Mapping[str, str]:
    out: Dict[str, str] = {}
    for network_id, value in (networks or {}).items():
        address = value if isinstance(value, str) else value["address"]
        if not _ADDRESS_RE.match(address):
            raise ArtifactParseError(f"networks.{network_id}", f"invalid address {address!r}")
        out[str(network_id)] = address
    return MappingProxyType(out)


# ----------------------------
# Public API
# ----------------------------

def load_artifact(raw: Union[Mapping[str, Any], List[Any]], *, name: Optional[str] = None) -> ContractArtifact:
    """
    Validate raw artifact data and build a `ContractArtifact`.

    Args:
        raw: parsed artifact JSON. A bare ABI list is accepted when `name`
            is given.
        name: overrides ``contractName`` (and is required when the artifact
            has none).

    Raises:
        ArtifactParseError: structural violation, with its location.
        UnsupportedTypeError: a parameter type outside the ABI grammar.
    """
    if isinstance(raw, list):
        raw = {"abi": raw}
    if not isinstance(raw, Mapping):
        raise ArtifactParseError("$", f"artifact must be an object, got {type(raw).__name__}")
    if not isinstance(raw, dict):
        raw = dict(raw)
    _check(_ARTIFACT_VALIDATOR, raw, "")
    for key in ("contractName", "abi", "bytecode", "networks"):
        _check_text(raw.get(key), (key,))

    contract_name = name or raw.get("contractName")
    if not contract_name:
        raise ArtifactParseError("contractName", "artifact has no contract name")
    _check_text(contract_name, ("contractName",))

    entries = tuple(_entry(item, i) for i, item in enumerate(raw["abi"]))
    for singleton in (ConstructorEntry, FallbackEntry, ReceiveEntry):
        found = [e for e in entries if isinstance(e, singleton)]
        if len(found) > 1:
            raise ArtifactParseError(f"abi[{found[1].index}]", f"more than one {singleton.__name__[:-5].lower()} entry")

    bytecode_raw = raw.get("bytecode")
    if isinstance(bytecode_raw, Mapping):
        bytecode_raw = bytecode_raw["object"]
    bytecode = parse_bytecode(bytecode_raw, path="bytecode") if bytecode_raw else None

    artifact = ContractArtifact(
        name=contract_name,
        abi=entries,
        bytecode=bytecode,
        deployments=_deployments(raw.get("networks")),
    )
    log.debug(
        "loaded artifact %s: %d abi entries, bytecode=%s, %d deployment(s)",
        contract_name,
        len(entries),
        "yes" if bytecode else "no",
        len(artifact.deployments),
    )
    return artifact


def read_artifact(path: Union[str, Path]) -> Any:
    """
    Read and JSON-decode an artifact file (the only I/O on the input side).

    Raises:
        ArtifactNotFound: no such file.
        ArtifactParseError: the file is not valid JSON.
        IoError: the file exists but could not be read.
    """
    p = Path(path)
    if not p.is_file():
        raise ArtifactNotFound(str(p))
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise IoError(str(p), str(e)) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ArtifactParseError("$", f"invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e
