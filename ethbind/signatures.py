"""
Signatures, selectors & generated identifiers
=============================================

For every function, event and custom error this module computes:

- the canonical signature, e.g. ``transfer(address,uint256)`` (parameter
  names ignored, types in ABI-canonical spelling);
- the selector (first 4 bytes of Keccak-256, functions and errors) or topic
  (full Keccak-256, non-anonymous events);
- a host identifier that is unique within its namespace.

Naming scheme
-------------
Functions become snake_case method names; events and errors keep their
spelling (they become record classes). Every candidate is sanitized the same
way: characters outside ``[A-Za-z0-9_]`` become ``_``, a leading digit gets a
``_`` prefix, leading underscores collapse to one (so ``__init__`` becomes
``_init__``), and Python keywords or names reserved by the generated class get
a ``_`` suffix.

Overloads (same base name, different signatures) are numbered in
declaration order: the first keeps the bare identifier, the k-th later one
gets ``_k``. Caller-supplied aliases (signature -> identifier) are claimed
before anything else. Whatever still clashes after that, e.g. ``getX`` and
``get_x`` both becoming ``get_x``, is bumped to the next free ``_k`` suffix in
declaration order. The outcome depends only on the ABI order and the alias
map, so it is deterministic and collision-free.

Entries with the *same* full signature are duplicates, not overloads, and
raise `OverloadNameCollision`.
"""

from __future__ import annotations

import keyword
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from Crypto.Hash import keccak

from .artifact import (
    ConstructorEntry,
    ContractArtifact,
    ErrorEntry,
    EventEntry,
    FunctionEntry,
    Parameter,
)
from .errors import OverloadNameCollision
from .types import SolidityType, TupleType, parse_type

log = logging.getLogger(__name__)

__all__ = [
    "keccak256",
    "canonical_signature",
    "normalize_signature",
    "function_selector",
    "event_topic",
    "sanitize_identifier",
    "ResolvedParam",
    "ResolvedConstructor",
    "ResolvedFunction",
    "ResolvedEvent",
    "ResolvedError",
    "ResolvedContract",
    "resolve",
]

# Attributes of the generated contract class and its runtime base.
RESERVED_METHOD_NAMES = frozenset(
    {"abi", "address", "at", "bytecode", "call", "deploy", "deployed", "errors", "events", "networks", "revert_error", "transact"}
    | {"ABI_FINGERPRINT", "CONTRACT_NAME", "Errors", "Events", "HAS_FALLBACK", "HAS_RECEIVE"}
)
# Names taken by the generated method signatures themselves.
RESERVED_PARAM_NAMES = frozenset({"self", "cls", "libraries", "link_bytecode", "overrides"})
# Names the emitted event and error records must not shadow.
RESERVED_CLASS_NAMES = frozenset({"Events", "Errors", "BYTECODE", "ERRORS", "LINK_REFERENCES", "NETWORKS", "NamedTuple"})
# The contract class also must not shadow what the emitted module imports.
RESERVED_CONTRACT_NAMES = RESERVED_CLASS_NAMES | frozenset(
    {"Any", "Contract", "Deployer", "EventLog", "List", "NamedTuple", "Optional", "RevertError", "Transaction", "Tuple", "ViewCall"}
)


# ---------------
# Hashing
# ---------------

def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def canonical_signature(name: str, types: Iterable[SolidityType]) -> str:
    return f"{name}(" + ",".join(t.canonical() for t in types) + ")"


def function_selector(signature: str) -> str:
    """0x-prefixed 4-byte selector for a function or error signature."""
    return "0x" + keccak256(signature.encode("utf-8"))[:4].hex()


def event_topic(signature: str) -> str:
    """0x-prefixed 32-byte topic0 for an event signature."""
    return "0x" + keccak256(signature.encode("utf-8")).hex()


_SIGNATURE_RE = re.compile(r"^\s*([A-Za-z_$][A-Za-z0-9_$]*)\s*(\(.*\))\s*$")


def normalize_signature(signature: str) -> str:
    """
    Re-spell a user-written signature canonically, e.g. ``foo(uint, bool)``
    becomes ``foo(uint256,bool)``.

    Raises:
        ValueError: not of the form ``name(types)``.
        UnsupportedTypeError: a parameter type outside the grammar.
    """
    m = _SIGNATURE_RE.match(signature)
    if not m:
        raise ValueError(f"not a function signature: {signature!r}")
    args = parse_type(re.sub(r"\s+", "", m.group(2)))
    if not isinstance(args, TupleType):
        raise ValueError(f"not a function signature: {signature!r}")
    return canonical_signature(m.group(1), args.types)


# ---------------
# Identifiers
# ---------------

_NON_ID_CHAR = re.compile(r"[^A-Za-z0-9_]")


def _snake(name: str) -> str:
    # camelCase / PascalCase -> snake_case; runs of capitals stay together (getURI -> get_uri)
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def sanitize_identifier(name: str, *, snake: bool = False, reserved: Iterable[str] = ()) -> str:
    """Return a valid Python identifier for `name` (see module docs)."""
    s = _snake(name) if snake else name
    s = _NON_ID_CHAR.sub("_", s.strip()) or "_"
    if s[0].isdigit():
        s = "_" + s
    # A double leading underscore would be a dunder or get name-mangled in the class body.
    if s.startswith("__"):
        s = "_" + s.lstrip("_")
    if keyword.iskeyword(s) or s in reserved:
        s += "_"
    return s


def _claim(candidate: str, taken: Set[str]) -> str:
    ident = candidate
    k = 1
    while ident in taken:
        ident = f"{candidate}_{k}"
        k += 1
    taken.add(ident)
    return ident


# ---------------
# Resolved model
# ---------------

@dataclass(frozen=True)
class ResolvedParam:
    parameter: Parameter
    identifier: str

    @property
    def name(self) -> str:
        return self.parameter.name

    @property
    def type(self) -> SolidityType:
        return self.parameter.type

    @property
    def indexed(self) -> bool:
        return self.parameter.indexed


@dataclass(frozen=True)
class ResolvedConstructor:
    entry: Optional[ConstructorEntry]
    inputs: Tuple[ResolvedParam, ...] = ()

    @property
    def payable(self) -> bool:
        return self.entry is not None and self.entry.mutability == "payable"


@dataclass(frozen=True)
class ResolvedFunction:
    entry: FunctionEntry
    identifier: str
    signature: str
    selector: str
    inputs: Tuple[ResolvedParam, ...]
    outputs: Tuple[ResolvedParam, ...]


@dataclass(frozen=True)
class ResolvedEvent:
    entry: EventEntry
    identifier: str
    signature: str
    topic: Optional[str]  # None for anonymous events
    inputs: Tuple[ResolvedParam, ...]


@dataclass(frozen=True)
class ResolvedError:
    entry: ErrorEntry
    identifier: str
    signature: str
    selector: str
    inputs: Tuple[ResolvedParam, ...]


@dataclass(frozen=True)
class ResolvedContract:
    artifact: ContractArtifact
    identifier: str
    constructor: ResolvedConstructor
    functions: Tuple[ResolvedFunction, ...]
    events: Tuple[ResolvedEvent, ...]
    errors: Tuple[ResolvedError, ...]


# ---------------
# Resolution
# ---------------

def _params(params: Sequence[Parameter], prefix: str) -> Tuple[ResolvedParam, ...]:
    """Identifiers for parameters: snake_case, no leading underscores, unique."""
    taken: Set[str] = set()
    out: List[ResolvedParam] = []
    for i, p in enumerate(params):
        base = _NON_ID_CHAR.sub("_", _snake(p.name)).lstrip("_")
        if not base or base[0].isdigit():
            candidate = f"{prefix}{i}"
        else:
            candidate = sanitize_identifier(base, reserved=RESERVED_PARAM_NAMES)
        out.append(ResolvedParam(parameter=p, identifier=_claim(candidate, taken)))
    return tuple(out)


def _check_duplicates(entries: Sequence, signatures: Sequence[str]) -> None:
    by_sig: Dict[str, List[int]] = {}
    for entry, sig in zip(entries, signatures):
        by_sig.setdefault(sig, []).append(entry.index)
    for entry, sig in zip(entries, signatures):
        if len(by_sig[sig]) > 1:
            raise OverloadNameCollision(entry.name, sig, tuple(by_sig[sig]))


def _identifiers(
    entries: Sequence,
    signatures: Sequence[str],
    *,
    snake: bool,
    reserved: Iterable[str],
    aliases: Mapping[str, str],
) -> List[str]:
    reserved = frozenset(reserved)
    taken: Set[str] = set()
    out: List[Optional[str]] = [None] * len(entries)

    for i, sig in enumerate(signatures):
        if sig in aliases:
            out[i] = _claim(sanitize_identifier(aliases[sig], reserved=reserved), taken)

    counts: Dict[str, int] = {}
    for e, ident in zip(entries, out):
        if ident is None:
            counts[e.name] = counts.get(e.name, 0) + 1

    ordinals: Dict[str, int] = {}
    for i, e in enumerate(entries):
        if out[i] is not None:
            continue
        base = sanitize_identifier(e.name, snake=snake, reserved=reserved)
        ordinal = ordinals.get(e.name, 0)
        ordinals[e.name] = ordinal + 1
        candidate = base if ordinal == 0 else f"{base}_{ordinal}"
        out[i] = _claim(candidate, taken)
        if counts[e.name] > 1:
            log.debug("overload %s -> %s", signatures[i], out[i])
        elif out[i] != base:
            log.debug("identifier clash for %s, using %s", signatures[i], out[i])
    return [ident for ident in out if ident is not None]


def resolve(artifact: ContractArtifact, *, aliases: Optional[Mapping[str, str]] = None) -> ResolvedContract:
    """
    Compute signatures and unique identifiers for every entry of `artifact`.

    Args:
        artifact: a loaded artifact.
        aliases: canonical function signature -> method identifier overrides.

    Raises:
        OverloadNameCollision: two entries of one kind share a full signature.
    """
    aliases = dict(aliases or {})

    functions = artifact.functions
    fn_sigs = [canonical_signature(f.name, (p.type for p in f.inputs)) for f in functions]
    _check_duplicates(functions, fn_sigs)
    for sig in sorted(set(aliases) - set(fn_sigs)):
        log.warning("alias for %s ignored: no such function in %s", sig, artifact.name)
    fn_ids = _identifiers(functions, fn_sigs, snake=True, reserved=RESERVED_METHOD_NAMES, aliases=aliases)

    events = artifact.events
    ev_sigs = [canonical_signature(e.name, (p.type for p in e.inputs)) for e in events]
    _check_duplicates(events, ev_sigs)
    ev_ids = _identifiers(events, ev_sigs, snake=False, reserved=RESERVED_CLASS_NAMES, aliases={})

    errors = artifact.errors
    er_sigs = [canonical_signature(e.name, (p.type for p in e.inputs)) for e in errors]
    _check_duplicates(errors, er_sigs)
    er_ids = _identifiers(errors, er_sigs, snake=False, reserved=RESERVED_CLASS_NAMES, aliases={})

    ctor = artifact.constructor
    resolved = ResolvedContract(
        artifact=artifact,
        identifier=sanitize_identifier(artifact.name, reserved=RESERVED_CONTRACT_NAMES),
        constructor=ResolvedConstructor(entry=ctor, inputs=_params(ctor.inputs if ctor else (), "arg")),
        functions=tuple(
            ResolvedFunction(
                entry=f,
                identifier=ident,
                signature=sig,
                selector=function_selector(sig),
                inputs=_params(f.inputs, "arg"),
                outputs=_params(f.outputs, "out"),
            )
            for f, sig, ident in zip(functions, fn_sigs, fn_ids)
        ),
        events=tuple(
            ResolvedEvent(
                entry=e,
                identifier=ident,
                signature=sig,
                topic=None if e.anonymous else event_topic(sig),
                inputs=_params(e.inputs, "arg"),
            )
            for e, sig, ident in zip(events, ev_sigs, ev_ids)
        ),
        errors=tuple(
            ResolvedError(
                entry=e,
                identifier=ident,
                signature=sig,
                selector=function_selector(sig),
                inputs=_params(e.inputs, "arg"),
            )
            for e, sig, ident in zip(errors, er_sigs, er_ids)
        ),
    )
    log.debug(
        "resolved %s: %d function(s), %d event(s), %d error(s)",
        artifact.name,
        len(resolved.functions),
        len(resolved.events),
        len(resolved.errors),
    )
    return resolved
