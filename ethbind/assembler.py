"""
Generated-module IR
===================

These frozen dataclasses model the bindings for one contract in a form that
any backend (text templates, AST builders, other languages) can render
without further context. Instances are produced by `assemble` from a
`ResolvedContract`.

A `Module` holds an ordered sequence of units:

- exactly one `ConstructorFn` (synthesized with no inputs when the ABI has
  no constructor);
- one `Method` per function, in ABI order;
- one `EventType` per event, with indexed inputs in ``topic_fields`` and the
  rest in ``data_fields`` (declaration order within each, since the log
  layout is positional);
- one `ErrorType` per custom error;
- exactly one `Deployment` (bytecode, unresolved link placeholders, known
  network addresses).

It also lists the runtime primitives the rendered code imports. `to_dict` /
`to_json` give a stable serialization; `fingerprint` hashes it for
reproducible-build checks. Assembly never fails on resolved input.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from .artifact import LinkRef
from .signatures import RESERVED_CONTRACT_NAMES, ResolvedContract, ResolvedParam, sanitize_identifier
from .types import SolidityType, TypeBinding, bind_type
from .version import IR_VERSION, __version__

log = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_RUNTIME_PACKAGE",
    "Field",
    "ConstructorFn",
    "Method",
    "EventType",
    "ErrorType",
    "Deployment",
    "GeneratedUnit",
    "Module",
    "assemble",
]

DEFAULT_RUNTIME_PACKAGE = "ethcontract"

# Runtime primitives referenced by generated code.
RT_CONTRACT = "Contract"
RT_DEPLOYER = "Deployer"
RT_VIEW_CALL = "ViewCall"
RT_TRANSACTION = "Transaction"
RT_EVENT_LOG = "EventLog"
RT_REVERT_ERROR = "RevertError"
RT_LINK_BYTECODE = "link_bytecode"

READ_ONLY_MUTABILITIES = ("pure", "view")


@dataclass(frozen=True)
class Field:
    name: str  # as declared; may be empty
    identifier: str
    type: SolidityType
    binding: TypeBinding

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "identifier": self.identifier,
            "abi_type": self.type.canonical(),
            "type": self.type.to_dict(),
            "binding": self.binding.to_dict(),
        }


@dataclass(frozen=True)
class ConstructorFn:
    kind: ClassVar[str] = "constructor"

    inputs: Tuple[Field, ...] = ()
    payable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "inputs": [f.to_dict() for f in self.inputs], "payable": self.payable}


@dataclass(frozen=True)
class Method:
    kind: ClassVar[str] = "method"

    identifier: str
    name: str
    signature: str
    selector: str
    inputs: Tuple[Field, ...]
    outputs: Tuple[Field, ...]
    mutability: str

    @property
    def is_read_only(self) -> bool:
        """True when the runtime should issue a call rather than a transaction."""
        return self.mutability in READ_ONLY_MUTABILITIES

    @property
    def is_payable(self) -> bool:
        return self.mutability == "payable"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "identifier": self.identifier,
            "name": self.name,
            "signature": self.signature,
            "selector": self.selector,
            "mutability": self.mutability,
            "inputs": [f.to_dict() for f in self.inputs],
            "outputs": [f.to_dict() for f in self.outputs],
        }


@dataclass(frozen=True)
class EventType:
    kind: ClassVar[str] = "event"

    identifier: str
    name: str
    signature: str
    topic: Optional[str]
    anonymous: bool
    topic_fields: Tuple[Field, ...]
    data_fields: Tuple[Field, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "identifier": self.identifier,
            "name": self.name,
            "signature": self.signature,
            "topic": self.topic,
            "anonymous": self.anonymous,
            "topic_fields": [f.to_dict() for f in self.topic_fields],
            "data_fields": [f.to_dict() for f in self.data_fields],
        }


@dataclass(frozen=True)
class ErrorType:
    kind: ClassVar[str] = "error"

    identifier: str
    name: str
    signature: str
    selector: str
    fields: Tuple[Field, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "identifier": self.identifier,
            "name": self.name,
            "signature": self.signature,
            "selector": self.selector,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class Deployment:
    kind: ClassVar[str] = "deployment"

    bytecode: Optional[str]
    link_refs: Tuple[LinkRef, ...] = ()
    networks: Tuple[Tuple[str, str], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "bytecode": self.bytecode,
            "link_refs": [r.to_dict() for r in self.link_refs],
            "networks": [{"network": n, "address": a} for n, a in self.networks],
        }


GeneratedUnit = Union[ConstructorFn, Method, EventType, ErrorType, Deployment]


@dataclass(frozen=True)
class Module:
    contract_name: str
    identifier: str
    runtime_package: str
    units: Tuple[GeneratedUnit, ...]
    imports: Tuple[str, ...]
    fallback: Optional[str] = None  # fallback mutability, if the contract has one
    receive: bool = False

    def _of(self, cls: type) -> Tuple[Any, ...]:
        return tuple(u for u in self.units if isinstance(u, cls))

    @property
    def constructor(self) -> ConstructorFn:
        return self._of(ConstructorFn)[0]

    @property
    def methods(self) -> Tuple[Method, ...]:
        return self._of(Method)

    @property
    def events(self) -> Tuple[EventType, ...]:
        return self._of(EventType)

    @property
    def errors(self) -> Tuple[ErrorType, ...]:
        return self._of(ErrorType)

    @property
    def deployment(self) -> Deployment:
        return self._of(Deployment)[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ir_version": IR_VERSION,
            "generator": f"ethbind {__version__}",
            "contract_name": self.contract_name,
            "identifier": self.identifier,
            "runtime_package": self.runtime_package,
            "imports": list(self.imports),
            "fallback": self.fallback,
            "receive": self.receive,
            "units": [u.to_dict() for u in self.units],
        }

    def to_json(self, *, indent: Optional[int] = None) -> str:
        separators = (",", ":") if indent is None else (",", ": ")
        return json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True, indent=indent, separators=separators)

    def fingerprint(self) -> str:
        """SHA3-256 (0x...) over the compact canonical JSON."""
        return "0x" + hashlib.sha3_256(self.to_json().encode("utf-8")).hexdigest()


# ---------------
# Assembly
# ---------------

def _fields(params: Sequence[ResolvedParam], memo: Dict[SolidityType, TypeBinding]) -> Tuple[Field, ...]:
    return tuple(
        Field(name=p.name, identifier=p.identifier, type=p.type, binding=bind_type(p.type, memo))
        for p in params
    )


def _imports(units: Sequence[GeneratedUnit], deployment: Deployment) -> Tuple[str, ...]:
    needed = {RT_CONTRACT}
    for unit in units:
        if isinstance(unit, Method):
            needed.add(RT_VIEW_CALL if unit.is_read_only else RT_TRANSACTION)
        elif isinstance(unit, EventType):
            needed.add(RT_EVENT_LOG)
        elif isinstance(unit, ErrorType):
            needed.add(RT_REVERT_ERROR)
    if deployment.bytecode is not None:
        needed.add(RT_DEPLOYER)
    if deployment.link_refs:
        needed.add(RT_LINK_BYTECODE)
    return tuple(sorted(needed))


def assemble(
    resolved: ResolvedContract,
    *,
    runtime_package: str = DEFAULT_RUNTIME_PACKAGE,
    contract_name: Optional[str] = None,
) -> Module:
    """Build the `Module` IR for a resolved contract; `contract_name` renames the generated class."""
    artifact = resolved.artifact
    memo: Dict[SolidityType, TypeBinding] = {}
    units: List[GeneratedUnit] = [
        ConstructorFn(inputs=_fields(resolved.constructor.inputs, memo), payable=resolved.constructor.payable)
    ]

    for fn in resolved.functions:
        units.append(
            Method(
                identifier=fn.identifier,
                name=fn.entry.name,
                signature=fn.signature,
                selector=fn.selector,
                inputs=_fields(fn.inputs, memo),
                outputs=_fields(fn.outputs, memo),
                mutability=fn.entry.mutability,
            )
        )

    for ev in resolved.events:
        units.append(
            EventType(
                identifier=ev.identifier,
                name=ev.entry.name,
                signature=ev.signature,
                topic=ev.topic,
                anonymous=ev.entry.anonymous,
                topic_fields=_fields([p for p in ev.inputs if p.indexed], memo),
                data_fields=_fields([p for p in ev.inputs if not p.indexed], memo),
            )
        )

    for er in resolved.errors:
        units.append(
            ErrorType(
                identifier=er.identifier,
                name=er.entry.name,
                signature=er.signature,
                selector=er.selector,
                fields=_fields(er.inputs, memo),
            )
        )

    bytecode = artifact.bytecode
    deployment = Deployment(
        bytecode=bytecode.hex if bytecode else None,
        link_refs=bytecode.link_refs if bytecode else (),
        networks=tuple(artifact.deployments.items()),
    )
    if bytecode is not None and not bytecode.is_linked:
        for ref in bytecode.link_refs:
            log.warning("%s: library %s is not linked (%d site(s))", artifact.name, ref.library, len(ref.offsets))
    units.append(deployment)

    fallback = artifact.fallback
    module = Module(
        contract_name=contract_name or artifact.name,
        identifier=sanitize_identifier(contract_name, reserved=RESERVED_CONTRACT_NAMES) if contract_name else resolved.identifier,
        runtime_package=runtime_package,
        units=tuple(units),
        imports=_imports(units, deployment),
        fallback=fallback.mutability if fallback else None,
        receive=artifact.receive is not None,
    )
    log.debug("assembled %s: %d unit(s), imports=%s", artifact.name, len(module.units), ",".join(module.imports))
    return module
