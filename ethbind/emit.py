"""
ethbind.emit
============

Backends that render a `Module` into text. The core only promises that a
`Module` is complete and self-describing; anything that implements
`Emitter.render` can turn it into source.

Two backends ship with the package:

- `PythonEmitter`: a typed Python module. The generated class subclasses the
  runtime's ``Contract`` and exposes one method per ABI function. Read-only
  (view/pure) functions return a ``ViewCall``; the others return a
  ``Transaction``. Events and custom errors become ``NamedTuple`` records
  under ``Events`` / ``Errors``::

      class ERC20(Contract):
          def balance_of(self, owner: str, **overrides: Any) -> ViewCall[int]:
              return ViewCall(self, "balanceOf(address)", "0x70a08231", [owner], **overrides)

          def transfer(self, to: str, value: int, **overrides: Any) -> Transaction:
              return Transaction(self, "transfer(address,uint256)", "0xa9059cbb", [to, value], payable=False, **overrides)

- `JsonEmitter`: the IR itself as indented, key-sorted JSON.

Both are deterministic: the same Module always renders to the same text.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Sequence

from .assembler import (
    RT_LINK_BYTECODE,
    ConstructorFn,
    EventType,
    ErrorType,
    Field,
    Method,
    Module,
)
from .types import HostType
from .version import __version__

__all__ = ["Emitter", "PythonEmitter", "JsonEmitter", "py_type", "EMITTERS"]


class Emitter(Protocol):
    """Rendering backend contract."""

    def render(self, module: Module) -> str:
        ...


# ---------- Type mapping -------------------------------------------------------

def py_type(host: HostType) -> str:
    """Python annotation for an abstract host type."""
    name = host.name
    if name.startswith(("UInt", "Int", "BigUInt", "BigInt")):
        return "int"
    if name == "Bool":
        return "bool"
    if name in ("Address", "Text"):
        return "str"
    if name in ("FixedBytes", "Bytes"):
        return "bytes"
    if name in ("FixedArray", "List"):
        return f"List[{py_type(host.params[0])}]"
    if name == "Record":
        elems = [py_type(p) for p in host.params]
        return f"Tuple[{', '.join(elems)}]" if elems else "Tuple[()]"
    return "Any"


def _returns(outputs: Sequence[Field]) -> str:
    if not outputs:
        return "None"
    if len(outputs) == 1:
        return py_type(outputs[0].binding.host_type)
    return "Tuple[" + ", ".join(py_type(o.binding.host_type) for o in outputs) + "]"


def _args(fields: Sequence[Field]) -> str:
    return "".join(f", {f.identifier}: {py_type(f.binding.host_type)}" for f in fields)


def _arg_list(fields: Sequence[Field]) -> str:
    return ", ".join(f.identifier for f in fields)


# ---------- Templates ----------------------------------------------------------

_HEADER = '''# This file was generated by ethbind {version}. Do not edit by hand.
# IR fingerprint: {fingerprint}
"""Typed bindings for the {identifier} contract."""

from __future__ import annotations

from typing import Any, List, NamedTuple, Optional, Tuple

from {runtime} import {imports}

BYTECODE: Optional[str] = {bytecode!r}
LINK_REFERENCES: dict[str, tuple[int, ...]] = {link_refs}
NETWORKS: dict[str, str] = {networks}
'''

_RECORD_TMPL = '''
    class {identifier}(NamedTuple):
        """{doc}"""

        SIGNATURE = {signature!r}
{constants}{fields}
'''

_CLASS_TMPL = '''

class {identifier}(Contract):
    """Typed client for the {identifier} contract."""

    CONTRACT_NAME = {contract_name!r}
    ABI_FINGERPRINT = {fingerprint!r}
    HAS_FALLBACK = {has_fallback!r}
    HAS_RECEIVE = {has_receive!r}
    Events = Events
    Errors = Errors
'''

_DEPLOY_TMPL = '''
    @classmethod
    def deploy(cls{args}, **overrides: Any) -> Deployer:
        """Deploy a new instance ({payable})."""
        return Deployer(cls, BYTECODE, [{arg_names}], payable={is_payable!r}, **overrides)
'''

_DEPLOY_LINKED_TMPL = '''
    @classmethod
    def deploy(cls{args}, *, libraries: dict[str, str], **overrides: Any) -> Deployer:
        """Deploy a new instance ({payable}); `libraries` maps library name to address."""
        return Deployer(cls, link_bytecode(BYTECODE, LINK_REFERENCES, libraries), [{arg_names}], payable={is_payable!r}, **overrides)
'''

_VIEW_TMPL = '''
    def {identifier}(self{args}, **overrides: Any) -> ViewCall[{ret}]:
        """{doc} [{mutability}]"""
        return ViewCall(self, {signature!r}, {selector!r}, [{arg_names}], **overrides)
'''

_SEND_TMPL = '''
    def {identifier}(self{args}, **overrides: Any) -> Transaction:
        """{doc} [{mutability}]"""
        return Transaction(self, {signature!r}, {selector!r}, [{arg_names}], payable={is_payable!r}, **overrides)
'''

_EVENTS_HELPER = '''
    def events(self, event: type, receipt_or_logs: Any) -> List[Any]:
        """Decode every log of `event` (an ``Events.*`` record) in a receipt or log list."""
        return EventLog(self, event).decode(receipt_or_logs)
'''

_ERRORS_HELPER = '''
    def revert_error(self, data: bytes) -> RevertError:
        """Match revert data against the contract's custom errors."""
        return RevertError(data, ERRORS)
'''


def _doc(text: str) -> str:
    """Escape ABI text for use inside a triple-quoted docstring."""
    return repr(text)[1:-1].replace('"', '\\"')


def _dict_literal(items: Sequence[tuple]) -> str:
    if not items:
        return "{}"
    return "{" + ", ".join(f"{k!r}: {v!r}" for k, v in items) + "}"


def _record(identifier: str, signature: str, fields: Sequence[Field], constants: Dict[str, Any]) -> str:
    consts = "".join(f"        {k} = {v!r}\n" for k, v in constants.items())
    body = "".join(f"        {f.identifier}: {py_type(f.binding.host_type)}\n" for f in fields)
    return _RECORD_TMPL.format(identifier=identifier, signature=signature, doc=_doc(signature), constants=consts, fields=body)


class PythonEmitter:
    """Render a Module as a Python source file."""

    def render(self, module: Module) -> str:
        deployment = module.deployment
        fingerprint = module.fingerprint()
        parts: List[str] = [
            _HEADER.format(
                version=__version__,
                fingerprint=fingerprint,
                identifier=module.identifier,
                runtime=module.runtime_package,
                imports=", ".join(module.imports),
                bytecode=deployment.bytecode,
                link_refs=_dict_literal([(r.placeholder, r.offsets) for r in deployment.link_refs]),
                networks=_dict_literal(list(deployment.networks)),
            )
        ]
        parts.append(self._events(module.events))
        parts.append(self._errors(module.errors))
        parts.append(
            _CLASS_TMPL.format(
                identifier=module.identifier,
                contract_name=module.contract_name,
                fingerprint=fingerprint,
                has_fallback=module.fallback is not None,
                has_receive=module.receive,
            )
        )
        if deployment.bytecode is not None:
            parts.append(self._deploy(module.constructor, linked=RT_LINK_BYTECODE in module.imports))
        for method in module.methods:
            parts.append(self._method(method))
        if module.events:
            parts.append(_EVENTS_HELPER)
        if module.errors:
            parts.append(_ERRORS_HELPER)
        parts.append(f'\n\n__all__ = ["{module.identifier}", "Events", "Errors"]\n')
        return "".join(parts)

    def _events(self, events: Sequence[EventType]) -> str:
        out = ['\n\nclass Events:\n    """Event records: indexed fields first, then data fields."""\n']
        for ev in events:
            constants = {
                "TOPIC": ev.topic,
                "INDEXED": tuple(f.identifier for f in ev.topic_fields),
            }
            out.append(_record(ev.identifier, ev.signature, ev.topic_fields + ev.data_fields, constants))
        if not events:
            out.append("    pass\n")
        return "".join(out)

    def _errors(self, errors: Sequence[ErrorType]) -> str:
        out = ['\n\nclass Errors:\n    """Custom error records, keyed by selector in ERRORS."""\n']
        for er in errors:
            out.append(_record(er.identifier, er.signature, er.fields, {"SELECTOR": er.selector}))
        if not errors:
            out.append("    pass\n")
        pairs = ", ".join(f"{er.selector!r}: Errors.{er.identifier}" for er in errors)
        out.append(f"\n\nERRORS: dict[str, type] = {{{pairs}}}\n")
        return "".join(out)

    def _deploy(self, ctor: ConstructorFn, *, linked: bool) -> str:
        tmpl = _DEPLOY_LINKED_TMPL if linked else _DEPLOY_TMPL
        return tmpl.format(
            args=_args(ctor.inputs),
            arg_names=_arg_list(ctor.inputs),
            payable="payable" if ctor.payable else "nonpayable",
            is_payable=ctor.payable,
        )

    def _method(self, method: Method) -> str:
        common = dict(
            identifier=method.identifier,
            args=_args(method.inputs),
            arg_names=_arg_list(method.inputs),
            signature=method.signature,
            doc=_doc(method.signature),
            selector=method.selector,
            mutability=method.mutability,
        )
        if method.is_read_only:
            return _VIEW_TMPL.format(ret=_returns(method.outputs), **common)
        return _SEND_TMPL.format(is_payable=method.is_payable, **common)


class JsonEmitter:
    """Render the IR tree itself; useful for non-Python backends and diffs."""

    def render(self, module: Module) -> str:
        return module.to_json(indent=2) + "\n"


EMITTERS: Dict[str, Emitter] = {"py": PythonEmitter(), "ir": JsonEmitter()}
