from __future__ import annotations

import json
import logging

from ethbind.assembler import (
    ConstructorFn,
    Deployment,
    ErrorType,
    EventType,
    Method,
    assemble,
)
from ethbind.artifact import load_artifact
from ethbind.builder import build_module
from ethbind.config import BuildConfig
from ethbind.signatures import resolve
from ethbind.version import IR_VERSION


def test_unit_order(erc20_module):
    kinds = [type(u) for u in erc20_module.units]
    assert kinds[0] is ConstructorFn
    assert kinds[-1] is Deployment
    assert kinds[1:9] == [Method] * 8
    assert kinds[9:11] == [EventType, EventType]
    assert kinds[11] is ErrorType
    assert len(kinds) == 13


def test_transfer_event_partition(erc20_module):
    transfer = next(e for e in erc20_module.events if e.name == "Transfer")
    assert [f.identifier for f in transfer.topic_fields] == ["from_", "to"]
    assert [f.identifier for f in transfer.data_fields] == ["value"]
    assert transfer.topic == "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
    assert not transfer.anonymous


def test_empty_abi_module_shape(make_artifact):
    module = build_module(make_artifact([]))
    assert len(module.units) == 2
    ctor, deployment = module.units
    assert ctor == ConstructorFn()
    assert deployment == Deployment(bytecode=None)
    assert module.imports == ("Contract",)


def test_constructor_is_synthesized(make_artifact, abi_fn):
    module = build_module(make_artifact([abi_fn("ping")], bytecode="0x6000"))
    assert module.constructor.inputs == ()
    assert module.constructor.payable is False
    assert "Deployer" in module.imports


def test_methods_carry_bindings(erc20_module):
    balance_of = next(m for m in erc20_module.methods if m.name == "balanceOf")
    assert balance_of.identifier == "balance_of"
    assert balance_of.selector == "0x70a08231"
    assert balance_of.is_read_only
    assert balance_of.inputs[0].binding.host_type.name == "Address"
    assert balance_of.outputs[0].binding.host_type.name == "BigUInt"

    decimals = next(m for m in erc20_module.methods if m.name == "decimals")
    assert decimals.outputs[0].binding.host_type.name == "UInt8"

    transfer = next(m for m in erc20_module.methods if m.name == "transfer")
    assert not transfer.is_read_only and not transfer.is_payable


def test_imports_follow_usage(erc20_module, vault_module):
    assert erc20_module.imports == (
        "Contract",
        "Deployer",
        "EventLog",
        "RevertError",
        "Transaction",
        "ViewCall",
    )
    assert vault_module.imports == ("Contract", "Deployer", "Transaction", "ViewCall", "link_bytecode")


def test_deployment_and_specials(vault_module):
    dep = vault_module.deployment
    assert dep.bytecode.startswith("0x6080__MathLib")
    assert [r.library for r in dep.link_refs] == ["MathLib"]
    assert dep.networks == (("5", "0x000000000000000000000000000000000000dEaD"),)
    assert vault_module.constructor.payable
    assert vault_module.fallback == "nonpayable"
    assert vault_module.receive is True
    assert [m.identifier for m in vault_module.methods] == ["deposit", "withdraw", "withdraw_1", "positions"]


def test_unlinked_library_is_warned(vault_raw, caplog):
    with caplog.at_level(logging.WARNING, logger="ethbind"):
        build_module(vault_raw)
    assert "MathLib" in caplog.text


def test_tuple_outputs(vault_module):
    positions = vault_module.methods[-1]
    (out,) = positions.outputs
    assert out.type.canonical() == "(address,uint128[2])[]"
    assert out.binding.host_type.describe() == "List<Record<Address, FixedArray<UInt128, 2>>>"


def test_runtime_package_and_name_override(erc20_raw):
    module = build_module(erc20_raw, BuildConfig(runtime_package="myapp.chain", contract_name="Token"))
    assert module.runtime_package == "myapp.chain"
    assert module.contract_name == "Token"
    assert module.identifier == "Token"


def test_serialization_is_stable(erc20_raw):
    art = load_artifact(erc20_raw)
    a = assemble(resolve(art))
    b = assemble(resolve(load_artifact(erc20_raw)))
    assert a == b
    assert a.to_json() == b.to_json()
    assert a.fingerprint() == b.fingerprint()
    assert a.fingerprint().startswith("0x") and len(a.fingerprint()) == 66

    doc = json.loads(a.to_json())
    assert doc["ir_version"] == IR_VERSION
    assert [u["kind"] for u in doc["units"]][:2] == ["constructor", "method"]


def test_fingerprint_tracks_abi_changes(erc20_raw):
    before = build_module(erc20_raw).fingerprint()
    erc20_raw["abi"][5]["name"] = "send"
    assert build_module(erc20_raw).fingerprint() != before


def test_assemble_contract_name_override(erc20_raw):
    module = assemble(resolve(load_artifact(erc20_raw)), contract_name="class")
    assert module.contract_name == "class"
    assert module.identifier == "class_"


def test_event_fields_keep_declared_names(erc20_module):
    transfer = erc20_module.events[0]
    assert [f.name for f in transfer.topic_fields] == ["from", "to"]
    assert [f.name for f in transfer.data_fields] == ["value"]


def test_bindings_are_shared_within_one_module(erc20_module, vault_module):
    addresses = [f.binding for m in erc20_module.methods for f in m.inputs if f.type.canonical() == "address"]
    assert len(addresses) > 1
    assert all(b is addresses[0] for b in addresses)
    vault_addr = next(f.binding for m in vault_module.methods for f in m.inputs if f.type.canonical() == "address")
    assert vault_addr == addresses[0]
