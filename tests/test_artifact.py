from __future__ import annotations

import json
from types import MappingProxyType

import pytest

from ethbind.artifact import (
    ConstructorEntry,
    ErrorEntry,
    EventEntry,
    FallbackEntry,
    FunctionEntry,
    ReceiveEntry,
    load_artifact,
    parse_bytecode,
    read_artifact,
)
from ethbind.builder import build_module
from ethbind.errors import ArtifactNotFound, ArtifactParseError, BindgenError, UnsupportedTypeError
from ethbind.types import Primitive


def test_load_erc20(erc20_raw):
    art = load_artifact(erc20_raw)
    assert art.name == "ERC20"
    assert [f.name for f in art.functions][:3] == ["name", "decimals", "totalSupply"]
    assert [e.name for e in art.events] == ["Transfer", "Approval"]
    assert [e.name for e in art.errors] == ["InsufficientBalance"]
    assert isinstance(art.constructor, ConstructorEntry)
    assert art.constructor.inputs[2].type == Primitive("uint", 256)
    assert art.constructor.inputs[0].internal_type == "string"
    assert art.fallback is None and art.receive is None


def test_entries_keep_abi_positions(erc20_raw):
    art = load_artifact(erc20_raw)
    assert [e.index for e in art.abi] == list(range(len(erc20_raw["abi"])))
    transfer = next(e for e in art.events if e.name == "Transfer")
    assert [p.indexed for p in transfer.inputs] == [True, True, False]


def test_indexed_is_ignored_outside_events(make_artifact):
    art = load_artifact(
        make_artifact([{"type": "function", "name": "f", "inputs": [{"name": "x", "type": "uint8", "indexed": True}]}])
    )
    assert art.functions[0].inputs[0].indexed is False


def test_vault_entry_kinds(vault_raw):
    art = load_artifact(vault_raw)
    kinds = [type(e) for e in art.abi]
    assert kinds == [
        ConstructorEntry,
        FunctionEntry,
        FunctionEntry,
        FunctionEntry,
        FunctionEntry,
        FallbackEntry,
        ReceiveEntry,
    ]
    assert art.constructor.mutability == "payable"
    assert art.fallback.mutability == "nonpayable"


def test_legacy_mutability_flags(vault_raw):
    art = load_artifact(vault_raw)
    by_sig = {(f.name, len(f.inputs)): f.mutability for f in art.functions}
    assert by_sig[("deposit", 0)] == "payable"
    assert by_sig[("withdraw", 1)] == "nonpayable"  # constant: false, payable: false
    assert by_sig[("positions", 1)] == "view"  # constant: true


def test_missing_type_defaults_to_function(make_artifact):
    art = load_artifact(make_artifact([{"name": "ping", "inputs": [], "outputs": []}]))
    (f,) = art.functions
    assert f.name == "ping" and f.mutability == "nonpayable"


def test_bare_abi_list_needs_a_name(erc20_raw):
    abi = erc20_raw["abi"]
    with pytest.raises(ArtifactParseError) as ei:
        load_artifact(abi)
    assert ei.value.path == "contractName"

    art = load_artifact(abi, name="Token")
    assert art.name == "Token"


def test_name_override_wins(erc20_raw):
    assert load_artifact(erc20_raw, name="MyToken").name == "MyToken"


def test_accepts_read_only_mappings(erc20_raw):
    art = load_artifact(MappingProxyType(erc20_raw))
    assert art.name == "ERC20"


def test_unknown_fields_are_ignored(erc20_raw):
    erc20_raw["metadata"] = {"compiler": "0.8.24"}
    erc20_raw["abi"][1]["gas"] = 1234
    load_artifact(erc20_raw)


# ---------- structural errors with locations ----------

@pytest.mark.parametrize(
    "mutate, path",
    [
        (lambda raw: raw.pop("abi"), "$"),
        (lambda raw: raw.__setitem__("abi", {"not": "a list"}), "abi"),
        (lambda raw: raw["abi"].__setitem__(3, "oops"), "abi[3]"),
        (lambda raw: raw["abi"][4]["inputs"][0].__setitem__("name", 7), "abi[4].inputs[0].name"),
        (lambda raw: raw["abi"][4]["inputs"][0].pop("type"), "abi[4].inputs[0]"),
        (lambda raw: raw["abi"][2].__setitem__("stateMutability", "sometimes"), "abi[2].stateMutability"),
        (lambda raw: raw["abi"][5].pop("name"), "abi[5]"),
        (lambda raw: raw["abi"][9].__setitem__("type", "modifier"), "abi[9].type"),
        (lambda raw: raw["abi"][9]["inputs"][1].__setitem__("indexed", "yes"), "abi[9].inputs[1].indexed"),
    ],
)
def test_structural_errors_are_located(erc20_raw, mutate, path):
    mutate(erc20_raw)
    with pytest.raises(ArtifactParseError) as ei:
        load_artifact(erc20_raw)
    assert ei.value.path == path


def test_not_an_object():
    with pytest.raises(ArtifactParseError) as ei:
        load_artifact("ERC20")  # type: ignore[arg-type]
    assert ei.value.path == "$"


def test_unsupported_type_is_located(erc20_raw):
    erc20_raw["abi"][5]["inputs"][1]["type"] = "uint7"
    with pytest.raises(UnsupportedTypeError) as ei:
        load_artifact(erc20_raw)
    assert ei.value.type_string == "uint7"
    assert ei.value.path == "abi[5].inputs[1].type"


@pytest.mark.parametrize("kind", ["constructor", "fallback", "receive"])
def test_singletons_may_appear_once(make_artifact, kind):
    entry = {"type": kind, "stateMutability": "payable"}
    with pytest.raises(ArtifactParseError) as ei:
        load_artifact(make_artifact([entry, {"type": "function", "name": "f"}, entry]))
    assert ei.value.path == "abi[2]"


# ---------- bytecode ----------

def test_empty_bytecode_means_abstract(make_artifact):
    assert load_artifact(make_artifact([], bytecode="0x")).bytecode is None
    assert load_artifact(make_artifact([], bytecode="")).bytecode is None
    assert load_artifact(make_artifact([])).bytecode is None


def test_plain_bytecode(erc20_raw):
    bc = load_artifact(erc20_raw).bytecode
    assert bc.hex == erc20_raw["bytecode"]
    assert bc.link_refs == ()
    assert bc.is_linked


def test_link_placeholders_are_reported(vault_raw):
    bc = load_artifact(vault_raw).bytecode
    assert not bc.is_linked
    (ref,) = bc.link_refs
    assert len(ref.placeholder) == 40
    assert ref.library == "MathLib"
    assert ref.offsets == (2, 24)
    assert ref.placeholder in bc.hex


def test_hashed_placeholder():
    ph = "__$" + "ab" * 17 + "$__"
    assert len(ph) == 40
    bc = parse_bytecode("0x60" + ph + "00")
    (ref,) = bc.link_refs
    assert ref.library == "$" + "ab" * 17 + "$"
    assert ref.offsets == (1,)


@pytest.mark.parametrize(
    "code, detail",
    [
        ("0x60zz", "not valid hex"),
        ("0x608", "odd number"),
        ("0x60__Short__00", "malformed"),
        ("0x6" + "__L" + "_" * 37 + "0", "misaligned"),
    ],
)
def test_bad_bytecode(code, detail):
    with pytest.raises(ArtifactParseError) as ei:
        parse_bytecode(code)
    assert ei.value.path == "bytecode"
    assert detail in ei.value.detail


# ---------- networks ----------

def test_networks_both_shapes(vault_raw, erc20_raw):
    assert dict(load_artifact(vault_raw).deployments) == {"5": "0x000000000000000000000000000000000000dEaD"}
    assert dict(load_artifact(erc20_raw).deployments) == {"1": "0x6B175474E89094C44Da98b954EedeAC495271d0F"}


def test_bad_network_address(erc20_raw):
    erc20_raw["networks"]["1"]["address"] = "0x1234"
    with pytest.raises(ArtifactParseError) as ei:
        load_artifact(erc20_raw)
    assert ei.value.path == "networks.1"


# ---------- file shim ----------

def test_read_artifact_roundtrip(fixtures_dir):
    raw = read_artifact(fixtures_dir / "erc20.json")
    assert raw["contractName"] == "ERC20"


def test_read_missing(tmp_path):
    with pytest.raises(ArtifactNotFound) as ei:
        read_artifact(tmp_path / "nope.json")
    assert ei.value.path.endswith("nope.json")


def test_read_bad_json(tmp_path):
    p = tmp_path / "broken.json"
    p.write_text('{"abi": [', encoding="utf-8")
    with pytest.raises(ArtifactParseError) as ei:
        read_artifact(p)
    assert ei.value.path == "$"
    assert "invalid JSON" in ei.value.detail


def test_error_and_event_entries(erc20_raw):
    art = load_artifact(json.loads(json.dumps(erc20_raw)))
    assert isinstance(art.abi[-1], ErrorEntry)
    assert isinstance(art.abi[9], EventEntry)


@pytest.mark.parametrize(
    "mutate, path",
    [
        (lambda raw: raw["abi"][5].__setitem__("name", "f\ud800"), "abi[5].name"),
        (lambda raw: raw["abi"][4]["inputs"][0].__setitem__("name", "\udcff"), "abi[4].inputs[0].name"),
        (lambda raw: raw.__setitem__("contractName", "Token\ud83d"), "contractName"),
    ],
)
def test_lone_surrogates_are_located(erc20_raw, mutate, path):
    mutate(erc20_raw)
    with pytest.raises(ArtifactParseError) as ei:
        load_artifact(erc20_raw)
    assert ei.value.path == path


def test_surrogate_escape_in_json_is_a_parse_error(tmp_path, make_artifact, abi_fn):
    p = tmp_path / "escaped.json"
    p.write_text(json.dumps(make_artifact([abi_fn("f\ud800")])), encoding="ascii")
    with pytest.raises(BindgenError):
        build_module(read_artifact(p))
