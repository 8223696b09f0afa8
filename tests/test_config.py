from __future__ import annotations

import pytest

from ethbind.config import BuildConfig


def test_defaults():
    cfg = BuildConfig()
    assert cfg.runtime_package == "ethcontract"
    assert cfg.contract_name is None
    assert cfg.aliases == {}


def test_from_env(monkeypatch):
    monkeypatch.setenv("ETHBIND_ARTIFACT", "build/ERC20.json")
    monkeypatch.setenv("ETHBIND_RUNTIME_PACKAGE", "myapp.runtime")
    monkeypatch.setenv("ETHBIND_CONTRACT_NAME", "")
    cfg = BuildConfig.from_env()
    assert cfg.artifact_path == "build/ERC20.json"
    assert cfg.runtime_package == "myapp.runtime"
    assert cfg.contract_name is None


def test_with_overrides_ignores_unknown_and_none(monkeypatch):
    monkeypatch.delenv("ETHBIND_RUNTIME_PACKAGE", raising=False)
    cfg = BuildConfig.with_overrides(contract_name="Token", runtime_package=None, colour="blue")
    assert cfg.contract_name == "Token"
    assert cfg.runtime_package == "ethcontract"


def test_with_overrides_merges_aliases():
    base = BuildConfig().with_alias("foo()", "bar")
    cfg = BuildConfig.with_overrides(base, method_aliases={"baz(uint)": "qux"})
    assert cfg.aliases == {"foo()": "bar", "baz(uint256)": "qux"}


def test_with_alias_replaces_same_signature():
    cfg = BuildConfig().with_alias("foo(uint)", "a").with_alias("foo(uint256)", "b")
    assert cfg.method_aliases == (("foo(uint256)", "b"),)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"runtime_package": "not a package"},
        {"runtime_package": "pkg..mod"},
        {"method_aliases": (("foo()", "1bad"),)},
        {"method_aliases": (("foo()", "same"), ("bar()", "same"))},
    ],
)
def test_validation(kwargs):
    with pytest.raises(ValueError):
        BuildConfig(**kwargs)


def test_to_dict_roundtrip():
    cfg = BuildConfig(contract_name="X").with_alias("f()", "g")
    assert cfg.to_dict() == {
        "artifact_path": None,
        "runtime_package": "ethcontract",
        "contract_name": "X",
        "method_aliases": {"f()": "g"},
    }
