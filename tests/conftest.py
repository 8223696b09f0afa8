"""
Shared pytest fixtures:
- JSON artifacts under tests/fixtures (ERC20 and a library-linked vault)
- `make_artifact` for building small inline artifacts
- Pre-built Modules for the common artifacts
"""
from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence

import pytest
from hypothesis import settings

from ethbind.builder import build_module
from ethbind.assembler import Module

FIXTURES = Path(__file__).parent / "fixtures"

# Hypothesis: quick local runs, deeper CI runs (HYPOTHESIS_PROFILE=ci or CI set)
settings.register_profile("local", settings(max_examples=60, deadline=None))
settings.register_profile("ci", settings(max_examples=300, deadline=None))
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE") or ("ci" if os.environ.get("CI") else "local"))


def _load(name: str) -> Dict[str, Any]:
    return json.loads((FIXTURES / name).read_text(encoding="utf-8"))


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def erc20_raw() -> Dict[str, Any]:
    """A fresh (mutable) copy of the ERC20 artifact."""
    return _load("erc20.json")


@pytest.fixture
def vault_raw() -> Dict[str, Any]:
    return _load("linked_vault.json")


@pytest.fixture
def erc20_module(erc20_raw: Dict[str, Any]) -> Module:
    return build_module(erc20_raw)


@pytest.fixture
def vault_module(vault_raw: Dict[str, Any]) -> Module:
    return build_module(vault_raw)


@pytest.fixture
def make_artifact() -> Callable[..., Dict[str, Any]]:
    """
    make_artifact(abi, name="Demo", **extra) -> raw artifact dict.
    Entries are deep-copied so tests can reuse ABI snippets.
    """

    def _make(abi: List[Dict[str, Any]], name: str = "Demo", **extra: Any) -> Dict[str, Any]:
        raw: Dict[str, Any] = {"contractName": name, "abi": copy.deepcopy(abi)}
        raw.update(extra)
        return raw

    return _make


@pytest.fixture
def abi_fn() -> Callable[..., Dict[str, Any]]:
    """abi_fn(name, inputs, outputs, mutability) -> ABI function entry from type strings."""

    def _fn(
        name: str,
        inputs: Sequence[str] = (),
        outputs: Sequence[str] = (),
        mutability: str = "nonpayable",
    ) -> Dict[str, Any]:
        return {
            "type": "function",
            "name": name,
            "inputs": [{"name": f"a{i}", "type": t} for i, t in enumerate(inputs)],
            "outputs": [{"name": "", "type": t} for t in outputs],
            "stateMutability": mutability,
        }

    return _fn


@pytest.fixture(autouse=True)
def _debug_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="ethbind")
