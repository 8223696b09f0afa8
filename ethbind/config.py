"""
Generation configuration.

`BuildConfig` is an immutable value passed into the pipeline entry point and
threaded through each stage as a plain argument; nothing reads hidden global
settings. Defaults can be overridden via environment variables (ETHBIND_*).
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .assembler import DEFAULT_RUNTIME_PACKAGE
from .signatures import normalize_signature

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_PACKAGE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v not in (None, "") else default


@dataclass(frozen=True)
class BuildConfig:
    artifact_path: Optional[str] = None
    # Package the generated code imports its runtime primitives from.
    runtime_package: str = DEFAULT_RUNTIME_PACKAGE
    # Overrides the artifact's contractName (and thus the class name).
    contract_name: Optional[str] = None
    # (canonical signature, method identifier) pairs, in insertion order.
    method_aliases: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not _PACKAGE_RE.match(self.runtime_package):
            raise ValueError(f"invalid runtime package name: {self.runtime_package!r}")
        seen: Dict[str, str] = {}
        for sig, alias in self.method_aliases:
            if not _IDENT_RE.match(alias):
                raise ValueError(f"alias for {sig} is not an identifier: {alias!r}")
            if alias in seen:
                raise ValueError(f"alias {alias!r} used for both {seen[alias]} and {sig}")
            seen[alias] = sig

    @property
    def aliases(self) -> Dict[str, str]:
        return dict(self.method_aliases)

    def with_alias(self, signature: str, alias: str) -> "BuildConfig":
        """Return a copy with `alias` bound to `signature` (re-spelled canonically)."""
        sig = normalize_signature(signature)
        kept = tuple((s, a) for s, a in self.method_aliases if s != sig)
        return replace(self, method_aliases=kept + ((sig, alias),))

    @classmethod
    def from_env(cls, prefix: str = "ETHBIND_") -> "BuildConfig":
        """
        Create config from environment variables:

        ETHBIND_ARTIFACT          artifact path
        ETHBIND_RUNTIME_PACKAGE   runtime package name (default "ethcontract")
        ETHBIND_CONTRACT_NAME     contract name override
        """
        return cls(
            artifact_path=_env(f"{prefix}ARTIFACT"),
            runtime_package=_env(f"{prefix}RUNTIME_PACKAGE", DEFAULT_RUNTIME_PACKAGE) or DEFAULT_RUNTIME_PACKAGE,
            contract_name=_env(f"{prefix}CONTRACT_NAME"),
        )

    @classmethod
    def with_overrides(cls, base: Optional["BuildConfig"] = None, **overrides: Any) -> "BuildConfig":
        """
        Build from an existing config plus keyword overrides. Unknown keys and
        None values are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data and v is not None})
        aliases = data.pop("method_aliases")
        cfg = replace(base, **data)
        for sig, alias in (aliases.items() if isinstance(aliases, Mapping) else aliases):
            cfg = cfg.with_alias(sig, alias)
        return cfg

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifact_path": self.artifact_path,
            "runtime_package": self.runtime_package,
            "contract_name": self.contract_name,
            "method_aliases": dict(self.method_aliases),
        }


__all__ = ["BuildConfig"]
