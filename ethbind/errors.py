"""
Typed error classes for binding generation.

Every failure is terminal for the artifact being processed: the pipeline is
a pure computation, so nothing is retried and no partial Module is returned.
Each error carries the structured detail a caller (build script, CLI) needs
to present its own diagnostic, while still being catchable via the base
`BindgenError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

__all__ = [
    "BindgenError",
    "ArtifactNotFound",
    "ArtifactParseError",
    "UnsupportedTypeError",
    "OverloadNameCollision",
    "IoError",
]


class BindgenError(Exception):
    """Base class for all ethbind errors."""


@dataclass(slots=True)
class ArtifactNotFound(BindgenError):
    """Raised when the artifact file does not exist."""

    path: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"artifact not found: {self.path}"


@dataclass(slots=True)
class ArtifactParseError(BindgenError):
    """
    Raised when the artifact violates the expected structure.

    Fields:
      - path: location of the offending value, e.g. ``abi[3].inputs[0].name``
        (``$`` for the document root)
      - detail: what is wrong with it
    """

    path: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"invalid artifact at {self.path}: {self.detail}"


@dataclass(slots=True)
class UnsupportedTypeError(BindgenError):
    """Raised when a wire type string falls outside the ABI type grammar."""

    type_string: str
    path: Optional[str] = None
    detail: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f" at {self.path}" if self.path else ""
        why = f": {self.detail}" if self.detail else ""
        return f"unsupported type {self.type_string!r}{where}{why}"


@dataclass(slots=True)
class OverloadNameCollision(BindgenError):
    """
    Raised when two ABI entries of the same kind share a full signature.

    Overloads (same name, different parameter types) are fine; only true
    duplicates end up here. `indices` are the positions in the artifact's
    `abi` list of every entry sharing the signature.
    """

    name: str
    signature: str
    indices: Tuple[int, ...] = ()

    def __str__(self) -> str:  # pragma: no cover - trivial
        at = ", ".join(f"abi[{i}]" for i in self.indices)
        return f"duplicate ABI entry {self.signature}" + (f" ({at})" if at else "")


@dataclass(slots=True)
class IoError(BindgenError):
    """Raised when reading an artifact or writing generated output fails."""

    path: Optional[str]
    detail: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        target = self.path or "<sink>"
        return f"I/O error on {target}: {self.detail}"
