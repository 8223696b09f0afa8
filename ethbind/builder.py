"""
Pipeline entry points
=====================

`build_module` is the pure core: raw artifact data + `BuildConfig` in,
`Module` out. It runs the stages in order (load/validate, resolve
signatures and identifiers, assemble), each a plain function of its input.

`Builder` is the convenience wrapper used by build scripts and the CLI::

    bindings = (
        Builder("build/contracts/ERC20.json")
        .with_runtime_package("myapp.chain")
        .add_method_alias("transfer(address,uint256)", "send_tokens")
        .generate()
    )
    bindings.write_to_file("myapp/bindings/erc20.py")

File output is atomic: the text goes to a temporary file in the target
directory, is fsync'ed, then renamed over the destination.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, TextIO, Union

from .artifact import load_artifact, read_artifact
from .assembler import Module, assemble
from .config import BuildConfig
from .emit import Emitter, PythonEmitter
from .errors import IoError
from .signatures import resolve

log = logging.getLogger(__name__)

__all__ = ["build_module", "Builder", "ContractBindings"]


def build_module(raw: Any, config: Optional[BuildConfig] = None) -> Module:
    """
    Run the pipeline over already-parsed artifact data.

    Raises:
        ArtifactParseError / UnsupportedTypeError: invalid artifact.
        OverloadNameCollision: duplicate ABI entries.
    """
    config = config or BuildConfig()
    artifact = load_artifact(raw, name=config.contract_name)
    resolved = resolve(artifact, aliases=config.aliases)
    return assemble(resolved, runtime_package=config.runtime_package)


@dataclass(frozen=True)
class ContractBindings:
    """A generated Module together with its rendered source."""

    module: Module
    source: str

    def write(self, sink: TextIO) -> None:
        try:
            sink.write(self.source)
        except (OSError, ValueError) as e:
            # ValueError: the sink is already closed.
            raise IoError(getattr(sink, "name", None), str(e)) from e

    def write_to_file(self, path: Union[str, os.PathLike]) -> Path:
        """Atomically write the source to `path`; on failure the target is left untouched."""
        target = Path(path)
        tmp_name: Optional[str] = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp", delete=False
            ) as tf:
                tmp_name = tf.name
                tf.write(self.source)
                tf.flush()
                os.fsync(tf.fileno())
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise IoError(str(target), str(e)) from e
        log.info("wrote %s bindings to %s", self.module.contract_name, target)
        return target

    def to_ir_json(self, *, indent: Optional[int] = 2) -> str:
        return self.module.to_json(indent=indent)


class Builder:
    """Fluent front end over `build_module` for one artifact file."""

    def __init__(self, artifact_path: Union[str, os.PathLike], config: Optional[BuildConfig] = None) -> None:
        base = config or BuildConfig()
        self.config = replace(base, artifact_path=str(artifact_path))

    def _with(self, config: BuildConfig) -> "Builder":
        return Builder(self.config.artifact_path, config)  # type: ignore[arg-type]

    def with_runtime_package(self, package: str) -> "Builder":
        return self._with(replace(self.config, runtime_package=package))

    def with_contract_name(self, name: str) -> "Builder":
        return self._with(replace(self.config, contract_name=name))

    def add_method_alias(self, signature: str, alias: str) -> "Builder":
        return self._with(self.config.with_alias(signature, alias))

    def with_aliases(self, aliases: Mapping[str, str]) -> "Builder":
        b = self
        for sig, alias in aliases.items():
            b = b.add_method_alias(sig, alias)
        return b

    def build(self) -> Module:
        """Read the artifact file and return the Module IR."""
        path = self.config.artifact_path
        log.debug("building bindings from %s", path)
        return build_module(read_artifact(path), self.config)  # type: ignore[arg-type]

    def generate(self, emitter: Optional[Emitter] = None) -> ContractBindings:
        module = self.build()
        source = (emitter or PythonEmitter()).render(module)
        return ContractBindings(module=module, source=source)

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"Builder({self.config.artifact_path!r})"
