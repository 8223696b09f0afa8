"""
ethbind.cli
===========

`ethbind`: generate typed Python bindings from a compiled contract artifact.

Examples
--------
    $ ethbind generate build/contracts/ERC20.json --out erc20.py
    $ ethbind generate ERC20.json --runtime-package myapp.chain --alias "transfer(address,uint256)=send"
    $ ethbind generate ERC20.json --format ir          # IR JSON instead of Python
    $ ethbind inspect ERC20.json                       # IR JSON to stdout
    $ ethbind version

Configuration
-------------
- Runtime package : `--runtime-package` or env `ETHBIND_RUNTIME_PACKAGE` (default: ethcontract)
- Contract name   : `--contract-name` or env `ETHBIND_CONTRACT_NAME`
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from .builder import Builder
from .config import BuildConfig
from .emit import EMITTERS
from .errors import BindgenError
from .version import version as version_string

app = typer.Typer(
    name="ethbind",
    help="Generate typed contract bindings from compiled artifacts.",
    no_args_is_help=True,
    add_completion=False,
)

__all__ = ["app", "main"]


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _parse_alias(raw: str) -> tuple[str, str]:
    sig, sep, alias = raw.rpartition("=")
    if not sep or not sig.strip() or not alias.strip():
        raise typer.BadParameter(f"expected SIGNATURE=NAME, got {raw!r}", param_hint="--alias")
    return sig.strip(), alias.strip()


def _builder(
    artifact: Path,
    runtime_package: Optional[str],
    contract_name: Optional[str],
    aliases: List[str],
) -> Builder:
    config = BuildConfig.with_overrides(
        runtime_package=runtime_package,
        contract_name=contract_name,
    )
    builder = Builder(artifact, config)
    for raw in aliases:
        builder = builder.add_method_alias(*_parse_alias(raw))
    return builder


def _fail(e: Exception) -> NoReturn:
    typer.echo(f"error: {e}", err=True)
    raise typer.Exit(code=1)


@app.command("generate")
def generate_cmd(
    artifact: Path = typer.Argument(..., help="Path to the compiled artifact JSON."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Output file (default: stdout)."),
    runtime_package: Optional[str] = typer.Option(None, "--runtime-package", help="Package the bindings import from."),
    contract_name: Optional[str] = typer.Option(None, "--contract-name", help="Override the artifact's contractName."),
    alias: List[str] = typer.Option([], "--alias", help="SIGNATURE=NAME method alias (repeatable)."),
    fmt: str = typer.Option("py", "--format", "-f", help="Output format: py or ir."),
) -> None:
    """Generate bindings for one artifact."""
    emitter = EMITTERS.get(fmt)
    if emitter is None:
        raise typer.BadParameter(f"unknown format {fmt!r} (choose from {', '.join(sorted(EMITTERS))})", param_hint="--format")
    try:
        bindings = _builder(artifact, runtime_package, contract_name, alias).generate(emitter)
        if out is None:
            bindings.write(sys.stdout)
        else:
            bindings.write_to_file(out)
            typer.echo(f"wrote {out}", err=True)
    except (BindgenError, ValueError) as e:
        _fail(e)


@app.command("inspect")
def inspect_cmd(
    artifact: Path = typer.Argument(..., help="Path to the compiled artifact JSON."),
    contract_name: Optional[str] = typer.Option(None, "--contract-name", help="Override the artifact's contractName."),
) -> None:
    """Print the generated-module IR as JSON."""
    try:
        module = _builder(artifact, None, contract_name, []).build()
    except (BindgenError, ValueError) as e:
        _fail(e)
    else:
        typer.echo(module.to_json(indent=2))


@app.command("version")
def version_cmd() -> None:
    """Print the tool version."""
    typer.echo(version_string())


def main(argv: Optional[list[str]] = None) -> int:
    """
    Run the CLI. Returns an integer exit code.
    """
    try:
        # Non-standalone click returns the exit code of typer.Exit instead of raising it.
        rv = app(prog_name="ethbind", standalone_mode=False, args=argv)
        return rv if isinstance(rv, int) else 0
    except typer.Exit as e:
        return int(e.exit_code)
    except typer.Abort:
        typer.echo("aborted", err=True)
        return 1
    except Exception as e:
        typer.echo(f"error: {e}", err=True)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
