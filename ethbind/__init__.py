"""
ethbind: typed contract bindings from compiled artifacts.
Convenience exports for the most common entry points.
"""

from .version import __version__  # noqa: F401

# Config & errors
from .config import BuildConfig  # noqa: F401
from .errors import (  # noqa: F401
    BindgenError,
    ArtifactNotFound,
    ArtifactParseError,
    UnsupportedTypeError,
    OverloadNameCollision,
    IoError,
)

# Pipeline stages
from .artifact import ContractArtifact, load_artifact, read_artifact  # noqa: F401
from .types import SolidityType, TypeBinding, bind_type, parse_type  # noqa: F401
from .signatures import (  # noqa: F401
    ResolvedContract,
    canonical_signature,
    event_topic,
    function_selector,
    resolve,
)
from .assembler import Module, assemble  # noqa: F401

# Backends & front end
from .emit import Emitter, JsonEmitter, PythonEmitter  # noqa: F401
from .builder import Builder, ContractBindings, build_module  # noqa: F401

__all__ = [
    "__version__",
    "BuildConfig",
    "BindgenError",
    "ArtifactNotFound",
    "ArtifactParseError",
    "UnsupportedTypeError",
    "OverloadNameCollision",
    "IoError",
    "ContractArtifact",
    "load_artifact",
    "read_artifact",
    "SolidityType",
    "TypeBinding",
    "bind_type",
    "parse_type",
    "ResolvedContract",
    "canonical_signature",
    "event_topic",
    "function_selector",
    "resolve",
    "Module",
    "assemble",
    "Emitter",
    "JsonEmitter",
    "PythonEmitter",
    "Builder",
    "ContractBindings",
    "build_module",
]
