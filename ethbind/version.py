"""
Version helpers for ethbind.

The version is also embedded in generated sources and in the IR so that
reproducible-build checks can tell generator upgrades apart from ABI changes.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"

# Bumped when the Module IR output contract changes in a way that could
# affect downstream emitters.
IR_VERSION = "1"


def version() -> str:
    """Human-friendly string, e.g. 'ethbind 0.1.0 (ir 1)'."""
    return f"ethbind {__version__} (ir {IR_VERSION})"


__all__ = ["__version__", "IR_VERSION", "version"]
