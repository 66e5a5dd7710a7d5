"""jlbundle-cli: Command-line interface for jlbundle."""

from __future__ import annotations

__version__ = "0.1.0"
