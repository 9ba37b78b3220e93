"""refsheet: a declaration index builder for Rust source trees."""

from __future__ import annotations

__version__ = "0.3.0"
