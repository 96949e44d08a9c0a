"""Utility functions for histepi.

General-purpose helpers: clamping, file fingerprints.
"""

from __future__ import annotations

import hashlib
from pathlib import Path


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp value into [lo, hi]."""
    return min(hi, max(lo, value))


def file_sha256(path: str | Path) -> str:
    """Compute SHA-256 hex digest of a file."""
    h = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(8192), b''):
            h.update(chunk)
    return h.hexdigest()
