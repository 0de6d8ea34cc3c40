"""Filesystem helpers."""

import hashlib
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the shadowindex data directory (~/.shadowindex)."""
    return ensure_dir(Path.home() / ".shadowindex")


def stable_id(value: str, length: int = 12) -> str:
    """Stable short id from a string (same relative path -> same id on re-ingest)."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]
