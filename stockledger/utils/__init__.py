"""Shared utility helpers used across connectors, repositories and services."""

from typing import Iterator


def iter_chunks(rows: list, size: int) -> Iterator[list]:
    """Yield consecutive slices of at most ``size`` elements."""
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def clean_keys(keys) -> list[str]:
    """Trim keys, drop blanks and duplicates, keep first-occurrence order."""
    seen: dict[str, None] = {}
    for key in keys or []:
        if key is None:
            continue
        k = str(key).strip()
        if k:
            seen.setdefault(k, None)
    return list(seen)

