"""Collision-free layer names."""

from __future__ import annotations

import re
from typing import Dict

_NON_IDENT = re.compile(r"[^a-zA-Z0-9_-]")


def unique_name(raw_name: str, counters: Dict[str, int], fallback: str = "node") -> str:
    """Return ``raw_name`` on first use, then ``name_01``, ``name_02``, ...

    Counters are keyed by the stripped name and belong to one conversion run.
    Blank names use ``fallback``.
    """
    clean = (raw_name or "").strip() or fallback
    count = counters.get(clean, 0)
    candidate = clean if count == 0 else f"{clean}_{count:02d}"
    # Skip suffixes already taken by a literal layer name
    while count > 0 and candidate in counters:
        count += 1
        candidate = f"{clean}_{count:02d}"
    counters[clean] = count + 1
    if candidate != clean:
        counters.setdefault(candidate, 1)
    return candidate


def segment_base_name(name: str) -> str:
    """Identifier-safe lowercase prefix for text run ids."""
    return _NON_IDENT.sub("", name).lower()
