"""Per-run conversion state.

A ``ConversionContext`` is created by the caller of ``nodes_to_json`` and
threaded through every step of one run: name counters, the variable-name
cache, the node budget, warnings, timing counters, and the node index used
to resolve parent links. Nothing here is shared between runs.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..nodes import NormalizedNode
from ..settings import EMBED_VECTORS_MAX_SIZE, NODE_LIMIT

TOO_MANY_NODES_WARNING = (
    "Too many nodes selected (over {limit}). Please select a smaller part "
    "of your design to avoid memory issues."
)


class ConversionSettings(BaseModel):
    """User preferences for one conversion run (camelCase on the wire)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    use_color_variables: bool = Field(default=True, alias="useColorVariables")
    embed_vectors: bool = Field(default=False, alias="embedVectors")
    embed_vectors_max_size: int = Field(
        default=EMBED_VECTORS_MAX_SIZE, alias="embedVectorsMaxSize"
    )
    embed_images: bool = Field(default=False, alias="embedImages")
    show_layer_names: bool = Field(default=False, alias="showLayerNames")
    html_generation_mode: Literal["html", "jsx", "svelte", "styled-components"] = Field(
        default="html", alias="htmlGenerationMode"
    )

    @field_validator("embed_vectors_max_size", mode="before")
    @classmethod
    def validate_max_size(cls, value) -> int:
        # The plugin UI sends the select value as a string
        size = int(value)
        if size <= 0:
            raise ValueError(f"embedVectorsMaxSize must be positive (got {size})")
        return size


class ConversionWarnings:
    """Ordered, de-duplicated warnings shown to the user."""

    def __init__(self) -> None:
        self._items: Dict[str, None] = {}

    def add(self, message: str) -> None:
        self._items.setdefault(message, None)

    def to_list(self) -> List[str]:
        return list(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, message: object) -> bool:
        return message in self._items


@dataclass
class ConversionStats:
    """Host-call counters and timings for benchmark logging."""
    export_calls: int = 0
    export_ms: float = 0.0
    styled_text_calls: int = 0
    styled_text_ms: float = 0.0
    variable_lookup_calls: int = 0
    variable_lookup_ms: float = 0.0
    color_variable_calls: int = 0
    nodes_processed: int = 0

    @contextmanager
    def timed(self, counter: str) -> Iterator[None]:
        """Count one call of ``counter`` and add its duration to ``<counter>_ms``."""
        start = time.perf_counter()
        try:
            yield
        finally:
            calls_attr = f"{counter}_calls"
            setattr(self, calls_attr, getattr(self, calls_attr) + 1)
            ms_attr = f"{counter}_ms"
            setattr(self, ms_attr, getattr(self, ms_attr) + (time.perf_counter() - start) * 1000)

    def summary(self) -> str:
        return (
            f"nodes={self.nodes_processed}, "
            f"export={self.export_calls} calls/{self.export_ms:.0f}ms, "
            f"styled_text={self.styled_text_calls} calls/{self.styled_text_ms:.0f}ms, "
            f"variables={self.variable_lookup_calls} lookups/{self.variable_lookup_ms:.0f}ms, "
            f"color_paints={self.color_variable_calls}"
        )


@dataclass
class ConversionContext:
    settings: ConversionSettings = field(default_factory=ConversionSettings)
    node_limit: int = NODE_LIMIT
    name_counters: Dict[str, int] = field(default_factory=dict)
    variable_cache: Dict[str, str] = field(default_factory=dict)
    warnings: ConversionWarnings = field(default_factory=ConversionWarnings)
    stats: ConversionStats = field(default_factory=ConversionStats)
    node_index: Dict[str, NormalizedNode] = field(default_factory=dict)
    # Flattened nodes whose color mappings are collected after the walk
    pending_color_collection: List[str] = field(default_factory=list)
    limit_exceeded: bool = False

    def reset(self) -> None:
        """Clear all per-run state, keeping settings and limit."""
        self.name_counters.clear()
        self.variable_cache.clear()
        self.warnings = ConversionWarnings()
        self.stats = ConversionStats()
        self.node_index.clear()
        self.pending_color_collection.clear()
        self.limit_exceeded = False

    def warn_too_many_nodes(self) -> None:
        self.warnings.add(TOO_MANY_NODES_WARNING.format(limit=self.node_limit))

    def count_node(self) -> bool:
        """Charge one node against the budget; False once it is exhausted."""
        self.stats.nodes_processed += 1
        if self.stats.nodes_processed > self.node_limit:
            self.limit_exceeded = True
            self.warn_too_many_nodes()
            return False
        return True

    def register(self, node: NormalizedNode) -> None:
        self.node_index[node.id] = node

    def parent_of(self, node: NormalizedNode) -> Optional[NormalizedNode]:
        if node.parent_id is None:
            return None
        return self.node_index.get(node.parent_id)

    def ancestors(self, node: NormalizedNode) -> Iterator[NormalizedNode]:
        parent = self.parent_of(node)
        while parent is not None:
            yield parent
            parent = self.parent_of(parent)
