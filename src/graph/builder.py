"""Symbol graph assembly.

One graph per input file: a single Module root, Contains edges forming a tree
rooted there, and Inherits/Decorates/Imports edges that may point at textual
names until a resolver links them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Protocol

from artifacts.models.artifacts.edges import EdgeRecord
from contract.artifacts import build_edge_id

if TYPE_CHECKING:
    from artifacts.models.artifacts.edges import EdgeKind, EdgeRole
    from artifacts.models.artifacts.spans import SourceSpan
    from artifacts.models.artifacts.symbols import SymbolRecord

logger = logging.getLogger(__name__)


class NameResolver(Protocol):
    """Resolution hook supplied by a downstream cross-file linker."""

    def resolve(self, name: str) -> SymbolRecord | None: ...


@dataclass(frozen=True)
class SymbolGraph:
    """Immutable symbols and edges extracted from one file."""

    path: str
    symbols: tuple[SymbolRecord, ...]
    edges: tuple[EdgeRecord, ...]

    @property
    def root(self) -> SymbolRecord:
        return self.symbols[0]

    @cached_property
    def _by_id(self) -> dict[str, SymbolRecord]:
        return {symbol.symbol_id: symbol for symbol in self.symbols}

    def symbol(self, symbol_id: str) -> SymbolRecord | None:
        return self._by_id.get(symbol_id)

    def find(self, qualified_name: str) -> list[SymbolRecord]:
        """All symbols with a qualified name, in declaration order."""
        return [s for s in self.symbols if s.qualified_name == qualified_name]

    def children(self, symbol_id: str) -> list[SymbolRecord]:
        return [
            self._by_id[edge.target_id]
            for edge in self.edges
            if edge.kind == "contains"
            and edge.source_id == symbol_id
            and edge.target_id is not None
        ]

    def parent(self, symbol_id: str) -> SymbolRecord | None:
        symbol = self._by_id.get(symbol_id)
        if symbol is None or symbol.parent_id is None:
            return None
        return self._by_id.get(symbol.parent_id)

    def edges_of(
        self, kind: EdgeKind | None = None, source_id: str | None = None
    ) -> list[EdgeRecord]:
        return [
            edge
            for edge in self.edges
            if (kind is None or edge.kind == kind)
            and (source_id is None or edge.source_id == source_id)
        ]

    def unresolved_edges(self) -> tuple[EdgeRecord, ...]:
        """Edges whose target is still a textual name."""
        return tuple(edge for edge in self.edges if not edge.resolved)

    def link(self, resolver: NameResolver) -> SymbolGraph:
        """Return a new graph with the edges the resolver can answer resolved."""
        linked: list[EdgeRecord] = []
        count = 0
        for edge in self.edges:
            if edge.resolved or edge.target_name is None:
                linked.append(edge)
                continue
            target = resolver.resolve(edge.target_name)
            if target is None:
                linked.append(edge)
                continue
            linked.append(
                edge.model_copy(update={"target_id": target.symbol_id, "resolved": True})
            )
            count += 1
        logger.debug("%s: linked %d of %d edges", self.path, count, len(self.edges))
        return SymbolGraph(self.path, self.symbols, tuple(linked))


@dataclass
class GraphBuilder:
    """Collects symbols and edges during a walk and freezes them into a graph."""

    path: str
    _symbols: list[SymbolRecord] = field(default_factory=list)
    _edges: list[EdgeRecord] = field(default_factory=list)
    _positions: dict[tuple[str, str], int] = field(default_factory=dict)

    def add_symbol(self, symbol: SymbolRecord) -> SymbolRecord:
        """Add a symbol; non-root symbols get a Contains edge from their parent."""
        if symbol.parent_id is None:
            if self._symbols:
                msg = f"{self.path}: second root symbol {symbol.symbol_id!r}"
                raise ValueError(msg)
        else:
            self.add_edge(
                "contains",
                symbol.parent_id,
                span=symbol.span,
                target_id=symbol.symbol_id,
                resolved=True,
            )
        self._symbols.append(symbol)
        return symbol

    def add_edge(
        self,
        kind: EdgeKind,
        source_id: str,
        *,
        span: SourceSpan,
        target_id: str | None = None,
        target_name: str | None = None,
        resolved: bool = False,
        local_target_id: str | None = None,
        role: EdgeRole | None = None,
    ) -> EdgeRecord:
        key = (source_id, kind)
        position = self._positions.get(key, 0)
        self._positions[key] = position + 1
        edge = EdgeRecord(
            edge_id=build_edge_id(kind, source_id, position),
            path=self.path,
            kind=kind,
            source_id=source_id,
            target_id=target_id,
            target_name=target_name,
            resolved=resolved,
            local_target_id=local_target_id,
            role=role,
            position=position,
            span=span,
        )
        self._edges.append(edge)
        return edge

    def build(self) -> SymbolGraph:
        if not self._symbols:
            msg = f"{self.path}: graph has no root symbol"
            raise ValueError(msg)
        return SymbolGraph(self.path, tuple(self._symbols), tuple(self._edges))


__all__ = ["GraphBuilder", "NameResolver", "SymbolGraph"]
