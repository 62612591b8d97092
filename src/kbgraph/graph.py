"""Link graph built from resolved wikilinks."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import Document, GraphEdge, GraphNode, LinkGraph, LinkReference, UnresolvedLinkWarning
from .parser.title_index import TitleMap

log = logging.getLogger(__name__)


def resolve_references(
    references: Iterable[LinkReference],
    title_map: TitleMap,
) -> tuple[list[LinkReference], list[UnresolvedLinkWarning]]:
    """Resolve link candidates against the frozen title map.

    Unresolved references are kept (with ``resolved_target`` None) and produce
    one warning each; they never fail the build.

    Returns:
        Tuple of (references in input order, warnings in input order).
    """
    resolved: list[LinkReference] = []
    warnings: list[UnresolvedLinkWarning] = []

    for ref in references:
        target_id = title_map.resolve(ref.target)
        if target_id is None:
            warnings.append(
                UnresolvedLinkWarning(
                    document_id=ref.source_id,
                    raw_target=ref.raw_target,
                    offset=ref.offset,
                )
            )
            resolved.append(ref)
        else:
            resolved.append(ref.model_copy(update={"resolved_target": target_id}))

    return resolved, warnings


def compute_backlinks(edges: Iterable[GraphEdge]) -> dict[str, list[str]]:
    """Invert an edge set: target -> sorted sources.

    Only targets with at least one incoming edge appear.
    """
    incoming: dict[str, set[str]] = {}
    for edge in edges:
        incoming.setdefault(edge.target, set()).add(edge.source)
    return {target: sorted(sources) for target, sources in sorted(incoming.items())}


def build_graph(documents: Iterable[Document], references: Iterable[LinkReference]) -> LinkGraph:
    """Build the link graph and its backlink index.

    Repeated references between the same pair collapse into one edge.
    Self-links and cycles are kept as-is.
    """
    nodes = {
        doc.id: GraphNode(id=doc.id, title=doc.title, collection=doc.collection)
        for doc in sorted(documents, key=lambda d: d.id)
    }

    pairs: set[tuple[str, str]] = set()
    for ref in references:
        if ref.resolved_target is None:
            continue
        if ref.source_id not in nodes or ref.resolved_target not in nodes:
            log.debug("Dropping edge with unknown endpoint: %s -> %s", ref.source_id, ref.resolved_target)
            continue
        pairs.add((ref.source_id, ref.resolved_target))

    edges = [GraphEdge(source=source, target=target) for source, target in sorted(pairs)]
    return LinkGraph(nodes=nodes, edges=edges, backlinks=compute_backlinks(edges))
