"""Deterministic serialization of the link graph and search index.

Rendering is pure (models in, bytes out); only write_artifacts touches disk.
Two builds over identical input produce byte-identical files.
"""

from __future__ import annotations

import contextlib
import errno
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..config import ARTIFACT_FORMAT_VERSION, GRAPH_ARTIFACT, SEARCH_ARTIFACT
from ..errors import ArtifactWriteError
from ..models import GraphEdge, LinkGraph, SearchIndex


@dataclass(frozen=True)
class ArtifactPaths:
    """Where a build wrote its artifacts."""

    graph: Path
    search_index: Path


def _dump(payload: dict[str, Any]) -> bytes:
    text = json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def render_graph_artifact(graph: LinkGraph) -> bytes:
    """Serialize nodes, edges and backlinks, sorted by identifier."""
    edges = sorted(graph.edges, key=lambda e: (e.source, e.target))
    payload = {
        "version": ARTIFACT_FORMAT_VERSION,
        "nodes": [graph.nodes[node_id].model_dump() for node_id in sorted(graph.nodes)],
        "edges": [edge.model_dump(by_alias=True) for edge in edges],
        "backlinks": {target: sorted(sources) for target, sources in graph.backlinks.items()},
    }
    return _dump(payload)


def render_search_artifact(index: SearchIndex) -> bytes:
    """Serialize the inverted index and document store, sorted by term then document."""
    payload = {
        "version": ARTIFACT_FORMAT_VERSION,
        "fields": index.field_weights,
        "index": {
            term: [
                posting.model_dump()
                for posting in sorted(postings, key=lambda p: (p.document, p.field))
            ]
            for term, postings in index.postings.items()
        },
        "documents": {doc_id: stored.model_dump() for doc_id, stored in index.documents.items()},
    }
    return _dump(payload)


def write_artifacts(output_dir: Path, graph: LinkGraph, index: SearchIndex) -> ArtifactPaths:
    """Write both artifacts, replacing any previous generation.

    Both files are rendered and staged as temporaries before either is
    renamed into place. Existing artifacts are moved aside first and put
    back if any rename fails, so the directory always holds one complete
    generation: the new one or the previous one.

    Raises:
        ArtifactWriteError: On any I/O failure.
    """
    paths = ArtifactPaths(graph=output_dir / GRAPH_ARTIFACT, search_index=output_dir / SEARCH_ARTIFACT)
    staged = [
        (paths.graph, render_graph_artifact(graph)),
        (paths.search_index, render_search_artifact(index)),
    ]

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArtifactWriteError(output_dir, e.strerror or str(e)) from e

    temporaries: list[tuple[Path, Path]] = []
    backups: list[tuple[Path, Path]] = []
    committed: list[Path] = []
    current = output_dir
    try:
        for path, data in staged:
            current = path
            if path.is_dir():
                raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), str(path))
            tmp = path.with_name(f".{path.name}.tmp")
            current = tmp
            tmp.write_bytes(data)
            temporaries.append((tmp, path))
        for _, path in temporaries:
            if path.exists():
                backup = path.with_name(f".{path.name}.bak")
                current = path
                os.replace(path, backup)
                backups.append((backup, path))
        for tmp, path in temporaries:
            current = path
            os.replace(tmp, path)
            committed.append(path)
    except OSError as e:
        _roll_back(temporaries, backups, committed)
        raise ArtifactWriteError(current, e.strerror or str(e)) from e

    for backup, _ in backups:
        with contextlib.suppress(OSError):
            backup.unlink()

    return paths


def _roll_back(
    temporaries: list[tuple[Path, Path]],
    backups: list[tuple[Path, Path]],
    committed: list[Path],
) -> None:
    """Restore the previous generation after a failed write."""
    restored = {path for _, path in backups}
    for path in committed:
        if path not in restored:
            with contextlib.suppress(OSError):
                path.unlink(missing_ok=True)
    for backup, path in backups:
        with contextlib.suppress(OSError):
            os.replace(backup, path)
    for tmp, _ in temporaries:
        with contextlib.suppress(OSError):
            tmp.unlink(missing_ok=True)


def _read_payload(path: Path) -> dict[str, Any]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: not a kbgraph artifact")
    version = payload.get("version")
    if version != ARTIFACT_FORMAT_VERSION:
        raise ValueError(
            f"{path}: unsupported artifact version {version!r} (expected {ARTIFACT_FORMAT_VERSION})"
        )
    return payload


def load_graph_artifact(path: Path) -> LinkGraph:
    """Read a graph artifact back into a LinkGraph.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If it is not a valid artifact of the current version.
    """
    payload = _read_payload(path)
    nodes = {node["id"]: node for node in payload.get("nodes", [])}
    return LinkGraph.model_validate(
        {
            "nodes": nodes,
            "edges": [GraphEdge.model_validate(edge) for edge in payload.get("edges", [])],
            "backlinks": payload.get("backlinks", {}),
        }
    )


def load_search_artifact(path: Path) -> SearchIndex:
    """Read a search artifact back into a SearchIndex.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If it is not a valid artifact of the current version.
    """
    payload = _read_payload(path)
    return SearchIndex.model_validate(
        {
            "field_weights": payload.get("fields", {}),
            "postings": payload.get("index", {}),
            "documents": payload.get("documents", {}),
        }
    )
