"""Artifact generation for kbgraph builds."""

from .artifacts import (
    ArtifactPaths,
    load_graph_artifact,
    load_search_artifact,
    render_graph_artifact,
    render_search_artifact,
    write_artifacts,
)
from .generator import ArtifactGenerator, BuildOutput, build

__all__ = [
    "ArtifactGenerator",
    "ArtifactPaths",
    "BuildOutput",
    "build",
    "load_graph_artifact",
    "load_search_artifact",
    "render_graph_artifact",
    "render_search_artifact",
    "write_artifacts",
]
