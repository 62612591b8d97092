"""Build orchestrator: corpus in, link graph and search index artifacts out.

Runs the full pipeline:
1. Load the corpus and build the title map (sequential)
2. Extract, resolve and index every document (parallel, read-only title map)
3. Merge graph and search postings (single writer)
4. Write artifacts
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any

from ..config import BuildConfig, load_build_config
from ..corpus import load_corpus
from ..graph import build_graph, resolve_references
from ..indexer.search_index import DocumentIndex, index_document, merge_document_indexes
from ..models import (
    BuildReport,
    Document,
    DuplicateTitleWarning,
    LinkGraph,
    LinkReference,
    SearchIndex,
    UnresolvedLinkWarning,
)
from ..parser.links import extract_links
from ..parser.title_index import TitleMap, build_title_map
from .artifacts import write_artifacts

log = logging.getLogger(__name__)


@dataclass
class DocumentResult:
    """Phase-2 output for one document."""

    references: list[LinkReference]
    warnings: list[UnresolvedLinkWarning]
    search: DocumentIndex


@dataclass
class BuildOutput:
    """In-memory result of a build, before anything is written."""

    graph: LinkGraph
    index: SearchIndex
    references: list[LinkReference] = field(default_factory=list)
    title_warnings: list[DuplicateTitleWarning] = field(default_factory=list)
    link_warnings: list[UnresolvedLinkWarning] = field(default_factory=list)


class ArtifactGenerator:
    """Generates graph and search artifacts from a corpus.

    The title map is completed and frozen before any per-document work is
    submitted, and is passed to every worker explicitly.
    """

    def __init__(self, config: BuildConfig):
        self.config = config

    def generate(self) -> BuildReport:
        """Run the full build.

        Returns:
            BuildReport with counts, warnings and artifact paths.

        Raises:
            BuildError: Any fatal error; nothing is written in that case.
        """
        config = self.config
        documents = load_corpus(
            config.corpus_root,
            extensions=config.extensions,
            include_drafts=config.include_drafts,
            include_archived=config.include_archived,
        )

        output = self.assemble(documents)

        report = BuildReport(
            corpus_root=str(config.corpus_root),
            documents=len(documents),
            nodes=len(output.graph.nodes),
            edges=len(output.graph.edges),
            references=len(output.references),
            unresolved=len(output.link_warnings),
            terms=len(output.index.postings),
            warnings=[*output.title_warnings, *output.link_warnings],
            dry_run=config.dry_run,
        )

        if not config.dry_run:
            paths = write_artifacts(config.output_dir, output.graph, output.index)
            report.graph_path = str(paths.graph)
            report.search_index_path = str(paths.search_index)
            log.info("Wrote %s and %s", paths.graph, paths.search_index)

        return report

    def assemble(self, documents: list[Document]) -> BuildOutput:
        """Build the graph and search index in memory (no I/O)."""
        # Phase 1: title map over the complete corpus
        title_map, title_warnings = build_title_map(documents, strict=self.config.strict)
        log.debug("Title map ready: %r", title_map)

        # Phase 2: per-document work against the frozen title map
        results = self._process_documents(documents, title_map)

        # Phase 3: single-writer merge, in document order
        references = [ref for result in results for ref in result.references]
        link_warnings = [warning for result in results for warning in result.warnings]
        for warning in link_warnings:
            log.warning(warning.describe())

        graph = build_graph(documents, references)
        index = merge_document_indexes(
            (result.search for result in results),
            self.config.field_weights,
        )
        log.info(
            "Graph: %d nodes, %d edges (%d unresolved links); index: %d terms",
            len(graph.nodes),
            len(graph.edges),
            len(link_warnings),
            len(index.postings),
        )

        return BuildOutput(
            graph=graph,
            index=index,
            references=references,
            title_warnings=title_warnings,
            link_warnings=link_warnings,
        )

    def _process_document(self, document: Document, title_map: TitleMap) -> DocumentResult:
        references, warnings = resolve_references(extract_links(document), title_map)
        search = index_document(
            document,
            stopwords=self.config.stopwords,
            field_weights=self.config.field_weights,
            base_url=self.config.base_url,
        )
        return DocumentResult(references=references, warnings=warnings, search=search)

    def _process_documents(self, documents: list[Document], title_map: TitleMap) -> list[DocumentResult]:
        worker = partial(self._process_document, title_map=title_map)

        if self.config.workers <= 1 or len(documents) < 2:
            return [worker(doc) for doc in documents]

        # executor.map yields in submission order, keeping the merge deterministic
        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            return list(executor.map(worker, documents))


def build(corpus_root: Path | str, **overrides: Any) -> BuildReport:
    """Build artifacts for a corpus.

    Args:
        corpus_root: Corpus directory.
        **overrides: BuildConfig values taking precedence over .kbconfig
            (e.g. strict=True, output_dir=Path("out")).

    Returns:
        The build report.
    """
    config = load_build_config(corpus_root, **overrides)
    return ArtifactGenerator(config).generate()
