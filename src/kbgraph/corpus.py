"""Corpus loading: every document of a build, read and validated up front."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from .config import DOCUMENT_EXTENSIONS
from .errors import CorpusReadError, SchemaViolation
from .models import Document
from .parser.markdown import parse_document

log = logging.getLogger(__name__)


def iter_document_paths(corpus_root: Path, extensions: Sequence[str] = DOCUMENT_EXTENSIONS) -> list[Path]:
    """List document files under corpus_root in a stable order.

    Files or directories whose name starts with "_" or "." are skipped.
    """
    paths = []
    for path in corpus_root.rglob("*"):
        if path.suffix not in extensions or not path.is_file():
            continue
        rel_parts = path.relative_to(corpus_root).parts
        if any(part.startswith("_") or part.startswith(".") for part in rel_parts):
            continue
        paths.append(path)
    return sorted(paths, key=lambda p: p.relative_to(corpus_root).as_posix())


def load_corpus(
    corpus_root: Path | str,
    *,
    extensions: Sequence[str] = DOCUMENT_EXTENSIONS,
    include_drafts: bool = False,
    include_archived: bool = False,
) -> list[Document]:
    """Load and validate the complete corpus.

    Every document is validated, including ones later filtered out by status,
    so a broken draft still fails the build.

    Args:
        corpus_root: Corpus directory.
        extensions: File extensions treated as documents.
        include_drafts: Keep documents with status "draft".
        include_archived: Keep documents with status "archived".

    Returns:
        Retained documents sorted by identifier.

    Raises:
        CorpusReadError: If the corpus or a document cannot be read.
        SchemaViolation: On invalid front matter or a duplicate identifier.
    """
    corpus_root = Path(corpus_root)
    if not corpus_root.is_dir():
        raise CorpusReadError(f"Corpus directory not found: {corpus_root}")

    try:
        paths = iter_document_paths(corpus_root, extensions)
    except OSError as e:
        raise CorpusReadError(f"Cannot list corpus {corpus_root}: {e}") from e

    documents: dict[str, Document] = {}
    for path in paths:
        doc = parse_document(path, corpus_root)
        existing = documents.get(doc.id)
        if existing is not None:
            raise SchemaViolation(
                f"Duplicate identifier (also used by {existing.source_path})",
                doc.id,
            )
        documents[doc.id] = doc

    retained = []
    for doc_id in sorted(documents):
        doc = documents[doc_id]
        if doc.status == "draft" and not include_drafts:
            log.debug("Skipping draft %s", doc_id)
            continue
        if doc.status == "archived" and not include_archived:
            log.debug("Skipping archived %s", doc_id)
            continue
        retained.append(doc)

    log.info("Loaded %d documents (%d retained) from %s", len(documents), len(retained), corpus_root)
    return retained
