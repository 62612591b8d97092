"""Markdown document parsing with YAML front matter support."""

from __future__ import annotations

import bisect
from pathlib import Path, PurePosixPath

import frontmatter
import yaml
from markdown_it import MarkdownIt
from pydantic import ValidationError

from ..config import DEFAULT_COLLECTION
from ..errors import CorpusReadError, SchemaViolation
from ..models import Document, DocumentMetadata

# Block structure only; inline code spans are matched separately below.
_md = MarkdownIt("commonmark")

_VERBATIM_BLOCKS = frozenset({"fence", "code_block"})


def default_identifier(rel_path: str) -> str:
    """Identifier for a document without an explicit `id`/`slug`."""
    return PurePosixPath(rel_path).with_suffix("").as_posix()


def parse_document(path: Path, corpus_root: Path) -> Document:
    """Parse a markdown file with YAML front matter into a Document.

    Args:
        path: Path to the markdown file.
        corpus_root: Corpus directory the identifier is computed relative to.

    Returns:
        The immutable Document.

    Raises:
        CorpusReadError: If the file cannot be read or decoded.
        SchemaViolation: If front matter is missing, unparseable or invalid.
    """
    rel_path = path.relative_to(corpus_root).as_posix()
    fallback_id = default_identifier(rel_path)

    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise CorpusReadError(f"Cannot read {rel_path}: {e}", fallback_id) from e

    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise SchemaViolation(f"Failed to parse front matter: {e}", fallback_id) from e

    if not post.metadata:
        raise SchemaViolation(
            "Missing front matter (YAML block with at least a title required)", fallback_id
        )

    try:
        metadata = DocumentMetadata.model_validate(post.metadata)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"{loc}: {error['msg']}")
        document_id = post.metadata.get("id") or post.metadata.get("slug") or fallback_id
        raise SchemaViolation("Invalid front matter", str(document_id), errors) from e

    document_id = (metadata.id or metadata.slug or fallback_id).strip().strip("/")
    if not document_id:
        raise SchemaViolation("Identifier must not be empty", fallback_id)

    collection = metadata.collection
    if not collection:
        parts = PurePosixPath(rel_path).parts
        collection = parts[0] if len(parts) > 1 else DEFAULT_COLLECTION

    return Document(
        id=document_id,
        title=metadata.title,
        collection=collection,
        description=metadata.description or metadata.summary,
        tags=tuple(metadata.tags),
        aliases=tuple(metadata.aliases),
        status=metadata.status,
        body=post.content,
        source_path=rel_path,
    )


def _line_starts(text: str) -> list[int]:
    starts = [0]
    for i, char in enumerate(text):
        if char == "\n":
            starts.append(i + 1)
    return starts


def _code_spans(text: str, start: int, end: int) -> list[tuple[int, int]]:
    """Find inline code spans in text[start:end] using CommonMark backtick rules.

    A span opens with a run of N backticks (not preceded by a backslash) and
    closes at the next run of exactly N backticks. An unmatched run is literal.
    """
    spans: list[tuple[int, int]] = []
    i = start
    while i < end:
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char != "`":
            i += 1
            continue

        run_end = i
        while run_end < end and text[run_end] == "`":
            run_end += 1
        run_length = run_end - i

        close = None
        j = run_end
        while j < end:
            if text[j] != "`":
                j += 1
                continue
            k = j
            while k < end and text[k] == "`":
                k += 1
            if k - j == run_length:
                close = k
                break
            j = k

        if close is None:
            i = run_end
            continue
        spans.append((i, close))
        i = close
    return spans


def verbatim_ranges(body: str) -> list[tuple[int, int]]:
    """Character ranges of body that are code (fenced, indented or inline).

    Block ranges come from the markdown-it token line maps; inline code spans
    are matched within each inline-bearing block so they never cross blocks.

    Returns:
        Sorted list of half-open (start, end) character ranges.
    """
    if not body:
        return []

    starts = _line_starts(body)

    def span(line_map: list[int]) -> tuple[int, int]:
        begin, end = line_map
        end_pos = starts[end] if end < len(starts) else len(body)
        return starts[begin], end_pos

    ranges: list[tuple[int, int]] = []
    for token in _md.parse(body):
        if token.map is None:
            continue
        if token.type in _VERBATIM_BLOCKS:
            ranges.append(span(token.map))
        elif token.type == "inline":
            block_start, block_end = span(token.map)
            ranges.extend(_code_spans(body, block_start, block_end))

    ranges.sort()
    return ranges


def in_ranges(position: int, ranges: list[tuple[int, int]]) -> bool:
    """Whether position falls inside any of the sorted, non-overlapping ranges."""
    index = bisect.bisect_right(ranges, (position, float("inf"))) - 1
    return index >= 0 and ranges[index][0] <= position < ranges[index][1]
