"""Field-weighted inverted index over corpus documents."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ..config import DEFAULT_STOPWORDS, FIELD_WEIGHTS, SNIPPET_LENGTH
from ..models import Document, Posting, SearchHit, SearchIndex, StoredDocument
from ..parser.links import LINK_PATTERN, split_target
from .analysis import tokenize

# Indexed fields, in descending default weight.
FIELDS = ("title", "description", "tags", "body")


@dataclass
class DocumentIndex:
    """Postings and stored summary for a single document."""

    document_id: str
    stored: StoredDocument
    postings: dict[str, list[Posting]] = field(default_factory=dict)


def _field_text(document: Document, name: str) -> str:
    if name == "title":
        return document.title
    if name == "description":
        return document.description or ""
    if name == "tags":
        return " ".join(document.tags)
    return document.body


def _marker_text(match: re.Match[str]) -> str:
    target, anchor, display = split_target(match.group(1))
    return display or target or anchor or ""


def make_snippet(document: Document) -> str:
    """Short plain-text summary for result rows.

    Uses the description when present, otherwise the start of the body with
    [[...]] markers replaced by their display text.
    """
    if document.description:
        return " ".join(document.description.split())

    text = " ".join(LINK_PATTERN.sub(_marker_text, document.body).split())
    return text[:SNIPPET_LENGTH] + "..." if len(text) > SNIPPET_LENGTH else text


def document_url(document_id: str, base_url: str = "") -> str:
    return f"{base_url.rstrip('/')}/{document_id}/"


def index_document(
    document: Document,
    *,
    stopwords: frozenset[str] = DEFAULT_STOPWORDS,
    field_weights: Mapping[str, int] = FIELD_WEIGHTS,
    base_url: str = "",
) -> DocumentIndex:
    """Tokenize one document's fields into postings.

    Fields with weight 0, and empty or missing optional fields, are skipped.
    """
    result = DocumentIndex(
        document_id=document.id,
        stored=StoredDocument(
            title=document.title,
            snippet=make_snippet(document),
            url=document_url(document.id, base_url),
        ),
    )

    for name in FIELDS:
        weight = field_weights.get(name, 0)
        if not weight:
            continue

        positions: dict[str, list[int]] = {}
        for term, position in tokenize(_field_text(document, name), stopwords):
            positions.setdefault(term, []).append(position)

        for term, term_positions in positions.items():
            result.postings.setdefault(term, []).append(
                Posting(
                    document=document.id,
                    field=name,
                    frequency=len(term_positions),
                    weight=len(term_positions) * weight,
                    positions=term_positions,
                )
            )

    return result


def merge_document_indexes(
    parts: Iterable[DocumentIndex],
    field_weights: Mapping[str, int] = FIELD_WEIGHTS,
) -> SearchIndex:
    """Merge per-document results into one index (single writer).

    Terms are sorted, and each posting list is sorted by document id then field.
    """
    postings: dict[str, list[Posting]] = {}
    documents: dict[str, StoredDocument] = {}

    for part in parts:
        documents[part.document_id] = part.stored
        for term, term_postings in part.postings.items():
            postings.setdefault(term, []).extend(term_postings)

    return SearchIndex(
        field_weights=dict(sorted(field_weights.items())),
        postings={
            term: sorted(term_postings, key=lambda p: (p.document, p.field))
            for term, term_postings in sorted(postings.items())
        },
        documents=dict(sorted(documents.items())),
    )


def build_search_index(
    documents: Iterable[Document],
    *,
    stopwords: frozenset[str] = DEFAULT_STOPWORDS,
    field_weights: Mapping[str, int] = FIELD_WEIGHTS,
    base_url: str = "",
) -> SearchIndex:
    """Index documents sequentially. An empty corpus gives an empty index."""
    parts = [
        index_document(doc, stopwords=stopwords, field_weights=field_weights, base_url=base_url)
        for doc in documents
    ]
    return merge_document_indexes(parts, field_weights)


def search(index: SearchIndex, query: str, limit: int | None = 10) -> list[SearchHit]:
    """Rank documents for a query.

    Score is the sum of posting weights (term frequency times field
    multiplier) over every query term and matching field. Results are sorted
    by descending score, ties broken by document identifier.

    Args:
        index: A built or loaded search index.
        query: Free-text query.
        limit: Maximum number of hits (None for all).

    Returns:
        Ranked hits; empty when nothing matches.
    """
    # Stopwords never reach the index, so the query needs none of its own.
    terms = dict.fromkeys(term for term, _ in tokenize(query, frozenset()))

    scores: dict[str, int] = {}
    matched_fields: dict[str, set[str]] = {}
    for term in terms:
        for posting in index.postings.get(term, []):
            scores[posting.document] = scores.get(posting.document, 0) + posting.weight
            matched_fields.setdefault(posting.document, set()).add(posting.field)

    ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ranked = ranked[:limit]

    hits = []
    for doc_id, score in ranked:
        stored = index.documents.get(doc_id)
        hits.append(
            SearchHit(
                id=doc_id,
                title=stored.title if stored else doc_id,
                snippet=stored.snippet if stored else "",
                url=stored.url if stored else "",
                score=score,
                fields=sorted(matched_fields[doc_id], key=FIELDS.index),
            )
        )
    return hits
