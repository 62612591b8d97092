"""Search indexing: whoosh text analysis feeding a field-weighted inverted index."""

from .analysis import get_analyzer, tokenize
from .search_index import (
    FIELDS,
    DocumentIndex,
    build_search_index,
    index_document,
    merge_document_indexes,
    search,
)

__all__ = [
    "FIELDS",
    "DocumentIndex",
    "build_search_index",
    "get_analyzer",
    "index_document",
    "merge_document_indexes",
    "search",
    "tokenize",
]
