"""Tests for text analysis, the inverted index and query ranking."""

from __future__ import annotations

import pytest

from conftest import make_document
from kbgraph.config import DEFAULT_STOPWORDS, FIELD_WEIGHTS
from kbgraph.indexer import build_search_index, index_document, merge_document_indexes, search, tokenize
from kbgraph.indexer.search_index import document_url, make_snippet

# ─────────────────────────────────────────────────────────────────────────────
# Analysis
# ─────────────────────────────────────────────────────────────────────────────


class TestTokenize:
    def test_lowercases_and_drops_stopwords(self):
        terms = [term for term, _ in tokenize("The Quick Brown Fox and THE dog")]
        assert terms == ["quick", "brown", "fox", "dog"]

    def test_short_tokens_dropped(self):
        assert [term for term, _ in tokenize("x y zz")] == ["zz"]

    def test_positions_increase_without_gaps(self):
        positions = [pos for _, pos in tokenize("alpha the beta of gamma")]
        assert positions == list(range(positions[0], positions[0] + 3))

    def test_empty(self):
        assert tokenize("") == []
        assert tokenize(None) == []

    def test_custom_stopwords(self):
        assert [t for t, _ in tokenize("kbgraph builds graphs", frozenset({"kbgraph"}))] == ["builds", "graphs"]

    def test_default_stopwords_are_lowercase(self):
        assert all(word == word.lower() for word in DEFAULT_STOPWORDS)


# ─────────────────────────────────────────────────────────────────────────────
# Snippets and URLs
# ─────────────────────────────────────────────────────────────────────────────


class TestSnippet:
    def test_description_preferred(self):
        doc = make_document("a", "Apple", "Body text", description="  A  red\nfruit ")
        assert make_snippet(doc) == "A red fruit"

    def test_body_markers_replaced(self):
        doc = make_document("a", "Apple", "See [[Banana|the yellow one]] and [[Cherry]] or [[#Top]].")
        assert make_snippet(doc) == "See the yellow one and Cherry or Top."

    def test_long_body_truncated(self):
        doc = make_document("a", "Apple", "word " * 100)

        snippet = make_snippet(doc)

        assert snippet.endswith("...")
        assert len(snippet) == 203

    def test_empty_body(self):
        assert make_snippet(make_document("a", "Apple")) == ""


@pytest.mark.parametrize(
    "base_url,expected",
    [
        ("", "/guides/setup/"),
        ("/docs", "/docs/guides/setup/"),
        ("https://example.com/kb/", "https://example.com/kb/guides/setup/"),
    ],
)
def test_document_url(base_url: str, expected: str):
    assert document_url("guides/setup", base_url) == expected


# ─────────────────────────────────────────────────────────────────────────────
# Indexing
# ─────────────────────────────────────────────────────────────────────────────


class TestIndexDocument:
    def test_postings_weighted_by_field(self):
        doc = make_document(
            "a",
            "Apple",
            "An apple. Another apple.",
            description="Crisp apple",
            tags=("fruit", "apple"),
        )

        part = index_document(doc)

        by_field = {p.field: p for p in part.postings["apple"]}
        assert by_field["title"].weight == 10
        assert by_field["description"].weight == 5
        assert by_field["tags"].weight == 3
        assert by_field["body"].frequency == 2
        assert by_field["body"].weight == 2
        assert len(by_field["body"].positions) == 2

    def test_stored_summary(self):
        doc = make_document("guides/setup", "Setup", "Install things", description="How to start")

        part = index_document(doc, base_url="/docs")

        assert part.stored.title == "Setup"
        assert part.stored.snippet == "How to start"
        assert part.stored.url == "/docs/guides/setup/"

    def test_zero_weight_field_skipped(self):
        doc = make_document("a", "Apple", "apple body")

        part = index_document(doc, field_weights={**FIELD_WEIGHTS, "body": 0})

        assert {p.field for p in part.postings["apple"]} == {"title"}
        assert "body" not in part.postings

    def test_stopwords_not_indexed(self):
        part = index_document(make_document("a", "The Apple", "this is it"))
        assert set(part.postings) == {"apple"}


class TestBuildSearchIndex:
    def test_empty_corpus(self):
        index = build_search_index([])
        assert index.postings == {}
        assert index.documents == {}
        assert index.field_weights == FIELD_WEIGHTS

    def test_terms_and_postings_sorted(self):
        docs = [make_document("b", "Zebra apple"), make_document("a", "Apple zebra")]

        index = build_search_index(docs)

        assert list(index.postings) == sorted(index.postings)
        assert [p.document for p in index.postings["apple"]] == ["a", "b"]
        assert list(index.documents) == ["a", "b"]

    def test_merge_is_order_independent(self):
        docs = [make_document("a", "Apple", "fruit"), make_document("b", "Banana", "fruit")]
        parts = [index_document(doc) for doc in docs]

        assert merge_document_indexes(parts) == merge_document_indexes(list(reversed(parts)))


# ─────────────────────────────────────────────────────────────────────────────
# Querying
# ─────────────────────────────────────────────────────────────────────────────


class TestSearch:
    @pytest.fixture
    def index(self):
        docs = [
            make_document("a", "Apple", "see [[Banana]]"),
            make_document("b", "Banana", "no links"),
            make_document("c", "Cherry", "apple apple apple pie", tags=("dessert",)),
            make_document("d", "Durian", "nothing relevant"),
        ]
        return build_search_index(docs)

    def test_title_hit_ranks_first(self, index):
        hits = search(index, "apple")

        assert [hit.id for hit in hits] == ["a", "c"]
        assert hits[0].score == 10
        assert hits[0].fields == ["title"]
        assert hits[1].score == 3
        assert hits[1].fields == ["body"]

    def test_scores_sum_over_terms_and_fields(self, index):
        hits = search(index, "banana links")

        # b: title "banana" 10 + body "links" 1; a: body "banana" 1
        assert [(hit.id, hit.score) for hit in hits] == [("b", 11), ("a", 1)]
        assert hits[0].fields == ["title", "body"]

    def test_ties_broken_by_identifier(self):
        index = build_search_index([make_document("b", "Same"), make_document("a", "Same")])
        assert [hit.id for hit in search(index, "same")] == ["a", "b"]

    def test_case_insensitive(self, index):
        assert [hit.id for hit in search(index, "APPLE")] == ["a", "c"]

    def test_repeated_query_terms_count_once(self, index):
        assert search(index, "apple apple")[0].score == 10

    @pytest.mark.parametrize("query", ["", "   ", "zzzz", "the"])
    def test_no_results(self, index, query: str):
        assert search(index, query) == []

    def test_limit(self, index):
        assert len(search(index, "apple", limit=1)) == 1
        assert len(search(index, "apple", limit=None)) == 2

    def test_hit_carries_stored_fields(self, index):
        hit = search(index, "durian")[0]

        assert hit.title == "Durian"
        assert hit.snippet == "nothing relevant"
        assert hit.url == "/d/"

    def test_tag_match(self, index):
        hit = search(index, "dessert")[0]
        assert hit.id == "c"
        assert hit.fields == ["tags"]
        assert hit.score == 3
