"""Tests for corpus discovery and loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import create_document
from kbgraph.corpus import iter_document_paths, load_corpus
from kbgraph.errors import CorpusReadError, SchemaViolation


class TestIterDocumentPaths:
    def test_finds_markdown_recursively_in_stable_order(self, tmp_corpus: Path):
        create_document(tmp_corpus, "z.md", "Z")
        create_document(tmp_corpus, "guides/b.mdx", "B")
        create_document(tmp_corpus, "guides/a.md", "A")
        (tmp_corpus / "image.png").write_bytes(b"\x89PNG")
        (tmp_corpus / "notes.txt").write_text("not a document")

        paths = iter_document_paths(tmp_corpus)

        assert [p.relative_to(tmp_corpus).as_posix() for p in paths] == [
            "guides/a.md",
            "guides/b.mdx",
            "z.md",
        ]

    def test_skips_hidden_and_underscore_paths(self, tmp_corpus: Path):
        create_document(tmp_corpus, "kept.md", "Kept")
        create_document(tmp_corpus, "_drafts/skipped.md", "Skipped")
        create_document(tmp_corpus, ".obsidian/skipped.md", "Skipped")
        create_document(tmp_corpus, "_partial.md", "Skipped")

        paths = iter_document_paths(tmp_corpus)

        assert [p.name for p in paths] == ["kept.md"]

    def test_custom_extensions(self, tmp_corpus: Path):
        create_document(tmp_corpus, "a.md", "A")
        create_document(tmp_corpus, "b.mdx", "B")

        paths = iter_document_paths(tmp_corpus, (".md",))

        assert [p.name for p in paths] == ["a.md"]


class TestLoadCorpus:
    def test_loads_sorted_by_identifier(self, tmp_corpus: Path):
        create_document(tmp_corpus, "b.md", "Banana")
        create_document(tmp_corpus, "a.md", "Apple", id="zzz")
        create_document(tmp_corpus, "c.md", "Cherry")

        docs = load_corpus(tmp_corpus)

        assert [doc.id for doc in docs] == ["b", "c", "zzz"]

    def test_empty_corpus(self, tmp_corpus: Path):
        assert load_corpus(tmp_corpus) == []

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(CorpusReadError, match="not found"):
            load_corpus(tmp_path / "nope")

    def test_file_instead_of_directory(self, tmp_path: Path):
        path = tmp_path / "file.md"
        path.write_text("x")

        with pytest.raises(CorpusReadError):
            load_corpus(path)

    def test_duplicate_identifier(self, tmp_corpus: Path):
        create_document(tmp_corpus, "a.md", "Apple", id="fruit")
        create_document(tmp_corpus, "b.md", "Banana", id="fruit")

        with pytest.raises(SchemaViolation, match="Duplicate identifier") as exc_info:
            load_corpus(tmp_corpus)
        assert exc_info.value.document_id == "fruit"

    def test_invalid_document_fails_whole_load(self, tmp_corpus: Path):
        create_document(tmp_corpus, "a.md", "Apple")
        create_document(tmp_corpus, "b.md", None, "no title here", tags=["x"])

        with pytest.raises(SchemaViolation) as exc_info:
            load_corpus(tmp_corpus)
        assert exc_info.value.document_id == "b"


class TestStatusFiltering:
    @pytest.fixture
    def corpus(self, tmp_corpus: Path) -> Path:
        create_document(tmp_corpus, "live.md", "Live")
        create_document(tmp_corpus, "draft.md", "Draft", status="draft")
        create_document(tmp_corpus, "old.md", "Old", status="archived")
        return tmp_corpus

    def test_default_keeps_published_only(self, corpus: Path):
        assert [doc.id for doc in load_corpus(corpus)] == ["live"]

    def test_include_drafts(self, corpus: Path):
        docs = load_corpus(corpus, include_drafts=True)
        assert [doc.id for doc in docs] == ["draft", "live"]

    def test_include_archived(self, corpus: Path):
        docs = load_corpus(corpus, include_archived=True)
        assert [doc.id for doc in docs] == ["live", "old"]

    def test_broken_draft_still_fails(self, tmp_corpus: Path):
        create_document(tmp_corpus, "live.md", "Live")
        (tmp_corpus / "draft.md").write_text("---\nstatus: draft\n---\nno title\n", encoding="utf-8")

        with pytest.raises(SchemaViolation):
            load_corpus(tmp_corpus)
