"""Shared test fixtures for the kbgraph test suite.

Design:
- tmp_corpus: isolated corpus directory in a temp path
- create_document: helper writing a document with YAML front matter
- runner: CliRunner for command tests
- Environment and logger state are reset around every test
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from kbgraph.config import load_build_config
from kbgraph.models import Document


# ─────────────────────────────────────────────────────────────────────────────
# Isolation
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch):
    """Keep KBGRAPH_* variables from the developer's shell out of tests."""
    for name in ("KBGRAPH_CORPUS_ROOT", "KBGRAPH_OUTPUT_DIR", "KBGRAPH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield
    # The CLI installs a stderr handler bound to the runner's stream
    logger = logging.getLogger("kbgraph")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def tmp_corpus(tmp_path: Path) -> Path:
    """Empty corpus directory."""
    corpus = tmp_path / "corpus"
    corpus.mkdir()
    return corpus


@pytest.fixture
def example_corpus(tmp_corpus: Path) -> Path:
    """The two-document Apple/Banana corpus.

    Creates:
    - a.md "Apple" linking to [[Banana]]
    - b.md "Banana" with no links
    """
    create_document(tmp_corpus, "a.md", "Apple", "see [[Banana]]")
    create_document(tmp_corpus, "b.md", "Banana", "no links")
    return tmp_corpus


@pytest.fixture
def make_config(tmp_path: Path):
    """Factory for BuildConfig objects writing into tmp_path/out.

    Usage:
        config = make_config(corpus, strict=True)
    """

    def _make(corpus: Path, **overrides):
        overrides.setdefault("output_dir", tmp_path / "out")
        return load_build_config(corpus, **overrides)

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions (for test code, not fixtures)
# ─────────────────────────────────────────────────────────────────────────────


def create_document(corpus: Path, path: str, title: str | None, body: str = "", **fields) -> Path:
    """Write a corpus document with YAML front matter.

    Usage in tests:
        from conftest import create_document
        create_document(tmp_corpus, "guides/setup.md", "Setup", "See [[Install]]", tags=["ops"])
    """
    doc_path = corpus / path
    doc_path.parent.mkdir(parents=True, exist_ok=True)

    metadata = dict(fields)
    if title is not None:
        metadata = {"title": title, **metadata}
    front = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True) if metadata else ""

    doc_path.write_text(f"---\n{front}---\n\n{body}\n", encoding="utf-8")
    return doc_path


def make_document(doc_id: str, title: str, body: str = "", **fields) -> Document:
    """Build an in-memory Document without touching disk."""
    fields.setdefault("collection", "notes")
    return Document(id=doc_id, title=title, body=body, **fields)
