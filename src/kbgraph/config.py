"""Configuration management for kbgraph.

This module contains all configurable constants for the build pipeline.
Magic numbers are documented here rather than scattered throughout the codebase.

Build options are resolved in this order (first wins):
1. Explicit overrides (CLI flags)
2. Environment variables (KBGRAPH_OUTPUT_DIR)
3. ``.kbconfig`` YAML file at the corpus root
4. Built-in defaults below
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from whoosh.analysis import STOP_WORDS


class ConfigurationError(Exception):
    """Raised when build configuration is missing or invalid."""

    exit_code = 1


# =============================================================================
# Corpus
# =============================================================================

# File extensions treated as documents. Everything else in the corpus is ignored.
DOCUMENT_EXTENSIONS = (".md", ".mdx")

# Collection assigned to documents at the corpus root with no `collection` field.
DEFAULT_COLLECTION = "notes"

# Per-corpus build configuration file (YAML), read from the corpus root.
CONFIG_FILENAME = ".kbconfig"


# =============================================================================
# Search Index
# =============================================================================

# Per-field weight multipliers. A posting's weight is term frequency times the
# multiplier of the field it occurs in; query scores sum posting weights.
# Title dominates so a single title hit outranks several body hits.
FIELD_WEIGHTS: dict[str, int] = {
    "title": 10,
    "description": 5,
    "tags": 3,
    "body": 1,
}

# Whoosh's English stopword list (the same one its StandardAnalyzer uses).
DEFAULT_STOPWORDS: frozenset[str] = frozenset(STOP_WORDS)

# Tokens shorter than this are dropped by the analyzer.
MIN_TOKEN_LENGTH = 2

# Characters of body text kept as a result snippet when there is no description.
SNIPPET_LENGTH = 200


# =============================================================================
# Artifacts
# =============================================================================

# Bumped whenever the JSON layout of either artifact changes.
ARTIFACT_FORMAT_VERSION = 1

GRAPH_ARTIFACT = "graph.json"
SEARCH_ARTIFACT = "search-index.json"

DEFAULT_OUTPUT_DIR = Path("_kbgraph")


@dataclass(frozen=True)
class BuildConfig:
    """Resolved configuration for one build."""

    corpus_root: Path
    output_dir: Path = DEFAULT_OUTPUT_DIR
    strict: bool = False
    include_drafts: bool = False
    include_archived: bool = False
    base_url: str = ""
    workers: int = 4
    dry_run: bool = False
    stopwords: frozenset[str] = DEFAULT_STOPWORDS
    field_weights: dict[str, int] = field(default_factory=lambda: dict(FIELD_WEIGHTS))
    extensions: tuple[str, ...] = DOCUMENT_EXTENSIONS


_BOOL_KEYS = ("strict", "include_drafts", "include_archived")
_KNOWN_KEYS = frozenset(
    _BOOL_KEYS
    + ("base_url", "output_dir", "workers", "stopwords", "extra_stopwords", "field_weights", "extensions")
)
# Accepted as load_build_config overrides but not from .kbconfig
_OVERRIDE_ONLY_KEYS = frozenset({"dry_run"})


def get_corpus_root() -> Path:
    """Get the corpus root from KBGRAPH_CORPUS_ROOT.

    Raises:
        ConfigurationError: If the variable is not set.
    """
    root = os.environ.get("KBGRAPH_CORPUS_ROOT")
    if root:
        return Path(root)
    raise ConfigurationError(
        "No corpus given. Pass a corpus directory or set KBGRAPH_CORPUS_ROOT."
    )


def read_config_file(corpus_root: Path) -> dict[str, Any]:
    """Read the optional .kbconfig file at the corpus root.

    Returns:
        The parsed mapping, or an empty dict when the file does not exist.

    Raises:
        ConfigurationError: If the file is unreadable, not a mapping, or has unknown keys.
    """
    config_file = corpus_root / CONFIG_FILENAME
    if not config_file.is_file():
        return {}

    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file}: expected a mapping at top level")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigurationError(f"{config_file}: unknown keys: {', '.join(unknown)}")

    return data


def _string_list(value: Any, key: str) -> list[str]:
    if isinstance(value, tuple):
        value = list(value)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"'{key}' must be a list of strings")
    return value


def _extensions(value: Any) -> tuple[str, ...]:
    extensions = _string_list(value, "extensions")
    if not extensions or not all(ext.startswith(".") and len(ext) > 1 for ext in extensions):
        raise ConfigurationError("'extensions' must be a non-empty list like [\".md\", \".mdx\"]")
    return tuple(extensions)


def _field_weights(value: Any) -> dict[str, int]:
    if not isinstance(value, dict):
        raise ConfigurationError("'field_weights' must be a mapping of field to integer weight")

    weights = dict(FIELD_WEIGHTS)
    for name, weight in value.items():
        if name not in FIELD_WEIGHTS:
            raise ConfigurationError(
                f"Unknown search field '{name}' (expected one of: {', '.join(FIELD_WEIGHTS)})"
            )
        if isinstance(weight, bool) or not isinstance(weight, int) or weight < 0:
            raise ConfigurationError(f"Weight for '{name}' must be a non-negative integer")
        weights[name] = weight
    return weights


def load_build_config(corpus_root: Path | str, **overrides: Any) -> BuildConfig:
    """Resolve the build configuration for a corpus.

    Args:
        corpus_root: Corpus directory (also where .kbconfig is looked up).
        **overrides: Explicit values (e.g. from CLI flags). None values are ignored.

    Returns:
        A frozen BuildConfig.

    Raises:
        ConfigurationError: On invalid file contents, option values or
            unknown option names.
    """
    unknown = sorted(set(overrides) - _KNOWN_KEYS - _OVERRIDE_ONLY_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown build options: {', '.join(unknown)}")

    corpus_root = Path(corpus_root)
    data = read_config_file(corpus_root)

    # Paths from .kbconfig are relative to the corpus root, others to the cwd.
    file_output = data.pop("output_dir", None)
    if overrides.get("output_dir") is not None:
        output_dir = Path(overrides["output_dir"])
    elif os.environ.get("KBGRAPH_OUTPUT_DIR"):
        output_dir = Path(os.environ["KBGRAPH_OUTPUT_DIR"])
    elif file_output is not None:
        if not isinstance(file_output, str):
            raise ConfigurationError("'output_dir' must be a string")
        output_dir = Path(file_output)
        if not output_dir.is_absolute():
            output_dir = corpus_root / output_dir
    else:
        output_dir = DEFAULT_OUTPUT_DIR

    for key, value in overrides.items():
        if value is not None:
            data[key] = value

    for key in _BOOL_KEYS:
        if key in data and not isinstance(data[key], bool):
            raise ConfigurationError(f"'{key}' must be true or false")

    stopwords = DEFAULT_STOPWORDS
    if "stopwords" in data:
        stopwords = frozenset(w.lower() for w in _string_list(data["stopwords"], "stopwords"))
    if "extra_stopwords" in data:
        extra = _string_list(data["extra_stopwords"], "extra_stopwords")
        stopwords = stopwords | frozenset(w.lower() for w in extra)

    workers = data.get("workers", 4)
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise ConfigurationError("'workers' must be a positive integer")

    base_url = data.get("base_url", "")
    if not isinstance(base_url, str):
        raise ConfigurationError("'base_url' must be a string")

    return BuildConfig(
        corpus_root=corpus_root,
        output_dir=output_dir,
        strict=data.get("strict", False),
        include_drafts=data.get("include_drafts", False),
        include_archived=data.get("include_archived", False),
        base_url=base_url.rstrip("/"),
        workers=workers,
        dry_run=bool(data.get("dry_run", False)),
        stopwords=stopwords,
        field_weights=_field_weights(data.get("field_weights", {})),
        extensions=_extensions(data.get("extensions", DOCUMENT_EXTENSIONS)),
    )
