"""Pydantic models for the build pipeline."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentMetadata(BaseModel):
    """Front-matter schema for a corpus document.

    Only ``title`` is required. Unknown keys (dates, layout hints, ...) are
    ignored since rendering is not this package's concern.
    """

    model_config = ConfigDict(extra="ignore")

    title: str
    id: str | None = None
    slug: str | None = None
    collection: str | None = None
    description: str | None = None
    summary: str | None = None  # Accepted as a fallback for description
    tags: list[str] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    status: Literal["draft", "published", "archived"] = "published"

    @field_validator("title", mode="before")
    @classmethod
    def _numeric_title_as_text(cls, value: object) -> object:
        # YAML reads `title: 1984` as an int
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("tags", "aliases", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return [] if value is None else value


class Document(BaseModel):
    """A loaded corpus document. Immutable once read."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    collection: str
    description: str | None = None
    tags: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()
    status: Literal["draft", "published", "archived"] = "published"
    body: str = ""
    source_path: str = ""  # Corpus-relative, "/"-separated


class LinkReference(BaseModel):
    """A [[...]] marker found in a document body.

    ``offset`` and ``length`` are UTF-8 byte positions in ``Document.body`` so
    a renderer can substitute the marker without re-scanning.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str
    raw_target: str  # Text between the brackets, exactly as written
    offset: int
    length: int
    target: str  # Lookup part (before any "#" or "|")
    anchor: str | None = None
    display: str | None = None
    resolved_target: str | None = None

    @property
    def resolved(self) -> bool:
        return self.resolved_target is not None


# ─────────────────────────────────────────────────────────────────────────────
# Build warnings (recoverable)
# ─────────────────────────────────────────────────────────────────────────────


class UnresolvedLinkWarning(BaseModel):
    """A reference whose target matches no title, alias or identifier."""

    kind: Literal["unresolved_link"] = "unresolved_link"
    document_id: str
    raw_target: str
    offset: int

    def describe(self) -> str:
        return f"{self.document_id}: unresolved link [[{self.raw_target}]] at byte {self.offset}"


class DuplicateTitleWarning(BaseModel):
    """Several documents share a normalized title; the smallest identifier won."""

    kind: Literal["duplicate_title"] = "duplicate_title"
    title: str  # Normalized form
    kept_id: str
    shadowed_ids: list[str]
    alias: bool = False

    @property
    def document_id(self) -> str:
        return self.shadowed_ids[0]

    def describe(self) -> str:
        label = "alias" if self.alias else "title"
        shadowed = ", ".join(self.shadowed_ids)
        return f"{shadowed}: duplicate {label} '{self.title}' (resolves to {self.kept_id})"


BuildWarning = Annotated[
    UnresolvedLinkWarning | DuplicateTitleWarning,
    Field(discriminator="kind"),
]


# ─────────────────────────────────────────────────────────────────────────────
# Link graph
# ─────────────────────────────────────────────────────────────────────────────


class GraphNode(BaseModel):
    """A node in the link graph."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    collection: str


class GraphEdge(BaseModel):
    """A directed forward link. Serialized as ``{"from": ..., "to": ...}``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")


class LinkGraph(BaseModel):
    """Nodes, forward edges and the backlink index derived from them.

    ``backlinks`` is always the exact inverse of ``edges``; both are produced
    together by ``kbgraph.graph.build_graph`` and never edited separately.
    """

    nodes: dict[str, GraphNode] = Field(default_factory=dict)
    edges: list[GraphEdge] = Field(default_factory=list)
    backlinks: dict[str, list[str]] = Field(default_factory=dict)

    def links_from(self, node_id: str) -> list[str]:
        return sorted(edge.target for edge in self.edges if edge.source == node_id)

    def backlinks_to(self, node_id: str) -> list[str]:
        return list(self.backlinks.get(node_id, []))


# ─────────────────────────────────────────────────────────────────────────────
# Search index
# ─────────────────────────────────────────────────────────────────────────────


class Posting(BaseModel):
    """Occurrences of one term in one field of one document."""

    model_config = ConfigDict(frozen=True)

    document: str
    field: str
    frequency: int
    weight: int  # frequency * field multiplier
    positions: list[int] = Field(default_factory=list)


class StoredDocument(BaseModel):
    """What a search result row needs without re-reading the source."""

    title: str
    snippet: str
    url: str


class SearchIndex(BaseModel):
    """Inverted index: term -> postings, plus the per-document store."""

    field_weights: dict[str, int] = Field(default_factory=dict)
    postings: dict[str, list[Posting]] = Field(default_factory=dict)
    documents: dict[str, StoredDocument] = Field(default_factory=dict)


class SearchHit(BaseModel):
    """A ranked search result."""

    id: str
    title: str
    snippet: str
    url: str
    score: int
    fields: list[str] = Field(default_factory=list)  # Fields that matched


# ─────────────────────────────────────────────────────────────────────────────
# Build report
# ─────────────────────────────────────────────────────────────────────────────


class BuildReport(BaseModel):
    """Summary of a completed build."""

    corpus_root: str
    documents: int = 0
    nodes: int = 0
    edges: int = 0
    references: int = 0
    unresolved: int = 0
    terms: int = 0
    warnings: list[BuildWarning] = Field(default_factory=list)
    graph_path: str | None = None
    search_index_path: str | None = None
    dry_run: bool = False
