"""Title-to-identifier map for resolving wiki-style links.

Enables resolution of [[Title]] and [[Alias]] style links in addition to
identifier-style [[collection/entry]] links. The map is built once per build
from the complete corpus and is read-only afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from ..errors import DuplicateTitleError
from ..models import Document, DuplicateTitleWarning

log = logging.getLogger(__name__)


def normalize_title(text: str) -> str:
    """Case-fold and collapse whitespace so "Foo  Bar" and "foo bar" match."""
    return " ".join(text.casefold().split())


def normalize_path(target: str) -> str:
    """Normalize an identifier-style link target.

    - Strips whitespace
    - Removes .md / .mdx extension
    - Normalizes path separators and strips leading/trailing slashes
    """
    target = target.strip()
    for suffix in (".mdx", ".md"):
        if target.endswith(suffix):
            target = target[: -len(suffix)]
            break
    return target.replace("\\", "/").strip("/")


class TitleMap(Mapping[str, str]):
    """Immutable normalized-title -> identifier lookup."""

    __slots__ = ("_titles", "_identifiers")

    def __init__(self, titles: Mapping[str, str], identifiers: Iterable[str]) -> None:
        self._titles = MappingProxyType(dict(titles))
        self._identifiers = frozenset(identifiers)

    def __getitem__(self, key: str) -> str:
        return self._titles[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._titles)

    def __len__(self) -> int:
        return len(self._titles)

    def __repr__(self) -> str:
        return f"TitleMap({len(self._titles)} titles, {len(self._identifiers)} documents)"

    @property
    def identifiers(self) -> frozenset[str]:
        return self._identifiers

    def resolve(self, target: str) -> str | None:
        """Resolve a link target to a document identifier.

        Attempts resolution in order:
        1. Title/alias lookup (normalized)
        2. Exact identifier match (e.g. [[guides/setup]] or [[guides/setup.md]])

        Returns:
            The identifier, or None if nothing matches.
        """
        resolved = self._titles.get(normalize_title(target))
        if resolved is not None:
            return resolved

        path = normalize_path(target)
        if path in self._identifiers:
            return path

        return None


def build_title_map(
    documents: Iterable[Document],
    *,
    strict: bool = False,
) -> tuple[TitleMap, list[DuplicateTitleWarning]]:
    """Build the title map for a complete corpus.

    Collision policy: when several documents normalize to the same title (or
    alias), the lexicographically smallest identifier wins and a warning is
    recorded for the rest. In strict mode any collision is an error instead.
    Aliases are indexed after titles and never displace a title.

    Args:
        documents: Every retained document of the build.
        strict: Raise on collisions instead of warning.

    Returns:
        Tuple of (title map, collision warnings sorted by title).

    Raises:
        DuplicateTitleError: In strict mode, listing every collision.
    """
    documents = list(documents)
    title_claims: dict[str, set[str]] = {}
    alias_claims: dict[str, set[str]] = {}

    for doc in documents:
        title_claims.setdefault(normalize_title(doc.title), set()).add(doc.id)
        for alias in doc.aliases:
            key = normalize_title(alias)
            if key:
                alias_claims.setdefault(key, set()).add(doc.id)

    titles: dict[str, str] = {}
    collisions: dict[str, set[str]] = {}
    warnings: list[DuplicateTitleWarning] = []

    for key in sorted(title_claims):
        ids = sorted(title_claims[key])
        titles[key] = ids[0]
        if len(ids) > 1:
            collisions[key] = set(ids)
            warnings.append(DuplicateTitleWarning(title=key, kept_id=ids[0], shadowed_ids=ids[1:]))

    for key in sorted(alias_claims):
        ids = sorted(alias_claims[key])
        if key in titles:
            owner = titles[key]
            shadowed = [doc_id for doc_id in ids if doc_id != owner]
            if shadowed:
                collisions.setdefault(key, {owner}).update(shadowed)
                warnings.append(
                    DuplicateTitleWarning(title=key, kept_id=owner, shadowed_ids=shadowed, alias=True)
                )
            continue

        titles[key] = ids[0]
        if len(ids) > 1:
            collisions[key] = set(ids)
            warnings.append(
                DuplicateTitleWarning(title=key, kept_id=ids[0], shadowed_ids=ids[1:], alias=True)
            )

    if strict and collisions:
        raise DuplicateTitleError({key: sorted(ids) for key, ids in collisions.items()})

    warnings.sort(key=lambda w: (w.title, w.alias))
    for warning in warnings:
        log.warning(warning.describe())

    return TitleMap(titles, (doc.id for doc in documents)), warnings
