"""Wikilink extraction from document bodies."""

from __future__ import annotations

import re

from ..models import Document, LinkReference
from .markdown import in_ranges, verbatim_ranges

# Pattern for [[link]] syntax - captures content between double brackets.
# Handles [[Title]], [[Title|Display]], [[Title#Anchor]] and [[path/to/entry]].
LINK_PATTERN = re.compile(r"\[\[([^\[\]\n]+)\]\]")


def split_target(raw: str) -> tuple[str, str | None, str | None]:
    """Split raw marker text into (target, anchor, display).

    Examples:
        "Banana" -> ("Banana", None, None)
        "Banana#Taste|the taste" -> ("Banana", "Taste", "the taste")
    """
    text, _, display = raw.partition("|")
    target, has_anchor, anchor = text.partition("#")
    return (
        target.strip(),
        (anchor.strip() or None) if has_anchor else None,
        display.strip() or None,
    )


def extract_links(document: Document) -> list[LinkReference]:
    """Extract [[...]] references from a document body.

    Markers inside fenced code, indented code and inline code spans are
    skipped, as are anchor-only markers such as [[#Heading]]. Other markers
    with an empty target ([[ ]], [[|Label]]) are kept with target "" so they
    surface as unresolved. Every occurrence is returned (no de-duplication)
    in body order.

    Args:
        document: The document to scan.

    Returns:
        Unresolved LinkReference candidates with UTF-8 byte offsets.
    """
    body = document.body
    matches = list(LINK_PATTERN.finditer(body))
    if not matches:
        return []

    skip = verbatim_ranges(body)
    references: list[LinkReference] = []

    # Running byte offset so the body is encoded once overall
    byte_offset = 0
    last_char = 0

    for match in matches:
        start = match.start()
        byte_offset += len(body[last_char:start].encode("utf-8"))
        last_char = start

        if in_ranges(start, skip):
            continue

        raw = match.group(1)
        target, anchor, display = split_target(raw)
        if not target and anchor:
            continue

        references.append(
            LinkReference(
                source_id=document.id,
                raw_target=raw,
                offset=byte_offset,
                length=len(match.group(0).encode("utf-8")),
                target=target,
                anchor=anchor,
                display=display,
            )
        )

    return references
