"""Markdown parsing with front matter, title index and link extraction."""

from .links import LINK_PATTERN, extract_links, split_target
from .markdown import parse_document, verbatim_ranges
from .title_index import TitleMap, build_title_map, normalize_path, normalize_title

__all__ = [
    "LINK_PATTERN",
    "TitleMap",
    "build_title_map",
    "extract_links",
    "normalize_path",
    "normalize_title",
    "parse_document",
    "split_target",
    "verbatim_ranges",
]
