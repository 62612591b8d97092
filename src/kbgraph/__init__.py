"""kbgraph: backlink graph and search index builder for markdown knowledge bases."""

__version__ = "0.1.0"
