"""Text analysis shared by indexing and querying."""

from __future__ import annotations

from functools import lru_cache

from whoosh.analysis import Analyzer, StandardAnalyzer

from ..config import DEFAULT_STOPWORDS, MIN_TOKEN_LENGTH


@lru_cache(maxsize=8)
def get_analyzer(stopwords: frozenset[str] = DEFAULT_STOPWORDS) -> Analyzer:
    """Regex tokenizer + lowercase + stop filter, cached per stopword set.

    Each call of the returned analyzer builds its own token stream, so one
    instance is safe to share between indexing threads.
    """
    return StandardAnalyzer(stoplist=stopwords, minsize=MIN_TOKEN_LENGTH)


def tokenize(text: str | None, stopwords: frozenset[str] = DEFAULT_STOPWORDS) -> list[tuple[str, int]]:
    """Split text into (term, position) pairs.

    Positions increase by one per retained token, so stopwords leave no gaps.
    """
    if not text:
        return []
    # Whoosh reuses one Token object per stream; copy fields out immediately
    return [(token.text, token.pos) for token in get_analyzer(stopwords)(text, positions=True)]
