"""Fatal build errors.

Only corpus-level structural problems abort a build. Link-quality problems
(broken references, lenient title collisions) are warning records on the
build report instead, see ``kbgraph.models``.
"""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Base class for errors that abort a build."""

    exit_code = 1

    def __init__(self, message: str, document_id: str | None = None) -> None:
        self.message = message
        self.document_id = document_id
        prefix = f"{document_id}: " if document_id else ""
        super().__init__(f"{prefix}{message}")


class CorpusReadError(BuildError):
    """The corpus (or one of its files) could not be read."""

    exit_code = 2


class SchemaViolation(BuildError):
    """A document is missing a required field or has a malformed one."""

    exit_code = 3

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        self.errors = errors or []
        if self.errors:
            message = message + ":\n" + "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(message, document_id)


class DuplicateTitleError(BuildError):
    """Two or more documents normalize to the same title (strict mode)."""

    exit_code = 4

    def __init__(self, collisions: dict[str, list[str]]) -> None:
        self.collisions = collisions
        ordered = sorted(collisions.items())
        lines = [f"  - '{title}': {', '.join(ids)}" for title, ids in ordered]
        super().__init__(
            "Duplicate titles (strict mode):\n" + "\n".join(lines),
            ordered[0][1][0] if ordered and ordered[0][1] else None,
        )


class ArtifactWriteError(BuildError):
    """An output artifact could not be written."""

    exit_code = 5

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot write {path}: {reason}")
