"""Error taxonomy for the subtitle extraction pipeline.

Every error is absorbed by :class:`ro_subtitles.service.SubtitleResolver`
and surfaced to callers as a plain miss; the hierarchy only exists so the
cause can be logged.
"""

from __future__ import annotations

from typing import Any, Dict


class SubtitleError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class FetchError(SubtitleError):
    """Upstream download failed (network, timeout or non-2xx)."""


class ArchiveError(SubtitleError):
    """Archive processing failed."""


class ArchiveOpenError(ArchiveError):
    """Archive could not be opened or listed."""


class ExtractionError(ArchiveError):
    """A listed member could not be decompressed."""


class NoMatchError(SubtitleError):
    """No candidate member was available."""
