"""Container detection from leading magic bytes."""

from __future__ import annotations

from enum import Enum

ZIP_MAGIC = b"PK"
RAR_MAGIC = b"Rar!"
SEVEN_ZIP_MAGIC = b"7z\xbc\xaf\x27\x1c"


class ArchiveKind(str, Enum):
    ZIP = "zip"
    RAR = "rar"
    SEVEN_ZIP = "7z"
    RAW = "raw"

    @property
    def is_archive(self) -> bool:
        return self is not ArchiveKind.RAW


def sniff(data: bytes) -> ArchiveKind:
    """Classify ``data`` by signature; anything unrecognised is RAW text."""
    head = bytes(data[:8]) if data else b""
    if head.startswith(ZIP_MAGIC):
        return ArchiveKind.ZIP
    if head.startswith(RAR_MAGIC):
        return ArchiveKind.RAR
    if head.startswith(SEVEN_ZIP_MAGIC):
        return ArchiveKind.SEVEN_ZIP
    return ArchiveKind.RAW


__all__ = ["ArchiveKind", "sniff"]
