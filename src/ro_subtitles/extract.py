from __future__ import annotations

import io
import logging
import os
import struct
import tempfile
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import List, Optional

import py7zr
import rarfile
from py7zr.exceptions import ArchiveError as SevenZipError

from .errors import ArchiveOpenError, ExtractionError
from .sniff import ArchiveKind

SUBTITLE_EXTENSIONS = (".srt", ".sub")
RAW_MEMBER_NAME = "subtitle.srt"
log = logging.getLogger("ro_subtitles.extract")


def is_subtitle_name(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in SUBTITLE_EXTENSIONS


@dataclass(frozen=True)
class MemberEntry:
    """A named file inside an open archive handle."""

    name: str
    is_dir: bool = False
    archive: Optional["SubtitleArchive"] = field(default=None, repr=False, compare=False)

    @property
    def basename(self) -> str:
        return os.path.basename(self.name)

    def read(self) -> bytes:
        if self.archive is None:
            raise ExtractionError("Member is not bound to an archive", member=self.name)
        return self.archive.extract(self)


class SubtitleArchive:
    """Uniform ``list()``/``extract()`` surface over one container format.

    Handles are context managers; entries handed out by :meth:`list` become
    unusable once the handle is closed.
    """

    kind: ArchiveKind

    def __init__(self) -> None:
        self._closed = False

    def __enter__(self) -> "SubtitleArchive":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._closed = True

    def list_all(self) -> List[MemberEntry]:
        raise NotImplementedError

    def list(self) -> List[MemberEntry]:
        return [entry for entry in self.list_all() if is_subtitle_name(entry.name)]

    def extract(self, member: MemberEntry) -> bytes:
        if self._closed:
            raise ExtractionError("Archive handle already closed", member=member.name)
        if member.archive is not self:
            raise ExtractionError("Member belongs to another archive", member=member.name)
        return self._read(member)

    def _read(self, member: MemberEntry) -> bytes:
        raise NotImplementedError


class RawPassthrough(SubtitleArchive):
    """Non-archive payload: the whole buffer is the single member."""

    kind = ArchiveKind.RAW

    def __init__(self, data: bytes) -> None:
        super().__init__()
        self._data = data

    def list_all(self) -> List[MemberEntry]:
        return [MemberEntry(RAW_MEMBER_NAME, archive=self)]

    def _read(self, member: MemberEntry) -> bytes:
        return self._data


class ZipSubtitleArchive(SubtitleArchive):
    kind = ArchiveKind.ZIP

    def __init__(self, data: bytes) -> None:
        super().__init__()
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError, EOFError) as exc:
            raise ArchiveOpenError(f"Corrupt ZIP archive: {exc}", kind="zip") from exc

    def close(self) -> None:
        if not self._closed:
            self._zip.close()
        super().close()

    def list_all(self) -> List[MemberEntry]:
        return [
            MemberEntry(info.filename, is_dir=False, archive=self)
            for info in self._zip.infolist()
            if not info.is_dir()
        ]

    def _read(self, member: MemberEntry) -> bytes:
        try:
            return self._zip.read(member.name)
        except (
            zipfile.BadZipFile,
            KeyError,
            NotImplementedError,
            RuntimeError,
            EOFError,
            OSError,
            zlib.error,
        ) as exc:
            raise ExtractionError(f"ZIP member extraction failed: {exc}", member=member.name) from exc


class RarSubtitleArchive(SubtitleArchive):
    kind = ArchiveKind.RAR

    def __init__(self, data: bytes) -> None:
        super().__init__()
        try:
            self._rar = rarfile.RarFile(io.BytesIO(data))
        except (rarfile.Error, OSError, ValueError, EOFError) as exc:
            raise ArchiveOpenError(f"Corrupt RAR archive: {exc}", kind="rar") from exc

    def close(self) -> None:
        if not self._closed:
            self._rar.close()
        super().close()

    def list_all(self) -> List[MemberEntry]:
        return [
            MemberEntry(info.filename, is_dir=False, archive=self)
            for info in self._rar.infolist()
            if not info.is_dir()
        ]

    def _read(self, member: MemberEntry) -> bytes:
        try:
            return self._rar.read(member.name)
        except rarfile.RarCannotExec as exc:
            raise ExtractionError(
                "RAR extraction failed. Install 'unrar', 'unar', or 'bsdtar' on the host.",
                member=member.name,
            ) from exc
        except (rarfile.Error, KeyError, OSError, EOFError) as exc:
            raise ExtractionError(f"RAR member extraction failed: {exc}", member=member.name) from exc


class SevenZipSubtitleArchive(SubtitleArchive):
    """7z handle; members are extracted into a throwaway directory."""

    kind = ArchiveKind.SEVEN_ZIP

    def __init__(self, data: bytes) -> None:
        super().__init__()
        self._data = data
        try:
            with py7zr.SevenZipFile(io.BytesIO(data)) as archive:
                self._infos = [info for info in archive.list() if not info.is_directory]
        except (SevenZipError, struct.error, OSError, ValueError, EOFError) as exc:
            raise ArchiveOpenError(f"Corrupt 7z archive: {exc}", kind="7z") from exc

    def list_all(self) -> List[MemberEntry]:
        return [MemberEntry(info.filename, is_dir=False, archive=self) for info in self._infos]

    def _read(self, member: MemberEntry) -> bytes:
        try:
            with tempfile.TemporaryDirectory(prefix="ro_subs_") as tmp:
                with py7zr.SevenZipFile(io.BytesIO(self._data)) as archive:
                    archive.extract(path=tmp, targets=[member.name])
                path = os.path.join(tmp, member.name)
                with open(path, "rb") as fh:
                    return fh.read()
        except (SevenZipError, struct.error, OSError, ValueError, EOFError) as exc:
            raise ExtractionError(f"7z member extraction failed: {exc}", member=member.name) from exc


_HANDLERS = {
    ArchiveKind.ZIP: ZipSubtitleArchive,
    ArchiveKind.RAR: RarSubtitleArchive,
    ArchiveKind.SEVEN_ZIP: SevenZipSubtitleArchive,
    ArchiveKind.RAW: RawPassthrough,
}


def open_archive(data: bytes, kind: ArchiveKind) -> SubtitleArchive:
    """Open ``data`` with the handler for ``kind``; raises ArchiveOpenError."""
    handler = _HANDLERS[kind]
    archive = handler(data)
    log.debug("open_archive: kind=%s bytes=%d", kind.value, len(data))
    return archive


__all__ = [
    "MemberEntry",
    "RawPassthrough",
    "RarSubtitleArchive",
    "SevenZipSubtitleArchive",
    "SubtitleArchive",
    "ZipSubtitleArchive",
    "SUBTITLE_EXTENSIONS",
    "is_subtitle_name",
    "open_archive",
]
