"""Best-effort decoding of Romanian subtitle payloads.

Upstream files arrive as UTF-8, as Windows-1250/ISO-8859-2 style single-byte
text, or as UTF-8 that was mis-decoded once and saved again. ``normalize``
tries those readings in order and always returns a string.
"""

from __future__ import annotations

import codecs
import logging
import re
from typing import Optional, Tuple

log = logging.getLogger("ro_subtitles.encoding")

ROMANIAN_DIACRITICS_RE = re.compile("[șțăîâȘȚĂÎÂşţŞŢ]")

# Ordered (corrupted, correct) pairs. Multi-character sequences (UTF-8 bytes
# read back as Latin-1 or Windows-1252) come first and longest first; the
# single legacy characters must run last since they may occur inside the
# longer sequences.
REPAIRS: Tuple[Tuple[str, str], ...] = (
    # comma-below letters
    ("È˜", "Ș"),
    ("È\x98", "Ș"),
    ("È™", "ș"),
    ("È\x99", "ș"),
    ("Èš", "Ț"),
    ("È\x9a", "Ț"),
    ("È›", "ț"),
    ("È\x9b", "ț"),
    # cedilla letters
    ("ÅŽ", "Ș"),
    ("Åž", "Ș"),
    ("Å\x9e", "Ș"),
    ("ÅŸ", "ș"),
    ("Å\x9f", "ș"),
    ("Å¢", "Ț"),
    ("Å£", "ț"),
    # breve / circumflex
    ("Äƒ", "ă"),
    ("Ä\x83", "ă"),
    ("Ä‚", "Ă"),
    ("Ä\x82", "Ă"),
    ("Ã¢", "â"),
    ("Ã‚", "Â"),
    ("Ã\x82", "Â"),
    ("Ã£", "ă"),
    ("ÃŽ", "Î"),
    ("Ã\x8e", "Î"),
    ("Ã®", "î"),
    # legacy single-byte mappings
    ("ª", "Ș"),
    ("º", "ș"),
    ("Þ", "Ț"),
    ("þ", "ț"),
)

DOUBLE_ENCODED_KEYS = tuple(bad for bad, _ in REPAIRS if len(bad) > 1)

# Windows-1250 code points for Romanian letters that Latin-1 gets wrong.
LEGACY_BYTE_MAP = {
    0x8A: "Ș",
    0x9A: "ș",
    0x8C: "Ț",
    0x9C: "ț",
    0xE3: "ă",
    0xC3: "Ă",
    0x80: "€",
}


def repair_diacritics(text: str) -> str:
    for bad, good in REPAIRS:
        if bad in text:
            text = text.replace(bad, good)
    return text


def has_romanian_diacritics(text: str) -> bool:
    return bool(ROMANIAN_DIACRITICS_RE.search(text))


def has_double_encoding(text: str) -> bool:
    return any(key in text for key in DOUBLE_ENCODED_KEYS)


def decode_legacy(data: bytes) -> str:
    """Latin-1 decode with the Windows-1250 Romanian letters patched in."""
    return data.decode("latin-1").translate(LEGACY_BYTE_MAP)


def _decode_utf8(data: bytes) -> Optional[str]:
    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8):]
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def normalize(data: bytes) -> str:
    """Decode ``data`` into readable Romanian text. Never raises."""
    try:
        payload = bytes(data or b"")
    except TypeError:
        log.warning("normalize: unsupported payload type %s", type(data).__name__)
        return ""

    utf8_text = _decode_utf8(payload)
    if utf8_text is not None:
        repaired = repair_diacritics(utf8_text)
        if has_romanian_diacritics(repaired):
            return repaired

    latin_text = payload.decode("latin-1")
    if has_double_encoding(latin_text):
        log.debug("normalize: repairing double-encoded latin-1 payload")
        return repair_diacritics(latin_text)

    if utf8_text is not None:
        return repaired

    log.debug("normalize: applying windows-1250 byte table")
    return repair_diacritics(decode_legacy(payload))


__all__ = [
    "LEGACY_BYTE_MAP",
    "REPAIRS",
    "decode_legacy",
    "has_romanian_diacritics",
    "normalize",
    "repair_diacritics",
]
