"""Season/episode selection among archive members."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Union

from .errors import NoMatchError
from .extract import MemberEntry

log = logging.getLogger("ro_subtitles.matching")


@dataclass(frozen=True)
class SelectionCriteria:
    season: int
    episode: int

    @classmethod
    def from_optional(
        cls,
        season: Union[int, str, None],
        episode: Union[int, str, None],
    ) -> Optional["SelectionCriteria"]:
        """Build criteria only when both parts are positive integers."""
        season_num = _positive_int(season)
        episode_num = _positive_int(episode)
        if season_num is None or episode_num is None:
            return None
        return cls(season_num, episode_num)


def _positive_int(value: Union[int, str, None]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def episode_pattern(season: int, episode: int) -> Pattern[str]:
    # S01E02 / s1e2 / 1x02, leading zeros optional
    return re.compile(rf"S0*{season}E0*{episode}|{season}x0*{episode}", re.IGNORECASE)


def select_member(
    entries: Sequence[MemberEntry],
    criteria: Optional[SelectionCriteria] = None,
) -> Optional[MemberEntry]:
    """Pick the entry for ``criteria``, else the first entry in archive order.

    A wrong-episode subtitle is preferred over none, so an unmatched pattern
    falls back to the default candidate instead of failing.
    """
    if not entries:
        return None
    default = entries[0]
    if criteria is None:
        return default

    pattern = episode_pattern(criteria.season, criteria.episode)
    for entry in entries:
        if pattern.search(entry.name):
            return entry

    log.info(
        "select_member: no entry for S%02dE%02d, falling back to %s",
        criteria.season,
        criteria.episode,
        default.name,
    )
    return default


def require_member(
    entries: Sequence[MemberEntry],
    criteria: Optional[SelectionCriteria] = None,
) -> MemberEntry:
    member = select_member(entries, criteria)
    if member is None:
        raise NoMatchError("No candidate subtitle member")
    return member


__all__ = ["SelectionCriteria", "episode_pattern", "require_member", "select_member"]
