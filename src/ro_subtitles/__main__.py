#!/usr/bin/env python3
"""Resolve one titrari.ro subtitle id and print the normalized text."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from .common import configure_logging
from .service import SubtitleResolver
from .settings import Settings


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ro_subtitles", description="Fetch and normalize a titrari.ro subtitle.")
    parser.add_argument("subtitle_id", help="Numeric titrari.ro subtitle id.")
    parser.add_argument("--season", type=int, default=None, help="Season number for series archives.")
    parser.add_argument("--episode", type=int, default=None, help="Episode number for series archives.")
    parser.add_argument("--output", "-o", default=None, help="Write the subtitle to this file instead of stdout.")
    parser.add_argument("--timeout", type=float, default=None, help="Upstream fetch timeout in seconds.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = Settings()
    if args.timeout is not None:
        config = config.model_copy(update={"fetch_timeout": args.timeout})
    configure_logging(config, stream=sys.stderr)

    resolver = SubtitleResolver.from_settings(config)
    text = asyncio.run(resolver.resolve(args.subtitle_id, args.season, args.episode))
    if text is None:
        print(f"[ro_subtitles] subtitle {args.subtitle_id} not found", file=sys.stderr)
        return 1

    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(text)
    else:
        sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
