"""
Command-line entry point for popg.

Looks up one artist on MusicBrainz and prints the best match:

    $ popg Craque
    Looking for Craque in MusicBrainz database...
    Found it! ::: Craque
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from popg.artists import ArtistSearchError, QueryKind, search_artist

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="popg",
        description="Search the MusicBrainz database for an artist.",
    )
    parser.add_argument("term", help="Name to search for.")
    parser.add_argument(
        "--kind",
        default=QueryKind.ARTIST.value,
        help="Entity kind to search (default: %(default)s).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: %(default)s).",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Run a single artist lookup.

    Returns:
        0 when the search completed (matched or not), 1 when it failed.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print(f"Looking for {args.term} in MusicBrainz database...")
    try:
        found, text = search_artist(args.term, args.kind)
    except ArtistSearchError as e:
        logger.error(f"failed to find term! term={e.term} error={e}")
        return 1

    if not found:
        logger.warning(f"no artist matched term={args.term}")

    print(f"Found it! ::: {text}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
