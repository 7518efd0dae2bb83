"""
sid-catalog — build, search and play the HVSC tune catalog from the shell.

Usage:
    sid-catalog build                    # rebuild tunes.json.gz from HVSC
    sid-catalog search hubbard           # list matching tunes
    sid-catalog show /MUSICIANS/H/Hubbard_Rob/Commando.sid
    sid-catalog stats
    sid-catalog play /MUSICIANS/H/Hubbard_Rob/Commando.sid --song 2

Requires HVSC_BASE to point at the collection.
"""

from __future__ import annotations

import argparse
import sys
import time
from typing import List, Optional

from loguru import logger

from .catalog import Catalog, open_catalog
from .config import Settings, configure_logging
from .errors import CatalogError
from .models import SidTune
from .player import Player
from .releases import JsonReleaseProvider
from .tune_filter import TuneFilter

# ── terminal helpers ──────────────────────────────────────────────────────────

GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
RED = "\033[0;31m"
BOLD = "\033[1m"
DIM = "\033[2m"
NC = "\033[0m"


def _fmt_length(seconds: float) -> str:
    seconds = int(seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"


def _print_tune_line(tune: SidTune) -> None:
    print(f"{tune.year_label():>9}  {tune.list_name()}")


def _print_tune(tune: SidTune) -> None:
    h = tune.header
    print(f"{BOLD}{tune.path}{NC}")
    print("─" * 50)
    print(f"  Title:     {h.name}")
    print(f"  Author:    {h.author}")
    print(f"  Released:  {h.released}")
    print(f"  Format:    {h.magic_id} v{h.version}, {h.chip_count} SID")
    print(f"  Songs:     {h.songs} (start {h.start_song})")
    for song, length in enumerate(tune.song_lengths, start=1):
        print(f"    {song:3d}  {_fmt_length(length.total_seconds())}")
    for release in tune.releases:
        group = f" by {release.group}" if release.group else ""
        year = f" ({release.year})" if release.year else ""
        print(f"  Release:   {release.name}{group}{year}")


# ── commands ──────────────────────────────────────────────────────────────────

def _open(settings: Settings, args: argparse.Namespace, rebuild: bool = False) -> Catalog:
    return open_catalog(
        settings,
        rebuild=rebuild,
        release_provider=JsonReleaseProvider.from_settings(settings) if rebuild else None,
        fetch=not args.offline,
    )


def _cmd_build(settings: Settings, args: argparse.Namespace) -> int:
    started = time.monotonic()
    print(f"{BOLD}Building tunes index…{NC}", flush=True)
    catalog = _open(settings, args, rebuild=True)
    stats = catalog.stats()
    print(
        f"  {GREEN}✓{NC} {stats['num_tunes']} tunes indexed  "
        f"({stats['num_songs']} songs, {stats['with_releases']} with releases) "
        f"in {time.monotonic() - started:.1f}s"
    )
    print(f"  Index:      {settings.snapshot_path}")
    return 0


def _cmd_search(settings: Settings, args: argparse.Namespace) -> int:
    catalog = _open(settings, args)
    view = TuneFilter(catalog).apply(args.query)
    for tune in view.page(0, args.limit):
        _print_tune_line(tune)
    if view.count > args.limit:
        print(f"{DIM}… and {view.count - args.limit} more{NC}")
    print(f"{view.count}/{catalog.num_tunes}")
    return 0


def _cmd_show(settings: Settings, args: argparse.Namespace) -> int:
    catalog = _open(settings, args)
    tune = catalog.get_by_path(args.path)
    if tune is None:
        print(f"{YELLOW}Unknown tune:{NC} {args.path}", file=sys.stderr)
        return 1
    _print_tune(tune)
    return 0


def _cmd_stats(settings: Settings, args: argparse.Namespace) -> int:
    stats = _open(settings, args).stats()
    print(f"\n{BOLD}HVSC #{stats['release']}{NC}")
    print("─" * 40)
    print(f"  Tunes:             {stats['num_tunes']}")
    print(f"  Songs:             {stats['num_songs']}")
    print(f"  With releases:     {stats['with_releases']}")
    print(f"  Multi-SID tunes:   {stats['multi_sid']}")
    print(f"  RSID tunes:        {stats['rsid']}")
    if stats["year_min"]:
        print(f"  Years:             {stats['year_min']}–{stats['year_max']}")
    return 0


def _cmd_play(settings: Settings, args: argparse.Namespace) -> int:
    catalog = _open(settings, args)
    tune = catalog.get_by_path(args.path)
    if tune is None:
        print(f"{YELLOW}Unknown tune:{NC} {args.path}", file=sys.stderr)
        return 1

    player = Player(settings.player_command, settings.hvsc_base)
    try:
        player.play(tune, args.song)
        _print_tune(tune)
        print(f"{DIM}Ctrl+C to stop{NC}")
        time.sleep(0.5)
        while player.playing:
            time.sleep(0.2)
    except KeyboardInterrupt:
        print()
    finally:
        player.quit()
        player.wait()
    return 0


# ── main ──────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sid-catalog",
        description="Index, search and play the High Voltage SID Collection.",
    )
    parser.add_argument("--offline", action="store_true",
                        help="Never download a prebuilt index")
    parser.add_argument("--log-level", default=None, metavar="LEVEL",
                        help="Log level (default: SID_CATALOG_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("build", help="Rebuild the tunes index from the collection")
    p.set_defaults(func=_cmd_build)

    p = sub.add_parser("search", help="List tunes whose title, author or path match")
    p.add_argument("query", nargs="?", default="")
    p.add_argument("--limit", type=int, default=50, metavar="N")
    p.set_defaults(func=_cmd_search)

    p = sub.add_parser("show", help="Show one tune's header, song lengths and releases")
    p.add_argument("path")
    p.set_defaults(func=_cmd_show)

    p = sub.add_parser("stats", help="Summarise the catalog")
    p.set_defaults(func=_cmd_stats)

    p = sub.add_parser("play", help="Play a tune with the external player")
    p.add_argument("path")
    p.add_argument("--song", type=int, default=0, metavar="N",
                   help="1-based song number (default: the tune's start song)")
    p.set_defaults(func=_cmd_play)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
    except CatalogError as e:
        print(f"{RED}ERROR:{NC} {e}", file=sys.stderr)
        sys.exit(2)

    configure_logging(args.log_level or settings.log_level)
    try:
        code = args.func(settings, args)
    except (CatalogError, OSError) as e:
        logger.error(str(e))
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
