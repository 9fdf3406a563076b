#!/usr/bin/env python3
"""
Normalise the <title> text inside every SVG below an icon tree.

Titles follow the file name rules except that brand tokens stay, so an icon
file called EC2.svg keeps the display title "Amazon-EC2":

    <title>Arch_Amazon-EC2_48</title>  ->  <title>Amazon-EC2</title>

Files without a title, or that cannot be read as UTF-8, are left alone.

Usage:
    python svg_title.py --root aws-icons [--dry-run]
"""

import os
import re
import sys
import asyncio
import logging
import argparse
from pathlib import Path
from typing import List, Optional, Tuple

from console import colour, error, global_exception_handler, warn
from icon_names import NameNormalizer
from restructure import FileWalk
from settings import DEFAULT_DEST, PipelineConfig, SettingsError

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r'<title>([\s\S]*?)</title>', re.IGNORECASE)

TitleChange = Tuple[Path, str, str]


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Unreadable SVG %s: %s", path, e)
        return None


def _write_text(path: Path, text: str) -> None:
    path.write_text(text, encoding='utf-8')


class TitleSync:
    """Rewrites SVG titles under root, concurrently and independently per file.

    A file that cannot be written is reported and listed in ``failed``; the
    other files are still processed.
    """

    def __init__(self, root: str = DEFAULT_DEST, dry_run: bool = False,
                 normalizer: Optional[NameNormalizer] = None, concurrency: Optional[int] = None):
        self.root = Path(root)
        self.dry_run = dry_run
        self.normalizer = normalizer or NameNormalizer()
        self.concurrency = concurrency or os.cpu_count() or 1
        self.failed: List[Tuple[Path, str]] = []

    def retitle(self, text: str) -> Optional[Tuple[str, str, str]]:
        """Return (updated text, original title, cleaned title), or None when
        the text has no title or its title is already clean."""
        match = TITLE_PATTERN.search(text)
        if not match:
            return None
        original = match.group(1).strip()
        cleaned = self.normalizer.clean_title(original)
        if cleaned == original:
            return None
        updated = TITLE_PATTERN.sub(lambda m: f"<title>{cleaned}</title>", text, count=1)
        return updated, original, cleaned

    async def process_svg(self, path: Path) -> Optional[TitleChange]:
        text = await asyncio.to_thread(_read_text, path)
        if text is None:
            return None
        retitled = self.retitle(text)
        if retitled is None:
            return None
        updated, original, cleaned = retitled
        rel = path.relative_to(self.root)

        if self.dry_run:
            print(colour('cyan', f'DRY  {rel}: "{original}" -> "{cleaned}"'))
            return path, original, cleaned

        try:
            await asyncio.to_thread(_write_text, path, updated)
        except OSError as e:
            warn(f"could not update title of {rel}: {e}")
            self.failed.append((path, str(e)))
            return None
        print(colour('green', f'Updated {rel}: "{original}" -> "{cleaned}"'))
        return path, original, cleaned

    async def run(self) -> List[TitleChange]:
        """Drain the walk with `concurrency` workers; files are listed lazily."""
        walk = enumerate(FileWalk(self.root, ('svg',)))
        # The walk is a generator, so only one worker may advance it at a time
        turn = asyncio.Lock()
        results: List[Tuple[int, TitleChange]] = []

        async def worker():
            while True:
                async with turn:
                    item = await asyncio.to_thread(next, walk, None)
                if item is None:
                    return
                index, path = item
                change = await self.process_svg(path)
                if change is not None:
                    results.append((index, change))

        self.failed = []
        await asyncio.gather(*(worker() for _ in range(self.concurrency)))
        return [change for _, change in sorted(results, key=lambda r: r[0])]

    def sync(self) -> List[TitleChange]:
        """Process every SVG below root; returns (path, old title, new title) per change."""
        return asyncio.run(self.run())


def main(argv=None) -> int:
    """Normalise SVG <title> elements in an icon tree."""
    parser = argparse.ArgumentParser(
        description='Normalise <title> tags inside every SVG below a directory',
        add_help=True,
    )
    parser.add_argument('-r', '--root', default=DEFAULT_DEST,
                        help=f'Path to the icon set (default: {DEFAULT_DEST})')
    parser.add_argument('--dry-run', action='store_true',
                        help='Preview changes only (no writes)')
    parser.add_argument('--concurrency', type=int, default=None,
                        help='Files processed at once (default: CPU count)')
    parser.add_argument('-?', action='help',
                        help='Show this help message and exit')

    args = parser.parse_args(argv)

    root = Path(args.root).resolve()
    if not root.is_dir():
        error(f"Root directory not found: {root}")
        return 1
    try:
        config = PipelineConfig(dest=str(root), concurrency=args.concurrency, dry_run=args.dry_run)
    except SettingsError as e:
        error(str(e))
        return 1

    print(colour('cyan', f"Root : {config.dest}"))
    print(colour('cyan', f"Mode : {'DRY-RUN' if config.dry_run else 'LIVE'}"))
    print("")

    try:
        title_sync = TitleSync(str(config.dest), dry_run=config.dry_run, concurrency=config.concurrency)
        changes = title_sync.sync()
    except OSError as e:
        error(f"Title update pass failed: {e}")
        return 2

    print(colour('green', f"\nTitle update pass complete: {len(changes)} titles changed."))
    if title_sync.failed:
        print(colour('yellow', f"{len(title_sync.failed)} files could not be written."))
    return 0


if __name__ == '__main__':
    sys.excepthook = global_exception_handler
    logging.basicConfig(level=logging.WARNING)
    sys.exit(main())
