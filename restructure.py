#!/usr/bin/env python3
"""
Restructure the extracted AWS icon archive into one tidy directory tree.

The vendor archive ships two category taxonomies: architecture service icons
(Arch_<Category>/<size>/...) and resource icons (Res_<Category>/...). This
merges every architecture category with its resource counterpart, keeping only
the requested size and formats:

    raw-aws-icons/                           aws-icons/
      Architecture-Service-Icons_07312024/     Arch_Compute/
        Arch_Compute/48/*.svg          ->        (arch + resource icons)
      Resource-Icons_07312024/                 General-Icons-Light/
        Res_Compute/*.svg                      General-Icons-Dark/
      Architecture-Group-Icons_07312024/       Architecture-Group/
      Category-Icons_07312024/                 Categories/
      checksum.txt                             checksum.txt

Names are left as they are here; icon_renamer.py cleans them afterwards.

Usage:
    python restructure.py --source raw-aws-icons --dest aws-icons --size 48
    python restructure.py --dry-run --formats svg,png
"""

import os
import re
import sys
import shutil
import asyncio
import logging
import argparse
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from console import colour, debug_print, error, global_exception_handler, warn
from icon_names import slug
from settings import (DEFAULT_DEST, DEFAULT_SOURCE, DEFAULT_SIZE, PipelineConfig,
                      SettingsError, parse_formats)

logger = logging.getLogger(__name__)

# Top-level directories of the extracted archive (a release date may follow)
ARCH_ROOT_PREFIX = 'Architecture-Service-Icons'
RESOURCE_ROOT_PREFIX = 'Resource-Icons'
GROUP_ROOT_PREFIX = 'Architecture-Group-Icons'
CATEGORY_ROOT_PREFIX = 'Category-Icons'

# Category directory markers inside each taxonomy root
ARCH_MARKER = 'Arch_'
RESOURCE_MARKER = 'Res_'

GENERAL_CATEGORY = 'Arch_General-Icons'

GENERAL_LIGHT_DIR = 'General-Icons-Light'
GENERAL_DARK_DIR = 'General-Icons-Dark'
GROUP_DEST_DIR = 'Architecture-Group'
CATEGORIES_DEST_DIR = 'Categories'
CHECKSUM_FILENAME = 'checksum.txt'

DATE_SUFFIX = re.compile(r'_(\d{8}|\d{6})$')

CopyJob = Tuple[Path, Path]


class MissingSourceRoot(FileNotFoundError):
    """An expected top-level directory of the archive is missing."""


class FileWalk:
    """Restartable, lazy walk over the files below a directory.

    Entries are visited in sorted order so repeated runs see the same
    sequence. A root that does not exist yields nothing.
    """

    def __init__(self, root: Path, formats: Optional[Iterable[str]] = None):
        self.root = Path(root)
        self.formats = tuple(formats) if formats else None

    def __iter__(self) -> Iterator[Path]:
        if not self.root.is_dir():
            return iter(())
        return self._walk(self.root)

    def _walk(self, directory: Path) -> Iterator[Path]:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                yield from self._walk(Path(entry.path))
            elif entry.is_file() and self._wanted(entry.name):
                yield Path(entry.path)

    def _wanted(self, name: str) -> bool:
        if self.formats is None:
            return True
        return os.path.splitext(name)[1][1:].lower() in self.formats


def newest_dir(root: Path, prefix: str) -> Path:
    """Return the directory under root starting with prefix.

    When the archive holds several releases (Resource-Icons_07312024,
    Resource-Icons_02072025), the highest date suffix wins.
    """
    dirs = [e for e in root.iterdir() if e.is_dir() and e.name.startswith(prefix)]
    if not dirs:
        raise MissingSourceRoot(f"Missing {prefix}* directory in {root}")

    def date_key(path: Path) -> str:
        match = DATE_SUFFIX.search(path.name)
        return match.group(1) if match else ''

    return sorted(dirs, key=lambda p: (date_key(p), p.name), reverse=True)[0]


def matches_size(path: Path, root: Path, size: str, formats: Iterable[str]) -> bool:
    """True for an allowed format that is either named *_<size>.<ext> or sits
    below a directory called <size> (relative to root)."""
    ext = path.suffix[1:].lower()
    if ext not in formats:
        return False
    if path.name.lower().endswith(f'_{size}.{ext}'):
        return True
    return size in path.relative_to(root).parts[:-1]


def list_category_dirs(root: Path, marker: str) -> List[str]:
    return sorted(e.name for e in root.iterdir() if e.is_dir() and e.name.startswith(marker))


def category_map(names: Iterable[str], marker: str) -> Dict[str, str]:
    """Map slug -> directory name for every name carrying the taxonomy marker."""
    categories: Dict[str, str] = {}
    for name in sorted(names):
        if not name.startswith(marker):
            continue
        key = slug(name[len(marker):])
        if not key:
            continue
        if key in categories:
            warn(f"Categories {categories[key]!r} and {name!r} share slug {key!r}, keeping the first")
            continue
        categories[key] = name
    return categories


class SourceLayout:
    """Locates the four top-level roots of an extracted archive.

    Raises MissingSourceRoot before anything is written when one is absent.
    """

    def __init__(self, source: Path):
        self.source = Path(source)
        if not self.source.is_dir():
            raise MissingSourceRoot(f"Source directory not found: {self.source}")
        self.arch_root = newest_dir(self.source, ARCH_ROOT_PREFIX)
        self.resource_root = newest_dir(self.source, RESOURCE_ROOT_PREFIX)
        self.group_root = newest_dir(self.source, GROUP_ROOT_PREFIX)
        self.category_root = newest_dir(self.source, CATEGORY_ROOT_PREFIX)


class AliasResolver:
    """Pairs architecture categories with resource categories.

    Resolution order for an architecture slug:
    1. The same slug exists in the resource taxonomy
    2. The first resource slug (lexicographic) that contains it or that it contains
    3. MANUAL_ALIASES and user overrides, which always win

    Unresolved categories are not an error; resolve() returns None.
    """

    MANUAL_ALIASES = {
        'appintegration': 'applicationintegration',
        'iot': 'internetofthings',
    }

    def __init__(self, arch_names: Iterable[str], resource_names: Iterable[str],
                 manual_aliases: Optional[Dict[str, str]] = None):
        self.arch_categories = category_map(arch_names, ARCH_MARKER)
        self.resource_categories = category_map(resource_names, RESOURCE_MARKER)

        overrides = dict(self.MANUAL_ALIASES)
        overrides.update(manual_aliases or {})

        self.inferred = self._infer_aliases()
        aliases = dict(self.inferred)
        aliases.update(overrides)
        self.aliases = MappingProxyType(aliases)

    @classmethod
    def from_layout(cls, layout: SourceLayout,
                    manual_aliases: Optional[Dict[str, str]] = None) -> 'AliasResolver':
        return cls(list_category_dirs(layout.arch_root, ARCH_MARKER),
                   list_category_dirs(layout.resource_root, RESOURCE_MARKER),
                   manual_aliases)

    def _infer_aliases(self) -> Dict[str, str]:
        candidates = sorted(self.resource_categories)
        inferred = {}
        for key in sorted(self.arch_categories):
            if key in self.resource_categories:
                continue
            hit = next((r for r in candidates if r in key or key in r), None)
            if hit:
                debug_print(f"Inferred alias {key} -> {hit}", level='detail')
                inferred[key] = hit
        return inferred

    def resolve(self, arch_slug: str) -> Optional[str]:
        """Return the resource directory name paired with arch_slug, or None."""
        return self.resource_categories.get(self.aliases.get(arch_slug, arch_slug))


class MergeResult:
    """Statistics for one restructure run. Only touched from the event loop."""

    def __init__(self):
        self.copied = 0
        self.skipped = 0
        self.merged = 0
        self.arch_only = 0
        self.unmatched: List[str] = []
        self.general_light = 0
        self.general_dark = 0

    def __repr__(self):
        return (f"MergeResult(copied={self.copied}, skipped={self.skipped}, merged={self.merged}, "
                f"arch_only={self.arch_only}, unmatched={self.unmatched!r})")


def _copy_exclusive(src: Path, dst: Path) -> None:
    # 'x' mode fails with FileExistsError instead of overwriting
    with open(src, 'rb') as fin, open(dst, 'xb') as fout:
        shutil.copyfileobj(fin, fout)


def _copy_verbatim(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)


class TreeMerger:
    """Copies the selected icons of every category into the destination tree."""

    def __init__(self, config: PipelineConfig, layout: SourceLayout, resolver: AliasResolver):
        self.config = config
        self.layout = layout
        self.resolver = resolver
        self.result = MergeResult()
        # Destinations already handed to a copy during this run
        self._claimed = set()

    async def run(self) -> MergeResult:
        await self._ensure_dir(self.config.dest)
        await asyncio.gather(*(
            self.merge_category(key, name)
            for key, name in sorted(self.resolver.arch_categories.items())
        ))
        await self.copy_group()
        await self.copy_categories()
        await self.copy_checksum()
        self.result.unmatched.sort()
        return self.result

    async def _ensure_dir(self, directory: Path) -> None:
        if not self.config.dry_run:
            await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)

    def _select(self, root: Path, walk_root: Path) -> List[Path]:
        return [p for p in FileWalk(walk_root, self.config.formats)
                if matches_size(p, root, self.config.size, self.config.formats)]

    def _category_jobs(self, arch_name: str, resource_name: Optional[str], dst_dir: Path) -> List[CopyJob]:
        arch_root = self.layout.arch_root
        jobs = [(src, dst_dir / src.name)
                for src in self._select(arch_root, arch_root / arch_name / self.config.size)]
        if resource_name:
            res_root = self.layout.resource_root
            jobs.extend((src, dst_dir / src.name)
                        for src in self._select(res_root, res_root / resource_name))
        return jobs

    async def merge_category(self, arch_slug: str, arch_name: str) -> None:
        resource_name = self.resolver.resolve(arch_slug)
        if arch_name == GENERAL_CATEGORY:
            await self.split_general(arch_name, resource_name)
            return

        dst_dir = self.config.dest / arch_name
        jobs = await asyncio.to_thread(self._category_jobs, arch_name, resource_name, dst_dir)
        if resource_name is None:
            self.result.arch_only += 1
            self.result.unmatched.append(arch_name)

        await self._ensure_dir(dst_dir)
        await self.copy_pool(jobs)
        if resource_name:
            self.result.merged += 1
        debug_print(f"{arch_name}: {len(jobs)} icons"
                    f"{' merged with ' + resource_name if resource_name else ' (architecture only)'}",
                    level='detail')

    async def copy_pool(self, jobs: List[CopyJob]) -> None:
        """Copy jobs with at most config.concurrency copies in flight.

        Workers take jobs off a shared queue; get_nowait() hands each job to
        exactly one worker.
        """
        queue: asyncio.Queue = asyncio.Queue()
        for job in jobs:
            queue.put_nowait(job)

        async def worker():
            while True:
                try:
                    src, dst = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                await self.copy_exclusive(src, dst)

        workers = max(1, min(self.config.concurrency, len(jobs)))
        await asyncio.gather(*(worker() for _ in range(workers)))

    async def copy_exclusive(self, src: Path, dst: Path) -> bool:
        """Copy src to dst unless dst exists. Returns True when copied.

        The first job to claim a destination wins, whatever order the copies
        finish in.
        """
        if dst in self._claimed or (self.config.dry_run and dst.exists()):
            self.result.skipped += 1
            logger.debug("Duplicate skipped: %s", dst)
            return False
        self._claimed.add(dst)

        if self.config.dry_run:
            self.result.copied += 1
            logger.debug("DRY  %s -> %s", src, dst)
            return True

        try:
            await asyncio.to_thread(_copy_exclusive, src, dst)
        except FileExistsError:
            self.result.skipped += 1
            logger.debug("Duplicate skipped: %s", dst)
            return False
        except OSError as e:
            self.result.skipped += 1
            warn(f"Could not copy {src} -> {dst}: {e}")
            return False
        self.result.copied += 1
        logger.debug("Copied %s -> %s", src, dst)
        return True

    def _general_jobs(self, roots: List[Path], light: Path, dark: Path) -> List[CopyJob]:
        jobs = []
        for root in roots:
            for src in FileWalk(root, self.config.formats):
                target = dark if 'dark' in src.relative_to(root).as_posix().lower() else light
                jobs.append((src, target / src.name))
        return jobs

    async def split_general(self, arch_name: str, resource_name: Optional[str]) -> None:
        """Sort the general icon set into light and dark variants."""
        light = self.config.dest / GENERAL_LIGHT_DIR
        dark = self.config.dest / GENERAL_DARK_DIR
        await self._ensure_dir(light)
        await self._ensure_dir(dark)

        roots = [self.layout.arch_root / arch_name]
        if resource_name:
            roots.append(self.layout.resource_root / resource_name)

        jobs = await asyncio.to_thread(self._general_jobs, roots, light, dark)
        for _, dst in jobs:
            if dst.parent == dark:
                self.result.general_dark += 1
            else:
                self.result.general_light += 1
        await self.copy_pool(jobs)

    async def copy_group(self) -> None:
        """Copy the grouping/logo icons verbatim, keeping their subdirectories."""
        root = self.layout.group_root
        dst_root = self.config.dest / GROUP_DEST_DIR
        files = await asyncio.to_thread(list, FileWalk(root, self.config.formats))
        for src in files:
            dst = dst_root / src.relative_to(root)
            if not self.config.dry_run:
                try:
                    await asyncio.to_thread(_copy_verbatim, src, dst)
                except OSError as e:
                    self.result.skipped += 1
                    warn(f"Could not copy {src} -> {dst}: {e}")
                    continue
            self.result.copied += 1

    async def copy_categories(self) -> None:
        """Flatten the category icons of the requested size; first file name wins."""
        root = self.layout.category_root
        dst_dir = self.config.dest / CATEGORIES_DEST_DIR
        await self._ensure_dir(dst_dir)
        seen = set()
        for src in await asyncio.to_thread(self._select, root, root):
            if src.name in seen:
                continue
            seen.add(src.name)
            await self.copy_exclusive(src, dst_dir / src.name)

    async def copy_checksum(self) -> None:
        checksum = self.config.source / CHECKSUM_FILENAME
        if self.config.dry_run or not checksum.is_file():
            return
        await asyncio.to_thread(shutil.copyfile, checksum, self.config.dest / CHECKSUM_FILENAME)


def restructure(config: PipelineConfig) -> MergeResult:
    """Run the whole merge for one config. Raises MissingSourceRoot before any write."""
    layout = SourceLayout(config.source)
    resolver = AliasResolver.from_layout(layout, config.manual_aliases)
    return asyncio.run(TreeMerger(config, layout, resolver).run())


def print_summary(config: PipelineConfig, result: MergeResult) -> None:
    print(f"\n{colour('cyan', 'AWS-Icon restructure complete')}")
    print(f"Source : {config.source}")
    print(f"Dest   : {config.dest}")
    print(f"Mode   : {'DRY-RUN' if config.dry_run else 'LIVE'}")
    print(f"{colour('green', f'{result.copied} copied')}, "
          f"{colour('yellow', f'{result.skipped} duplicates skipped')}")
    print(f"Merged categories : {result.merged}")
    print(f"Arch only         : {result.arch_only}")
    print(f"General icons     : {result.general_light} light, {result.general_dark} dark")

    if result.unmatched and not config.allow_unmatched:
        print("\nArch folders with no matching Resource folder:")
        for name in result.unmatched:
            print(f"  • {colour('yellow', name)}")


def main(argv=None) -> int:
    """Merge the raw archive taxonomies into one icon tree."""
    parser = argparse.ArgumentParser(
        description='Restructure the extracted AWS icon archive into a tidy directory tree',
        add_help=True,
    )
    parser.add_argument('-s', '--source', default=DEFAULT_SOURCE,
                        help=f'Extracted archive directory (default: {DEFAULT_SOURCE})')
    parser.add_argument('-d', '--dest', default=DEFAULT_DEST,
                        help=f'Output directory (default: {DEFAULT_DEST})')
    parser.add_argument('--size', default=DEFAULT_SIZE,
                        help=f'Icon size label to keep (default: {DEFAULT_SIZE})')
    parser.add_argument('--formats', type=parse_formats, default=('svg',),
                        help='Comma separated file formats to keep (default: svg)')
    parser.add_argument('--concurrency', type=int, default=None,
                        help='Parallel copies per category (default: CPU count)')
    parser.add_argument('--allow-unmatched', action='store_true',
                        help='Do not list architecture categories without a resource counterpart')
    parser.add_argument('--remove-source', action='store_true',
                        help='Delete the source directory after a successful live run')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show what would be copied without making changes')
    parser.add_argument('--settings', dest='settings_path',
                        help='Path to custom settings file')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug output')
    parser.add_argument('-?', action='help',
                        help='Show this help message and exit')

    args = parser.parse_args(argv)

    if args.debug:
        os.environ['ICON_TIDY_DEBUG'] = 'detail'

    try:
        config = PipelineConfig.from_settings(
            args.settings_path, source=args.source, dest=args.dest, size=args.size,
            formats=args.formats, concurrency=args.concurrency,
            allow_unmatched=args.allow_unmatched, dry_run=args.dry_run)
    except SettingsError as e:
        error(str(e))
        return 1

    debug_print(f"Using {config!r}")

    try:
        result = restructure(config)
    except MissingSourceRoot as e:
        error(str(e))
        return 1
    except OSError as e:
        error(f"Restructure failed: {e}")
        return 2

    print_summary(config, result)

    if args.remove_source and not config.dry_run:
        try:
            shutil.rmtree(config.source)
            print(colour('green', f"\nRemoved raw directory: {config.source}"))
        except OSError as e:
            error(f"Failed to remove raw directory: {e}")
            return 2

    return 0


if __name__ == '__main__':
    # Only install the exception handler when running this file directly
    sys.excepthook = global_exception_handler
    logging.basicConfig(level=logging.DEBUG if '--debug' in sys.argv else logging.WARNING)
    sys.exit(main())
