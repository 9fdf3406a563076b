#!/usr/bin/env python3
"""
Icon Renamer - Strip vendor prefixes, brand tokens and size suffixes from every
file and directory name below an icon tree.

    Arch_Compute/Arch_Amazon-EC2_48.svg  ->  Compute/EC2.svg
    Res_Storage/Res_AWS-Backup_48.svg    ->  Storage/Backup.svg

Contents of a directory are renamed before the directory itself, so paths
collected during the walk stay valid. A rename whose target already exists is
skipped with a warning, never overwritten. Renames already done stay done if a
later one fails; rerunning the pass picks up where it stopped.

Usage:
    python icon_renamer.py --root aws-icons --dry-run
"""

import os
import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional, Set, Tuple

from console import colour, debug_print, error, global_exception_handler, warn
from icon_names import NameNormalizer
from settings import DEFAULT_DEST, PipelineConfig, SettingsError

logger = logging.getLogger(__name__)


class IconRenamer:
    """Renames every entry below root with NameNormalizer.clean_name."""

    def __init__(self, root: str = DEFAULT_DEST, dry_run: bool = False,
                 normalizer: Optional[NameNormalizer] = None):
        """
        Args:
            root (str): Icon tree to process; the root itself keeps its name
            dry_run (bool): If True, only report what would be renamed
            normalizer: Name rules to apply (default: NameNormalizer())
        """
        self.root = Path(root)
        self.dry_run = dry_run
        self.normalizer = normalizer or NameNormalizer()
        self.skipped: List[Tuple[Path, str]] = []

    def clean_name(self, name: str, is_file: bool) -> str:
        return self.normalizer.clean_name(name, is_file)

    def rename_tree(self) -> List[Tuple[Path, str]]:
        """
        Rename everything below root, children before parents.

        Returns:
            List[Tuple[Path, str]]: (original path, new name) for every rename
            performed, or proposed when dry_run is set
        """
        debug_print(f"Starting to process icons in directory: {self.root}")
        changes: List[Tuple[Path, str]] = []
        self.skipped = []
        self._process_dir(self.root, changes)
        return changes

    def _process_dir(self, directory: Path, changes: List[Tuple[Path, str]]) -> None:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
        # Names present after the renames planned so far in this directory
        taken = {p.name for p in entries}

        for entry in entries:
            is_dir = entry.is_dir() and not entry.is_symlink()
            if is_dir:
                self._process_dir(entry, changes)
            new_name = self.clean_name(entry.name, is_file=not is_dir)
            debug_print(f"{entry.name!r} -> {new_name!r}", level='detail')
            if new_name == entry.name:
                continue
            if self._rename_safe(entry, new_name, taken):
                taken.discard(entry.name)
                taken.add(new_name)
                changes.append((entry, new_name))

    def _rename_safe(self, entry: Path, new_name: str, taken: Set[str]) -> bool:
        target = entry.with_name(new_name)
        if new_name in taken or target.exists():
            warn(f"destination exists, skipping {entry.name} -> {new_name}")
            self.skipped.append((entry, new_name))
            return False

        if self.dry_run:
            print(colour('cyan', f"DRY  {entry.name} -> {new_name}"))
            return True

        try:
            os.rename(entry, target)
        except OSError as e:
            warn(f"could not rename {entry} -> {new_name}: {e}")
            self.skipped.append((entry, new_name))
            return False
        logger.debug("Renamed %s -> %s", entry, target)
        print(colour('green', f"Renamed {entry.name} -> {new_name}"))
        return True


def main(argv=None) -> int:
    """Clean file and directory names of an icon tree."""
    parser = argparse.ArgumentParser(
        description='Strip vendor prefixes, brand tokens and size suffixes from icon names',
        add_help=True,
    )
    parser.add_argument('-r', '--root', default=DEFAULT_DEST,
                        help=f'Icon tree to rename (default: {DEFAULT_DEST})')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show what would be renamed without making changes')
    parser.add_argument('--settings', dest='settings_path',
                        help='Path to custom settings file')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug output')
    parser.add_argument('-?', action='help',
                        help='Show this help message and exit')

    args = parser.parse_args(argv)

    if args.debug:
        os.environ['ICON_TIDY_DEBUG'] = 'detail'

    root = Path(args.root).resolve()

    # Renaming the program's own directory would rename its modules
    program_dir = Path(__file__).parent.resolve()
    if root == program_dir:
        error("You are attempting to run this program on its own directory.")
        print("Please specify the icon tree to process, e.g. python icon_renamer.py --root aws-icons")
        return 1

    if not root.is_dir():
        error(f"Root directory not found: {root}")
        return 1

    try:
        config = PipelineConfig.from_settings(args.settings_path, dest=str(root), dry_run=args.dry_run)
    except SettingsError as e:
        error(str(e))
        return 1

    print(colour('cyan', f"Root   : {config.dest}"))
    print(colour('cyan', f"Mode   : {'DRY-RUN (no changes)' if config.dry_run else 'LIVE'}"))
    print("")

    renamer = IconRenamer(str(config.dest), dry_run=config.dry_run,
                          normalizer=NameNormalizer(config.brand_tokens))
    try:
        changes = renamer.rename_tree()
    except OSError as e:
        error(f"Rename pass failed: {e}")
        return 2

    if not changes and not renamer.skipped:
        print("No files need to be renamed.")
    print(colour('green', f"Rename pass complete: {len(changes)} renamed, {len(renamer.skipped)} skipped."))
    return 0


if __name__ == '__main__':
    # Only install the exception handler when running this file directly
    # This prevents it from interfering with pytest's exception handling
    sys.excepthook = global_exception_handler
    logging.basicConfig(level=logging.DEBUG if '--debug' in sys.argv else logging.WARNING)
    sys.exit(main())
