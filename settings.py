#!/usr/bin/env python3
"""
Run configuration for the icon pipeline.

A PipelineConfig is built once by each command-line entry point and passed
explicitly to every stage. User overrides live in an optional settings.ini:

    [aliases]
    # architecture slug = resource slug
    devtools = developertools

    [brands]
    Amazon
    AWS
"""

import os
import unicodedata
from pathlib import Path
from typing import Dict, Iterable, Optional, Set, Tuple

from console import debug_print, warn

SETTINGS_FILENAME = 'settings.ini'
CONFIG_DIRNAME = 'aws_icon_tidy'
KNOWN_SECTIONS = ('aliases', 'brands')

DEFAULT_SOURCE = 'raw-aws-icons'
DEFAULT_DEST = 'aws-icons'
DEFAULT_SIZE = '48'
DEFAULT_FORMATS = ('svg',)


class SettingsError(ValueError):
    """Raised for configuration values no stage can run with."""


class PipelineConfig:
    """Options shared by the restructure, rename and title stages.

    Args:
        source: Extracted vendor archive (restructure input)
        dest: Tidy icon tree (restructure output, rename/title input)
        size: Size label to keep, e.g. '48'
        formats: Allowed file extensions, lowercase without the dot
        concurrency: Worker pool size for copies and title rewrites
        allow_unmatched: Do not warn about architecture-only categories
        dry_run: Report what would change without touching the filesystem
        manual_aliases: Extra architecture slug -> resource slug overrides
        brand_tokens: Extra brand tokens stripped from file names
    """

    def __init__(self, source: str = DEFAULT_SOURCE, dest: str = DEFAULT_DEST,
                 size: str = DEFAULT_SIZE, formats: Iterable[str] = DEFAULT_FORMATS,
                 concurrency: Optional[int] = None, allow_unmatched: bool = False,
                 dry_run: bool = False, manual_aliases: Optional[Dict[str, str]] = None,
                 brand_tokens: Optional[Iterable[str]] = None):
        self.source = Path(source).resolve()
        self.dest = Path(dest).resolve()
        self.size = str(size).strip()
        if isinstance(formats, str):
            formats = parse_formats(formats)
        self.formats = tuple(f.strip().lower().lstrip('.') for f in formats if f.strip())
        self.concurrency = concurrency if concurrency is not None else (os.cpu_count() or 1)
        self.allow_unmatched = allow_unmatched
        self.dry_run = dry_run
        self.manual_aliases = dict(manual_aliases or {})
        self.brand_tokens = tuple(brand_tokens or ())
        self.validate()

    def validate(self) -> None:
        if not self.size:
            raise SettingsError("Size label cannot be empty.")
        if not self.formats:
            raise SettingsError("At least one file format must be allowed.")
        if self.concurrency < 1:
            raise SettingsError(f"Concurrency must be at least 1, got {self.concurrency}.")

    @classmethod
    def from_settings(cls, settings_path: Optional[str] = None, **options) -> 'PipelineConfig':
        """Build a config from CLI options plus the user's settings.ini."""
        aliases, brands = load_user_settings(settings_path)
        aliases.update(options.pop('manual_aliases', None) or {})
        brands.update(options.pop('brand_tokens', None) or ())
        return cls(manual_aliases=aliases, brand_tokens=sorted(brands), **options)

    def __repr__(self):
        return (f"PipelineConfig(source={str(self.source)!r}, dest={str(self.dest)!r}, "
                f"size={self.size!r}, formats={self.formats!r}, concurrency={self.concurrency}, "
                f"dry_run={self.dry_run})")


def parse_formats(value: str) -> Tuple[str, ...]:
    """Split a --formats value like 'svg,PNG' into ('svg', 'png')."""
    return tuple(x.strip().lower() for x in value.split(',') if x.strip())


def load_user_settings(settings_path: Optional[str] = None) -> Tuple[Dict[str, str], Set[str]]:
    """Load user settings from settings.ini file.

    Args:
        settings_path: Optional path to settings file. If None, will search in standard locations.

    Returns:
        Tuple of (manual_aliases, brand_tokens)
    """
    aliases: Dict[str, str] = {}
    brands: Set[str] = set()

    settings_file = _find_settings_file(settings_path)
    if not settings_file:
        debug_print("No settings file found", level='detail')
        return aliases, brands

    current_section = None
    with open(settings_file, 'r', encoding='utf-8') as f:
        for line_num, line in enumerate(f, 1):
            # Remove comments and strip whitespace
            line = line.split('#', 1)[0].strip()
            if not line:
                continue

            if line.startswith('[') and line.endswith(']'):
                section_name = line[1:-1].strip().lower()
                if section_name in KNOWN_SECTIONS:
                    current_section = section_name
                else:
                    warn(f"Unknown section '{section_name}' at line {line_num} of {settings_file}")
                    current_section = None
            elif current_section is None:
                warn(f"Entry '{line}' at line {line_num} not in any section")
            elif not _is_valid_settings_entry(line):
                warn(f"Invalid entry '{line}' at line {line_num}")
            elif current_section == 'aliases':
                arch, sep, res = line.partition('=')
                arch, res = arch.strip().lower(), res.strip().lower()
                if not sep or not arch or not res:
                    warn(f"Alias '{line}' at line {line_num} must look like 'arch = res'")
                    continue
                aliases[arch] = res
            else:  # brands
                brands.add(line)

    if aliases:
        debug_print(f"Loaded {len(aliases)} manual aliases from {settings_file}")
    if brands:
        debug_print(f"Loaded {len(brands)} brand tokens from {settings_file}")

    return aliases, brands


def _is_valid_settings_entry(entry: str) -> bool:
    """Reject entries with control characters or longer than a file name can be."""
    if any(unicodedata.category(c).startswith('C') for c in entry):
        return False
    if len(entry) > 255:
        return False
    return True


def _find_settings_file(settings_path: Optional[str] = None) -> Optional[str]:
    """Find the settings file in standard locations.

    Checked in order: the explicit path, ./settings.ini, then
    ~/.config/aws_icon_tidy/settings.ini.
    """
    locations = []
    if settings_path:
        locations.append(settings_path)
    locations.append(os.path.join(os.getcwd(), SETTINGS_FILENAME))
    home_dir = os.path.expanduser('~')
    locations.append(os.path.join(home_dir, '.config', CONFIG_DIRNAME, SETTINGS_FILENAME))

    for location in locations:
        if os.path.isfile(location):
            return location
    return None
