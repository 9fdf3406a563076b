#!/usr/bin/env python3
"""
Name rules for the AWS icon set.

File and directory names lose their vendor prefixes (Arch_, Res_,
Arch-Category_), brand tokens (Amazon, AWS) and size suffixes (_48, _32).
Embedded SVG titles go through a reduced rule set that keeps the brand
tokens, because end-user labels must still read "Amazon EC2" or "AWS Lambda".

Also holds the slug and token helpers used to line up the architecture and
resource category taxonomies.
"""

import os
import re
from typing import Callable, Iterable, List, Optional


class NameNormalizer:
    """Cleans icon file names, directory names and title text.

    Every rule chain is applied until the name stops changing, so cleaning an
    already clean name is a no-op.
    """

    # Anchored prefix group, case-insensitive. Longer alternatives first.
    PREFIX_PATTERN = r'^(?:Arch[-_]Category[-_]|Arch[-_]|Res[-_])+'

    BRAND_TOKENS = ('Amazon', 'AWS')

    # Pixel-dimension labels stripped from the end of a file or directory name
    SIZE_SUFFIXES = ('48', '32')

    TITLE_PREFIX_PATTERN = r'^(?:Arch_|Res_)+'
    TITLE_SIZE_PATTERN = r'(?:_\d+)+$'

    SEPARATOR_RUN = re.compile(r'[-_]{2,}')
    TITLE_SEPARATOR_RUN = re.compile(r'__+')
    EDGE_SEPARATORS = re.compile(r'^[-_]+|[-_]+$')

    def __init__(self, brand_tokens: Optional[Iterable[str]] = None,
                 size_suffixes: Optional[Iterable[str]] = None):
        """
        Args:
            brand_tokens: Extra brand tokens to strip on top of BRAND_TOKENS
            size_suffixes: Size labels to strip instead of SIZE_SUFFIXES
        """
        brands = list(self.BRAND_TOKENS)
        for token in brand_tokens or ():
            token = token.strip()
            if token and token.lower() not in {b.lower() for b in brands}:
                brands.append(token)
        self.brand_tokens = tuple(brands)
        self.size_suffixes = tuple(size_suffixes) if size_suffixes else self.SIZE_SUFFIXES

        # Longest token first so 'AWSome' style overlaps strip the longer match
        brand_alt = '|'.join(re.escape(b) for b in sorted(self.brand_tokens, key=len, reverse=True))
        size_alt = '|'.join(re.escape(s) for s in sorted(self.size_suffixes, key=len, reverse=True))

        self.prefix_re = re.compile(self.PREFIX_PATTERN, re.IGNORECASE)
        self.brand_re = re.compile(f'(?:{brand_alt})', re.IGNORECASE)
        self.size_re = re.compile(f'(?:_(?:{size_alt}))+$', re.IGNORECASE)
        self.title_prefix_re = re.compile(self.TITLE_PREFIX_PATTERN, re.IGNORECASE)
        self.title_size_re = re.compile(self.TITLE_SIZE_PATTERN)

    @staticmethod
    def _until_stable(text: str, rules: Callable[[str], str]) -> str:
        # Every rule only removes or shortens, so this terminates
        while True:
            cleaned = rules(text)
            if cleaned == text:
                return cleaned
            text = cleaned

    def _name_rules(self, base: str) -> str:
        base = self.prefix_re.sub('', base)             # 1 - prefixes
        base = self.brand_re.sub('', base)              # 2 - brands
        base = self.size_re.sub('', base)               # 3 - sizes
        base = self.SEPARATOR_RUN.sub('_', base)        # 4 - collapse
        return self.EDGE_SEPARATORS.sub('', base)       # 5 - trim

    def _title_rules(self, text: str) -> str:
        text = self.title_prefix_re.sub('', text)
        text = self.title_size_re.sub('', text)
        text = self.TITLE_SEPARATOR_RUN.sub('_', text)
        return self.EDGE_SEPARATORS.sub('', text)

    def clean_name(self, name: str, is_file: bool) -> str:
        """Return the cleaned file or directory name.

        The extension of a file is held aside and reattached unchanged. When
        the rules strip everything, the original name is returned.

        >>> NameNormalizer().clean_name('Arch_Amazon-EC2_48.svg', True)
        'EC2.svg'
        """
        base, ext = os.path.splitext(name) if is_file else (name, '')
        cleaned = self._until_stable(base, self._name_rules)
        if not cleaned.strip('.'):
            return name
        return f"{cleaned}{ext}"

    def clean_title(self, raw: str) -> str:
        """Return the cleaned <title> text. Brand tokens are kept.

        >>> NameNormalizer().clean_title('Amazon-EC2_48')
        'Amazon-EC2'
        """
        text = raw.split('/')[-1] if '/' in raw else raw
        cleaned = self._until_stable(text, self._title_rules)
        return cleaned or raw


def slug(name: str) -> str:
    """Lowercase alphanumeric-only key: 'App-Integration' -> 'appintegration'."""
    return re.sub(r'[^a-z0-9]', '', name.lower())


def tokens(name: str) -> List[str]:
    """Split a name into lowercase word fragments, extension dropped."""
    name = re.sub(r'\.[^.]+$', '', name.lower())
    return [t for t in re.split(r'[-_\s/]+', name) if t]


def token_match(category: str, icon_name: str) -> bool:
    """True when every category token starts some token of the icon name.

    'Machine-Learning' matches 'Machine-Learning' and 'Machines_Learnings',
    but not 'Machine'.
    """
    icon_tokens = tokens(icon_name)
    return all(any(it.startswith(ct) for it in icon_tokens) for ct in tokens(category))
