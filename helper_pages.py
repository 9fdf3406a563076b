#!/usr/bin/env python3
"""
Build a small static site for browsing the tidy icon tree.

    aws-svg-helper/
      index.html        one tile per category
      Compute.html      every icon of the category, click to copy its SVG
      ...

Category tiles use the matching icon from Categories/ (exact name first, then
the first token match), falling back to the AWS cloud logo.

Usage:
    python helper_pages.py --source aws-icons --dest aws-svg-helper [--dry-run]
"""

import re
import sys
import html
import shutil
import logging
import argparse
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

from console import colour, error, global_exception_handler
from icon_names import token_match
from restructure import CATEGORIES_DEST_DIR, GROUP_DEST_DIR, FileWalk
from settings import DEFAULT_DEST

logger = logging.getLogger(__name__)

DEFAULT_SITE_DIR = 'aws-svg-helper'
FALLBACK_ICON = Path(GROUP_DEST_DIR) / 'Cloud-logo.svg'
PLACEHOLDER_THUMB = '<span style="font-size:1.6rem;">Folder</span>'

XML_PROLOG = re.compile(r'<\?xml[\s\S]*?\?>', re.IGNORECASE)
DOCTYPE = re.compile(r'<!DOCTYPE[\s\S]*?>', re.IGNORECASE)

CATEGORY_PAGE = """<!DOCTYPE html><html lang="en"><head><meta charset="utf-8">
<title>{title} – AWS Icon Helper</title>
<style>
body{{font-family:system-ui,Arial,sans-serif;margin:0;padding:1rem;}}
h1{{margin-top:0;}}
.grid{{display:grid;gap:1rem;grid-template-columns:repeat(auto-fill,minmax(90px,1fr));}}
.icon{{cursor:pointer;border:1px solid #d0d0d0;border-radius:6px;padding:.5rem;text-align:center;transition:background-color .2s;}}
.icon:hover{{background:#f5f5f5;}}
.icon svg{{width:48px;height:48px;}}
.icon.dark{{background:#1e1e1e;border-color:#3a3a3a;}}
.icon.dark:hover{{background:#313131;}}
a.back{{display:inline-block;margin-bottom:1rem;text-decoration:none;color:#0063d1;}}
</style></head><body>
<a class="back" href="index.html">← All categories</a>
<h1>{title}</h1><p>Click an icon to copy its SVG code.</p>
<div class="grid">{icons}</div>
<script>
document.querySelectorAll('.icon').forEach(el=>{{
  el.addEventListener('click',()=>{{
    const svg=el.querySelector('svg').outerHTML;
    navigator.clipboard.writeText(svg).then(()=>{{
      el.style.background='#c8e6c9';setTimeout(()=>el.style.background='',350);
    }});
  }});
}});
</script></body></html>"""

INDEX_PAGE = """<!DOCTYPE html><html lang="en"><head><meta charset="utf-8">
<title>AWS Icon Library</title>
<style>
body{{font-family:system-ui,Arial,sans-serif;margin:0;padding:1rem;}}
h1{{margin:0 0 1rem 0;}}
.grid{{display:grid;gap:1.5rem;grid-template-columns:repeat(auto-fill,minmax(120px,1fr));}}
.tile{{display:flex;flex-direction:column;align-items:center;text-decoration:none;color:#111;
      border:1px solid #d0d0d0;border-radius:8px;padding:.75rem;transition:box-shadow .2s;}}
.tile:hover{{box-shadow:0 0 6px rgba(0,0,0,.25);}}
.thumb{{margin-bottom:.5rem;}}
.thumb svg{{width:48px;height:48px;}}
span{{font-size:.85rem;text-align:center;}}
</style></head><body>
<h1>AWS Icon Library</h1>
<p>Select a category to view and copy its icons.</p>
<div class="grid">{tiles}</div></body></html>"""


def strip_xml(svg: str) -> str:
    """Drop the XML prolog and doctype so the SVG can be inlined in HTML."""
    return DOCTYPE.sub('', XML_PROLOG.sub('', svg, count=1), count=1).strip()


def is_dark_name(name: str) -> bool:
    return 'dark' in name.lower()


def load_svg(path: Path) -> str:
    return strip_xml(path.read_text(encoding='utf-8'))


def find_category_icon(category: str, icon_stems: List[str]) -> Optional[str]:
    """Pick the Categories/ icon stem for a category tile, or None."""
    if category in icon_stems:
        return category
    return next((stem for stem in icon_stems if token_match(category, stem)), None)


def category_icons(source: Path, categories: List[str]) -> Dict[str, str]:
    """Map category -> inline SVG of its representative icon."""
    cat_root = source / CATEGORIES_DEST_DIR
    if not cat_root.is_dir():
        return {}
    stems = sorted(p.stem for p in cat_root.iterdir() if p.suffix.lower() == '.svg')
    icons = {}
    for category in categories:
        stem = find_category_icon(category, stems)
        if stem:
            icons[category] = load_svg(cat_root / f"{stem}.svg")
    return icons


def build_category_page(source: Path, category: str) -> Optional[str]:
    """Render one category page, or None when the category holds no SVGs."""
    blocks = []
    for svg_path in FileWalk(source / category, ('svg',)):
        dark = is_dark_name(svg_path.name) or is_dark_name(category)
        div_class = f"icon{' dark' if dark else ''}"
        blocks.append(f'<div class="{div_class}" title="{html.escape(svg_path.stem)}">'
                      f'{load_svg(svg_path)}</div>\n')
    if not blocks:
        return None
    return CATEGORY_PAGE.format(title=html.escape(category), icons=''.join(blocks))


def build_index_page(built: List[str], thumbs: Dict[str, str], fallback: Optional[str]) -> str:
    tiles = []
    for category in built:
        thumb = thumbs.get(category) or fallback or PLACEHOLDER_THUMB
        tiles.append(f'<a class="tile" href="{quote(category)}.html" title="{html.escape(category)}">\n'
                     f'  <div class="thumb">{thumb}</div><span>{html.escape(category)}</span></a>\n')
    return INDEX_PAGE.format(tiles=''.join(tiles))


def generate_pages(source: Path, dest: Path, dry_run: bool = False) -> List[str]:
    """Write index.html and one page per category into dest.

    Returns:
        Names of the categories a page was built for
    """
    if not source.is_dir():
        raise FileNotFoundError(f"No source: {source}")

    if not dry_run:
        shutil.rmtree(dest, ignore_errors=True)
        dest.mkdir(parents=True)

    categories = sorted(p.name for p in source.iterdir() if p.is_dir())
    print(colour('cyan', f"Categories found: {len(categories)}"))

    thumbs = category_icons(source, categories)
    fallback_path = source / FALLBACK_ICON
    fallback = load_svg(fallback_path) if fallback_path.is_file() else None

    built = []
    for category in categories:
        page = build_category_page(source, category)
        if page is None:
            logger.debug("No SVGs in %s, no page", category)
            continue
        if not dry_run:
            (dest / f"{category}.html").write_text(page, encoding='utf-8')
        built.append(category)
        print(colour('green', f"Built {category}.html"))

    if not dry_run:
        (dest / 'index.html').write_text(build_index_page(built, thumbs, fallback), encoding='utf-8')
    print(colour('green', "Built index.html"))
    print(colour('green', f"SVG helper pages ready{' [DRY-RUN]' if dry_run else ''}."))
    return built


def main(argv=None) -> int:
    """Build the static icon browsing pages."""
    parser = argparse.ArgumentParser(
        description='Build static HTML pages for browsing and copying icons',
        add_help=True,
    )
    parser.add_argument('-s', '--source', default=DEFAULT_DEST,
                        help=f'Icon root (default: {DEFAULT_DEST})')
    parser.add_argument('-d', '--dest', default=DEFAULT_SITE_DIR,
                        help=f'Output directory (default: {DEFAULT_SITE_DIR})')
    parser.add_argument('--dry-run', action='store_true',
                        help='Preview only, no writes')
    parser.add_argument('-?', action='help',
                        help='Show this help message and exit')

    args = parser.parse_args(argv)

    try:
        generate_pages(Path(args.source).resolve(), Path(args.dest).resolve(), dry_run=args.dry_run)
    except FileNotFoundError as e:
        error(str(e))
        return 1
    except (OSError, UnicodeDecodeError) as e:
        error(f"Page generation failed: {e}")
        return 2
    return 0


if __name__ == '__main__':
    sys.excepthook = global_exception_handler
    logging.basicConfig(level=logging.WARNING)
    sys.exit(main())
