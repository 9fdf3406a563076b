#!/usr/bin/env python3
"""
Download the latest official AWS architecture icon package.

Finds the asset-package ZIP linked from the AWS icons page, downloads it and
compares its SHA-256 with the checksum stored by the previous run. Only a new
package is extracted (into ./raw-aws-icons); an unchanged one is discarded.

Usage:
    python download_icons.py [--work-dir DIR] [--force]
"""

import os
import sys
import shutil
import hashlib
import logging
import zipfile
import argparse
from pathlib import Path
from typing import Iterable, List, Optional

import requests
from bs4 import BeautifulSoup

from console import colour, error, global_exception_handler
from restructure import CHECKSUM_FILENAME
from settings import DEFAULT_DEST, DEFAULT_SOURCE

logger = logging.getLogger(__name__)

PAGE_URL = "https://aws.amazon.com/architecture/icons/"
USER_AGENT = "Mozilla/5.0"
REQUEST_TIMEOUT = 60  # seconds
CHUNK_SIZE = 1024 * 64

TEMP_ZIP_NAME = "__aws_icons_temp.zip"
TEMP_UNZIP_NAME = "__aws_icons_unzip__"

ZIP_LINKS = "a[href$='.zip']"


class DownloadError(RuntimeError):
    """The icon package could not be located, fetched or unpacked."""


def get_latest_zip_url(session: requests.Session, page_url: str = PAGE_URL) -> str:
    """Return the absolute URL of the full asset-package ZIP on the icons page."""
    response = session.get(page_url, headers={"User-Agent": USER_AGENT}, timeout=REQUEST_TIMEOUT)
    if not response.ok:
        raise DownloadError(f"Failed to fetch page: {response.status_code}")

    soup = BeautifulSoup(response.text, "html.parser")
    for link in soup.select(ZIP_LINKS):
        href = link["href"].strip()
        if "Asset-Package" in href and "architecture-icons" in href:
            return href if href.startswith("http") else f"https:{href}"
    raise DownloadError("Full asset-package ZIP link not found")


def download_file(session: requests.Session, url: str, dst: Path) -> None:
    response = session.get(url, stream=True, timeout=REQUEST_TIMEOUT)
    if not response.ok:
        raise DownloadError(f"Failed to download: {response.status_code}")
    with open(dst, "wb") as out:
        for chunk in response.iter_content(CHUNK_SIZE):
            out.write(chunk)


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


def checksum_files(work_dir: Path) -> List[Path]:
    """Checksum locations: the raw archive first, then the copy restructure.py makes."""
    return [
        work_dir / DEFAULT_SOURCE / CHECKSUM_FILENAME,
        work_dir / DEFAULT_DEST / CHECKSUM_FILENAME,
    ]


def read_checksum(paths: Iterable[Path]) -> Optional[str]:
    """Return the first stored checksum found, or None."""
    for path in paths:
        if path.is_file():
            return path.read_text(encoding="utf-8").strip()
    return None


def write_checksum(paths: Iterable[Path], checksum: str) -> None:
    for path in paths:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"{checksum}\n", encoding="utf-8")


def extract_zip(zip_path: Path, target_dir: Path, temp_dir: Path) -> None:
    """Replace target_dir with the contents of zip_path."""
    shutil.rmtree(target_dir, ignore_errors=True)
    shutil.rmtree(temp_dir, ignore_errors=True)
    temp_dir.mkdir(parents=True)

    try:
        with zipfile.ZipFile(zip_path) as zf:
            zf.extractall(temp_dir)
    except zipfile.BadZipFile as e:
        raise DownloadError(f"Downloaded file is not a valid ZIP: {e}") from e

    entries = sorted(temp_dir.iterdir())
    if not entries:
        raise DownloadError("ZIP extracted but no content found")

    target_dir.mkdir(parents=True, exist_ok=True)
    for entry in entries:
        shutil.move(str(entry), str(target_dir / entry.name))
    shutil.rmtree(temp_dir, ignore_errors=True)


def update_archive(work_dir: Path, force: bool = False,
                   session: Optional[requests.Session] = None) -> bool:
    """Download and extract the icon package when it changed.

    Returns:
        True when a new package was extracted, False when the stored checksum matched
    """
    session = session or requests.Session()
    temp_zip = work_dir / TEMP_ZIP_NAME
    sums = checksum_files(work_dir)

    zip_url = get_latest_zip_url(session)
    print(f"Latest package: {zip_url}")

    download_file(session, zip_url, temp_zip)
    try:
        latest = sha256_file(temp_zip)
        stored = read_checksum(sums)
        logger.debug("Stored checksum %s, latest %s", stored, latest)
        if not force and stored == latest:
            print("No changes detected; skipping extraction")
            return False

        print("New version detected; updating local copy…")
        extract_zip(temp_zip, work_dir / DEFAULT_SOURCE, work_dir / TEMP_UNZIP_NAME)
        write_checksum(sums, latest)
        print(colour('green', "Extraction complete"))
        return True
    finally:
        if temp_zip.exists():
            temp_zip.unlink()


def main(argv=None) -> int:
    """Fetch the AWS icon package into the working directory."""
    parser = argparse.ArgumentParser(
        description='Download and extract the latest AWS architecture icon package',
        add_help=True,
    )
    parser.add_argument('--work-dir', default=os.getcwd(),
                        help='Directory holding raw-aws-icons/ and aws-icons/ (default: current directory)')
    parser.add_argument('--force', action='store_true',
                        help='Extract even when the checksum is unchanged')
    parser.add_argument('-?', action='help',
                        help='Show this help message and exit')

    args = parser.parse_args(argv)

    try:
        update_archive(Path(args.work_dir).resolve(), force=args.force)
    except (DownloadError, requests.RequestException, OSError) as e:
        error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.excepthook = global_exception_handler
    logging.basicConfig(level=logging.WARNING)
    sys.exit(main())
