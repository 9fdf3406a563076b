#!/usr/bin/env python3
"""
Pytest configuration: located exception reports and a sample icon archive.

pytest_exception_interact prints where a non-assertion exception was raised,
straight to stderr so it survives output capture. The raw_archive fixture
builds a miniature copy of the vendor archive layout.
"""

import sys
import traceback
from pathlib import Path

import pytest

SVG_TEMPLATE = ('<?xml version="1.0" encoding="UTF-8"?>\n'
                '<svg xmlns="http://www.w3.org/2000/svg" width="48" height="48">'
                '<title>{title}</title><rect width="48" height="48"/></svg>\n')


def format_exception_details(exc_type, exc_value, exc_traceback):
    """Print type, message and the innermost project frame of an exception.

    Returns True if the exception was reported, False for AssertionErrors.
    """
    if exc_type == AssertionError:
        return False

    tb_frames = traceback.extract_tb(exc_traceback)
    user_frame = None
    for frame in reversed(tb_frames):
        if '/site-packages/' not in frame.filename and '/usr/lib/' not in frame.filename:
            user_frame = frame
            break
    if not user_frame and tb_frames:
        user_frame = tb_frames[-1]

    location = f"{user_frame.filename}:{user_frame.lineno} (in {user_frame.name})" if user_frame else "unknown location"

    print("\n==== EXCEPTION DETAILS ====", file=sys.__stderr__)
    print(f"Exception Type: {exc_type.__name__}", file=sys.__stderr__)
    print(f"Exception Message: {exc_value}", file=sys.__stderr__)
    print(f"Location: {location}", file=sys.__stderr__)
    if user_frame and user_frame.line:
        print(f"\n    {user_frame.line}", file=sys.__stderr__)
    print("==== END EXCEPTION DETAILS ====\n", file=sys.__stderr__)
    return True


def pytest_exception_interact(report, call):
    """Report unexpected exceptions raised during a test with their location."""
    if call.excinfo:
        format_exception_details(call.excinfo.type, call.excinfo.value, call.excinfo.tb)


def write_svg(path: Path, title: str = None) -> Path:
    """Create an SVG file (and its parents) whose <title> defaults to its stem."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SVG_TEMPLATE.format(title=path.stem if title is None else title), encoding='utf-8')
    return path


def build_raw_archive(root: Path) -> Path:
    """Lay out a small extracted archive under root and return root.

    Compute and Storage exist in both taxonomies, App-Integration needs the
    manual alias, Quantum-Technologies has no resource counterpart.
    """
    arch = root / 'Architecture-Service-Icons_07312024'
    res = root / 'Resource-Icons_07312024'
    group = root / 'Architecture-Group-Icons_07312024'
    cats = root / 'Category-Icons_07312024'

    write_svg(arch / 'Arch_Compute' / '48' / 'Arch_Amazon-EC2_48.svg')
    write_svg(arch / 'Arch_Compute' / '48' / 'Arch_AWS-Lambda_48.svg')
    write_svg(arch / 'Arch_Compute' / '32' / 'Arch_Amazon-EC2_32.svg')
    write_svg(arch / 'Arch_Compute' / '48' / 'Arch_Amazon-EC2_48.png')
    write_svg(arch / 'Arch_Storage' / '48' / 'Arch_Amazon-Simple-Storage-Service_48.svg')
    write_svg(arch / 'Arch_App-Integration' / '48' / 'Arch_Amazon-EventBridge_48.svg')
    write_svg(arch / 'Arch_Quantum-Technologies' / '48' / 'Arch_Amazon-Braket_48.svg')
    write_svg(arch / 'Arch_General-Icons' / 'Arch_Client_Light.svg')
    write_svg(arch / 'Arch_General-Icons' / 'Dark' / 'Arch_Client_Dark.svg')

    write_svg(res / 'Res_Compute' / 'Res_Amazon-EC2_Instance_48.svg')
    write_svg(res / 'Res_Compute' / 'Res_Amazon-EC2_Instance_32.svg')
    write_svg(res / 'Res_Storage' / 'Res_Amazon-Simple-Storage-Service_Bucket_48.svg')
    write_svg(res / 'Res_Application-Integration' / 'Res_Amazon-EventBridge_Rule_48.svg')
    write_svg(res / 'Res_General-Icons' / 'Res_48_Light' / 'Res_Users_48_Light.svg')
    write_svg(res / 'Res_General-Icons' / 'Res_48_Dark' / 'Res_Users_48_Dark.svg')

    write_svg(group / 'AWS-Cloud-logo_32.svg')
    write_svg(group / 'Region_32.svg')

    write_svg(cats / 'Arch-Category_48' / 'Arch-Category_Compute_48.svg')
    write_svg(cats / 'Arch-Category_32' / 'Arch-Category_Compute_32.svg')
    write_svg(cats / 'Arch-Category_48' / 'Arch-Category_Storage_48.svg')

    (root / 'checksum.txt').write_text('abc123\n', encoding='utf-8')
    return root


@pytest.fixture
def raw_archive(tmp_path):
    return build_raw_archive(tmp_path / 'raw-aws-icons')
