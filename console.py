#!/usr/bin/env python3
"""
Console helpers shared by the icon pipeline stages.

Coloured status lines, debug output gated by ICON_TIDY_DEBUG, and the
located exception handler installed when a stage runs as a script.
"""

import os
import sys
import traceback

from colorama import init, Fore, Style

# Initialize colorama for cross-platform color support
init()

COLOURS = {
    'red': Fore.RED,
    'green': Fore.GREEN,
    'yellow': Fore.YELLOW,
    'cyan': Fore.CYAN,
}


def get_debug_level() -> str:
    """
    Get the debug level from environment. Returns one of:
    - 'detail': Show all processing steps (ICON_TIDY_DEBUG=detail)
    - 'normal': Show key steps only (ICON_TIDY_DEBUG=1, --debug or running tests)
    - 'off': No debug output (default)
    """
    debug_env = os.environ.get('ICON_TIDY_DEBUG')
    if debug_env == 'detail':
        return 'detail'
    if 'pytest' in sys.modules or '--debug' in sys.argv or debug_env:
        return 'normal'
    return 'off'


def debug_print(*args, level='normal', **kwargs):
    """Print debug message if level matches current debug level

    Args:
        level: Required debug level ('normal' or 'detail')
    """
    current = get_debug_level()
    if current == 'off':
        return
    if level == 'detail' and current != 'detail':
        return
    print(*args, **kwargs)


def colour(name: str, text: str) -> str:
    """Wrap text in one of the COLOURS ('red', 'green', 'yellow', 'cyan')."""
    return f"{COLOURS[name]}{text}{Style.RESET_ALL}"


def warn(message: str) -> None:
    print(colour('yellow', f"Warning: {message}"), file=sys.stderr)


def error(message: str) -> None:
    print(colour('red', f"Error: {message}"), file=sys.stderr)


def global_exception_handler(exc_type, exc_value, exc_traceback):
    """Report an unhandled exception with the location it was raised from.

    Only installed when a stage module is run directly, so pytest keeps its
    own exception reporting.
    """
    tb_frame = traceback.extract_tb(exc_traceback)[-1] if exc_traceback else None
    file_info = f" in {tb_frame.filename}:{tb_frame.lineno} (function: {tb_frame.name})" if tb_frame else ""

    sys.stderr.write("\n==== UNHANDLED EXCEPTION ====\n")
    sys.stderr.write(f"{exc_type.__name__}: {exc_value}{file_info}\n")
    sys.stderr.write("\nDetailed traceback:\n")
    sys.stderr.write(''.join(traceback.format_exception(exc_type, exc_value, exc_traceback)))
    sys.stderr.write("==== END UNHANDLED EXCEPTION ====\n")
    sys.stderr.flush()
