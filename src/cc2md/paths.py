# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""Path helpers used when rendering tool calls"""

import ntpath
import os
import posixpath
import re
from typing import Optional

_WINDOWS_ROOT = re.compile(r'^[A-Za-z]:[\\/]')


def _flavour(path: str):
    if _WINDOWS_ROOT.match(path):
        return ntpath
    return posixpath


def make_relative_path(file_path: Optional[str], current_cwd: Optional[str]) -> Optional[str]:
    """
    Express file_path relative to current_cwd

    Paths under the cwd become plain relative paths, others get leading
    '..' segments. Forward slashes are used in the result.

    Args:
        file_path: Absolute path from a tool input
        current_cwd: Working directory of the session at that point

    Returns:
        Relative path, or file_path unchanged when no relative form exists
    """
    if not file_path or not current_cwd or not isinstance(file_path, str):
        return file_path

    flavour = _flavour(file_path)
    if flavour is not _flavour(current_cwd) or not flavour.isabs(file_path):
        return file_path

    try:
        relative = flavour.relpath(flavour.normpath(file_path), flavour.normpath(current_cwd))
    except ValueError:
        # Different drives on Windows
        return file_path

    return relative.replace('\\', '/') if relative else '.'


def normalize_path(file_path: str) -> str:
    """Expand '~' and normalize separators"""
    if not file_path:
        return file_path
    return os.path.normpath(os.path.expanduser(file_path))


def truncate_path(file_path: str, max_length: int = 50) -> str:
    """Shorten a path for display, keeping the file name and its parent"""
    if not file_path or len(file_path) <= max_length:
        return file_path

    parts = file_path.split('/')
    if len(parts) <= 2:
        return file_path

    truncated = f".../{parts[-2]}/{parts[-1]}"
    if len(truncated) <= max_length:
        return truncated
    return f".../{parts[-1]}"
