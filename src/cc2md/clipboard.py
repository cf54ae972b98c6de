# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""Copy text to the system clipboard through the platform's clipboard command"""

import logging
import shutil
import subprocess
import sys
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

# Tried in order; the first one installed and exiting 0 wins
CLIPBOARD_COMMANDS: Sequence[List[str]] = (
    ['pbcopy'],
    ['wl-copy'],
    ['xclip', '-selection', 'clipboard'],
    ['xsel', '--clipboard', '--input'],
    ['clip'],
)


class ClipboardError(RuntimeError):
    """No clipboard command accepted the text"""


def copy_to_clipboard(text: str, commands: Optional[Sequence[List[str]]] = None) -> str:
    """
    Copy text to the clipboard

    Args:
        text: Text to copy
        commands: Candidate commands (platform defaults when omitted)

    Returns:
        Name of the command that was used

    Raises:
        ClipboardError: every candidate is missing or failed
    """
    failures = []
    for command in commands or CLIPBOARD_COMMANDS:
        if shutil.which(command[0]) is None:
            continue
        try:
            subprocess.run(
                command,
                input=text.encode('utf-8'),
                check=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=10,
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            logger.debug("Clipboard command %s failed: %s", command[0], e)
            failures.append(f"{command[0]}: {e}")
            continue
        return command[0]

    if failures:
        raise ClipboardError("Unable to copy to clipboard (" + '; '.join(failures) + ")")
    raise ClipboardError(f"No clipboard command available on {sys.platform}")
