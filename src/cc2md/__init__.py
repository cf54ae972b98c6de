# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
cc2md - Claude Code session log to Markdown converter

Convert Claude Code session logs in JSONL format into readable
Markdown documents with collapsible tool results and diffs.
"""

__version__ = "0.1.0"
