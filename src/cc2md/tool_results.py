# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
Tool result formatter

Renders queued tool results, paired with the tool calls that produced
them, as Markdown: unified diffs for file edits, a checklist for TodoWrite,
and a collapsed <details> block for everything else.

Content classification is a ranked list of (predicate, renderer) pairs;
the first matching predicate wins.
"""

import difflib
import html
import logging
import re
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Callable, Tuple

from .language import DECLARATION_PATTERN, LanguageDetector
from .records import content_text, has_line_numbers, strip_line_numbers

logger = logging.getLogger(__name__)

CANCELLED_NOTICE = '**❌ User cancelled tool execution**'

SEARCH_RESULT_PATTERN = re.compile(r'^Found \d+ files')
FILE_PATH_PATTERN = re.compile(r'^/.*\..*$')
SUCCESS_PATTERN = re.compile(r'^(.*has been updated|.*created successfully|.*deleted successfully)')
COMMAND_OUTPUT_PATTERN = re.compile(r'^(Tool ran without output|Command completed)')
FETCH_RESULT_PATTERN = re.compile(r'^Received \d+')
CODE_CONTENT_PATTERN = re.compile(r'^(Found \d+ files|/.*\..*$)')
LS_COMMAND_PATTERN = re.compile(r'^(ls|LS)(\s|$)')
HUNK_HEADER_PATTERN = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@')

EDIT_TOOLS = ('Edit', 'MultiEdit', 'Write')


@dataclass
class FormattingOptions:
    """Rendering switches"""
    relativize_paths: bool = True
    syntax_highlighting: bool = True
    truncate_long_output: bool = True
    max_lines: int = 50


def _first_line(content: str) -> str:
    return content.split('\n')[0]


def _line_count(content: str) -> int:
    return len(content.split('\n'))


def _code(value: Any) -> str:
    return f"<code>{html.escape(str(value), quote=False)}</code>"


def build_structured_patch(old_text: str, new_text: str, context: int = 3) -> List[Dict[str, Any]]:
    """
    Build structured patch hunks from a before/after pair

    Args:
        old_text: Text before the edit
        new_text: Text after the edit
        context: Unchanged lines kept around each change

    Returns:
        Hunks shaped like toolUseResult.structuredPatch
    """
    diff = difflib.unified_diff(
        (old_text or '').split('\n') if old_text else [],
        (new_text or '').split('\n') if new_text else [],
        lineterm='',
        n=context,
    )

    hunks: List[Dict[str, Any]] = []
    for line in diff:
        match = HUNK_HEADER_PATTERN.match(line)
        if match:
            old_start, old_lines, new_start, new_lines = match.groups()
            hunks.append({
                'oldStart': int(old_start),
                'oldLines': int(old_lines) if old_lines is not None else 1,
                'newStart': int(new_start),
                'newLines': int(new_lines) if new_lines is not None else 1,
                'lines': [],
            })
        elif hunks:
            hunks[-1]['lines'].append(line)
        # '---' / '+++' file headers precede the first hunk and are dropped
    return hunks


def patch_for_cancelled_edit(tool_use: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Rebuild a toolUseResult-style patch for an edit the user cancelled

    Returns:
        {'filePath': ..., 'structuredPatch': [...]} or None when the tool
        call does not carry enough to rebuild the change
    """
    if not tool_use or tool_use.get('name') not in EDIT_TOOLS:
        return None
    tool_input = tool_use.get('input') or {}
    file_path = tool_input.get('file_path')
    if not file_path:
        return None

    name = tool_use.get('name')
    hunks: List[Dict[str, Any]] = []
    if name == 'Edit':
        if 'old_string' not in tool_input or 'new_string' not in tool_input:
            return None
        hunks = build_structured_patch(tool_input['old_string'], tool_input['new_string'])
    elif name == 'MultiEdit':
        for edit in tool_input.get('edits') or []:
            if isinstance(edit, dict):
                hunks.extend(build_structured_patch(edit.get('old_string', ''), edit.get('new_string', '')))
    elif name == 'Write':
        if 'content' not in tool_input:
            return None
        hunks = build_structured_patch('', tool_input['content'])

    if not hunks:
        return None
    return {'filePath': file_path, 'structuredPatch': hunks}


def is_ls_call(tool_use: Optional[Dict[str, Any]]) -> bool:
    """LS tool, or Bash running ls"""
    if not tool_use:
        return False
    if tool_use.get('name') == 'LS':
        return True
    if tool_use.get('name') == 'Bash':
        command = (tool_use.get('input') or {}).get('command') or ''
        return LS_COMMAND_PATTERN.match(command) is not None
    return False


def looks_like_code(content: str) -> bool:
    return bool(CODE_CONTENT_PATTERN.match(content) or DECLARATION_PATTERN.match(content))


# Summary line for a result whose tool call is unknown
CONTENT_SUMMARY_RULES: List[Tuple[Callable[[str], bool], Callable[[str], str]]] = [
    (has_line_numbers,
     lambda c: f"<b>Read:</b> file content ({_line_count(c)} lines)"),
    (lambda c: bool(SEARCH_RESULT_PATTERN.match(c)),
     lambda c: f"<b>Search:</b> {html.escape(_first_line(c), quote=False)}"),
    (lambda c: bool(FILE_PATH_PATTERN.match(c)),
     lambda c: f"<b>Search:</b> found {_line_count(c)} file(s)"),
    (lambda c: bool(SUCCESS_PATTERN.match(c)),
     lambda c: f"<b>Edit:</b> {html.escape(_first_line(c), quote=False)}"),
    (lambda c: bool(COMMAND_OUTPUT_PATTERN.match(c)),
     lambda c: "<b>Command:</b> executed successfully"),
    (lambda c: bool(FETCH_RESULT_PATTERN.match(c)),
     lambda c: f"<b>Fetch:</b> {html.escape(_first_line(c), quote=False)}"),
]


class ToolResultFormatter:
    """Renders pending tool results as Markdown lines"""

    def __init__(self, options: Optional[FormattingOptions] = None,
                 languages: Optional[LanguageDetector] = None):
        self.options = options or FormattingOptions()
        self.languages = languages or LanguageDetector()

        self._summaries: Dict[str, Callable[[Dict[str, Any], Any], str]] = {
            'TodoWrite': lambda tool_input, ctx: '<b>TodoWrite:</b> Updated task list',
            'Read': self._read_summary,
            'Grep': self._grep_summary,
            'Edit': lambda tool_input, ctx: f"<b>Edit:</b> {_code(self._path(tool_input.get('file_path'), ctx))}",
            'MultiEdit': lambda tool_input, ctx: f"<b>MultiEdit:</b> {_code(self._path(tool_input.get('file_path'), ctx))}",
            'Write': lambda tool_input, ctx: f"<b>Write:</b> {_code(self._path(tool_input.get('file_path'), ctx))}",
            'Bash': self._bash_summary,
            'LS': self._ls_summary,
        }

        # Body renderers, highest priority first
        self._body_rules: List[Tuple[Callable[[Any, Optional[Dict[str, Any]]], bool],
                                     Callable[[Any, Optional[Dict[str, Any]]], List[str]]]] = [
            (lambda content, tool_use: isinstance(content, list), self._array_body),
            (lambda content, tool_use: is_ls_call(tool_use), self._truncated_body),
            (lambda content, tool_use: has_line_numbers(content), self._file_body),
            (lambda content, tool_use: looks_like_code(content), self._code_body),
            (lambda content, tool_use: True, self._plain_body),
        ]

    def format_all(self, tool_results: List[Dict[str, Any]], ctx) -> List[str]:
        """
        Render every queued tool result in order

        Args:
            tool_results: Pending tool_result content items
            ctx: Context handle of the session being converted

        Returns:
            Markdown lines
        """
        logger.debug("Formatting %d tool results", len(tool_results))
        lines: List[str] = []
        for tool_result in tool_results:
            lines.extend(self.format_tool_result(tool_result, ctx))
        return lines

    def format_tool_result(self, tool_result: Dict[str, Any], ctx) -> List[str]:
        tool_use = ctx.tool_use(tool_result.get('tool_use_id'))

        patch = ctx.structured_patch(tool_result.get('tool_use_id'))
        if patch is not None:
            file_path, hunks = patch
            return self.format_structured_patch(file_path, hunks, ctx)

        if tool_use and tool_use.get('name') == 'TodoWrite':
            return self.format_todo_write(tool_use)

        return self.format_regular_tool_result(tool_result.get('content'), tool_use, ctx)

    def format_structured_patch(self, file_path: str, hunks: List[Dict[str, Any]], ctx) -> List[str]:
        lines = [f"**Edit:** `{self._path(file_path, ctx)}`", '', '```diff']
        for hunk in hunks:
            lines.extend(hunk.get('lines') or [])
        lines.extend(['```', ''])
        return lines

    def format_todo_write(self, tool_use: Dict[str, Any]) -> List[str]:
        return ['**Updated task list**', '', *self.format_todo_list(tool_use.get('input')), '']

    @staticmethod
    def format_todo_list(tool_input: Optional[Dict[str, Any]]) -> List[str]:
        if not tool_input or not tool_input.get('todos'):
            return []

        lines = []
        for todo in tool_input['todos']:
            status = todo.get('status')
            checkbox = '[x]' if status == 'completed' else '[ ]'
            in_progress = ' (in progress)' if status == 'in_progress' else ''
            lines.append(f"- {checkbox} {todo.get('content', '')}{in_progress}")
        return lines

    def format_regular_tool_result(self, content: Any, tool_use: Optional[Dict[str, Any]], ctx) -> List[str]:
        lines = [f"<details><summary>{self.create_summary(content, tool_use, ctx)}</summary>", '']
        lines.extend(self.format_content(content, tool_use))
        lines.extend(['</details>', ''])
        return lines

    def format_content(self, content: Any, tool_use: Optional[Dict[str, Any]]) -> List[str]:
        if content is None:
            content = ''
        elif not isinstance(content, (str, list)):
            content = str(content)

        for predicate, render in self._body_rules:
            if predicate(content, tool_use):
                return render(content, tool_use)
        return []

    # Summary lines

    def create_summary(self, content: Any, tool_use: Optional[Dict[str, Any]], ctx) -> str:
        """Text of the <summary> element"""
        if not tool_use:
            return self.create_content_summary(content_text(content))

        name = tool_use.get('name') or 'Tool'
        tool_input = tool_use.get('input')
        if not isinstance(tool_input, dict):
            return f"<b>{html.escape(name)}:</b> {_code(tool_input)}"

        summary = self._summaries.get(name)
        if summary:
            return summary(tool_input, ctx)
        return f"<b>{html.escape(name)}:</b> {self.format_tool_input(tool_input)}"

    @staticmethod
    def create_content_summary(content: str) -> str:
        for predicate, render in CONTENT_SUMMARY_RULES:
            if predicate(content):
                return render(content)
        return f"<b>Tool result:</b> {len(content)} characters"

    @staticmethod
    def format_tool_input(tool_input: Any) -> str:
        if not isinstance(tool_input, dict):
            return _code(tool_input)
        if len(tool_input) == 1:
            return _code(next(iter(tool_input.values())))
        return _code(', '.join(f"{key}: {value}" for key, value in tool_input.items()))

    def _read_summary(self, tool_input: Dict[str, Any], ctx) -> str:
        file_path = self._path(tool_input.get('file_path'), ctx) or 'unknown file'
        limit = tool_input.get('limit')
        if limit:
            return f"<b>Read:</b> {_code(f'{file_path}, limit: {limit}')}"
        return f"<b>Read:</b> {_code(file_path)}"

    def _grep_summary(self, tool_input: Dict[str, Any], ctx) -> str:
        pattern = tool_input.get('pattern')
        path = self._path(tool_input['path'], ctx) if tool_input.get('path') else 'current directory'
        summary = f"<b>Grep:</b> pattern {_code(pattern)} in {_code(path)}"
        include = tool_input.get('include') or tool_input.get('glob')
        if include:
            summary += f" ({html.escape(str(include), quote=False)})"
        return summary

    @staticmethod
    def _bash_summary(tool_input: Dict[str, Any], ctx) -> str:
        command = tool_input.get('command') or ''
        if command.startswith('LS '):
            command = 'ls ' + command[3:]
        elif command == 'LS':
            command = 'ls'
        return f"<b>Bash:</b> {_code(command)}"

    def _ls_summary(self, tool_input: Dict[str, Any], ctx) -> str:
        path = self._path(tool_input['path'], ctx) if tool_input.get('path') else 'current directory'
        return f"<b>ls:</b> {_code(path)}"

    def _path(self, file_path: Optional[str], ctx) -> Optional[str]:
        if not self.options.relativize_paths:
            return file_path
        return ctx.relativize(file_path)

    def _language(self, tag: str) -> str:
        return tag if self.options.syntax_highlighting else ''

    # Bodies

    @staticmethod
    def _array_body(content: List[Any], tool_use) -> List[str]:
        lines = []
        for item in content:
            if isinstance(item, dict) and item.get('type') == 'text':
                lines.extend([item.get('text') or '', ''])
        return lines

    def _truncated_body(self, content: str, tool_use) -> List[str]:
        lines = content.split('\n')
        max_lines = self.options.max_lines
        if not self.options.truncate_long_output or len(lines) <= max_lines:
            return ['```', content, '```']
        return ['```', *lines[:max_lines], f"... ({len(lines) - max_lines} more lines)", '```']

    def _file_body(self, content: str, tool_use) -> List[str]:
        file_path = ((tool_use or {}).get('input') or {}).get('file_path')
        language = self._language(self.languages.from_path(file_path)) if file_path else ''
        return [f"```{language}", strip_line_numbers(content), '```']

    def _code_body(self, content: str, tool_use) -> List[str]:
        return [f"```{self._language(self.languages.from_content(content))}", content, '```']

    @staticmethod
    def _plain_body(content: str, tool_use) -> List[str]:
        return ['```', content, '```']
