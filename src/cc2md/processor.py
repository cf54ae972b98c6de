# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
Message processing module

Converts the records of one session, in order, into Markdown lines.

Tool calls and their results arrive in separate records: the assistant
record carries tool_use items, and one or more following user records carry
the matching tool_result items. Tool uses are registered when seen and
rendered later together with their results. Results are queued and flushed
once the next record no longer continues the run of tool results.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple

from .paths import make_relative_path
from .records import MessageRecord, Command
from .tool_results import (
    CANCELLED_NOTICE, FormattingOptions, ToolResultFormatter, patch_for_cancelled_edit
)

logger = logging.getLogger(__name__)

CLEARED_NOTICE = '**🧹 User cleared the session**'
META_SUMMARY_LENGTH = 50


@dataclass
class ProcessingContext:
    """Mutable state carried across the records of one session"""
    current_cwd: Optional[str] = None
    pending_tools: List[Dict[str, Any]] = field(default_factory=list)
    pending_tool_results: List[Dict[str, Any]] = field(default_factory=list)
    # Survives flushes, unlike the pending lists
    tool_call_map: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    current_tool_use_result: Any = None
    # tool_use_id → patch rebuilt for a cancelled edit
    cancelled_patches: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def clear_pending(self) -> None:
        self.pending_tool_results = []
        self.pending_tools = []
        self.current_tool_use_result = None
        self.cancelled_patches = {}


class ContextHandle:
    """Narrow view of a ProcessingContext handed to the tool result formatter"""

    def __init__(self, context: ProcessingContext):
        self._context = context

    @property
    def cwd(self) -> Optional[str]:
        return self._context.current_cwd

    def tool_use(self, tool_use_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not tool_use_id:
            return None
        return self._context.tool_call_map.get(tool_use_id)

    def structured_patch(self, tool_use_id: Optional[str] = None) -> Optional[Tuple[str, List[Dict[str, Any]]]]:
        """
        (file path, hunks) to render for a tool result, if any

        A patch rebuilt for that cancelled tool call comes first, then the
        toolUseResult of the current record.
        """
        result = self._context.cancelled_patches.get(tool_use_id) if tool_use_id else None
        if result is None:
            result = self._context.current_tool_use_result
        if not isinstance(result, dict):
            return None
        hunks = result.get('structuredPatch')
        file_path = result.get('filePath')
        if not hunks or not file_path or not isinstance(hunks, list):
            return None
        return file_path, [hunk for hunk in hunks if isinstance(hunk, dict)]

    def relativize(self, file_path: Optional[str]) -> Optional[str]:
        return make_relative_path(file_path, self._context.current_cwd)


def should_defer_flush(current: Dict[str, Any], next_record: Optional[Dict[str, Any]]) -> bool:
    """
    Whether queued tool results must wait for the next record

    True when the current record carries tool results and the next record
    is a user record carrying more of them.
    """
    if not MessageRecord(current).tool_results():
        return False
    if not next_record or next_record.get('type') != 'user':
        return False
    return bool(MessageRecord(next_record).tool_results())


class MessageProcessor:
    """Per-session record to Markdown converter"""

    def __init__(self, options: Optional[FormattingOptions] = None,
                 formatter: Optional[ToolResultFormatter] = None):
        self.options = options or FormattingOptions()
        self.formatter = formatter or ToolResultFormatter(self.options)
        self.context = ProcessingContext()
        self.handle = ContextHandle(self.context)

    def reset(self) -> None:
        """Start a new session with empty state"""
        self.context = ProcessingContext()
        self.handle = ContextHandle(self.context)

    def process(self, data: Dict[str, Any], messages: List[Dict[str, Any]], index: int) -> List[str]:
        """
        Convert one record

        Args:
            data: Record to convert (messages[index])
            messages: All records of the session
            index: Position of the record

        Returns:
            Markdown lines produced by this record
        """
        if data.get('cwd'):
            self.context.current_cwd = data['cwd']

        record_type = data.get('type')
        logger.debug("Processing record %d (%s)", index, record_type)

        if record_type == 'user':
            return self._process_user(data, messages, index)
        if record_type == 'assistant':
            return self._process_assistant(data)
        # Summaries become the session title; other types are ignored
        return []

    def flush(self) -> List[str]:
        """Render and clear pending tool results"""
        if not self.context.pending_tool_results:
            return []

        logger.debug("Flushing %d tool results", len(self.context.pending_tool_results))
        lines = self.formatter.format_all(self.context.pending_tool_results, self.handle)
        self.context.clear_pending()
        return lines

    # User records

    def _process_user(self, data: Dict[str, Any], messages: List[Dict[str, Any]], index: int) -> List[str]:
        message = MessageRecord(data)

        if message.is_caveat_message() or message.is_api_error():
            return []

        if message.is_meta:
            return self._meta_message(message)

        self.context.current_tool_use_result = message.tool_use_result

        if message.is_content_array():
            return self._array_message(message, messages, index)
        return self._string_message(message)

    @staticmethod
    def _meta_message(message: MessageRecord) -> List[str]:
        text = message.get_text_content()
        if not text:
            return []

        summary = text.split('\n')[0]
        if len(summary) > META_SUMMARY_LENGTH:
            summary = summary[:META_SUMMARY_LENGTH] + '...'

        lines = [f"<details><summary>{summary}</summary>", '']
        lines.extend(f"> {line}" for line in text.split('\n'))
        lines.extend(['', '</details>', ''])
        return lines

    def _array_message(self, message: MessageRecord, messages: List[Dict[str, Any]], index: int) -> List[str]:
        lines: List[str] = []
        tool_results = message.tool_results()
        regular_content = message.regular_content()

        if tool_results:
            lines.extend(self._queue_tool_results(message, tool_results))

            next_record = messages[index + 1] if index + 1 < len(messages) else None
            if should_defer_flush(message.data, next_record):
                logger.debug("Record %d: more tool results follow, deferring flush", index)
            else:
                lines.extend(self.flush())

        if regular_content and not message.is_interruption_message():
            lines.extend(self._user_content(regular_content))

        return lines

    def _queue_tool_results(self, message: MessageRecord, tool_results: List[Dict[str, Any]]) -> List[str]:
        """Add tool results to the pending queue, returning any notice lines"""
        if not message.has_error_tool_results():
            self.context.pending_tool_results.extend(tool_results)
            return []

        for tool_result in tool_results:
            if not tool_result.get('is_error'):
                self.context.pending_tool_results.append(tool_result)
                continue

            # A cancelled edit is still shown as the diff it would have made
            patch = patch_for_cancelled_edit(self.handle.tool_use(tool_result.get('tool_use_id')))
            if patch:
                self.context.cancelled_patches[tool_result['tool_use_id']] = patch
                self.context.pending_tool_results.append(dict(tool_result, is_error=False))

        return [CANCELLED_NOTICE, '']

    def _string_message(self, message: MessageRecord) -> List[str]:
        if message.is_empty_command_output():
            return []

        command = message.extract_command()
        if command:
            return self._command_message(command)

        return self._user_content([{'type': 'text', 'text': str(message.content)}])

    @staticmethod
    def _command_message(command: Command) -> List[str]:
        if command.name == '/clear':
            return [CLEARED_NOTICE, '']

        if command.args:
            quoted = f'> {command.name} "{command.args}"'
        else:
            quoted = f"> {command.name}"
        return ['### User', '', quoted, '']

    @staticmethod
    def _user_content(items: List[Dict[str, Any]]) -> List[str]:
        lines = ['### User', '']
        for item in items:
            text = MessageRecord.extract_text_from_content_item(item)
            lines.extend(f"> {line}" for line in text.split('\n'))
        lines.append('')
        return lines

    # Assistant records

    def _process_assistant(self, data: Dict[str, Any]) -> List[str]:
        message = MessageRecord(data)

        if message.is_api_error():
            return []

        if not message.is_content_array():
            return ['### Assistant', '', str(message.content), '']

        text_items = message.text_items()
        tool_uses = message.tool_uses()

        lines: List[str] = []
        if text_items:
            lines.extend(['### Assistant', ''])
            for item in text_items:
                lines.extend([MessageRecord.extract_text_from_content_item(item), ''])

        # Tool uses are rendered later, together with their results
        for tool_use in tool_uses:
            self.context.pending_tools.append(tool_use)
            if tool_use.get('id'):
                self.context.tool_call_map[tool_use['id']] = tool_use

        return lines
