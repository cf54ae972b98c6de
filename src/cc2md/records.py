# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
Record model

Typed view over one parsed JSONL line of a Claude Code session log.
Records themselves stay plain dictionaries (the original JSON, unfiltered);
MessageRecord wraps one of them and answers the questions the segmenter
and the processor ask about it.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Iterator, Tuple, Union

logger = logging.getLogger(__name__)

RECORD_TYPES = ('user', 'assistant', 'summary', 'system')

COMMAND_NAME_PATTERN = re.compile(r'<command-name>([^<]+)</command-name>')
COMMAND_ARGS_PATTERN = re.compile(r'<command-args>([^<]*)</command-args>')
EMPTY_COMMAND_OUTPUT_PATTERN = re.compile(r'<local-command-stdout></local-command-stdout>')

# Read tool output: "   12→line text"
LINE_NUMBER_PATTERN = re.compile(r'^\s*\d+→')

INTERRUPTION_TEXT = '[Request interrupted by user for tool use]'
CAVEAT_PREFIX = 'Caveat:'

Content = Union[str, List[Dict[str, Any]]]


@dataclass
class Command:
    """Slash command typed by the user (e.g. /clear)"""
    name: str
    args: str = ''


def parse_line(line: str) -> Dict[str, Any]:
    """
    Parse one JSONL line

    Raises:
        json.JSONDecodeError: line is not valid JSON
        ValueError: line is valid JSON but not an object
    """
    data = json.loads(line)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def iter_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (1-based line number, stripped line) for every non-blank line"""
    for line_num, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if line:
            yield line_num, line


def parse_jsonl(text: str) -> List[Dict[str, Any]]:
    """
    Parse JSONL text into records

    Malformed lines are logged and skipped.

    Args:
        text: Raw JSONL text

    Returns:
        Records in input order
    """
    records = []
    for line_num, line in iter_lines(text):
        try:
            records.append(parse_line(line))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError subclass
            logger.warning("Skipping malformed line %d: %s", line_num, e)
    return records


def content_text(content: Any) -> str:
    """Text of a tool_result content (string or nested content items)"""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return '\n'.join(
            item.get('text') or ''
            for item in content
            if isinstance(item, dict) and item.get('type') == 'text'
        )
    if content is None:
        return ''
    return str(content)


class MessageRecord:
    """Read-only wrapper around one record dictionary"""

    def __init__(self, data: Dict[str, Any]):
        self.data = data
        self.type: str = data.get('type', '')
        self.is_meta: bool = bool(data.get('isMeta', False))
        self.tool_use_result = data.get('toolUseResult')

        message = data.get('message')
        if not isinstance(message, dict):
            message = {}
        content = message.get('content')
        self.content: Content = content if content is not None else ''

    @property
    def session_id(self) -> Optional[str]:
        return self.data.get('sessionId')

    @property
    def uuid(self) -> Optional[str]:
        return self.data.get('uuid')

    @property
    def timestamp(self) -> Optional[str]:
        return self.data.get('timestamp')

    @property
    def cwd(self) -> Optional[str]:
        return self.data.get('cwd')

    def is_content_array(self) -> bool:
        return isinstance(self.content, list)

    def _items(self, item_type: Optional[str] = None) -> List[Dict[str, Any]]:
        if not self.is_content_array():
            return []
        return [
            item for item in self.content
            if isinstance(item, dict) and (item_type is None or item.get('type') == item_type)
        ]

    def text_items(self) -> List[Dict[str, Any]]:
        return self._items('text')

    def tool_results(self) -> List[Dict[str, Any]]:
        return self._items('tool_result')

    def tool_uses(self) -> List[Dict[str, Any]]:
        return self._items('tool_use')

    def regular_content(self) -> List[Dict[str, Any]]:
        """Content items other than tool results"""
        return [item for item in self._items() if item.get('type') != 'tool_result']

    def get_text_content(self) -> str:
        """Message text (text items joined with newlines for array content)"""
        if not self.is_content_array():
            return self.content if isinstance(self.content, str) else str(self.content)
        return '\n'.join(self.extract_text_from_content_item(item) for item in self.text_items())

    def is_caveat_message(self) -> bool:
        """Meta record whose text starts with 'Caveat:'"""
        if not self.is_meta:
            return False
        if isinstance(self.content, str):
            return self.content.startswith(CAVEAT_PREFIX)
        text_items = self.text_items()
        if text_items:
            return (text_items[0].get('text') or '').startswith(CAVEAT_PREFIX)
        return False

    def is_api_error(self) -> bool:
        return bool(self.data.get('isApiErrorMessage', False))

    def is_command(self) -> bool:
        if not isinstance(self.content, str):
            return False
        return COMMAND_NAME_PATTERN.search(self.content) is not None

    def extract_command(self) -> Optional[Command]:
        """Command name and arguments, None if this is not a command message"""
        if not self.is_command():
            return None
        name_match = COMMAND_NAME_PATTERN.search(self.content)
        args_match = COMMAND_ARGS_PATTERN.search(self.content)
        return Command(
            name=name_match.group(1),
            args=args_match.group(1) if args_match else ''
        )

    def is_empty_command_output(self) -> bool:
        if not isinstance(self.content, str):
            return False
        return EMPTY_COMMAND_OUTPUT_PATTERN.search(self.content) is not None

    def is_interruption_message(self) -> bool:
        """Whole message is the tool-use interruption marker"""
        if isinstance(self.content, str):
            return self.content == INTERRUPTION_TEXT
        regular = self.regular_content()
        if not regular or any(item.get('type') != 'text' for item in regular):
            return False
        return self.get_text_content() == INTERRUPTION_TEXT

    def has_error_tool_results(self) -> bool:
        return any(result.get('is_error') for result in self.tool_results())

    @staticmethod
    def extract_text_from_content_item(item: Dict[str, Any]) -> str:
        """Display text of a single content item"""
        if item.get('type') == 'text':
            text = item.get('text')
            return '' if text is None else str(text)
        content = item.get('content')
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return '\n'.join(
                MessageRecord.extract_text_from_content_item(sub)
                for sub in content if isinstance(sub, dict)
            )
        return json.dumps(item, ensure_ascii=False)


def has_line_numbers(content: str) -> bool:
    return bool(content) and LINE_NUMBER_PATTERN.match(content) is not None


def strip_line_numbers(content: str) -> str:
    return '\n'.join(LINE_NUMBER_PATTERN.sub('', line, count=1) for line in content.split('\n'))
