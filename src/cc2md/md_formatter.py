# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
Markdown formatter

Converts JSONL session logs into Markdown documents: one '# Title'
section per session, sessions joined by a horizontal rule.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Dict, Any, Optional, Union

from .language import LanguageDetector
from .parser import Session, SessionParser
from .processor import MessageProcessor
from .records import RECORD_TYPES, iter_lines, parse_line
from .tool_results import FormattingOptions, ToolResultFormatter

logger = logging.getLogger(__name__)

SESSION_SEPARATOR = '\n\n---\n\n'

__all__ = [
    'ConversionResult', 'FormattingOptions', 'InputStats', 'MarkdownFormatter',
    'RecordProcessingError', 'ValidationResult', 'format_as_markdown',
]


class RecordProcessingError(RuntimeError):
    """A record could not be converted (a bug, not bad input)"""

    def __init__(self, index: int, record: Dict[str, Any]):
        self.index = index
        self.record = record
        self.record_json = json.dumps(record, ensure_ascii=False, indent=2, default=str)
        super().__init__(f"Error processing message at index {index}\nMessage data: {self.record_json}")


@dataclass
class ConversionResult:
    """Markdown of one session"""
    markdown: str
    session_id: str
    summary: str
    message_count: int


@dataclass
class ValidationResult:
    """Outcome of a validation pass"""
    valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class InputStats:
    """Counts over a JSONL input"""
    total_lines: int
    total_sessions: int
    total_messages: int
    messages_by_type: Dict[str, int]


class MarkdownFormatter:
    """Class converting JSONL input into Markdown"""

    def __init__(self, options: Optional[FormattingOptions] = None,
                 languages: Optional[LanguageDetector] = None):
        """
        Args:
            options: Rendering switches (defaults when omitted)
            languages: Language lookup for fenced code blocks
        """
        self.options = options or FormattingOptions()
        self.languages = languages or LanguageDetector()

    def convert_input(self, text: str) -> str:
        """
        Convert JSONL text to Markdown

        Args:
            text: Raw JSONL text

        Returns:
            Markdown for every session, in discovery order
        """
        sessions = SessionParser().parse_input(text)
        results = self.convert_sessions(list(sessions.values()))
        return SESSION_SEPARATOR.join(result.markdown for result in results)

    def convert_sessions(self, sessions: List[Session]) -> List[ConversionResult]:
        return [self.convert_session(session) for session in sessions]

    def convert_session(self, session: Session) -> ConversionResult:
        """
        Convert one session

        Every session gets its own processor, so no state carries over.

        Raises:
            RecordProcessingError: a record failed to convert
        """
        title = session.title
        processor = MessageProcessor(
            self.options, ToolResultFormatter(self.options, self.languages)
        )

        output = [f"# {title}", '']
        messages = session.messages
        for index, data in enumerate(messages):
            try:
                output.extend(processor.process(data, messages, index))
            except Exception as e:
                logger.error("Error processing message at index %d of session %s", index, session.id)
                raise RecordProcessingError(index, data) from e

        # Results still pending after the last record
        try:
            output.extend(processor.flush())
        except Exception as e:
            last = len(messages) - 1
            raise RecordProcessingError(last, messages[last] if messages else {}) from e

        return ConversionResult(
            markdown='\n'.join(output),
            session_id=session.id,
            summary=title,
            message_count=session.message_count,
        )

    def convert_files(self, files: List[Union[str, Path]]) -> str:
        """
        Convert every session found in a set of JSONL files

        Sessions are converted most recently modified first.

        Raises:
            RecordProcessingError: a record failed to convert
        """
        parser = SessionParser()
        return SESSION_SEPARATOR.join(
            self.convert_session_by_id(info.session_id, files)
            for info in parser.parse_files(files)
        )

    def convert_session_by_id(self, session_id: str, files: List[Union[str, Path]]) -> str:
        """
        Convert one session stored across JSONL files

        Args:
            session_id: Session ID as shown in the listing (may carry a
                split suffix such as '_1')
            files: JSONL file paths

        Returns:
            Markdown of that session, '' if it is not found
        """
        parser = SessionParser()
        for source_id in dict.fromkeys([session_id, _source_id(session_id)]):
            sessions = parser.parse_input(parser.get_session_data(source_id, files))
            session = sessions.get(session_id)
            if session is not None:
                return self.convert_session(session).markdown
        return ''

    def get_session_summary(self, text: str) -> str:
        """One '**title** (N messages)' line per session"""
        sessions = SessionParser().parse_input(text)
        return '\n'.join(
            f"**{session.title}** ({session.message_count} messages)"
            for session in sessions.values()
        )

    def validate_input(self, text: str) -> ValidationResult:
        """
        Check every line of a JSONL input

        Problems are collected, never raised.
        """
        errors = []
        for line_num, line in iter_lines(text):
            try:
                data = parse_line(line)
            except ValueError as e:
                errors.append(f"Line {line_num}: Invalid JSON - {e}")
                continue

            record_type = data.get('type')
            if not record_type:
                errors.append(f"Line {line_num}: Missing 'type' field")
                continue
            if record_type not in RECORD_TYPES:
                errors.append(f"Line {line_num}: Invalid type '{record_type}'")
                continue
            if record_type != 'summary' and not data.get('sessionId'):
                errors.append(f"Line {line_num}: Missing 'sessionId' field for {record_type} message")

        return ValidationResult(valid=not errors, errors=errors)

    def get_input_stats(self, text: str) -> InputStats:
        sessions = SessionParser().parse_input(text)

        total_lines = 0
        messages_by_type = {'user': 0, 'assistant': 0, 'summary': 0}
        for _, line in iter_lines(text):
            total_lines += 1
            try:
                data = parse_line(line)
            except ValueError:
                continue
            if data.get('type') in messages_by_type:
                messages_by_type[data['type']] += 1

        return InputStats(
            total_lines=total_lines,
            total_sessions=len(sessions),
            total_messages=sum(messages_by_type.values()),
            messages_by_type=messages_by_type,
        )


def _source_id(session_id: str) -> str:
    """Strip a split suffix ('abc_2' → 'abc')"""
    base, sep, suffix = session_id.rpartition('_')
    if sep and suffix.isdigit():
        return base
    return session_id


def format_as_markdown(text: str, options: Optional[FormattingOptions] = None) -> str:
    """Convert JSONL text to Markdown with default settings"""
    return MarkdownFormatter(options).convert_input(text)
