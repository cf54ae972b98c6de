# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
Session segmentation module

Groups the flat record stream of one or more JSONL files into sessions.
Records are bucketed by sessionId, and a bucket is split after every record
whose uuid is named by a summary entry (leafUuid), so one transcript file
holding several summarized conversations yields several sessions.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Dict, Any, Optional, Union

from .records import MessageRecord, iter_lines, parse_jsonl, parse_line
from .timestamps import (
    UNKNOWN_TIME, clean_summary, is_unknown, is_valid_timestamp, parse_timestamp
)

logger = logging.getLogger(__name__)

UNTITLED = 'Untitled'


@dataclass
class SummaryEntry:
    """Summary entry"""
    summary: str
    leaf_uuid: str
    raw_data: Dict[str, Any]


@dataclass
class Session:
    """One logical conversation"""
    id: str
    source_id: str = ''  # sessionId of the records (id without split suffix)
    messages: List[Dict[str, Any]] = field(default_factory=list)
    summary: Optional[str] = None
    generated_summary: Optional[str] = None
    first_timestamp: Optional[str] = None
    last_timestamp: Optional[str] = None
    first_created: datetime = UNKNOWN_TIME
    last_modified: datetime = UNKNOWN_TIME
    message_count: int = 0
    files: List[str] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.summary or self.generated_summary or UNTITLED


@dataclass
class SessionInfo:
    """Listing entry for a session"""
    session_id: str
    file: str
    timestamp: str
    summary: str
    message_count: int
    modified: datetime
    created: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'file': self.file,
            'timestamp': self.timestamp,
            'summary': self.summary,
            'message_count': self.message_count,
            'modified': self.modified.isoformat(),
            'created': self.created.isoformat(),
        }


def extract_summary_from_message(message: MessageRecord) -> Optional[str]:
    """Title candidate from a user message, None if it does not qualify"""
    if message.is_command() or message.is_interruption_message() or message.is_empty_command_output():
        return None
    if message.is_content_array() and not message.regular_content():
        return None

    text = message.get_text_content()
    if not text or not text.strip():
        return None
    return clean_summary(text)


class SessionParser:
    """Class for grouping JSONL records into sessions"""

    def __init__(self):
        self.sessions: Dict[str, Session] = {}
        self.summary_leafs: Dict[str, str] = {}

    def parse_input(self, text: str) -> Dict[str, Session]:
        """
        Parse JSONL text and group into sessions

        Args:
            text: Raw JSONL text

        Returns:
            Session ID → Session, in discovery order
        """
        return self.parse_records(parse_jsonl(text))

    def parse_records(self, records: List[Dict[str, Any]]) -> Dict[str, Session]:
        """
        Group already-parsed records into sessions

        Args:
            records: Records in input order

        Returns:
            Session ID → Session, in discovery order
        """
        self.sessions = {}
        self.summary_leafs = self._collect_summaries(records)

        # Group by sessionId (records without one belong to no session)
        groups: Dict[str, List[Dict[str, Any]]] = {}
        for data in records:
            if data.get('type') == 'summary':
                continue
            session_id = data.get('sessionId')
            if not session_id or not isinstance(session_id, str):
                continue
            groups.setdefault(session_id, []).append(data)

        for session_id, messages in groups.items():
            self._split_by_summaries(session_id, messages)

        return dict(self.sessions)

    def _collect_summaries(self, records: List[Dict[str, Any]]) -> Dict[str, str]:
        """leafUuid → summary text from all summary records"""
        summary_leafs = {}
        for entry in self.collect_summary_entries(records):
            summary_leafs[entry.leaf_uuid] = entry.summary
        return summary_leafs

    @staticmethod
    def collect_summary_entries(records: List[Dict[str, Any]]) -> List[SummaryEntry]:
        entries = []
        for data in records:
            if data.get('type') != 'summary':
                continue
            leaf_uuid = data.get('leafUuid')
            summary = data.get('summary')
            if leaf_uuid and summary:
                entries.append(SummaryEntry(summary=summary, leaf_uuid=leaf_uuid, raw_data=data))
        return entries

    def _split_by_summaries(self, base_session_id: str, messages: List[Dict[str, Any]]) -> None:
        """Create one session per summary-delimited chunk of a bucket"""
        boundaries = [
            index for index, data in enumerate(messages)
            if data.get('uuid') and data.get('uuid') in self.summary_leafs
        ]

        if not boundaries:
            self._create_session(base_session_id, base_session_id, messages)
            return

        logger.debug("Session %s has %d summary boundaries", base_session_id, len(boundaries))

        start = 0
        counter = 0
        for boundary in boundaries:
            session_id = base_session_id if counter == 0 else f"{base_session_id}_{counter}"
            self._create_session(session_id, base_session_id, messages[start:boundary + 1])
            start = boundary + 1
            counter += 1

        # Remaining messages after the last summary
        if start < len(messages):
            self._create_session(f"{base_session_id}_{counter}", base_session_id, messages[start:])

    def _create_session(self, session_id: str, source_id: str,
                        messages: List[Dict[str, Any]]) -> None:
        if not messages:
            return

        session = Session(id=session_id, source_id=source_id)
        for data in messages:
            self._add_message(session, data)

        # Sessions without user/assistant messages are dropped
        if session.message_count > 0:
            self.sessions[session_id] = session
        else:
            logger.debug("Dropping session %s without messages", session_id)

    def _add_message(self, session: Session, data: Dict[str, Any]) -> None:
        session.messages.append(data)

        uuid = data.get('uuid')
        if uuid and uuid in self.summary_leafs:
            session.summary = self.summary_leafs[uuid]

        timestamp = data.get('timestamp')
        if is_valid_timestamp(timestamp):
            if not session.first_timestamp:
                session.first_timestamp = timestamp
            session.last_timestamp = timestamp

            message_time = parse_timestamp(timestamp)
            if not is_unknown(message_time):
                if is_unknown(session.first_created) or message_time < session.first_created:
                    session.first_created = message_time
                if is_unknown(session.last_modified) or message_time > session.last_modified:
                    session.last_modified = message_time

        if not session.generated_summary and data.get('type') == 'user' and not data.get('isMeta'):
            summary = extract_summary_from_message(MessageRecord(data))
            if summary and summary != UNTITLED:
                session.generated_summary = summary

        if data.get('type') in ('user', 'assistant'):
            session.message_count += 1

    def parse_files(self, files: List[Union[str, Path]]) -> List[SessionInfo]:
        """
        Parse multiple JSONL files and build the session listing

        All files are segmented together so a summary in one file can title
        a session stored in another. Sessions with no valid record timestamp
        take their times from the modification times of the files they
        appear in.

        Args:
            files: JSONL file paths

        Returns:
            Session listing, most recently modified first
        """
        contents: Dict[str, str] = {}
        mtimes: Dict[str, datetime] = {}

        for file in files:
            file = str(file)
            try:
                contents[file] = Path(file).read_text(encoding='utf-8')
                mtimes[file] = datetime.fromtimestamp(os.stat(file).st_mtime, tz=timezone.utc)
            except OSError as e:
                logger.warning("Error reading file %s: %s", file, e)

        sessions = self.parse_input('\n'.join(contents.values()))

        for session in sessions.values():
            session.files = [file for file, text in contents.items() if session.source_id in text]

            if is_unknown(session.first_created) or is_unknown(session.last_modified):
                file_times = [mtimes[file] for file in session.files if file in mtimes]
                if file_times:
                    if is_unknown(session.first_created):
                        session.first_created = min(file_times)
                    if is_unknown(session.last_modified):
                        session.last_modified = max(file_times)

        infos = [self.session_to_info(session) for session in sessions.values()]
        infos = [info for info in infos if info.message_count > 0]
        infos.sort(key=lambda info: info.modified, reverse=True)
        return infos

    def get_session_data(self, session_id: str, files: List[Union[str, Path]]) -> str:
        """
        Collect the lines needed to convert one session

        Args:
            session_id: Session ID as stored in the records
            files: JSONL file paths

        Returns:
            Every summary line plus the lines of that session, newline-joined
        """
        lines = []
        for file in files:
            try:
                text = Path(file).read_text(encoding='utf-8')
            except OSError as e:
                logger.warning("Error reading file %s: %s", file, e)
                continue

            for line_num, line in iter_lines(text):
                try:
                    data = parse_line(line)
                except ValueError as e:
                    logger.warning("Skipping malformed line %s:%d: %s", file, line_num, e)
                    continue
                if data.get('type') == 'summary' or data.get('sessionId') == session_id:
                    lines.append(line)

        return '\n'.join(lines)

    @staticmethod
    def session_to_info(session: Session) -> SessionInfo:
        return SessionInfo(
            session_id=session.id,
            file=session.files[-1] if session.files else '',
            timestamp=session.last_timestamp or session.first_timestamp or session.id,
            summary=session.title,
            message_count=session.message_count,
            modified=session.last_modified,
            created=session.first_created,
        )
