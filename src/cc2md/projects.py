# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
Project discovery module

Finds Claude Code projects (directories of JSONL session logs) under the
projects directory and builds their session listings.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from .parser import SessionInfo, SessionParser

logger = logging.getLogger(__name__)

SESSION_GLOB = '*.jsonl'


class ProjectNotFoundError(FileNotFoundError):
    """No project matches the given name"""


@dataclass
class ProjectInfo:
    """Project directory summary"""
    name: str
    path: Path
    display_name: str
    session_count: int
    last_modified: datetime

    def to_dict(self):
        return {
            'name': self.name,
            'path': str(self.path),
            'display_name': self.display_name,
            'session_count': self.session_count,
            'last_modified': self.last_modified.isoformat(),
        }


class ProjectScanner:
    """Class for locating projects and session files"""

    def __init__(self, projects_dir: str):
        """
        Args:
            projects_dir: Path to Claude projects directory
        """
        self.projects_dir = Path(projects_dir)

    def list_projects(self) -> List[ProjectInfo]:
        """Projects holding at least one JSONL file, most recently modified first"""
        if not self.projects_dir.exists():
            return []

        projects = []
        for project_dir in self.projects_dir.iterdir():
            if not project_dir.is_dir():
                continue
            jsonl_files = self.session_files(project_dir)
            if not jsonl_files:
                continue

            last_modified = max(f.stat().st_mtime for f in jsonl_files)
            projects.append(ProjectInfo(
                name=project_dir.name,
                path=project_dir,
                display_name=self._display_name(project_dir, jsonl_files),
                session_count=len(jsonl_files),
                last_modified=datetime.fromtimestamp(last_modified, tz=timezone.utc),
            ))

        projects.sort(key=lambda p: p.last_modified, reverse=True)
        return projects

    @staticmethod
    def session_files(project_dir: Path) -> List[Path]:
        return sorted(project_dir.glob(SESSION_GLOB))

    def _display_name(self, project_dir: Path, jsonl_files: List[Path]) -> str:
        """Working directory recorded in the logs, else the decoded directory name"""
        for jsonl_path in jsonl_files[:5]:  # Check only first 5 files
            cwd = self._get_cwd_from_jsonl(jsonl_path)
            if cwd:
                return cwd
        return project_dir.name.replace('-', '/')

    @staticmethod
    def _get_cwd_from_jsonl(jsonl_path: Path) -> Optional[str]:
        """Get cwd from the first record that has one"""
        try:
            with open(jsonl_path, 'r', encoding='utf-8') as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if isinstance(data, dict) and data.get('cwd'):
                        return data['cwd']
        except OSError as e:
            logger.warning("Cannot read %s: %s", jsonl_path, e)
        return None

    def find_project(self, name: str) -> ProjectInfo:
        """
        Look up a project by directory name or working directory

        Raises:
            ProjectNotFoundError: nothing matches
        """
        for project in self.list_projects():
            if name in (project.name, project.display_name, str(project.path)):
                return project
        raise ProjectNotFoundError(f"Project not found: {name}")

    def list_sessions(self, project: ProjectInfo) -> List[SessionInfo]:
        """Session listing of a project, most recently modified first"""
        return SessionParser().parse_files(self.session_files(project.path))

    def find_session(self, session_prefix: str) -> Optional[Tuple[ProjectInfo, Path]]:
        """
        Find the session file whose name starts with the given prefix

        Returns:
            (project, JSONL path), or None when nothing or several files match
        """
        matches = []
        for project in self.list_projects():
            for jsonl_file in project.path.glob(f"{session_prefix}*.jsonl"):
                matches.append((project, jsonl_file))

        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            logger.warning("Session prefix %s matches %d files", session_prefix, len(matches))
        return None
