# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
Language inference for fenced code blocks

Maps file names to Markdown fence language tags. The lookup tables are
passed to LanguageDetector so callers can use their own.
"""

import posixpath
import re
from types import MappingProxyType
from typing import Mapping, Optional

LANGUAGE_BY_EXTENSION: Mapping[str, str] = MappingProxyType({
    'js': 'javascript',
    'jsx': 'javascript',
    'mjs': 'javascript',
    'ts': 'typescript',
    'tsx': 'typescript',
    'rb': 'ruby',
    'ruby': 'ruby',
    'py': 'python',
    'python': 'python',
    'cpp': 'cpp',
    'cc': 'cpp',
    'cxx': 'cpp',
    'c++': 'cpp',
    'hpp': 'cpp',
    'h': 'cpp',
    'c': 'c',
    'java': 'java',
    'go': 'go',
    'rs': 'rust',
    'php': 'php',
    'sh': 'bash',
    'bash': 'bash',
    'sql': 'sql',
    'json': 'json',
    'yaml': 'yaml',
    'yml': 'yaml',
    'toml': 'toml',
    'xml': 'xml',
    'html': 'html',
    'css': 'css',
    'md': 'markdown',
    'markdown': 'markdown',
})

SPECIAL_FILE_LANGUAGES: Mapping[str, str] = MappingProxyType({
    'CMakeLists.txt': 'cmake',
    'Makefile': 'makefile',
    'Dockerfile': 'dockerfile',
    'docker-compose.yml': 'yaml',
    'docker-compose.yaml': 'yaml',
    '.gitignore': 'gitignore',
    '.env': 'dotenv',
    'package.json': 'json',
    'tsconfig.json': 'json',
    'Cargo.toml': 'toml',
    'pyproject.toml': 'toml',
})

# Leading declaration keyword of a JS/TS snippet
DECLARATION_PATTERN = re.compile(
    r'^\s*(import|export|function|const|let|var|class|interface|type)'
)
DEFAULT_SCRIPT_LANGUAGE = 'typescript'


class LanguageDetector:
    """Fence language lookup by file name"""

    def __init__(self,
                 extensions: Optional[Mapping[str, str]] = None,
                 special_files: Optional[Mapping[str, str]] = None):
        """
        Args:
            extensions: Extension (lower case, no dot) → language tag
            special_files: Exact base name → language tag
        """
        self.extensions = MappingProxyType(dict(
            LANGUAGE_BY_EXTENSION if extensions is None else extensions
        ))
        self.special_files = MappingProxyType(dict(
            SPECIAL_FILE_LANGUAGES if special_files is None else special_files
        ))

    def from_path(self, file_path: Optional[str]) -> str:
        """Language tag for a file path, '' when unknown"""
        if not file_path:
            return ''

        basename = posixpath.basename(file_path.replace('\\', '/'))
        if basename in self.special_files:
            return self.special_files[basename]

        _, ext = posixpath.splitext(basename)
        return self.extensions.get(ext[1:].lower(), '')

    def from_content(self, content: str) -> str:
        """Language tag guessed from the first line of a snippet"""
        if content and DECLARATION_PATTERN.match(content):
            return DEFAULT_SCRIPT_LANGUAGE
        return ''
