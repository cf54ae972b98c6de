# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""
Configuration management module

Priority order:
1. Command line arguments
2. Environment variables (CLAUDE_PROJECTS_DIR, CC2MD_MAX_LINES)
3. Configuration file (TOML): --config-file, ./cc2md.toml,
   ~/.config/cc2md/config.toml
4. Default values
"""

import copy
import logging
import os
import sys

# tomllib (3.11+) reads bytes, the toml package reads text
if sys.version_info >= (3, 11):
    import tomllib
    TOML_BINARY_MODE = True
else:
    import toml as tomllib
    TOML_BINARY_MODE = False
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .paths import normalize_path
from .tool_results import FormattingOptions

logger = logging.getLogger(__name__)

LOCAL_CONFIG_NAME = 'cc2md.toml'

# Environment variable → (section, key, converter)
ENV_OVERRIDES: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    'CLAUDE_PROJECTS_DIR': ('paths', 'projects_dir', str),
    'CC2MD_MAX_LINES': ('formatting', 'max_lines', int),
}


def read_toml(config_path: Path) -> Dict[str, Any]:
    """
    Read a TOML file

    Raises:
        OSError: file cannot be read
        ValueError: file is not valid TOML
    """
    if TOML_BINARY_MODE:
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    with open(config_path, 'r', encoding='utf-8') as f:
        return tomllib.load(f)


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Merge override into a copy of base, table by table"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class Config:
    """Layered settings for the converter and the CLI"""

    DEFAULT_CONFIG = {
        'paths': {
            'projects_dir': '~/.claude/projects'
        },
        'formatting': {
            'relativize_paths': True,
            'syntax_highlighting': True,
            'truncate_long_output': True,
            'max_lines': 50
        },
        'debug': {
            'verbose': False
        }
    }

    def __init__(self, config_file: Optional[str] = None,
                 projects_dir: Optional[str] = None,
                 verbose: bool = False):
        """
        Args:
            config_file: Explicit TOML file (skips the default locations)
            projects_dir: Projects directory given on the command line
            verbose: Verbose logging flag
        """
        self.config_file = self._find_config_file(config_file)

        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        if self.config_file:
            self._config = self._merge_file(self._config, self.config_file)
        self._apply_env_overrides()

        if projects_dir:
            self._config['paths']['projects_dir'] = projects_dir
        if verbose:
            self._config['debug']['verbose'] = True

        self._config['paths']['projects_dir'] = normalize_path(str(self._config['paths']['projects_dir']))

    @staticmethod
    def candidate_files(config_file: Optional[str] = None) -> List[Path]:
        if config_file:
            return [Path(config_file)]
        return [Path(LOCAL_CONFIG_NAME), Path.home() / '.config' / 'cc2md' / 'config.toml']

    def _find_config_file(self, config_file: Optional[str]) -> Optional[Path]:
        for path in self.candidate_files(config_file):
            if path.exists():
                return path
        return None

    @staticmethod
    def _merge_file(config: Dict[str, Any], config_path: Path) -> Dict[str, Any]:
        try:
            return deep_merge(config, read_toml(config_path))
        except (OSError, ValueError) as e:
            # tomllib.TOMLDecodeError and toml.TomlDecodeError are ValueErrors
            logger.warning("Configuration file load error (%s): %s", config_path, e)
            return config

    def _apply_env_overrides(self):
        for name, (section, key, convert) in ENV_OVERRIDES.items():
            raw = os.getenv(name)
            if not raw:
                continue
            try:
                self._config[section][key] = convert(raw)
            except ValueError:
                logger.warning("Ignoring invalid %s: %s", name, raw)

    @property
    def projects_dir(self) -> str:
        return self._config['paths']['projects_dir']

    @property
    def verbose(self) -> bool:
        return self._config['debug']['verbose']

    @property
    def max_lines(self) -> int:
        """Line limit for truncated ls output"""
        return int(self.get('formatting.max_lines', 50))

    def formatting_options(self, **overrides) -> FormattingOptions:
        """
        Build formatting options from the [formatting] table

        Args:
            overrides: Field values taking precedence (None values are ignored)
        """
        values = {
            'relativize_paths': bool(self.get('formatting.relativize_paths', True)),
            'syntax_highlighting': bool(self.get('formatting.syntax_highlighting', True)),
            'truncate_long_output': bool(self.get('formatting.truncate_long_output', True)),
            'max_lines': self.max_lines,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return FormattingOptions(**values)

    def get(self, key: str, default=None):
        """Value at a dotted key such as 'formatting.max_lines'"""
        value: Any = self._config
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value
