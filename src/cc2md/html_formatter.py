# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""HTML rendering of converted Markdown documents"""

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

import mistune
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .md_formatter import SESSION_SEPARATOR

TITLE_PATTERN = re.compile(r'^# (.+)$', re.MULTILINE)


class HTMLFormatter:
    """Formatter class that turns a Markdown document into a standalone HTML page"""

    def __init__(self, template_name: str = 'document.html.j2'):
        """Initialize

        Args:
            template_name: Template file under the package templates directory
        """
        template_dir = Path(__file__).parent / "templates"
        self.jinja_env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(['html', 'xml', 'j2'])
        )
        self.template_name = template_name

        # GFM-style parser; raw HTML is kept so <details> blocks stay collapsible
        self.markdown = mistune.create_markdown(
            escape=False,
            plugins=['strikethrough', 'table', 'task_lists']
        )

    def render(self, markdown_text: str, title: Optional[str] = None) -> str:
        """
        Render a converted document

        Args:
            markdown_text: Output of MarkdownFormatter
            title: Page title (first '# ' heading when omitted)

        Returns:
            HTML string
        """
        sections = [self.markdown(part) for part in markdown_text.split(SESSION_SEPARATOR) if part.strip()]
        template = self.jinja_env.get_template(self.template_name)
        return template.render(
            title=title or self._first_title(markdown_text),
            generated_at=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            sections=sections,
        )

    @staticmethod
    def _first_title(markdown_text: str) -> str:
        match = TITLE_PATTERN.search(markdown_text)
        return match.group(1).strip() if match else 'Claude Code session'
