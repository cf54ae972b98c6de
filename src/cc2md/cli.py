#!/usr/bin/env python3
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025-2026 @yosagi
"""cc2md - Claude Code session log to Markdown converter

Reads JSONL session logs from a file, stdin, or the Claude projects
directory and writes Markdown (or HTML) to stdout, a file, or the clipboard.
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .clipboard import ClipboardError, copy_to_clipboard
from .config import Config
from .html_formatter import HTMLFormatter
from .md_formatter import MarkdownFormatter, RecordProcessingError
from .projects import ProjectNotFoundError, ProjectScanner
from .paths import truncate_path
from .timestamps import (
    format_local_timestamp, format_relative_time, format_timestamp, is_unknown, truncate
)

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(message)s',
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Verbose logging')
@click.option('--config-file', type=click.Path(exists=True), help='Config file path')
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_file: Optional[str]):
    """Convert Claude Code session logs to readable Markdown"""
    _setup_logging(verbose)
    ctx.obj = Config(config_file=config_file, verbose=verbose)


def _deliver(content: str, output: Optional[str], copy: bool) -> None:
    """Write content to a file or stdout, optionally copying it too"""
    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(content)
        click.echo(f"Converted session to {output_path}", err=True)
    else:
        click.echo(content)

    if copy:
        try:
            backend = copy_to_clipboard(content)
        except ClipboardError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"Copied to clipboard ({backend})", err=True)


def _render(markdown: str, output_format: str) -> str:
    if output_format == 'html':
        return HTMLFormatter().render(markdown)
    return markdown


@cli.command()
@click.option('--input', '-i', 'input_file', type=click.File('r', encoding='utf-8'), default='-',
              help='Input JSONL file (default: stdin)')
@click.option('--output', '-o', type=click.Path(), help='Output file (default: stdout)')
@click.option('--format', '-f', 'output_format', type=click.Choice(['md', 'html']), default='md',
              help='Output format')
@click.option('--no-syntax-highlighting', is_flag=True, help='Disable code block language tags')
@click.option('--no-relative-paths', is_flag=True, help='Disable path relativization')
@click.option('--no-truncate', is_flag=True, help='Disable truncation of long ls output')
@click.option('--max-lines', type=int, default=None, help='Maximum lines before truncation')
@click.option('--copy', 'copy', is_flag=True, help='Also copy the result to the clipboard')
@click.pass_obj
def convert(config: Config, input_file, output: Optional[str], output_format: str,
            no_syntax_highlighting: bool, no_relative_paths: bool, no_truncate: bool,
            max_lines: Optional[int], copy: bool):
    """Convert JSONL input to Markdown"""
    t0 = time.time()
    options = config.formatting_options(
        syntax_highlighting=False if no_syntax_highlighting else None,
        relativize_paths=False if no_relative_paths else None,
        truncate_long_output=False if no_truncate else None,
        max_lines=max_lines,
    )

    text = input_file.read()
    try:
        markdown = MarkdownFormatter(options).convert_input(text)
    except RecordProcessingError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    logging.getLogger(__name__).debug("Converted in %.3fs", time.time() - t0)

    _deliver(_render(markdown, output_format), output, copy)


@cli.command()
@click.option('--input', '-i', 'input_file', type=click.File('r', encoding='utf-8'), default='-',
              help='Input JSONL file (default: stdin)')
def validate(input_file):
    """Validate JSONL input"""
    text = input_file.read()
    formatter = MarkdownFormatter()
    result = formatter.validate_input(text)

    if not result.valid:
        click.echo("❌ Input has validation errors:")
        for error in result.errors:
            click.echo(f"   {error}")
        sys.exit(1)

    stats = formatter.get_input_stats(text)
    click.echo("✅ Input is valid")
    click.echo(f"📊 Stats: {stats.total_sessions} sessions, {stats.total_messages} messages")
    by_type = stats.messages_by_type
    click.echo(f"   User: {by_type['user']}, Assistant: {by_type['assistant']}, Summary: {by_type['summary']}")


@cli.command()
@click.option('--input', '-i', 'input_file', type=click.File('r', encoding='utf-8'), default='-',
              help='Input JSONL file (default: stdin)')
def stats(input_file):
    """Show statistics about JSONL input"""
    text = input_file.read()
    formatter = MarkdownFormatter()
    input_stats = formatter.get_input_stats(text)

    table = Table(title="Session Statistics", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total lines", str(input_stats.total_lines))
    table.add_row("Total sessions", str(input_stats.total_sessions))
    table.add_row("Total messages", str(input_stats.total_messages))
    for record_type, count in input_stats.messages_by_type.items():
        table.add_row(f"  {record_type.capitalize()}", str(count))
    console.print(table)

    session_summary = formatter.get_session_summary(text)
    if session_summary:
        console.print("\n📝 Session Summaries:")
        for line in session_summary.split('\n'):
            console.print(f"   {line}", markup=False)


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Output in JSON format')
@click.pass_obj
def projects(config: Config, as_json: bool):
    """List projects"""
    project_list = ProjectScanner(config.projects_dir).list_projects()

    if as_json:
        click.echo(json.dumps([p.to_dict() for p in project_list], ensure_ascii=False, indent=2))
        return

    if not project_list:
        click.echo("No projects found")
        return

    table = Table(title=f"Projects ({len(project_list)})")
    table.add_column("Project")
    table.add_column("Sessions", justify="right")
    table.add_column("Modified")
    for project in project_list:
        table.add_row(truncate_path(project.display_name), str(project.session_count),
                      format_relative_time(project.last_modified))
    console.print(table)


@cli.command()
@click.option('--project', '-p', required=True, help='Project directory name or path')
@click.option('--json', 'as_json', is_flag=True, help='Output in JSON format')
@click.pass_obj
def sessions(config: Config, project: str, as_json: bool):
    """List sessions in a project"""
    scanner = ProjectScanner(config.projects_dir)
    try:
        session_list = scanner.list_sessions(scanner.find_project(project))
    except ProjectNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([s.to_dict() for s in session_list], ensure_ascii=False, indent=2))
        return

    if not session_list:
        click.echo(f"No sessions found: {project}")
        return

    table = Table(title=f"Sessions ({len(session_list)})")
    table.add_column("Session")
    table.add_column("Started")
    table.add_column("Last message")
    table.add_column("Modified")
    table.add_column("Messages", justify="right")
    table.add_column("Summary")
    for info in session_list:
        started = 'Unknown' if is_unknown(info.created) else format_local_timestamp(info.created)
        modified = 'Unknown' if is_unknown(info.modified) else format_relative_time(info.modified)
        table.add_row(info.session_id[:8], started, format_timestamp(info.timestamp), modified,
                      str(info.message_count), truncate(info.summary, 60))
    console.print(table)


@cli.command()
@click.option('--session', '-s', required=True, help='Session ID (prefix match)')
@click.option('--project', '-p', default=None, help='Project name (auto-detect if omitted)')
@click.option('--output', '-o', type=click.Path(), help='Output file (default: stdout)')
@click.option('--format', '-f', 'output_format', type=click.Choice(['md', 'html']), default='md',
              help='Output format')
@click.option('--copy', 'copy', is_flag=True, help='Also copy the result to the clipboard')
@click.pass_obj
def export(config: Config, session: str, project: Optional[str], output: Optional[str],
           output_format: str, copy: bool):
    """Export one session of a project"""
    scanner = ProjectScanner(config.projects_dir)

    if project:
        try:
            project_info = scanner.find_project(project)
        except ProjectNotFoundError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    else:
        found = scanner.find_session(session)
        if not found:
            click.echo(f"Error: Session '{session}' not found (or multiple matches)", err=True)
            sys.exit(1)
        project_info, jsonl_path = found
        session = jsonl_path.stem

    files = scanner.session_files(project_info.path)
    session_ids = [info.session_id for info in scanner.list_sessions(project_info)]
    matching = [sid for sid in session_ids if sid == session] or \
               [sid for sid in session_ids if sid.startswith(session)]
    if len(matching) != 1:
        click.echo(f"Error: Session '{session}' not found (or multiple matches)", err=True)
        sys.exit(1)

    formatter = MarkdownFormatter(config.formatting_options())
    try:
        markdown = formatter.convert_session_by_id(matching[0], files)
    except RecordProcessingError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    _deliver(_render(markdown, output_format), output, copy)


if __name__ == '__main__':
    cli()
