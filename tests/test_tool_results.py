"""Tests for tool result rendering."""

import pytest

from cc2md.processor import ContextHandle, ProcessingContext
from cc2md.tool_results import (
    FormattingOptions,
    ToolResultFormatter,
    build_structured_patch,
    is_ls_call,
    patch_for_cancelled_edit,
)

from conftest import tool_result, tool_use


def _handle(cwd="/home/u/proj", tool_uses=(), tool_use_result=None):
    context = ProcessingContext(current_cwd=cwd, current_tool_use_result=tool_use_result)
    for item in tool_uses:
        context.tool_call_map[item["id"]] = item
    return ContextHandle(context)


def _render(result, uses=(), options=None, **handle_args):
    formatter = ToolResultFormatter(options or FormattingOptions())
    return formatter.format_all([result], _handle(tool_uses=uses, **handle_args))


class TestTodoWrite:

    def test_checklist(self):
        use = tool_use("t1", "TodoWrite", todos=[
            {"content": "Write parser", "status": "completed"},
            {"content": "Write tests", "status": "in_progress"},
            {"content": "Ship", "status": "pending"},
        ])
        lines = _render(tool_result("t1", "Todos updated"), [use])
        assert lines == [
            "**Updated task list**",
            "",
            "- [x] Write parser",
            "- [ ] Write tests (in progress)",
            "- [ ] Ship",
            "",
        ]


class TestSummaries:

    def test_read_is_relativized(self):
        use = tool_use("t1", "Read", file_path="/home/u/proj/src/app.py", limit=20)
        lines = _render(tool_result("t1", "     1→import os"), [use])
        assert lines[0] == "<details><summary><b>Read:</b> <code>src/app.py, limit: 20</code></summary>"

    def test_read_body_gets_language(self):
        use = tool_use("t1", "Read", file_path="/home/u/proj/src/app.py")
        lines = _render(tool_result("t1", "     1→import os\n     2→os.getcwd()"), [use])
        assert lines[2:5] == ["```python", "import os\nos.getcwd()", "```"]

    def test_relativize_disabled(self):
        use = tool_use("t1", "Edit", file_path="/home/u/proj/a.py")
        lines = _render(tool_result("t1", "done"), [use], FormattingOptions(relativize_paths=False))
        assert "<code>/home/u/proj/a.py</code>" in lines[0]

    def test_grep_with_include(self):
        use = tool_use("t1", "Grep", pattern="TODO", path="/home/u/proj/src", include="*.py")
        lines = _render(tool_result("t1", "Found 2 files"), [use])
        assert lines[0] == (
            "<details><summary><b>Grep:</b> pattern <code>TODO</code> in <code>src</code> (*.py)</summary>"
        )

    def test_bash_summary_escapes_html(self):
        use = tool_use("t1", "Bash", command="echo '<b>' && cat a > b")
        lines = _render(tool_result("t1", ""), [use])
        assert "<code>echo '&lt;b&gt;' &amp;&amp; cat a &gt; b</code>" in lines[0]

    def test_unknown_tool_lists_input(self):
        use = tool_use("t1", "WebFetch", url="https://example.com", prompt="read")
        lines = _render(tool_result("t1", "page"), [use])
        assert lines[0] == (
            "<details><summary><b>WebFetch:</b> <code>url: https://example.com, prompt: read</code></summary>"
        )

    @pytest.mark.parametrize("content, expected", [
        ("     1→x", "<b>Read:</b> file content (1 lines)"),
        ("Found 3 files\n/a.py", "<b>Search:</b> Found 3 files"),
        ("/a/b.py", "<b>Search:</b> found 1 file(s)"),
        ("/a/b.py\n/a/c.py", "<b>Tool result:</b> 15 characters"),
        ("The file /a.py has been updated", "<b>Edit:</b> The file /a.py has been updated"),
        ("Tool ran without output", "<b>Command:</b> executed successfully"),
        ("Received 2048 bytes", "<b>Fetch:</b> Received 2048 bytes"),
        ("something else", "<b>Tool result:</b> 14 characters"),
    ])
    def test_orphan_result_summary(self, content, expected):
        lines = _render(tool_result("missing", content))
        assert lines[0] == f"<details><summary>{expected}</summary>"


class TestBodies:

    def test_ls_output_is_truncated(self):
        use = tool_use("t1", "LS", path="/home/u/proj")
        listing = "\n".join(f"file{i}.txt" for i in range(75))
        lines = _render(tool_result("t1", listing), [use])
        body = lines[lines.index("```") + 1:]
        assert body[:50] == [f"file{i}.txt" for i in range(50)]
        assert body[50] == "... (25 more lines)"
        assert body[51] == "```"

    def test_bash_ls_is_truncated_too(self):
        use = tool_use("t1", "Bash", command="ls -la")
        listing = "\n".join(str(i) for i in range(60))
        lines = _render(tool_result("t1", listing), [use], FormattingOptions(max_lines=10))
        assert "... (50 more lines)" in lines

    def test_truncation_disabled(self):
        use = tool_use("t1", "LS", path="/home/u/proj")
        listing = "\n".join(str(i) for i in range(75))
        lines = _render(tool_result("t1", listing), [use], FormattingOptions(truncate_long_output=False))
        assert listing in lines
        assert not any(line.startswith("... (") for line in lines)

    def test_code_like_content_defaults_to_typescript(self):
        use = tool_use("t1", "Task", prompt="x")
        lines = _render(tool_result("t1", "export const x = 1;"), [use])
        assert "```typescript" in lines

    def test_syntax_highlighting_disabled(self):
        use = tool_use("t1", "Read", file_path="/home/u/proj/a.py")
        lines = _render(tool_result("t1", "     1→x = 1"), [use], FormattingOptions(syntax_highlighting=False))
        assert lines[2] == "```"

    def test_array_content(self):
        content = [{"type": "text", "text": "first"}, {"type": "image"}, {"type": "text", "text": "second"}]
        lines = _render(tool_result("t1", content), [tool_use("t1", "Task", prompt="x")])
        assert lines[2:6] == ["first", "", "second", ""]

    def test_details_block_shape(self):
        lines = _render(tool_result("t1", "plain"), [tool_use("t1", "Task", prompt="x")])
        assert lines == [
            "<details><summary><b>Task:</b> <code>x</code></summary>",
            "",
            "```",
            "plain",
            "```",
            "</details>",
            "",
        ]


class TestPatches:

    def test_build_structured_patch(self):
        hunks = build_structured_patch("a\nb\nc", "a\nB\nc")
        assert len(hunks) == 1
        assert hunks[0]["oldStart"] == 1
        assert hunks[0]["lines"] == [" a", "-b", "+B", " c"]

    def test_write_patch_adds_all_lines(self):
        patch = patch_for_cancelled_edit(tool_use("t1", "Write", file_path="/p/new.txt", content="x\ny"))
        assert patch["filePath"] == "/p/new.txt"
        assert patch["structuredPatch"][0]["lines"] == ["+x", "+y"]

    def test_multiedit_patch(self):
        use = tool_use("t1", "MultiEdit", file_path="/p/a.py", edits=[
            {"old_string": "a", "new_string": "b"},
            {"old_string": "c", "new_string": "d"},
        ])
        assert len(patch_for_cancelled_edit(use)["structuredPatch"]) == 2

    def test_non_edit_has_no_patch(self):
        assert patch_for_cancelled_edit(tool_use("t1", "Bash", command="ls")) is None
        assert patch_for_cancelled_edit(None) is None

    def test_structured_patch_takes_priority(self):
        patch = {"filePath": "/home/u/proj/a.py",
                 "structuredPatch": [{"lines": ["-x", "+y"]}]}
        use = tool_use("t1", "TodoWrite", todos=[])
        lines = _render(tool_result("t1", "ok"), [use], tool_use_result=patch)
        assert lines[0] == "**Edit:** `a.py`"


def test_is_ls_call():
    assert is_ls_call(tool_use("t", "LS", path="/"))
    assert is_ls_call(tool_use("t", "Bash", command="ls"))
    assert not is_ls_call(tool_use("t", "Bash", command="lsof"))
    assert not is_ls_call(None)
