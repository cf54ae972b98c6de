"""Tests for the per-session message processor."""

from cc2md.processor import CLEARED_NOTICE, MessageProcessor, should_defer_flush
from cc2md.tool_results import CANCELLED_NOTICE

from conftest import assistant, tool_result, tool_use, user


def _run(records):
    """Process every record and do the terminal flush."""
    processor = MessageProcessor()
    lines = []
    for index, record in enumerate(records):
        lines.extend(processor.process(record, records, index))
    lines.extend(processor.flush())
    return lines


class TestShouldDeferFlush:

    def test_defers_when_next_user_has_results(self):
        current = user([tool_result("t1", "a")])
        following = user([tool_result("t2", "b")])
        assert should_defer_flush(current, following)

    def test_no_defer_when_next_is_assistant(self):
        assert not should_defer_flush(user([tool_result("t1", "a")]), assistant("ok"))

    def test_no_defer_at_end(self):
        assert not should_defer_flush(user([tool_result("t1", "a")]), None)

    def test_no_defer_without_results(self):
        assert not should_defer_flush(user("plain"), user([tool_result("t2", "b")]))


class TestUserMessages:

    def test_string_message_is_quoted(self):
        assert _run([user("line one\nline two")]) == [
            "### User", "", "> line one", "> line two", "",
        ]

    def test_non_string_content_is_rendered_as_text(self):
        assert _run([user(42)]) == ["### User", "", "> 42", ""]
        assert _run([user([{"type": "text", "text": 7}])]) == ["### User", "", "> 7", ""]

    def test_meta_message_is_collapsed(self):
        lines = _run([user("x" * 60 + "\nmore", isMeta=True)])
        assert lines[0] == f"<details><summary>{'x' * 50}...</summary>"
        assert "> more" in lines
        assert lines[-2:] == ["</details>", ""]

    def test_caveat_and_api_errors_are_skipped(self):
        assert _run([user("Caveat: ignore", isMeta=True), user("boom", isApiErrorMessage=True)]) == []

    def test_clear_command(self):
        assert _run([user("<command-name>/clear</command-name>")]) == [CLEARED_NOTICE, ""]

    def test_command_with_args(self):
        lines = _run([user("<command-name>/model</command-name><command-args>opus</command-args>")])
        assert lines == ["### User", "", '> /model "opus"', ""]

    def test_empty_command_output_is_skipped(self):
        assert _run([user("<local-command-stdout></local-command-stdout>")]) == []


class TestAssistantMessages:

    def test_string_content(self):
        assert _run([assistant("Hi there!")]) == ["### Assistant", "", "Hi there!", ""]

    def test_text_items_share_one_heading(self):
        lines = _run([assistant([{"type": "text", "text": "a"}, {"type": "text", "text": "b"}])])
        assert lines == ["### Assistant", "", "a", "", "b", ""]

    def test_numeric_text_item(self):
        assert _run([assistant([{"type": "text", "text": 3.5}])]) == ["### Assistant", "", "3.5", ""]

    def test_tool_use_only_emits_nothing(self):
        assert _run([assistant([tool_use("t1", "Bash", command="pwd")])]) == []


class TestToolResults:

    def test_results_split_across_records_are_flushed_together(self):
        records = [
            assistant([
                tool_use("t1", "Bash", command="pwd"),
                tool_use("t2", "Bash", command="whoami"),
            ]),
            user([tool_result("t1", "/home/u")]),
            user([tool_result("t2", "u")]),
            assistant("done"),
        ]
        processor = MessageProcessor()
        outputs = [processor.process(r, records, i) for i, r in enumerate(records)]

        assert outputs[1] == []
        flushed = "\n".join(outputs[2])
        assert "<code>pwd</code>" in flushed
        assert "<code>whoami</code>" in flushed
        assert flushed.index("pwd") < flushed.index("whoami")
        assert processor.flush() == []

    def test_tool_call_map_survives_flushes(self):
        records = [
            assistant([tool_use("t1", "Bash", command="pwd")]),
            user([tool_result("t1", "/home/u")]),
            assistant("next"),
            user([tool_result("t1", "again")]),
        ]
        text = "\n".join(_run(records))
        assert text.count("<b>Bash:</b> <code>pwd</code>") == 2

    def test_cancelled_non_edit_result(self):
        records = [
            assistant([tool_use("t1", "Bash", command="rm -rf build")]),
            user([tool_result("t1", "The user doesn't want to proceed", is_error=True)]),
            user([{"type": "text", "text": "[Request interrupted by user for tool use]"}]),
        ]
        lines = _run(records)
        assert lines == [CANCELLED_NOTICE, ""]

    def test_cancelled_edit_still_renders_diff(self):
        records = [
            assistant([tool_use("t1", "Edit", file_path="/p/a.py", old_string="a = 1", new_string="a = 2")],
                      cwd="/p"),
            user([tool_result("t1", "rejected", is_error=True)], cwd="/p"),
        ]
        lines = _run(records)
        assert lines[:2] == [CANCELLED_NOTICE, ""]
        assert "**Edit:** `a.py`" in lines
        assert "-a = 1" in lines
        assert "+a = 2" in lines

    def test_parallel_cancelled_edits_each_keep_their_diff(self):
        records = [
            assistant([
                tool_use("t1", "Edit", file_path="/p/a.py", old_string="a = 1", new_string="a = 2"),
                tool_use("t2", "Edit", file_path="/p/b.py", old_string="b = 1", new_string="b = 2"),
            ], cwd="/p"),
            user([tool_result("t1", "rejected", is_error=True)], cwd="/p"),
            user([tool_result("t2", "rejected", is_error=True)], cwd="/p"),
        ]
        lines = _run(records)
        assert lines.count("**Edit:** `a.py`") == 1
        assert lines.count("**Edit:** `b.py`") == 1
        assert lines.index("**Edit:** `a.py`") < lines.index("**Edit:** `b.py`")
        for diff_line in ("-a = 1", "+a = 2", "-b = 1", "+b = 2"):
            assert lines.count(diff_line) == 1
        assert not any("rejected" in line for line in lines)

    def test_cancelled_edit_followed_by_regular_result(self):
        records = [
            assistant([
                tool_use("t1", "Edit", file_path="/p/a.py", old_string="a = 1", new_string="a = 2"),
                tool_use("t2", "Bash", command="pwd"),
            ], cwd="/p"),
            user([tool_result("t1", "rejected", is_error=True)], cwd="/p"),
            user([tool_result("t2", "/p")], cwd="/p"),
        ]
        lines = _run(records)
        assert lines.count("**Edit:** `a.py`") == 1
        assert "+a = 2" in lines
        assert any("<b>Bash:</b> <code>pwd</code>" in line for line in lines)
        assert not any("rejected" in line for line in lines)

    def test_regular_content_after_results(self):
        records = [
            assistant([tool_use("t1", "Bash", command="pwd")]),
            user([tool_result("t1", "/p"), {"type": "text", "text": "thanks"}]),
        ]
        lines = _run(records)
        assert lines[-4:] == ["### User", "", "> thanks", ""]

    def test_structured_patch_from_tool_use_result(self):
        records = [
            assistant([tool_use("t1", "Edit", file_path="/p/x.rb")], cwd="/p"),
            user([tool_result("t1", "ok")], cwd="/p", toolUseResult={
                "filePath": "/p/x.rb",
                "structuredPatch": [{"oldStart": 1, "oldLines": 1, "newStart": 1, "newLines": 1,
                                     "lines": ["-old", "+new"]}],
            }),
        ]
        assert _run(records) == ["**Edit:** `x.rb`", "", "```diff", "-old", "+new", "```", ""]

    def test_reset_clears_state(self):
        processor = MessageProcessor()
        records = [assistant([tool_use("t1", "Bash", command="pwd")], cwd="/p")]
        processor.process(records[0], records, 0)
        processor.reset()
        assert processor.context.tool_call_map == {}
        assert processor.context.current_cwd is None
