"""Shared fixtures and record builders for cc2md tests."""

import json

import pytest

SESSION_ID = "11111111-2222-3333-4444-555555555555"


def user(text_or_content, uuid=None, session_id=SESSION_ID, **extra):
    """Build a user record."""
    record = {
        "type": "user",
        "sessionId": session_id,
        "timestamp": "2025-01-01T10:00:00Z",
        "message": {"role": "user", "content": text_or_content},
    }
    if uuid:
        record["uuid"] = uuid
    record.update(extra)
    return record


def assistant(text_or_content, uuid=None, session_id=SESSION_ID, **extra):
    """Build an assistant record."""
    record = {
        "type": "assistant",
        "sessionId": session_id,
        "timestamp": "2025-01-01T10:00:05Z",
        "message": {"role": "assistant", "content": text_or_content},
    }
    if uuid:
        record["uuid"] = uuid
    record.update(extra)
    return record


def summary(text, leaf_uuid):
    return {"type": "summary", "summary": text, "leafUuid": leaf_uuid}


def tool_use(tool_id, name, **tool_input):
    return {"type": "tool_use", "id": tool_id, "name": name, "input": tool_input}


def tool_result(tool_id, content, is_error=False):
    item = {"type": "tool_result", "tool_use_id": tool_id, "content": content}
    if is_error:
        item["is_error"] = True
    return item


def to_jsonl(records):
    return "\n".join(json.dumps(record) for record in records) + "\n"


@pytest.fixture
def simple_jsonl():
    """One session with a single user/assistant exchange."""
    return to_jsonl([
        user("Hello", uuid="u1"),
        assistant([{"type": "text", "text": "Hi there!"}], uuid="a1"),
    ])


@pytest.fixture
def projects_dir(tmp_path):
    """Claude projects directory holding one project with two sessions."""
    root = tmp_path / "projects"
    project = root / "-home-user-app"
    project.mkdir(parents=True)

    first = "aaaaaaaa-0000-0000-0000-000000000001"
    second = "bbbbbbbb-0000-0000-0000-000000000002"
    (project / f"{first}.jsonl").write_text(to_jsonl([
        user("Fix the login bug", uuid="u1", session_id=first, cwd="/home/user/app"),
        assistant("Done.", uuid="a1", session_id=first, cwd="/home/user/app"),
    ]), encoding="utf-8")
    (project / f"{second}.jsonl").write_text(to_jsonl([
        user("Add a README", uuid="u2", session_id=second, cwd="/home/user/app"),
        assistant("Added.", uuid="a2", session_id=second, cwd="/home/user/app"),
    ]), encoding="utf-8")
    return root
