"""Tests for completion summaries and outbound notification text."""

import json

from ccremote.hooks.schemas import HookContext
from ccremote.hooks.summary import (
    DEFAULT_SUMMARY,
    MAX_SUMMARY_BYTES,
    build_idle_message,
    build_stop_message,
    extract_completion_summary,
    last_assistant_text,
)
from ccremote.lib.wait_reply import REPLY_FOOTER


def make_ctx(**kwargs):
    return HookContext(session_id="s1", hook_event="stop", cwd="/home/me/demo-app", **kwargs)


def write_transcript(path, entries):
    path.write_text("\n".join(json.dumps(e) for e in entries) + "\n")
    return path


def test_payload_message_is_preferred(tmp_path):
    transcript = write_transcript(
        tmp_path / "t.jsonl",
        [{"type": "assistant", "message": {"content": "from transcript"}}],
    )
    ctx = make_ctx(last_assistant_message="from payload", transcript_path=str(transcript))
    assert extract_completion_summary(ctx) == "from payload"


def test_last_assistant_text_block_from_transcript(tmp_path):
    transcript = write_transcript(
        tmp_path / "t.jsonl",
        [
            {"type": "user", "message": {"content": "do it"}},
            {"type": "assistant", "message": {"content": [{"type": "text", "text": "first"}]}},
            {
                "type": "assistant",
                "message": {
                    "content": [
                        {"type": "tool_use", "name": "Bash"},
                        {"type": "text", "text": "All tests pass."},
                    ]
                },
            },
            {"type": "assistant", "message": {"content": [{"type": "tool_use", "name": "Read"}]}},
        ],
    )
    assert last_assistant_text(transcript) == "All tests pass."


def test_bad_transcript_lines_are_skipped(tmp_path):
    path = tmp_path / "t.jsonl"
    path.write_text('not json\n{"type": "assistant", "message": {"content": "ok"}}\n[1]\n')
    assert last_assistant_text(path) == "ok"


def test_missing_transcript_gives_default(tmp_path):
    ctx = make_ctx(transcript_path=str(tmp_path / "missing.jsonl"))
    assert extract_completion_summary(ctx) == DEFAULT_SUMMARY


def test_long_summary_is_truncated():
    summary = extract_completion_summary(make_ctx(last_assistant_message="x" * 5000))
    assert len(summary.encode("utf-8")) == MAX_SUMMARY_BYTES
    assert summary.endswith("…")


def test_multibyte_summary_is_cut_on_bytes():
    # 3 UTF-8 bytes per character: 1500 characters would already be 4500 bytes
    summary = extract_completion_summary(make_ctx(last_assistant_message="完成" * 1000))
    assert len(summary.encode("utf-8")) <= MAX_SUMMARY_BYTES
    assert summary.endswith("…")
    assert summary.rstrip("…").strip("完成") == ""


def test_stop_message_fits_ntfy_body_limit():
    message = build_stop_message(make_ctx(last_assistant_message="测试通过。" * 2000))
    assert len(message.encode("utf-8")) <= 4096
    assert message.endswith(REPLY_FOOTER)


def test_stop_message_layout():
    message = build_stop_message(make_ctx(last_assistant_message="Refactor done."))
    assert "demo-app" in message
    assert "s1" in message
    assert "Refactor done." in message
    assert message.endswith(REPLY_FOOTER)


def test_idle_message_defaults():
    ctx = HookContext(session_id="s1", hook_event="notification")
    message = build_idle_message(ctx)
    assert "unknown" in message
    assert "waiting for input" in message
