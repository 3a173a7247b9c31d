"""Completion summary for the stop notification.

Sources, in order:
1. last_assistant_message from the hook payload
2. The last assistant text block in the session transcript (JSONL)
3. A generic "task finished" line
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from ccremote.hooks.schemas import HookContext
from ccremote.lib.wait_reply import REPLY_FOOTER

# UTF-8 budget for the summary; ntfy caps a message body at 4096 bytes and
# the header lines and reply footer need the rest
MAX_SUMMARY_BYTES = 3000
ELLIPSIS = "…"
DEFAULT_SUMMARY = "Task finished."


def _extract_text_from_content(content: Any) -> str:
    """Extract text from various content formats (joins all text blocks)."""
    if isinstance(content, str):
        return content.strip()

    if isinstance(content, list):
        texts = [
            block.get("text", "").strip()
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        return "\n".join(t for t in texts if t)

    return ""


def last_assistant_text(transcript_path: Path) -> str:
    """Return the last non-empty assistant text in a JSONL transcript, or ""."""
    if not transcript_path.is_file():
        return ""

    last = ""
    with transcript_path.open(encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(entry, dict) or entry.get("type") != "assistant":
                continue
            message = entry.get("message") or {}
            if not isinstance(message, dict):
                continue
            text = _extract_text_from_content(message.get("content"))
            if text:
                last = text
    return last


def truncate(text: str, limit: int = MAX_SUMMARY_BYTES) -> str:
    """Shorten text to at most limit UTF-8 bytes, never splitting a character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    keep = limit - len(ELLIPSIS.encode("utf-8"))
    return encoded[:keep].decode("utf-8", errors="ignore").rstrip() + ELLIPSIS


def extract_completion_summary(ctx: HookContext) -> str:
    summary = (ctx.last_assistant_message or "").strip()

    if not summary and ctx.transcript_path:
        try:
            summary = last_assistant_text(Path(ctx.transcript_path))
        except OSError as e:
            print(f"WARNING: Failed to read transcript {ctx.transcript_path}: {e}", file=sys.stderr)

    return truncate(summary or DEFAULT_SUMMARY)


def build_stop_message(ctx: HookContext) -> str:
    """Outbound text for a stop notification (redacted later by the engine)."""
    return (
        f"【Claude Code】Task finished\n"
        f"📁 Project: {ctx.project}\n"
        f"🧵 Session: {ctx.session_id}\n\n"
        f"{extract_completion_summary(ctx)}\n\n"
        f"{REPLY_FOOTER}"
    )


def build_idle_message(ctx: HookContext) -> str:
    """Outbound text for an idle/attention notification."""
    detail = (ctx.notification_message or "").strip() or "The session may be waiting for input."
    return (
        f"【Claude Code】⚠️ Attention needed\n"
        f"📁 Project: {ctx.project}\n"
        f"🧵 Session: {ctx.session_id}\n\n"
        f"{truncate(detail)}\n\n"
        f"Check the terminal."
    )
