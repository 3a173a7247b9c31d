"""Hook event audit log.

Appends one JSON line per hook invocation to <home>/logs/hooks-YYYY-MM-DD.jsonl:
the normalized event, the produced output (including the remote decision)
and a snapshot of the hook process. This is the record of who was notified
and what came back.

A failure to write the log is reported on stderr and never breaks the hook.
"""

import json
import logging
import os
import sys
import time
from datetime import datetime
from typing import Any

import psutil
from pydantic import BaseModel, Field

from ccremote.hooks.schemas import CanonicalHookOutput, HookContext
from ccremote.lib.paths import get_hook_log_path
from ccremote.lib.redactor import redact

logger = logging.getLogger(__name__)

# Free text is clipped in the log; the full text lives in the transcript
MAX_LOGGED_PROMPT_CHARS = 200
CLIPPED_INPUT_KEYS = ("prompt", "prompt_text", "last_assistant_message", "message")


class ProcessSnapshot(BaseModel):
    pid: int
    ppid: int
    rss_mb: float
    uptime_s: float


class HookLogEntry(BaseModel):
    """Single entry in the JSONL hook log."""

    hook_event: str
    session_id: str
    logged_at: str
    exit_code: int = 0
    stop_hook_active: bool = False
    input: dict[str, Any] = Field(default_factory=dict)
    output: dict[str, Any] | None = None
    error: str | None = None
    process: ProcessSnapshot | None = None


def _snapshot_process() -> ProcessSnapshot:
    proc = psutil.Process(os.getpid())
    with proc.oneshot():
        return ProcessSnapshot(
            pid=proc.pid,
            ppid=proc.ppid(),
            rss_mb=round(proc.memory_info().rss / (1024 * 1024), 2),
            uptime_s=round(time.time() - proc.create_time(), 3),
        )


def _loggable_input(ctx: HookContext) -> dict[str, Any]:
    data = dict(ctx.raw_input)
    for key in CLIPPED_INPUT_KEYS:
        value = data.get(key)
        if isinstance(value, str):
            data[key] = redact(value[:MAX_LOGGED_PROMPT_CHARS])
    return data


def log_hook_event(
    ctx: HookContext,
    output: CanonicalHookOutput | None = None,
    exit_code: int = 0,
    error: str | None = None,
) -> None:
    """Append one entry for this invocation. Events without a session id are skipped."""
    if not ctx.session_id:
        return

    try:
        entry = HookLogEntry(
            hook_event=ctx.hook_event,
            session_id=ctx.session_id,
            logged_at=datetime.now().astimezone().replace(microsecond=0).isoformat(),
            exit_code=exit_code,
            stop_hook_active=ctx.stop_hook_active,
            input=_loggable_input(ctx),
            output=output.model_dump(mode="json") if output else None,
            error=redact(error) if error else None,
            process=_snapshot_process(),
        )
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False, default=str)

        with get_hook_log_path().open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except Exception as e:
        # Never let audit logging break the hook
        print(f"[unified_logger] Failed to log {ctx.hook_event} event: {e}", file=sys.stderr)
