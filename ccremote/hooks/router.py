"""
Hook dispatcher.

Handles one assistant lifecycle event per process:
- user-prompt-submit: consume remote-mode directives (>remote-on, ...)
- stop: if remote mode is effective for the session, notify and wait for a
  reply, then tell the assistant to continue with it or to stop
- notification: best-effort "attention needed" nudge when remote mode is on

Architecture:
- There is no resident automaton; "state" is whatever the StateStore holds.
  Each invocation is (persisted state, event) -> (new persisted state, output).
- Handlers return CanonicalHookOutput internally; conversion to the client
  JSON format happens only at final output.
- Malformed input is absorbed (no output, exit 0) so a bad payload never
  breaks the host runtime. Store and channel errors are surfaced (exit 1).
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from ccremote.hooks.directives import apply_directive, match_directive
from ccremote.hooks.schemas import (
    CanonicalHookOutput,
    ClaudeHookOutput,
    ClaudePromptHookOutput,
    ClaudeStopHookOutput,
    HookContext,
)
from ccremote.hooks.summary import build_idle_message, build_stop_message
from ccremote.hooks.unified_logger import log_hook_event
from ccremote.lib.channel import NotificationChannel, build_channel
from ccremote.lib.config import RemoteConfig, load_config
from ccremote.lib.decision import Decision, DecisionKind
from ccremote.lib.errors import CcRemoteError, MalformedHookInput
from ccremote.lib.redactor import redact
from ccremote.lib.state_store import StateStore
from ccremote.lib.wait_reply import WaitReplyEngine

logger = logging.getLogger(__name__)

# --- Configuration ---

# Event mapping: CLI names and Claude Code native names -> internal names
EVENT_MAP = {
    "user-prompt-submit": "user-prompt-submit",
    "UserPromptSubmit": "user-prompt-submit",
    "stop": "stop",
    "Stop": "stop",
    "notification": "notification",
    "Notification": "notification",
}

EXIT_OK = 0
EXIT_ERROR = 1


def parse_hook_input(text: str) -> dict[str, Any]:
    """Parse the stdin payload into a dict.

    Raises:
        MalformedHookInput: If the payload is empty, not JSON or not an object.
    """
    if not text or not text.strip():
        raise MalformedHookInput("empty hook input")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedHookInput(f"hook input is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedHookInput(f"hook input must be a JSON object, got {type(data).__name__}")
    return data


class HookDispatcher:
    def __init__(
        self,
        store: StateStore | None = None,
        config_loader: Callable[[], RemoteConfig] = load_config,
        channel_factory: Callable[[RemoteConfig], NotificationChannel] = build_channel,
    ):
        self.store = store or StateStore()
        self.config_loader = config_loader
        self.channel_factory = channel_factory

    def normalize_input(
        self, raw_input: dict[str, Any], event_name: str | None = None
    ) -> HookContext:
        """Create a normalized HookContext from raw input.

        Raises:
            MalformedHookInput: Unknown event, missing session id for a stop,
                missing prompt for a prompt submission, or wrongly typed fields.
        """
        # 1. Determine Event Name (CLI argument wins over payload)
        raw_event = event_name or raw_input.get("hook_event_name")
        if not raw_event:
            raise MalformedHookInput("hook_event_name missing")
        hook_event = EVENT_MAP.get(str(raw_event))
        if hook_event is None:
            raise MalformedHookInput(f"unknown hook event: {raw_event}")

        # 2. Session ID
        session_id = raw_input.get("session_id") or ""
        if not isinstance(session_id, str):
            raise MalformedHookInput("session_id must be a string")
        if hook_event == "stop" and not session_id.strip():
            raise MalformedHookInput("stop event without session_id")

        # 3. Prompt text (CLI contract name, then Claude Code's native name)
        prompt_text = raw_input.get("prompt_text")
        if prompt_text is None:
            prompt_text = raw_input.get("prompt")
        if hook_event == "user-prompt-submit" and not isinstance(prompt_text, str):
            raise MalformedHookInput("prompt submission without prompt_text")

        try:
            return HookContext(
                session_id=session_id,
                hook_event=hook_event,
                prompt_text=prompt_text,
                cwd=raw_input.get("cwd"),
                transcript_path=raw_input.get("transcript_path"),
                stop_hook_active=bool(raw_input.get("stop_hook_active", False)),
                last_assistant_message=raw_input.get("last_assistant_message"),
                notification_message=raw_input.get("message"),
                raw_input=raw_input,
            )
        except ValidationError as e:
            raise MalformedHookInput(f"invalid hook input: {e}") from e

    def dispatch(self, ctx: HookContext) -> CanonicalHookOutput | None:
        """Route the event to its handler. None means "no output"."""
        if ctx.hook_event == "user-prompt-submit":
            return self.handle_prompt_submitted(ctx)
        if ctx.hook_event == "stop":
            return self.handle_task_stopped(ctx)
        return self.handle_notification(ctx)

    # --- Event handlers ---

    def handle_prompt_submitted(self, ctx: HookContext) -> CanonicalHookOutput | None:
        directive = match_directive(ctx.prompt_text)
        if directive is None:
            # Ordinary prompt: no state change, passes through untouched
            return None
        return apply_directive(directive, ctx.session_id, self.store)

    def handle_task_stopped(self, ctx: HookContext) -> CanonicalHookOutput | None:
        mode = self.store.get_effective_mode(ctx.session_id)
        if not mode.enabled:
            return None

        config = self.config_loader()
        recipient = config.require_recipient()
        engine = WaitReplyEngine(self.channel_factory(config))

        decision = engine.exchange(
            recipient,
            build_stop_message(ctx),
            config.wait.timeout,
            session_id=ctx.session_id,
        )
        return self._decision_to_output(ctx, decision, mode.source)

    def _decision_to_output(
        self, ctx: HookContext, decision: Decision, source: str
    ) -> CanonicalHookOutput:
        metadata: dict[str, Any] = {"decision": decision.to_json(), "mode_source": source}

        if decision.kind is DecisionKind.CONTINUE:
            return CanonicalHookOutput(
                verdict="block",
                reason=decision.reply_text,
                system_message="📩 Remote instruction received",
                metadata=metadata,
            )

        if decision.kind is DecisionKind.STOP:
            # Only the session override is dropped; the global flag is untouched
            cleared = self.store.clear_session_override(ctx.session_id)
            metadata["override_cleared"] = cleared
            return CanonicalHookOutput(
                verdict="allow",
                system_message="🛑 Remote mode ended by reply",
                metadata=metadata,
            )

        if decision.kind is DecisionKind.TIMED_OUT:
            return CanonicalHookOutput(
                verdict="allow",
                system_message="⏱️ No remote reply before the timeout; stopping",
                metadata=metadata,
            )

        print(f"WARNING: Waiting for remote reply failed: {decision.cause}", file=sys.stderr)
        return CanonicalHookOutput(
            verdict="allow",
            system_message=f"⚠️ Waiting for remote reply failed: {decision.cause}",
            metadata=metadata,
        )

    def handle_notification(self, ctx: HookContext) -> CanonicalHookOutput | None:
        if not self.store.get_effective_mode(ctx.session_id or None).enabled:
            return None

        # Best-effort nudge: failures are reported but never block the runtime
        try:
            config = self.config_loader()
            recipient = config.require_recipient()
            self.channel_factory(config).send(recipient, redact(build_idle_message(ctx)))
        except CcRemoteError as e:
            print(f"WARNING: Failed to send idle notification: {e}", file=sys.stderr)
            return CanonicalHookOutput(metadata={"notified": False, "error": str(e)})
        return CanonicalHookOutput(metadata={"notified": True})

    # --- Output ---

    def output_for_claude(
        self, result: CanonicalHookOutput, event: str
    ) -> ClaudeHookOutput | None:
        """Format for Claude Code. None when nothing should be printed."""
        if event == "stop":
            output = ClaudeStopHookOutput()
            if result.verdict == "block":
                output.decision = "block"
                output.reason = result.reason
            else:
                output.decision = "approve"
                if result.system_message:
                    output.stopReason = result.system_message
            if result.system_message:
                output.systemMessage = result.system_message
            return output

        if event == "user-prompt-submit":
            if result.verdict != "block":
                return None
            return ClaudePromptHookOutput(
                decision="block",
                reason=result.reason,
                systemMessage=result.system_message,
            )

        return None


def run_hook(
    event_name: str | None,
    stdin_text: str,
    dispatcher: HookDispatcher | None = None,
) -> tuple[str | None, int]:
    """Run one hook invocation.

    Returns:
        (stdout JSON or None, exit code)

    Raises nothing: malformed input is absorbed; CcRemoteError is reported on
    stderr and turned into EXIT_ERROR.
    """
    dispatcher = dispatcher or HookDispatcher()

    try:
        raw_input = parse_hook_input(stdin_text)
        ctx = dispatcher.normalize_input(raw_input, event_name)
    except MalformedHookInput as e:
        logger.warning(f"Ignoring malformed hook input: {e}")
        print(f"WARNING: Ignoring malformed hook input: {e}", file=sys.stderr)
        return None, EXIT_OK

    try:
        result = dispatcher.dispatch(ctx)
    except CcRemoteError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        log_hook_event(ctx, exit_code=EXIT_ERROR, error=str(e))
        return None, EXIT_ERROR

    log_hook_event(ctx, output=result)
    if result is None:
        return None, EXIT_OK

    output = dispatcher.output_for_claude(result, ctx.hook_event)
    if output is None:
        return None, EXIT_OK
    return output.model_dump_json(exclude_none=True), EXIT_OK

