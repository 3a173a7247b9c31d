from typing import Any, Literal

from pydantic import BaseModel, Field

# --- Input Schemas (Context) ---


class HookContext(BaseModel):
    """
    Normalized input context for one hook invocation.

    Built once by HookDispatcher.normalize_input() from the raw stdin object.
    """

    # Core Identity
    session_id: str = Field(..., description="Opaque session id issued by the assistant runtime.")
    hook_event: Literal["user-prompt-submit", "stop", "notification"] = Field(
        ..., description="The normalized event name."
    )

    # Event Data
    prompt_text: str | None = None
    cwd: str | None = None
    transcript_path: str | None = None
    stop_hook_active: bool = False
    last_assistant_message: str | None = None
    notification_message: str | None = None

    # Raw Input (for logging)
    raw_input: dict[str, Any] = Field(default_factory=dict)

    @property
    def project(self) -> str:
        """Project directory name, or "unknown"."""
        if not self.cwd:
            return "unknown"
        name = self.cwd.rstrip("/").rsplit("/", 1)[-1]
        return name or "unknown"


# --- Claude Code Hook Schemas ---


class ClaudeStopHookOutput(BaseModel):
    """
    Output structure for the Claude 'Stop' event.

    decision="block" keeps the assistant working with `reason` as its next
    instruction; "approve" lets it stop.
    """

    decision: Literal["approve", "block"] | None = None
    reason: str | None = None
    stopReason: str | None = None
    systemMessage: str | None = None


class ClaudePromptHookOutput(BaseModel):
    """
    Output structure for the Claude 'UserPromptSubmit' event.

    decision="block" consumes the prompt (it is not forwarded to the model)
    and shows `reason` to the user.
    """

    decision: Literal["block"] | None = None
    reason: str | None = None
    systemMessage: str | None = None


ClaudeHookOutput = ClaudeStopHookOutput | ClaudePromptHookOutput


# --- Canonical Internal Schema ---


class CanonicalHookOutput(BaseModel):
    """
    Internal normalized result produced by the dispatcher's event handlers.
    Converted to the client format only at final output.
    """

    verdict: Literal["allow", "block"] = "allow"
    reason: str | None = None
    system_message: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
