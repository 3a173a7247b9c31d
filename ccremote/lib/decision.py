from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DecisionKind(Enum):
    """Outcome of one notify-then-wait exchange."""

    CONTINUE = "continue"
    STOP = "stop"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class ExchangeStatus(Enum):
    PENDING = "pending"
    REPLIED = "replied"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class Exchange:
    """One send-wait-classify cycle. Lives only for a single engine call."""

    outbound_message: str
    timeout: int
    session_id: str | None = None
    status: ExchangeStatus = ExchangeStatus.PENDING
    reply_text: str | None = None

    def to_json(self) -> dict[str, Any]:
        # Only the size of the outbound text is logged
        return {
            "status": self.status.value,
            "timeout": self.timeout,
            "session_id": self.session_id,
            "outbound_chars": len(self.outbound_message),
        }


@dataclass
class Decision:
    """Transport-agnostic result of an exchange.

    CONTINUE carries the reply as the next instruction. STOP, TIMED_OUT and
    FAILED all end the remote loop but are reported differently.

    ``exchange`` is the record of the cycle that produced the decision; it is
    attached by WaitReplyEngine and ignored when comparing decisions.
    """

    kind: DecisionKind
    reply_text: str | None = None
    cause: str | None = None
    exchange: Exchange | None = field(default=None, compare=False)

    @classmethod
    def proceed(cls, reply_text: str) -> "Decision":
        """Factory method for CONTINUE."""
        return cls(kind=DecisionKind.CONTINUE, reply_text=reply_text)

    @classmethod
    def stop(cls, reply_text: str) -> "Decision":
        """Factory method for STOP."""
        return cls(kind=DecisionKind.STOP, reply_text=reply_text)

    @classmethod
    def timed_out(cls) -> "Decision":
        """Factory method for TIMED_OUT."""
        return cls(kind=DecisionKind.TIMED_OUT)

    @classmethod
    def failed(cls, cause: str) -> "Decision":
        """Factory method for FAILED (receive error distinct from timeout)."""
        return cls(kind=DecisionKind.FAILED, cause=cause)

    @property
    def ends_loop(self) -> bool:
        return self.kind is not DecisionKind.CONTINUE

    def to_json(self) -> dict[str, Any]:
        """Serialize for the hook log."""
        return {
            "kind": self.kind.value,
            "reply_text": self.reply_text,
            "cause": self.cause,
            "exchange": self.exchange.to_json() if self.exchange else None,
        }
