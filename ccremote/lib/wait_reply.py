"""Wait-reply engine: one notify-then-wait exchange with a human.

Flow:
    1. Redact the outbound message
    2. channel.send()      - ChannelSendFailed propagates (fatal for the exchange)
    3. channel.receive()   - blocks up to timeout (0 = indefinitely)
    4. Classify the reply  - stop keyword -> STOP, anything else -> CONTINUE
    5. No reply in time    -> TIMED_OUT
    6. Receive error       -> FAILED (logged with its cause)

No retries happen here; retry policy belongs to the channel or the operator.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ccremote.lib.channel import NotificationChannel
from ccremote.lib.decision import Decision, Exchange, ExchangeStatus
from ccremote.lib.errors import ChannelReceiveFailed
from ccremote.lib.redactor import redact

logger = logging.getLogger(__name__)

# Canonical stop keyword first; matched exactly, case-insensitively
STOP_KEYWORDS: tuple[str, ...] = ("停止", "stop")

REPLY_FOOTER = "Reply with your next instruction to continue, or 「停止」/stop to end remote mode."


def is_stop_reply(reply_text: str) -> bool:
    """Exact case-insensitive match against the stop keywords, ignoring outer whitespace."""
    normalized = reply_text.strip().casefold()
    return any(normalized == keyword.casefold() for keyword in STOP_KEYWORDS)


def classify_reply(reply_text: str) -> Decision:
    if is_stop_reply(reply_text):
        return Decision.stop(reply_text.strip())
    return Decision.proceed(reply_text)


class WaitReplyEngine:
    """Orchestrates a single exchange over a NotificationChannel."""

    def __init__(
        self,
        channel: NotificationChannel,
        redactor: Callable[[str], str] = redact,
    ):
        self.channel = channel
        self.redactor = redactor

    def exchange(
        self,
        recipient: str,
        message: str,
        timeout: int,
        session_id: str | None = None,
    ) -> Decision:
        """Send a redacted message, wait for the reply and classify it.

        Args:
            recipient: Channel-specific recipient id.
            message: Outbound text (redacted before sending).
            timeout: Seconds to wait for a reply; 0 waits indefinitely.
            session_id: Assistant session the exchange belongs to (for logs).

        Returns:
            Decision: CONTINUE(reply), STOP, TIMED_OUT or FAILED(cause), with
            the Exchange record of this cycle attached.

        Raises:
            ChannelSendFailed: If the message could not be delivered.
        """
        if timeout < 0:
            raise ValueError("timeout must be >= 0")

        exchange = Exchange(
            outbound_message=self.redactor(message),
            timeout=timeout,
            session_id=session_id,
        )

        self.channel.send(recipient, exchange.outbound_message)
        logger.info(
            f"Notified {recipient} for session {session_id or '-'}, "
            f"waiting {'indefinitely' if timeout == 0 else f'{timeout}s'} for a reply"
        )

        try:
            reply = self.channel.receive(recipient, timeout)
        except ChannelReceiveFailed as e:
            exchange.status = ExchangeStatus.FAILED
            logger.warning(f"Receiving reply failed for session {session_id or '-'}: {e}")
            decision = Decision.failed(str(e))
        else:
            if reply is None:
                exchange.status = ExchangeStatus.TIMED_OUT
                logger.info(f"No reply within {timeout}s for session {session_id or '-'}")
                decision = Decision.timed_out()
            else:
                exchange.status = ExchangeStatus.REPLIED
                exchange.reply_text = reply
                decision = classify_reply(reply)
                logger.info(
                    f"Reply for session {session_id or '-'} classified as {decision.kind.value}"
                )

        decision.exchange = exchange
        return decision
