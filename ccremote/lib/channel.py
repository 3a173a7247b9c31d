"""
Notification channels.

The wait-reply engine depends only on the NotificationChannel protocol
(send + blocking receive with timeout); concrete transports are pluggable.

ntfy transport:
- Outbound messages are published to the recipient topic:
      POST {server}/{recipient}
- Replies are read from the reply topic (default "<recipient>-reply") by
  polling the cached-message endpoint:
      GET {server}/{reply_topic}/json?poll=1&since=<cursor>
  The cursor starts at the send time and advances to the id of the last
  message seen, so earlier replies are never picked up twice.

Configuration comes from RemoteConfig.notification (see lib/config.py).
"""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from typing import Any, Protocol

from ccremote.lib.config import RemoteConfig
from ccremote.lib.errors import ChannelReceiveFailed, ChannelSendFailed, ConfigError

logger = logging.getLogger(__name__)

# Per-request HTTP timeout, capped by the time left before the reply deadline
HTTP_TIMEOUT_SECONDS = 10
# Floor for a capped poll; urlopen treats a zero timeout as non-blocking
MIN_POLL_TIMEOUT = 0.1
DEFAULT_TITLE = "Claude Code"


class NotificationChannel(Protocol):
    """External messaging capability: deliver a message, wait for a reply."""

    def send(self, recipient: str, message: str) -> None:
        """Deliver a message. Raises ChannelSendFailed."""
        ...

    def receive(self, recipient: str, timeout: int) -> str | None:
        """Block for a reply from recipient.

        Args:
            recipient: Who the reply is expected from.
            timeout: Seconds to wait; 0 waits indefinitely.

        Returns:
            The reply text, or None if the timeout expired.

        Raises:
            ChannelReceiveFailed: On transport errors (not on timeout).
        """
        ...


class NtfyChannel:
    """ntfy.sh publish/poll transport using urllib."""

    def __init__(
        self,
        server: str,
        reply_topic: str = "",
        token: str = "",
        priority: int = 4,
        tags: str = "robot,ccremote",
        poll_interval: float = 3.0,
        title: str = DEFAULT_TITLE,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.server = server.rstrip("/")
        self.reply_topic = reply_topic
        self.token = token
        self.priority = priority
        self.tags = tags
        self.poll_interval = poll_interval
        self.title = title
        self._sleep = sleep
        self._clock = clock
        # Poll cursor: unix timestamp at send time, then last seen message id
        self._since: str | None = None

    def reply_topic_for(self, recipient: str) -> str:
        return self.reply_topic or f"{recipient}-reply"

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    # --- send ---

    def send(self, recipient: str, message: str) -> None:
        url = f"{self.server}/{urllib.parse.quote(recipient, safe='')}"
        headers = self._headers()
        headers.update(
            {
                "Title": self.title,
                "Priority": str(self.priority),
                "Tags": self.tags,
            }
        )

        since = str(int(time.time()))
        req = urllib.request.Request(
            url, data=message.encode("utf-8"), headers=headers, method="POST"
        )
        try:
            with urllib.request.urlopen(req, timeout=HTTP_TIMEOUT_SECONDS) as response:
                if not 200 <= response.status < 300:
                    raise ChannelSendFailed(f"ntfy returned status {response.status}")
        except urllib.error.HTTPError as e:
            raise ChannelSendFailed(f"ntfy rejected message: HTTP {e.code} {e.reason}") from e
        except urllib.error.URLError as e:
            raise ChannelSendFailed(f"ntfy network error: {e.reason}") from e
        except OSError as e:
            raise ChannelSendFailed(f"ntfy error: {e}") from e

        self._since = since
        logger.debug(f"ntfy message published to {recipient}")

    # --- receive ---

    def _poll_once(self, topic: str, http_timeout: float) -> list[dict[str, Any]] | None:
        """Fetch cached messages on topic newer than the cursor.

        Returns None if the request itself timed out.
        """
        query = urllib.parse.urlencode({"poll": "1", "since": self._since or "all"})
        url = f"{self.server}/{urllib.parse.quote(topic, safe='')}/json?{query}"
        req = urllib.request.Request(url, headers=self._headers(), method="GET")

        try:
            with urllib.request.urlopen(req, timeout=http_timeout) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            raise ChannelReceiveFailed(f"ntfy poll failed: HTTP {e.code} {e.reason}") from e
        except urllib.error.URLError as e:
            if isinstance(e.reason, TimeoutError):
                return None
            raise ChannelReceiveFailed(f"ntfy network error: {e.reason}") from e
        except TimeoutError:
            return None
        except OSError as e:
            raise ChannelReceiveFailed(f"ntfy error: {e}") from e

        messages = []
        for line in body.splitlines():
            if not line.strip():
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError as e:
                raise ChannelReceiveFailed(f"ntfy returned malformed event: {e}") from e
            if isinstance(event, dict) and event.get("event") == "message":
                messages.append(event)
        return messages

    def receive(self, recipient: str, timeout: int) -> str | None:
        topic = self.reply_topic_for(recipient)
        if self._since is None:
            self._since = str(int(time.time()))

        deadline = self._clock() + timeout if timeout > 0 else None
        while True:
            # A single poll never outlasts the reply deadline
            http_timeout = HTTP_TIMEOUT_SECONDS
            if deadline is not None:
                http_timeout = max(min(HTTP_TIMEOUT_SECONDS, deadline - self._clock()), MIN_POLL_TIMEOUT)

            messages = self._poll_once(topic, http_timeout)
            if messages is None:
                logger.debug(f"ntfy poll on {topic} timed out after {http_timeout:g}s")
            elif messages:
                latest = messages[-1]
                self._since = str(latest.get("id") or self._since)
                return str(latest.get("message", ""))

            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    return None
                self._sleep(min(self.poll_interval, remaining))
            else:
                self._sleep(self.poll_interval)


def build_channel(config: RemoteConfig) -> NotificationChannel:
    """Create the configured transport.

    Raises:
        ConfigError: If notification.channel names an unknown transport.
    """
    notification = config.notification
    name = notification.channel.strip().lower()
    if name == "ntfy":
        return NtfyChannel(
            server=notification.server,
            reply_topic=notification.reply_topic,
            token=config.effective_token(),
            priority=notification.priority,
            tags=notification.tags,
            poll_interval=config.wait.poll_interval,
        )
    raise ConfigError(
        f"Unknown notification channel '{notification.channel}'. Supported: ntfy"
    )
