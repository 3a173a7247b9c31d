#!/usr/bin/env python3
"""
ccremote command line.

Usage:
    ccremote on [--session-id ID]          Enable remote mode (globally or for one session)
    ccremote off [--session-id ID]         Disable remote mode (globally or for one session)
    ccremote clear --session-id ID         Drop a session override (follow global again)
    ccremote status [--session-id ID]      Show global flag, override and effective mode
    ccremote config [--recipient R ...]    Show or update configuration
    ccremote wait-reply -M TEXT [--to-id ID] [--timeout N]
    ccremote notify -M TEXT [--to-id ID]
    ccremote hook <event-name>             Internal: invoked by the plugin hooks

Exit codes:
    0 success, 1 error, 2 reply timed out, 3 receiving the reply failed
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from ccremote import __version__
from ccremote.hooks.router import run_hook
from ccremote.lib.channel import build_channel
from ccremote.lib.config import load_config, update_config
from ccremote.lib.decision import DecisionKind
from ccremote.lib.errors import CcRemoteError
from ccremote.lib.paths import get_config_file, get_state_file
from ccremote.lib.redactor import redact
from ccremote.lib.state_store import StateStore
from ccremote.lib.wait_reply import WaitReplyEngine

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV_VAR = "CCREMOTE_LOG_LEVEL"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TIMED_OUT = 2
EXIT_RECEIVE_FAILED = 3

RULE = "═" * 39


def configure_logging() -> None:
    """Log to stderr; stdout is reserved for command and hook output."""
    level_name = os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def banner(title: str) -> None:
    print(RULE)
    print(f"  {title}")
    print(RULE)
    print()


def format_timeout(seconds: int) -> str:
    return "wait indefinitely" if seconds == 0 else f"{seconds}s"


# --- Commands ---


def cmd_on(args: argparse.Namespace) -> int:
    store = StateStore()
    if args.session_id:
        store.set_session_override(args.session_id, True)
        banner("✅ Remote mode enabled for session")
        print(f"  Session: {args.session_id}")
        print()
        print("The global setting is unchanged.")
        return EXIT_OK

    store.set_global(True)
    config = load_config()
    banner("✅ Remote mode enabled")
    print(f"  Recipient: {config.notification.recipient or '(not configured)'}")
    print(f"  Channel:   {config.notification.channel}")
    print(f"  State:     {store.state_file}")
    print()
    print("When a task finishes you will be notified and asked for the next instruction.")
    return EXIT_OK


def cmd_off(args: argparse.Namespace) -> int:
    store = StateStore()
    if args.session_id:
        store.set_session_override(args.session_id, False)
        banner("🛑 Remote mode disabled for session")
        print(f"  Session: {args.session_id}")
        print()
        print("Global remote mode is unchanged; new sessions still follow it.")
        return EXIT_OK

    store.set_global(False)
    banner("❌ Remote mode disabled")
    print("Tasks will stop normally without waiting for remote instructions.")
    print("Session overrides set to on still apply to their sessions.")
    return EXIT_OK


def cmd_clear(args: argparse.Namespace) -> int:
    existed = StateStore().clear_session_override(args.session_id)
    if existed:
        print(f"Session {args.session_id} now follows the global setting.")
    else:
        print(f"Session {args.session_id} had no override.")
    return EXIT_OK


def cmd_status(args: argparse.Namespace) -> int:
    store = StateStore()
    state = store.load()

    banner("📊 Remote mode status")
    print(f"  Global:    {'✅ enabled' if state.enabled else '❌ disabled'}")

    if args.session_id:
        mode = store.get_effective_mode(args.session_id)
        if mode.override is not None:
            override = "on" if mode.override.enabled else "off"
            print(f"  Override:  {override} (updated {mode.override.updated_at})")
        else:
            print("  Override:  none")
        print(f"  Effective: {'✅ enabled' if mode.enabled else '❌ disabled'} ({mode.source})")
    elif state.sessions:
        print(f"  Overrides: {len(state.sessions)}")
        for override in state.sessions.values():
            print(f"    {override.session_id}: {'on' if override.enabled else 'off'}")

    config = load_config()
    print()
    print(f"  Recipient: {config.notification.recipient or '(not configured)'}")
    print(f"  Timeout:   {format_timeout(config.wait.timeout)}")
    print()
    print(f"  {'Disable: ccremote off' if state.enabled else 'Enable: ccremote on'}")
    return EXIT_OK


def cmd_config(args: argparse.Namespace) -> int:
    updates = {
        "channel": args.channel,
        "recipient": args.recipient,
        "server": args.server,
        "reply_topic": args.reply_topic,
        "timeout": args.timeout,
        "poll_interval": args.poll_interval,
    }

    if all(value is None for value in updates.values()):
        config = load_config()
        banner("⚙️  Configuration")
        print(f"  Channel:       {config.notification.channel}")
        print(f"  Recipient:     {config.notification.recipient or '(not configured)'}")
        print(f"  Server:        {config.notification.server}")
        print(f"  Reply topic:   {config.notification.reply_topic or '(recipient)-reply'}")
        print(f"  Token:         {'set' if config.effective_token() else 'not set'}")
        print(f"  Timeout:       {format_timeout(config.wait.timeout)}")
        print(f"  Poll interval: {config.wait.poll_interval:g}s")
        print(f"  Config file:   {get_config_file()}")
        print(f"  State file:    {get_state_file()}")
        print()
        print("Update with e.g.:")
        print("  ccremote config --recipient <topic> --timeout 600")
        return EXIT_OK

    update_config(**updates)
    banner("✅ Configuration updated")
    for key, value in updates.items():
        if value is not None:
            print(f"  {key}: {value}")
    return EXIT_OK


def cmd_wait_reply(args: argparse.Namespace) -> int:
    config = load_config()
    recipient = config.require_recipient(args.to_id)
    timeout = config.wait.timeout if args.timeout is None else args.timeout

    engine = WaitReplyEngine(build_channel(config))
    decision = engine.exchange(recipient, args.message, timeout)

    if decision.kind is DecisionKind.TIMED_OUT:
        print(f"Timed out waiting for a reply ({format_timeout(timeout)})", file=sys.stderr)
        return EXIT_TIMED_OUT
    if decision.kind is DecisionKind.FAILED:
        print(f"Receiving the reply failed: {decision.cause}", file=sys.stderr)
        return EXIT_RECEIVE_FAILED

    print(decision.reply_text)
    return EXIT_OK


def cmd_notify(args: argparse.Namespace) -> int:
    config = load_config()
    recipient = config.require_recipient(args.to_id)
    build_channel(config).send(recipient, redact(args.message))
    print("✅ Message sent")
    return EXIT_OK


def cmd_hook(args: argparse.Namespace) -> int:
    stdin_text = "" if sys.stdin.isatty() else sys.stdin.read()
    output, exit_code = run_hook(args.event_name, stdin_text)
    if output:
        print(output)
    return exit_code


# --- Parser ---


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ccremote",
        description="Remote mode for coding-assistant sessions",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_on = subparsers.add_parser("on", help="Enable remote mode")
    p_on.add_argument("--session-id", help="Only enable for this session")
    p_on.set_defaults(func=cmd_on)

    p_off = subparsers.add_parser("off", help="Disable remote mode")
    p_off.add_argument("--session-id", help="Only disable for this session")
    p_off.set_defaults(func=cmd_off)

    p_clear = subparsers.add_parser("clear", help="Remove a session override")
    p_clear.add_argument("--session-id", required=True)
    p_clear.set_defaults(func=cmd_clear)

    p_status = subparsers.add_parser("status", help="Show remote mode status")
    p_status.add_argument("--session-id", help="Resolve the effective mode for this session")
    p_status.set_defaults(func=cmd_status)

    p_config = subparsers.add_parser("config", help="Show or update configuration")
    p_config.add_argument("--channel", help="Notification channel (ntfy)")
    p_config.add_argument("--recipient", help="Recipient id (ntfy topic)")
    p_config.add_argument("--server", help="Channel server URL")
    p_config.add_argument("--reply-topic", help="Topic replies are read from")
    p_config.add_argument("--timeout", type=non_negative_int, help="Reply timeout in seconds, 0 = indefinitely")
    p_config.add_argument("--poll-interval", type=float, help="Seconds between reply polls")
    p_config.set_defaults(func=cmd_config)

    p_wait = subparsers.add_parser("wait-reply", help="Send a message and wait for the reply")
    p_wait.add_argument("-M", "--message", required=True)
    p_wait.add_argument("--to-id", help="Override the configured recipient")
    p_wait.add_argument("-t", "--timeout", type=non_negative_int, help="Override the configured timeout")
    p_wait.set_defaults(func=cmd_wait_reply)

    p_notify = subparsers.add_parser("notify", help="Send a message without waiting")
    p_notify.add_argument("-M", "--message", required=True)
    p_notify.add_argument("--to-id", help="Override the configured recipient")
    p_notify.set_defaults(func=cmd_notify)

    p_hook = subparsers.add_parser("hook", help="Handle a hook event (internal)")
    p_hook.add_argument("event_name", help="user-prompt-submit, stop or notification")
    p_hook.set_defaults(func=cmd_hook)

    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except CcRemoteError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
