"""Command line tool to send and read SMS through a TP-Link M7350.

Usage:
    tplink-sms -a 192.168.0.1 -p password send +41790000000 "Hello"
    tplink-sms -a 192.168.0.1 -p password read --box outbox

Address, username and password fall back to TPLINK_HOST,
TPLINK_USERNAME and TPLINK_PASSWORD (a .env file is honoured).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .client import DEFAULT_ADDRESS, DEFAULT_USERNAME, M7350Error, TPLinkM7350
from .constants import Mailbox, SendMessageStatus

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tplink-sms",
        description="Send and read SMS through a TP-Link M7350 modem.",
    )
    parser.add_argument("-a", "--address", default=None, help=f"Modem address (default {DEFAULT_ADDRESS})")
    parser.add_argument("-u", "--username", default=None, help=f"Admin username (default {DEFAULT_USERNAME})")
    parser.add_argument("-p", "--password", default=None, help="Admin password")
    parser.add_argument("--encrypted", action="store_true", default=None,
                        help="Use the encrypted transport of newer firmware")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    send_p = sub.add_parser("send", help="Send an SMS")
    send_p.add_argument("number", help="Recipient phone number")
    send_p.add_argument("message", help="Text to send")
    send_p.add_argument("--timeout", type=float, default=60.0,
                        help="Seconds to wait for the modem to finish sending (default 60)")

    read_p = sub.add_parser("read", help="List the messages of a mailbox")
    read_p.add_argument("--box", choices=[box.name.lower() for box in Mailbox], default="inbox",
                        help="Mailbox to read (default inbox)")
    return parser


def _create_client(args: argparse.Namespace) -> TPLinkM7350:
    encrypted = args.encrypted
    if encrypted is None:
        encrypted = os.getenv("TPLINK_ENCRYPTED", "").strip().lower() in ("1", "true", "yes", "on")
    return TPLinkM7350(
        args.address or os.getenv("TPLINK_HOST", DEFAULT_ADDRESS),
        password=args.password if args.password is not None else os.getenv("TPLINK_PASSWORD", ""),
        username=args.username or os.getenv("TPLINK_USERNAME", DEFAULT_USERNAME),
        encrypted=encrypted,
    )


def _send(modem: TPLinkM7350, args: argparse.Namespace) -> int:
    status = modem.send_sms(args.number, args.message, timeout=args.timeout)
    if status == SendMessageStatus.SEND_SUCCESS_SAVE_SUCCESS:
        print(f"Message sent to {args.number}")
        return 0
    print(f"Sending failed: {getattr(status, 'name', status)}", file=sys.stderr)
    return 1


def _read(modem: TPLinkM7350, args: argparse.Namespace) -> int:
    messages = modem.read_sms(Mailbox[args.box.upper()])
    if not messages:
        print("No messages.")
    for message in messages:
        flag = "UNREAD" if message.unread else "read"
        print(f"[{message.index}] [{flag}] {message.timestamp or ''}  {message.number or ''}")
        print(f"  {message.content}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns 0 if execution went fine, 1 otherwise."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    modem = _create_client(args)
    if not modem.login():
        print(f"Could not log in: {modem.last_error}", file=sys.stderr)
        return 1

    try:
        with modem:
            if args.command == "send":
                return _send(modem, args)
            return _read(modem, args)
    except M7350Error as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
