#!/usr/bin/env python3
"""List the messages stored in the inbox of a TP-Link M7350 modem."""

import os
import json
from dotenv import load_dotenv

from tplink_m7350 import Mailbox, TPLinkM7350

# Load environment variables from .env file
load_dotenv()

def main():
    # Get modem configuration from environment
    host = os.getenv("TPLINK_HOST", "192.168.0.1")
    password = os.getenv("TPLINK_PASSWORD")

    if not password:
        print("Error: TPLINK_PASSWORD not set in environment or .env file")
        print("Create a .env file with:")
        print("  TPLINK_HOST=192.168.0.1")
        print("  TPLINK_PASSWORD=your_password")
        return

    print(f"Connecting to modem at {host}...")

    client = TPLinkM7350(host, password, encrypted=os.getenv("TPLINK_ENCRYPTED") == "1")

    if not client.login():
        print(f"Failed to login to modem: {client.last_error}")
        return

    try:
        print("\nInbox:")
        print("-" * 80)

        messages = client.read_sms(Mailbox.INBOX)

        if not messages:
            print("No messages found")
        else:
            print(f"{'Index':<6} {'From':<18} {'Received':<22} {'Text'}")
            print("-" * 80)

            for message in messages:
                marker = "*" if message.unread else " "
                print(f"{message.index:<5}{marker} "
                      f"{message.number or 'N/A':<18} "
                      f"{message.timestamp or 'N/A':<22} "
                      f"{message.content[:30]}")

        # Also print as JSON for debugging
        print("\n\nRaw JSON output:")
        print(json.dumps([m.to_dict() for m in messages], indent=2))

    finally:
        client.logout()
        print("\nDisconnected from modem")

if __name__ == "__main__":
    main()
