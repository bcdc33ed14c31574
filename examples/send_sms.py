#!/usr/bin/env python3
"""Send a text message through a TP-Link M7350 modem.

Usage:
    python send_sms.py +41790000000 "Running late, see you at 8"
    python send_sms.py 5555 BALANCE
"""

import os
import sys
from dotenv import load_dotenv

from tplink_m7350 import SendMessageStatus, TPLinkM7350

load_dotenv()

def main():
    # Parse command line arguments
    if len(sys.argv) < 3:
        print("Usage: python send_sms.py <phone_number> <message>")
        print()
        print("Arguments:")
        print("  phone_number - Recipient number, national or international format")
        print("  message      - Text to send (quote it if it contains spaces)")
        return

    phone_number = sys.argv[1]
    message = " ".join(sys.argv[2:])

    host = os.getenv("TPLINK_HOST", "192.168.0.1")
    password = os.getenv("TPLINK_PASSWORD")

    if not password:
        print("Error: TPLINK_PASSWORD not set")
        return

    print(f"Connecting to modem at {host}...")
    client = TPLinkM7350(host, password, encrypted=os.getenv("TPLINK_ENCRYPTED") == "1")

    if not client.login():
        print(f"Failed to login to modem: {client.last_error}")
        return

    try:
        print(f"Sending {len(message)} characters to {phone_number}...")
        status = client.send_sms(phone_number, message)

        if status == SendMessageStatus.SEND_SUCCESS_SAVE_SUCCESS:
            print("Message sent and saved to the outbox")
        elif status == SendMessageStatus.SEND_SUCCESS_SAVE_FAIL:
            print("Message sent, but the modem could not save a copy")
        elif status == SendMessageStatus.SENDING:
            print("Modem is still sending, check the outbox later")
        else:
            print(f"Failed to send message: {getattr(status, 'name', status)}")

    finally:
        client.logout()

if __name__ == "__main__":
    main()
