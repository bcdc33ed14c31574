"""Client for the TP-Link M7350 mobile router web interface.

This package wraps the modem's JSON web gateway: login, the SMS mailbox
and the configuration of every device module. It also ships a small
``tplink-sms`` command line tool and an MCP (Model Context Protocol)
server for AI assistant integration.

Example usage:
    >>> from tplink_m7350 import Mailbox, TPLinkM7350
    >>> modem = TPLinkM7350('192.168.0.1', password='my_password')
    >>> if modem.login():
    ...     messages = modem.read_sms(Mailbox.INBOX)
    ...     print(f"Found {len(messages)} messages")

For MCP server usage, run:
    $ mcp-tplink-m7350
"""

from .client import (
    AuthenticationError,
    M7350Error,
    Message,
    RequestError,
    ResponseError,
    SessionExpiredError,
    TPLinkM7350,
    post_data,
)
from .constants import (
    APSecurity,
    AuthenticatorAction,
    AuthErrorCode,
    ConfigAction,
    Mailbox,
    MessageAction,
    Module,
    SendMessageStatus,
    WebErrorCode,
)
from .crypto import (
    AESKeyPair,
    CryptoError,
    KeyNotSetError,
    M7350Crypto,
    RSAKeyPair,
    get_md5_hash,
    hexdigest,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "TPLinkM7350",
    "Message",
    "post_data",
    # Crypto
    "M7350Crypto",
    "RSAKeyPair",
    "AESKeyPair",
    "get_md5_hash",
    "hexdigest",
    # Constants
    "Module",
    "APSecurity",
    "AuthenticatorAction",
    "AuthErrorCode",
    "ConfigAction",
    "Mailbox",
    "MessageAction",
    "SendMessageStatus",
    "WebErrorCode",
    # Exceptions
    "M7350Error",
    "RequestError",
    "ResponseError",
    "AuthenticationError",
    "SessionExpiredError",
    "CryptoError",
    "KeyNotSetError",
]
