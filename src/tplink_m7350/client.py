"""TP-Link M7350 web gateway client.

The modem exposes two JSON endpoints:

- ``/cgi-bin/auth_cgi`` for the authenticator module (login, logout,
  password change)
- ``/cgi-bin/web_cgi`` for every other module

Each request is a JSON object ``{"module": ..., "action": ..., "token":
...}`` plus module specific fields, and each reply carries an integer
``result``. Logging in is a two step exchange:

1. ``{"module": "authenticator", "action": 0}`` returns a ``nonce``
2. ``{"module": "authenticator", "action": 1, "digest": md5("password:nonce")}``
   returns the session ``token``

On newer firmware both steps and every later request are wrapped by
:class:`~tplink_m7350.crypto.M7350Crypto`; pass ``encrypted=True``.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from types import TracebackType
from typing import Any, Dict, Iterable, List, Optional, Type, Union

import httpx

from .constants import (
    APBridgeAction,
    AuthenticatorAction,
    AuthErrorCode,
    ConfigAction,
    LogAction,
    Mailbox,
    MessageAction,
    Module,
    PortTriggeringAction,
    RebootAction,
    SendMessageStatus,
    VirtualServerAction,
    WebErrorCode,
    to_enum,
)
from .crypto import CryptoError, M7350Crypto, get_md5_hash

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "192.168.0.1"
DEFAULT_USERNAME = "admin"
DEFAULT_TIMEOUT = 10.0

# Page size used by the web interface for every paged list
AMOUNT_PER_PAGE = 8

AUTH_PATH = "/cgi-bin/auth_cgi"
WEB_PATH = "/cgi-bin/web_cgi"

SESSION_ERROR_CODES = (WebErrorCode.KICKED_OUT, WebErrorCode.TOKEN_ERROR)


class M7350Error(Exception):
    """Base exception for modem client errors."""

    pass


class RequestError(M7350Error):
    """Raised when a request cannot be completed (network, HTTP status, body)."""

    def __init__(self, url: str, cause: Exception) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Request to {url} failed: {cause}")


class ResponseError(M7350Error):
    """Raised when the modem reply lacks a field the operation depends on."""

    pass


class AuthenticationError(M7350Error):
    """Raised when an operation needs a session and logging in fails."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        self.code = code
        super().__init__(message)


class SessionExpiredError(M7350Error):
    """Raised when the modem invalidated the session token.

    ``code`` is ``WebErrorCode.KICKED_OUT`` or ``WebErrorCode.TOKEN_ERROR``,
    or None when an encrypted reply could not be decrypted with the
    session keys.
    """

    def __init__(self, code: Optional[int] = None) -> None:
        self.code = code
        if code is None:
            reason = "reply could not be decrypted"
        else:
            reason = f"result={to_enum(WebErrorCode, code)!r}"
        super().__init__(f"Session expired ({reason})")


def _json_value(value: Any) -> Any:
    """Unwrap enum members so the request serializes with plain values."""
    if isinstance(value, Module):
        return value.value
    if isinstance(value, int) and not isinstance(value, bool):
        return int(value)
    return value


def post_request(
    url: str,
    payload: Dict[str, Any],
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """POST a JSON payload and return the raw reply body.

    Raises:
        RequestError: On network errors and non-2xx HTTP statuses.
    """
    base = url.split("/cgi-bin/", 1)[0]
    body = json.dumps(payload, separators=(",", ":"))
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            resp = client.post(
                url,
                content=body,
                headers={
                    "Content-Type": "application/json",
                    "Referer": f"{base}/",
                },
            )
            resp.raise_for_status()
            return resp.text
    except httpx.HTTPError as e:
        raise RequestError(url, e) from e


def parse_response(url: str, text: str) -> Dict[str, Any]:
    """Parse a plain reply body as a JSON object.

    Some firmware answers the login challenge with base64 encoded JSON,
    so that form is accepted too.

    Raises:
        RequestError: If the body is not a JSON object.
    """
    try:
        result = json.loads(text)
    except json.JSONDecodeError as e:
        try:
            result = json.loads(base64.b64decode(text.strip(), validate=True))
        except (binascii.Error, ValueError):
            raise RequestError(url, e) from e
    if not isinstance(result, dict):
        raise RequestError(url, ValueError("reply is not a JSON object"))
    return result


def post_data(
    url: str,
    payload: Dict[str, Any],
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    """POST a JSON payload to the given URL and return the parsed JSON reply.

    Args:
        url: URL to request.
        payload: Request object, serialized as JSON.
        timeout: HTTP timeout in seconds.
        transport: Optional httpx transport (used to fake the modem in tests).

    Raises:
        RequestError: On network errors, non-2xx statuses or non-JSON bodies.
    """
    return parse_response(url, post_request(url, payload, timeout=timeout, transport=transport))


def format_send_time(now: Optional[datetime] = None) -> str:
    """Format a timestamp the way the web UI stamps outgoing messages."""
    return (now or datetime.now()).strftime("%Y,%m,%d,%H,%M,%S")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


@dataclass
class Message:
    """A message stored in one of the modem mailboxes."""

    index: int
    box: Union[Mailbox, int] = Mailbox.INBOX
    number: Optional[str] = None
    content: str = ""
    timestamp: Optional[str] = None
    unread: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], box: Union[Mailbox, int] = Mailbox.INBOX) -> Message:
        """Build a message from a ``messageList`` entry.

        Received messages carry ``from``/``receivedTime``, sent ones
        ``to``/``sendTime``.
        """
        number = data.get("from", data.get("to"))
        if isinstance(number, list):
            number = ";".join(str(n) for n in number)
        try:
            index = int(data["index"])
        except (KeyError, TypeError, ValueError):
            raise ResponseError(f"Message entry lacks a valid index: {data!r}") from None
        return cls(
            index=index,
            box=to_enum(Mailbox, int(box)),
            number=str(number) if number is not None else None,
            content=str(data.get("content", data.get("textContent", ""))),
            timestamp=data.get("receivedTime", data.get("sendTime")),
            unread=_as_bool(data.get("unread", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        box = self.box.name.lower() if isinstance(self.box, Mailbox) else self.box
        return {
            "index": self.index,
            "box": box,
            "number": self.number,
            "content": self.content,
            "timestamp": self.timestamp,
            "unread": self.unread,
        }


class TPLinkM7350:
    """Client for the TP-Link M7350 web gateway.

    Every operation logs in on first use. Getters return the modem reply
    as a dictionary, setters and actions return True when the modem
    answered ``result == 0``.

    Attributes:
        username: Modem admin username.
        password: Modem admin password.
        encrypted: Use the newer firmware's encrypted transport.

    Example:
        >>> with TPLinkM7350("192.168.0.1", password="admin") as modem:
        ...     for message in modem.read_sms(Mailbox.INBOX):
        ...         print(message.number, message.content)
    """

    def __init__(
        self,
        address: str = DEFAULT_ADDRESS,
        password: str = "",
        username: str = DEFAULT_USERNAME,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        encrypted: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize the modem client.

        Args:
            address: Modem IP address or host name, optionally with scheme.
            password: Modem admin password.
            username: Modem admin username (default: admin).
            timeout: HTTP request timeout in seconds.
            encrypted: Wrap requests the way newer firmware expects.
            transport: Optional httpx transport for every request.
        """
        self.username = username
        self.password = password
        self.encrypted = encrypted
        self._timeout = timeout
        self._transport = transport
        self._crypto = M7350Crypto()
        self._token: Optional[str] = None
        self._last_error: Optional[str] = None
        self._last_auth_code: Optional[int] = None
        self.base_url = ""
        self.set_address(address)

    def __enter__(self) -> TPLinkM7350:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self.is_authenticated:
            self.logout()

    @property
    def auth_url(self) -> str:
        """URL of the authenticator endpoint."""
        return f"{self.base_url}{AUTH_PATH}"

    @property
    def web_url(self) -> str:
        """URL of the web gateway endpoint."""
        return f"{self.base_url}{WEB_PATH}"

    @property
    def token(self) -> Optional[str]:
        """Current session token, None when logged out."""
        return self._token

    @property
    def is_authenticated(self) -> bool:
        """Check if the client holds a session token."""
        return self._token is not None

    @property
    def last_error(self) -> Optional[str]:
        """Reason of the last failed login, if any."""
        return self._last_error

    def set_address(self, address: str) -> None:
        """Set modem IP address or domain name. Drops the current session."""
        address = address.strip().rstrip("/")
        self.base_url = address if "://" in address else f"http://{address}"
        self._clear_session()

    def set_password(self, password: str) -> None:
        """Set modem admin password. Drops the current session."""
        self.password = password
        self._clear_session()

    def _clear_session(self) -> None:
        self._token = None
        self._crypto.reset()

    # Transport

    def build_request(
        self,
        module: Union[Module, str],
        action: int,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Build a request object with the commonly required fields.

        Returns:
            ``{"module": ..., "action": ..., "token": ...}`` merged with ``data``.
        """
        request: Dict[str, Any] = {
            "module": _json_value(module),
            "action": _json_value(action),
            "token": self._token or "",
        }
        if data:
            request.update({key: _json_value(value) for key, value in data.items()})
        return request

    def _post(self, url: str, request: Dict[str, Any], include_aes_key: bool = False) -> Dict[str, Any]:
        """Send a request, wrapping it when the encrypted transport is set up."""
        if not (self.encrypted and self._crypto.is_ready):
            return post_data(url, request, timeout=self._timeout, transport=self._transport)

        body = self._crypto.encrypt_payload(request, include_aes_key=include_aes_key)
        text = post_request(url, body, timeout=self._timeout, transport=self._transport)
        try:
            return self._crypto.decrypt_payload(text)
        except CryptoError as e:
            logger.warning("Could not decrypt reply from %s: %s", url, e)
            self._clear_session()
            raise SessionExpiredError() from e

    def _setup_crypto(self, challenge: Dict[str, Any]) -> None:
        """Prepare the encrypted transport from the login challenge."""
        rsa_mod = challenge.get("rsaMod")
        seq = challenge.get("seqNum")
        if not rsa_mod or seq is None:
            raise ResponseError("Login challenge lacks rsaMod/seqNum; is the firmware encrypted?")
        self._crypto.set_rsa_key(rsa_mod, challenge.get("rsaPubKey"))
        self._crypto.set_sequence(int(seq))
        self._crypto.hash_password(self.password, self.username)
        self._crypto.generate_aes_key()

    def _ensure_login(self) -> None:
        if not self.is_authenticated and not self.login():
            raise AuthenticationError(self._last_error or "Login failed", self._last_auth_code)

    def _check_session(self, reply: Dict[str, Any]) -> None:
        result = reply.get("result")
        if result in SESSION_ERROR_CODES:
            logger.warning("Session invalidated by modem (result=%s)", result)
            self._clear_session()
            raise SessionExpiredError(result)

    def execute(
        self,
        module: Union[Module, str],
        action: int,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send an authenticated request to the web gateway and return the reply.

        Args:
            module: Name of the module to query.
            action: Code of the action to perform.
            data: Extra request fields.

        Raises:
            AuthenticationError: If logging in fails.
            SessionExpiredError: If the modem rejected the session token.
            RequestError: If the request itself fails.
        """
        self._ensure_login()
        request = self.build_request(module, action, data)
        logger.debug("Request %s/%d", request["module"], request["action"])
        reply = self._post(self.web_url, request)
        self._check_session(reply)
        return reply

    def _run_action(
        self,
        module: Union[Module, str],
        action: int,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        reply = self.execute(module, action, data)
        success = reply.get("result") == WebErrorCode.SUCCESS
        if not success:
            logger.warning(
                "Modem rejected %s/%d (result=%s)",
                _json_value(module), int(action), reply.get("result"),
            )
        return success

    def get_data_array(
        self,
        module: Union[Module, str],
        action: int,
        field: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Retrieve a paged list, following pages until ``totalNumber`` items are read.

        Raises:
            ResponseError: If the first page does not report ``totalNumber``.
        """
        request_data: Dict[str, Any] = dict(data or {})
        request_data["amountPerPage"] = AMOUNT_PER_PAGE
        request_data["pageNumber"] = 1

        reply = self.execute(module, action, request_data)
        if "totalNumber" not in reply:
            raise ResponseError(f"Reply for {_json_value(module)}/{int(action)} lacks totalNumber")

        remaining = int(reply["totalNumber"])
        items: List[Dict[str, Any]] = []
        while True:
            items.extend(reply.get(field) or [])
            remaining -= AMOUNT_PER_PAGE
            if remaining <= 0:
                break
            request_data["pageNumber"] += 1
            reply = self.execute(module, action, request_data)
        logger.debug("Fetched %d %s entries", len(items), field)
        return items

    # Authenticator

    def login(self) -> bool:
        """Log in to the modem web interface.

        Returns:
            True if login successful, False otherwise (see ``last_error``).
        """
        self._clear_session()
        self._last_auth_code = None
        try:
            challenge = self._post(self.auth_url, self.build_request(Module.AUTHENTICATOR, AuthenticatorAction.LOAD))
            nonce = challenge.get("nonce")
            if not nonce:
                self._last_error = "Modem did not return a login nonce"
                logger.error("Login failed for %s: no nonce", self.base_url)
                return False

            if self.encrypted:
                self._setup_crypto(challenge)

            digest = get_md5_hash(f"{self.password}:{nonce}")
            request = self.build_request(Module.AUTHENTICATOR, AuthenticatorAction.LOGIN, {"digest": digest})
            reply = self._post(self.auth_url, request, include_aes_key=True)
        except (M7350Error, CryptoError, ValueError) as e:
            self._clear_session()
            self._last_error = f"Login failed: {e}"
            logger.error("Login failed for %s: %s", self.base_url, e)
            return False

        token = reply.get("token")
        if not token:
            self._clear_session()
            result = reply.get("result")
            code = to_enum(AuthErrorCode, result) if isinstance(result, int) else result
            if isinstance(code, int):
                self._last_auth_code = code
            self._last_error = f"Login rejected by modem (result={code!r})"
            logger.error("Login rejected for %s (result=%s)", self.base_url, result)
            return False

        self._token = token
        self._last_error = None
        logger.info("Logged in to %s", self.base_url)
        return True

    def logout(self) -> bool:
        """Log out from the modem web interface.

        The local session is dropped whatever the modem answers.

        Returns:
            True if the modem acknowledged the logout.
        """
        if not self.is_authenticated:
            return True
        try:
            reply = self._post(self.auth_url, self.build_request(Module.AUTHENTICATOR, AuthenticatorAction.LOGOUT))
            success = reply.get("result") == AuthErrorCode.SUCCESS
            logger.info("Logged out from %s", self.base_url)
        except M7350Error as e:
            logger.debug("Error during logout: %s", e)
            success = False
        self._clear_session()
        return success

    def get_login_attempt_count(self) -> Dict[str, Any]:
        """Get number of failed login attempts."""
        request = self.build_request(Module.AUTHENTICATOR, AuthenticatorAction.GET_ATTEMPT)
        return self._post(self.auth_url, request)

    def change_password(self, old_password: str, new_password: str) -> bool:
        """Change the admin password; the stored password follows on success."""
        self._ensure_login()
        request = self.build_request(
            Module.AUTHENTICATOR,
            AuthenticatorAction.UPDATE,
            {"password": old_password, "newPassword": new_password},
        )
        reply = self._post(self.auth_url, request)
        self._check_session(reply)
        if reply.get("result") != AuthErrorCode.SUCCESS:
            logger.warning("Password change rejected (result=%s)", reply.get("result"))
            return False
        self.password = new_password
        logger.info("Admin password changed")
        return True

    # Generic configuration

    def get_config(self, module: Union[Module, str]) -> Dict[str, Any]:
        """Retrieve the configuration of any module."""
        return self.execute(module, ConfigAction.GET_CONFIG)

    def set_config(self, module: Union[Module, str], data: Dict[str, Any]) -> bool:
        """Write configuration settings of any module."""
        return self._run_action(module, ConfigAction.SET_CONFIG, data)

    def get_alg_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.ALG)

    def set_alg_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.ALG, data)

    def get_ap_bridge_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.AP_BRIDGE)

    def set_ap_bridge_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.AP_BRIDGE, data)

    def connect_ap(self, data: Dict[str, Any]) -> bool:
        """Connect the bridge to an access point.

        Args:
            data: ``{"apSSID": str, "apPassword": str, "apSecurity":
                APSecurity value, "ap8021xType": str}``.
        """
        return self._run_action(Module.AP_BRIDGE, APBridgeAction.CONNECT_AP, data)

    def scan_ap(self) -> Dict[str, Any]:
        return self.execute(Module.AP_BRIDGE, APBridgeAction.SCAN_AP)

    def check_ap_connection_status(self) -> Dict[str, Any]:
        return self.execute(Module.AP_BRIDGE, APBridgeAction.CHECK_CONNECTION_STATUS)

    def get_connected_devices(self) -> Dict[str, Any]:
        return self.get_config(Module.CONNECTED_DEVICES)

    def get_dmz_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.DMZ)

    def set_dmz_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.DMZ, data)

    def get_flow_stat_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.FLOW_STAT)

    def set_flow_stat_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.FLOW_STAT, data)

    def get_lan_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.LAN)

    def set_lan_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.LAN, data)

    def get_mac_filters(self) -> Dict[str, Any]:
        return self.get_config(Module.MAC_FILTERS)

    def set_mac_filters(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.MAC_FILTERS, data)

    def get_port_triggering_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.PORT_TRIGGERING)

    def set_port_triggering_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.PORT_TRIGGERING, data)

    def delete_port_triggering_entry(self, data: Dict[str, Any]) -> bool:
        return self._run_action(Module.PORT_TRIGGERING, PortTriggeringAction.DELETE_ENTRY, data)

    def get_power_save_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.POWER_SAVE)

    def set_power_save_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.POWER_SAVE, data)

    def get_sim_lock_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.SIM_LOCK)

    def get_status(self) -> Dict[str, Any]:
        return self.get_config(Module.STATUS)

    def get_storage_share_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.STORAGE_SHARE)

    def set_storage_share_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.STORAGE_SHARE, data)

    def get_time_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.TIME)

    def set_time_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.TIME, data)

    def get_firmware_update_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.UPDATE)

    def get_upnp_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.UPNP)

    def set_upnp_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.UPNP, data)

    def get_virtual_server_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.VIRTUAL_SERVER)

    def set_virtual_server_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.VIRTUAL_SERVER, data)

    def delete_virtual_server_entry(self, data: Dict[str, Any]) -> bool:
        return self._run_action(Module.VIRTUAL_SERVER, VirtualServerAction.DELETE_ENTRY, data)

    def get_voice_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.VOICE)

    def get_wan_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.WAN)

    def set_wan_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.WAN, data)

    def get_web_server_info(self) -> Dict[str, Any]:
        return self.get_config(Module.WEB_SERVER)

    def get_wlan_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.WLAN)

    def set_wlan_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.WLAN, data)

    def get_wps_settings(self) -> Dict[str, Any]:
        return self.get_config(Module.WPS)

    def set_wps_settings(self, data: Dict[str, Any]) -> bool:
        return self.set_config(Module.WPS, data)

    # Device actions

    def reboot(self) -> bool:
        """Reboot the modem."""
        success = self._run_action(Module.REBOOT, RebootAction.REBOOT)
        if success:
            logger.info("Modem reboot initiated")
        return success

    def shutdown(self) -> bool:
        """Power the modem off."""
        success = self._run_action(Module.REBOOT, RebootAction.SHUTDOWN)
        if success:
            logger.info("Modem shutdown initiated")
        return success

    def restore_defaults(self) -> bool:
        """Restore factory defaults."""
        return self._run_action(Module.RESTORE_DEFAULTS, 0)

    def get_log(self) -> List[Dict[str, Any]]:
        """Retrieve every modem log entry."""
        return self.get_data_array(Module.LOG, LogAction.GET_LOG, "logList", {"type": 0, "level": 0})

    def clear_log(self) -> bool:
        return self._run_action(Module.LOG, LogAction.CLEAR_LOG)

    # Messages

    def get_message_settings(self) -> Dict[str, Any]:
        return self.execute(Module.MESSAGE, MessageAction.GET_CONFIG)

    def set_message_settings(self, data: Dict[str, Any]) -> bool:
        return self._run_action(Module.MESSAGE, MessageAction.SET_CONFIG, data)

    def read_sms(self, box: Union[Mailbox, int] = Mailbox.INBOX) -> List[Message]:
        """Read every message stored in the given mailbox."""
        entries = self.get_data_array(Module.MESSAGE, MessageAction.READ_MSG, "messageList", {"box": int(box)})
        return [Message.from_dict(entry, box) for entry in entries]

    def get_send_status(self) -> Union[SendMessageStatus, int]:
        """Query the status of the last message sent.

        Raises:
            ResponseError: If the reply carries no integer result.
        """
        reply = self.execute(Module.MESSAGE, MessageAction.GET_SEND_STATUS)
        result = reply.get("result")
        if not isinstance(result, int):
            raise ResponseError("Send status reply lacks a result code")
        return to_enum(SendMessageStatus, result)

    def send_sms(
        self,
        phone_number: str,
        message: str,
        *,
        poll_interval: float = 1.0,
        timeout: float = 60.0,
    ) -> Union[SendMessageStatus, int]:
        """Send a message and wait until the modem stops reporting it as sending.

        Args:
            phone_number: Recipient number.
            message: Text to send.
            poll_interval: Seconds between two status queries.
            timeout: Seconds to wait before giving up on a pending send.

        Returns:
            The final send status. ``SENDING`` means the timeout was hit;
            a code rejected by the send request itself is returned as is.
        """
        payload = {
            "sendMessage": {
                "to": phone_number,
                "textContent": message,
                "sendTime": format_send_time(),
            }
        }
        reply = self.execute(Module.MESSAGE, MessageAction.SEND_MSG, payload)
        result = reply.get("result")
        if not isinstance(result, int):
            raise ResponseError("Send reply lacks a result code")
        if result != WebErrorCode.SUCCESS:
            logger.warning("Modem rejected message to %s (result=%s)", phone_number, result)
            return to_enum(SendMessageStatus, result)

        deadline = time.monotonic() + timeout
        status = self.get_send_status()
        while status == SendMessageStatus.SENDING:
            if time.monotonic() >= deadline:
                logger.warning("Message to %s still sending after %.0fs", phone_number, timeout)
                break
            time.sleep(poll_interval)
            status = self.get_send_status()

        logger.info("Message to %s finished with status %r", phone_number, status)
        return status

    def save_sms(self, phone_number: str, message: str) -> bool:
        """Store a message in the drafts without sending it."""
        payload = {
            "saveMessage": {
                "to": phone_number,
                "textContent": message,
                "sendTime": format_send_time(),
            }
        }
        return self._run_action(Module.MESSAGE, MessageAction.SAVE_MSG, payload)

    def delete_sms(self, box: Union[Mailbox, int], indices: Iterable[int]) -> bool:
        """Delete messages from a mailbox.

        Args:
            box: Mailbox holding the messages.
            indices: Message indices as returned by :meth:`read_sms`.
        """
        index_list = [int(i) for i in indices]
        if not index_list:
            return True
        return self._run_action(
            Module.MESSAGE,
            MessageAction.DEL_MSG,
            {"box": int(box), "deleteMessages": index_list},
        )

    def mark_sms_read(self, index: int) -> bool:
        """Mark an inbox message as read."""
        return self._run_action(Module.MESSAGE, MessageAction.MARK_READ, {"markReadMessage": int(index)})

    def get_diagnostics(self) -> Dict[str, Any]:
        """Get diagnostic information about the connection."""
        return {
            "address": self.base_url,
            "username": self.username,
            "authenticated": self.is_authenticated,
            "encrypted": self.encrypted,
            "last_error": self._last_error,
            "password_length": len(self.password),
        }
