"""Module names, action codes and result codes of the M7350 web gateway.

The web interface addresses everything as a (module, action) pair: the
module is a name string and the action a small integer whose meaning
depends on the module. Replies carry an integer ``result`` that is
interpreted with the result code enums below.

Codes marked "newer firmware" were only observed on firmware that also
uses the encrypted transport.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Type, TypeVar, Union

_E = TypeVar("_E", bound=IntEnum)


class Module(str, Enum):
    """Modules exposed by the web gateway."""

    AUTHENTICATOR = "authenticator"
    WEB_SERVER = "webServer"
    STATUS = "status"
    WAN = "wan"
    SIM_LOCK = "simLock"
    MESSAGE = "message"
    WLAN = "wlan"
    WPS = "wps"
    POWER_SAVE = "power_save"
    FLOW_STAT = "flowstat"
    CONNECTED_DEVICES = "connectedDevices"
    MAC_FILTERS = "macFilters"
    LAN = "lan"
    UPDATE = "update"
    STORAGE_SHARE = "storageShare"
    REBOOT = "reboot"
    RESTORE_DEFAULTS = "restoreDefaults"
    TIME = "time"
    LOG = "log"
    AP_BRIDGE = "apBridge"
    VOICE = "voice"
    UPNP = "upnp"
    DMZ = "dmz"
    ALG = "alg"
    VIRTUAL_SERVER = "virtualServer"
    PORT_TRIGGERING = "portTrigger"


class APSecurity(str, Enum):
    """WLAN security types used by the access point bridge."""

    NO_PASSWORD = "noPassword"
    WEP = "wepSecurity"
    WPA_TKIP = "wpaTkipSecurity"
    WPA_AES = "wpaAesSecurity"
    WPA2_TKIP = "wpa2TkipSecurity"
    WPA2_AES = "wpa2AesSecurity"
    WPA_WPA2 = "wpaWpa2Security"
    IEEE8021X = "ieee8021XSecurity"
    UNKNOWN = "unknownSecurity"


# Result codes


class AuthErrorCode(IntEnum):
    """Result codes of the auth_cgi endpoint."""

    SUCCESS = 0
    NOT_MATCH = 1
    FAILURE = 2


class WebErrorCode(IntEnum):
    """Result codes of the web_cgi endpoint."""

    SUCCESS = 0
    KICKED_OUT = -2
    TOKEN_ERROR = -3


class SendMessageStatus(IntEnum):
    """Result codes of the message send status query."""

    SEND_SUCCESS_SAVE_SUCCESS = 0
    SEND_SUCCESS_SAVE_FAIL = 1
    SEND_FAIL_SAVE_SUCCESS = 2
    SEND_FAIL_SAVE_FAIL = 3
    SENDING = 4


class Mailbox(IntEnum):
    """SMS storage locations."""

    INBOX = 0
    OUTBOX = 1
    DRAFT = 2


# Action codes


class ConfigAction(IntEnum):
    """Get/set pair shared by every configurable module."""

    GET_CONFIG = 0
    SET_CONFIG = 1


class AuthenticatorAction(IntEnum):
    LOAD = 0
    LOGIN = 1
    GET_ATTEMPT = 2
    LOGOUT = 3
    UPDATE = 4


class MessageAction(IntEnum):
    GET_CONFIG = 0
    SET_CONFIG = 1
    READ_MSG = 2
    SEND_MSG = 3
    SAVE_MSG = 4
    DEL_MSG = 5
    MARK_READ = 6
    GET_SEND_STATUS = 7


class APBridgeAction(IntEnum):
    GET_CONFIG = 0
    SET_CONFIG = 1
    CONNECT_AP = 2
    SCAN_AP = 3
    CHECK_CONNECTION_STATUS = 4


class ConnectedDevicesAction(IntEnum):
    GET_CONFIG = 0
    EDIT_NAME = 1  # newer firmware


class LogAction(IntEnum):
    GET_LOG = 0
    CLEAR_LOG = 1
    SAVE_LOG = 2
    REFRESH = 3
    GET_MD_LOG = 4
    SET_MD_LOG = 5


class MACFiltersAction(IntEnum):
    GET_BLACK_LIST = 0
    SET_BLACK_LIST = 1


class PortTriggeringAction(IntEnum):
    GET_CONFIG = 0
    SET_CONFIG = 1
    DELETE_ENTRY = 2


class RebootAction(IntEnum):
    REBOOT = 0
    SHUTDOWN = 1


class SIMLockAction(IntEnum):
    GET_CONFIG = 0
    ENABLE_PIN = 1
    DISABLE_PIN = 2
    UPDATE_PIN = 3
    UNLOCK_PIN = 4
    UNLOCK_PUK = 5
    AUTO_UNLOCK = 6


class TimeAction(IntEnum):
    GET_CONFIG = 0
    SET_CONFIG = 1
    QUERY_TIME = 2


class FirmwareUpdateAction(IntEnum):
    GET_CONFIG = 0
    CHECK_NEW = 1
    SERVER_UPDATE = 2
    PAUSE_LOAD = 3
    REQUEST_LOAD_PERCENTAGE = 4
    CHECK_UPLOAD_RESULT = 5
    START_UPGRADE = 6
    CLEAR_CACHE = 7


class UPnPAction(IntEnum):
    GET_CONFIG = 0
    SET_CONFIG = 1
    GET_DEVICE_LIST = 2


class VirtualServerAction(IntEnum):
    GET_CONFIG = 0
    SET_CONFIG = 1
    DELETE_ENTRY = 2


class VoiceAction(IntEnum):
    GET_CONFIG = 0
    SEND_USSD = 1
    CANCEL_USSD = 2
    GET_SEND_STATUS = 3


class WANAction(IntEnum):
    """WAN actions. The numbering has gaps on the device side."""

    GET_CONFIG = 0
    SET_CONFIG = 1
    ADD_PROFILE = 2
    DELETE_PROFILE = 3
    SET_NETWORK_SELECTION_MODE = 8
    QUERY_AVAILABLE_NETWORKS = 9
    GET_NETWORK_SELECTION_STATUS = 10
    GET_DISCONNECTION_REASON = 11
    CANCEL_SEARCH = 14
    UPDATE_ISP = 15
    # newer firmware
    BAND_SEARCH = 16
    GET_BAND_SEARCH_STATUS = 17
    SET_SELECTED_BAND = 18
    CANCEL_BAND_SEARCH = 19


class WebServerAction(IntEnum):
    GET_LANGUAGE = 0
    SET_LANGUAGE = 1
    KEEP_ALIVE = 2
    UNSET_DEFAULT = 3
    GET_MODULE_LIST = 4
    GET_FEATURE_LIST = 5
    GET_INFO_WITHOUT_AUTH = 6  # newer firmware


class WLANAction(IntEnum):
    GET_CONFIG = 0
    SET_CONFIG = 1
    SET_NO_WLAN = 2


class WPSAction(IntEnum):
    GET_CONFIG = 0
    SET_CONFIG = 1
    START = 2
    CANCEL = 3


def to_enum(enum_cls: Type[_E], value: int) -> Union[_E, int]:
    """Map a raw device code onto ``enum_cls``, keeping unknown codes as int."""
    try:
        return enum_cls(value)
    except ValueError:
        return value
