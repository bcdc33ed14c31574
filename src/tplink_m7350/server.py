"""MCP Server for TP-Link M7350 modem management.

This module provides an MCP (Model Context Protocol) server exposing
the modem's SMS mailbox and module configuration as MCP tools.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .client import DEFAULT_ADDRESS, DEFAULT_USERNAME, M7350Error, TPLinkM7350
from .constants import Mailbox, Module

# Load environment variables
load_dotenv()

# Configure module logger
logger = logging.getLogger(__name__)

TRUTHY_VALUES = ("1", "true", "yes", "on")

MAILBOX_NAMES = [box.name.lower() for box in Mailbox]


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in TRUTHY_VALUES


@dataclass
class ClientConfig:
    """Configuration for the modem client."""

    host: str
    username: str
    password: str
    encrypted: bool = False

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Create configuration from environment variables.

        Returns:
            ClientConfig with values from environment.
        """
        return cls(
            host=os.getenv("TPLINK_HOST", DEFAULT_ADDRESS),
            username=os.getenv("TPLINK_USERNAME", DEFAULT_USERNAME),
            password=os.getenv("TPLINK_PASSWORD", ""),
            encrypted=env_flag("TPLINK_ENCRYPTED"),
        )

    def create_client(self) -> TPLinkM7350:
        """Build a modem client from this configuration."""
        return TPLinkM7350(
            self.host,
            password=self.password,
            username=self.username,
            encrypted=self.encrypted,
        )


class ClientManager:
    """Manages the modem client lifecycle.

    This class provides lock-guarded access to a shared TPLinkM7350
    instance, with lazy initialization on first use.

    Attributes:
        config: Client configuration.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """Initialize the client manager.

        Args:
            config: Optional client configuration. If not provided,
                    configuration is loaded from environment variables.
        """
        self._config = config or ClientConfig.from_env()
        self._client: Optional[TPLinkM7350] = None
        self._lock = asyncio.Lock()
        self._call_lock = asyncio.Lock()

    @property
    def config(self) -> ClientConfig:
        """Get the client configuration."""
        return self._config

    async def get_client(self) -> TPLinkM7350:
        """Get or create the modem client.

        Returns:
            Configured TPLinkM7350 instance.
        """
        async with self._lock:
            if self._client is None:
                logger.debug("Creating new TPLinkM7350 client for %s", self._config.host)
                self._client = self._config.create_client()
            return self._client

    async def run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking call in a worker thread, one call at a time.

        Calls share one client, hence one session token and key set.
        """
        async with self._call_lock:
            return await asyncio.to_thread(func, *args)

    async def reset_client(self) -> None:
        """Reset the client, forcing re-authentication on next use."""
        async with self._lock:
            if self._client:
                await asyncio.to_thread(self._client.logout)
                self._client = None
            logger.debug("Client reset")


# Global client manager instance
_client_manager: Optional[ClientManager] = None


def get_client_manager() -> ClientManager:
    """Get the global client manager, creating it on first use.

    Returns:
        The global ClientManager instance.
    """
    global _client_manager
    if _client_manager is None:
        _client_manager = ClientManager()
    return _client_manager


# Initialize MCP server
server = Server("mcp-tplink-m7350")

_EMPTY_SCHEMA: Dict[str, Any] = {"type": "object", "properties": {}, "required": []}


def _get_tool_definitions() -> List[Tool]:
    """Get the list of available tool definitions.

    Returns:
        List of Tool definitions for the MCP server.
    """
    module_names = [module.value for module in Module]
    return [
        Tool(
            name="modem_status",
            description="Get modem status (network, battery, WAN and connected clients)",
            inputSchema=_EMPTY_SCHEMA,
        ),
        Tool(
            name="sms_read",
            description="List the messages stored in a modem mailbox",
            inputSchema={
                "type": "object",
                "properties": {
                    "box": {
                        "type": "string",
                        "description": "Mailbox to read (default: inbox)",
                        "enum": MAILBOX_NAMES,
                    }
                },
                "required": [],
            },
        ),
        Tool(
            name="sms_send",
            description="Send an SMS and wait for the modem to report the outcome",
            inputSchema={
                "type": "object",
                "properties": {
                    "phone_number": {
                        "type": "string",
                        "description": "Recipient phone number",
                    },
                    "message": {
                        "type": "string",
                        "description": "Text to send",
                    },
                },
                "required": ["phone_number", "message"],
            },
        ),
        Tool(
            name="sms_delete",
            description="Delete messages from a mailbox by index",
            inputSchema={
                "type": "object",
                "properties": {
                    "box": {
                        "type": "string",
                        "description": "Mailbox holding the messages",
                        "enum": MAILBOX_NAMES,
                    },
                    "indices": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "Indices of the messages to delete (see sms_read)",
                    },
                },
                "required": ["box", "indices"],
            },
        ),
        Tool(
            name="sms_mark_read",
            description="Mark an inbox message as read",
            inputSchema={
                "type": "object",
                "properties": {
                    "index": {
                        "type": "integer",
                        "description": "Index of the message (see sms_read)",
                    }
                },
                "required": ["index"],
            },
        ),
        Tool(
            name="module_get_config",
            description="Read the configuration of a modem module",
            inputSchema={
                "type": "object",
                "properties": {
                    "module": {
                        "type": "string",
                        "description": "Module name",
                        "enum": module_names,
                    }
                },
                "required": ["module"],
            },
        ),
        Tool(
            name="module_set_config",
            description="Write configuration settings of a modem module",
            inputSchema={
                "type": "object",
                "properties": {
                    "module": {
                        "type": "string",
                        "description": "Module name",
                        "enum": module_names,
                    },
                    "settings": {
                        "type": "object",
                        "description": "Settings merged into the set request",
                    },
                },
                "required": ["module", "settings"],
            },
        ),
        Tool(
            name="login_attempts",
            description="Get the number of failed login attempts",
            inputSchema=_EMPTY_SCHEMA,
        ),
        Tool(
            name="reboot_modem",
            description="Reboot the modem (use with caution!)",
            inputSchema={
                "type": "object",
                "properties": {
                    "confirm": {
                        "type": "boolean",
                        "description": "Must be true to confirm reboot",
                    }
                },
                "required": ["confirm"],
            },
        ),
        Tool(
            name="modem_diagnostics",
            description="Get diagnostic information about the modem connection and authentication status",
            inputSchema=_EMPTY_SCHEMA,
        ),
    ]


def _mailbox(arguments: Dict[str, Any]) -> Mailbox:
    name = str(arguments.get("box", "inbox")).upper()
    try:
        return Mailbox[name]
    except KeyError:
        raise ValueError(f"Unknown mailbox: {arguments.get('box')}") from None


def _argument(arguments: Dict[str, Any], key: str, expected: type) -> Any:
    """Fetch a required tool argument, checking its JSON type."""
    if key not in arguments:
        raise ValueError(f"Missing argument: {key}")
    value = arguments[key]
    if not isinstance(value, expected):
        raise ValueError(f"Argument {key} must be of type {expected.__name__}")
    return value


def _indices(arguments: Dict[str, Any]) -> List[int]:
    indices = _argument(arguments, "indices", list)
    if not all(isinstance(i, int) for i in indices):
        raise ValueError("Argument indices must be a list of integers")
    return indices


def _module(arguments: Dict[str, Any]) -> Module:
    name = _argument(arguments, "module", str)
    try:
        return Module(name)
    except ValueError:
        raise ValueError(f"Unknown module: {name}") from None


def _handle_tool_call(client: TPLinkM7350, name: str, arguments: Dict[str, Any]) -> Any:
    """Handle a tool call and return the result.

    Args:
        client: The TPLinkM7350 instance.
        name: The tool name.
        arguments: The tool arguments.

    Returns:
        The result of the tool call.

    Raises:
        ValueError: If the tool name is unknown or an argument is missing or malformed.
    """
    if name == "modem_status":
        return client.get_status()

    elif name == "sms_read":
        return [message.to_dict() for message in client.read_sms(_mailbox(arguments))]

    elif name == "sms_send":
        status = client.send_sms(_argument(arguments, "phone_number", str), _argument(arguments, "message", str))
        return {
            "status": getattr(status, "name", status),
            "code": int(status),
            "success": status == 0,
        }

    elif name == "sms_delete":
        return {"success": client.delete_sms(_mailbox(arguments), _indices(arguments))}

    elif name == "sms_mark_read":
        return {"success": client.mark_sms_read(_argument(arguments, "index", int))}

    elif name == "module_get_config":
        return client.get_config(_module(arguments))

    elif name == "module_set_config":
        return {"success": client.set_config(_module(arguments), _argument(arguments, "settings", dict))}

    elif name == "login_attempts":
        return client.get_login_attempt_count()

    elif name == "reboot_modem":
        if arguments.get("confirm"):
            return {"success": client.reboot()}
        else:
            return {"error": "Reboot not confirmed. Set confirm=true to proceed."}

    elif name == "modem_diagnostics":
        return client.get_diagnostics()

    else:
        raise ValueError(f"Unknown tool: {name}")


@server.list_tools()
async def list_tools() -> List[Tool]:
    """List available tools."""
    return _get_tool_definitions()


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Handle tool calls.

    Args:
        name: The tool name to call.
        arguments: The arguments for the tool.

    Returns:
        List containing a single TextContent with the JSON result.
    """
    manager = get_client_manager()
    client = await manager.get_client()

    try:
        result = await manager.run(_handle_tool_call, client, name, arguments or {})
        return [TextContent(type="text", text=json.dumps(result, indent=2))]
    except (ValueError, KeyError) as e:
        logger.warning("Invalid tool call %s: %s", name, e)
        return [TextContent(type="text", text=json.dumps({"error": str(e)}, indent=2))]
    except M7350Error as e:
        logger.error("Modem error during %s: %s", name, e)
        return [TextContent(type="text", text=json.dumps({"error": str(e)}, indent=2))]


def main() -> None:
    """Main entry point for the MCP server."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    async def run() -> None:
        """Run the MCP server."""
        logger.info("Starting MCP TP-Link M7350 server")
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    asyncio.run(run())


if __name__ == "__main__":
    main()
